"""Status flags tracking where a managed record comes from.

``OVERRIDDEN`` and ``FIXED`` are composite aliases, not bits of their own:
a record is overridden exactly when both ``CUSTOM`` and ``IN_CODE`` are set.
The integer values match the classic exportable encoding (1, 2, 3, 6) so
stored columns stay readable by other tools.
"""

from __future__ import annotations

from enum import IntFlag
from typing import Protocol

from exportables.domain.errors import InvalidStatusError


class Status(IntFlag):
    CUSTOM = 0x01
    IN_CODE = 0x02
    LOCKED = 0x04

    OVERRIDDEN = CUSTOM | IN_CODE
    FIXED = LOCKED | IN_CODE

    @classmethod
    def coerce(cls, value: int | None) -> Status:
        """Turn a stored integer into a validated status; ``None`` reads as ``CUSTOM``."""

        if value is None:
            return cls.CUSTOM
        if value & ~cls._all_bits():
            raise InvalidStatusError(f"Unknown status bits in {value:#04x}")
        status = cls(value)
        validate_status(status)
        return status

    @classmethod
    def _all_bits(cls) -> int:
        return cls.CUSTOM | cls.IN_CODE | cls.LOCKED

    @property
    def is_custom(self) -> bool:
        return has_status(self, Status.CUSTOM)

    @property
    def is_in_code(self) -> bool:
        return has_status(self, Status.IN_CODE)

    @property
    def is_overridden(self) -> bool:
        return has_status(self, Status.OVERRIDDEN)

    @property
    def is_fixed(self) -> bool:
        return has_status(self, Status.FIXED)


class HasStatus(Protocol):
    @property
    def status(self) -> Status: ...


def _bits(value: HasStatus | int) -> int:
    if isinstance(value, int):
        return value
    return int(value.status)


def has_status(value: HasStatus | int, flag: Status) -> bool:
    """Return whether every bit of ``flag`` is set on ``value``.

    ``value`` is either a status or anything exposing a ``status`` attribute.
    The test is conjunctive: ``OVERRIDDEN`` only matches when both ``CUSTOM``
    and ``IN_CODE`` are present.
    """

    return (_bits(value) & flag) == flag


def validate_status(status: Status) -> None:
    """Reject bit combinations no record may carry."""

    if status & Status.LOCKED and not status & Status.IN_CODE:
        raise InvalidStatusError("LOCKED requires IN_CODE (use Status.FIXED)")
    if has_status(status, Status.FIXED) and status & Status.CUSTOM:
        raise InvalidStatusError("Fixed records cannot be customized")
