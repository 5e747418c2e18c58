"""Managed records: rows that take part in default reconciliation."""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, cast

from exportables.domain.model.entity import Entity
from exportables.domain.model.status import Status, has_status, validate_status

if TYPE_CHECKING:
    from collections.abc import Mapping

type Payload = dict[str, Any]


@dataclass(eq=False, kw_only=True)
class ManagedRecord(Entity):
    """A record of a managed type.

    ``name`` is the reconciliation key; ``id`` is the storage identity and is
    carried forward when a declared default replaces a persisted row.
    ``is_new`` is transient and never persisted.
    """

    name: str
    status: Status = Status(0)
    module: str | None = None
    payload: Payload = field(default_factory=dict[str, Any])
    is_new: bool = field(default=True, repr=False)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Managed records need a non-empty name")
        self.status = Status(self.status)
        validate_status(self.status)

    def has_status(self, flag: Status) -> bool:
        return has_status(self, flag)

    def add_status(self, flag: Status) -> None:
        """OR ``flag`` into the status, keeping the invariants."""

        combined = Status(self.status | flag)
        validate_status(combined)
        self.status = combined

    def mark_overridden(self, module: str | None) -> None:
        """Record that a customized row is also declared in code by ``module``."""

        self.add_status(Status.IN_CODE)
        self.module = module

    def demote(self) -> None:
        """Sever the tie to code, leaving a plain customization."""

        self.status = Status.CUSTOM

    def snapshot(self) -> ManagedRecord:
        """Return a detached deep copy (payload included)."""

        return replace(self, payload=copy.deepcopy(self.payload))

    def same_content(self, other: ManagedRecord) -> bool:
        return (
            self.name == other.name
            and self.status == other.status
            and self.module == other.module
            and self.payload == other.payload
        )


def encode_payload(payload: Mapping[str, Any]) -> str:
    """Serialize ``payload`` to the JSON text stores persist."""

    return json.dumps(payload, sort_keys=True, default=str)


def normalize_payload(payload: Mapping[str, Any]) -> Payload:
    """Return ``payload`` as it reads back from a store.

    Tuples become lists, keys become strings and values JSON cannot hold
    (datetimes, decimals) become their ``str()``.
    """

    return cast(Payload, json.loads(encode_payload(payload)))
