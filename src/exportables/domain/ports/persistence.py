"""Ports for persisting managed records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from exportables.domain.model import ManagedRecord, ManagedType, Status


@runtime_checkable
class RecordStore(Protocol):
    """Key-addressable store for records of every managed type.

    Each write is durable on its own; implementations raise
    :class:`~exportables.domain.errors.StoreError` when a call fails.
    """

    def load(self, managed_type: ManagedType, name: str) -> ManagedRecord | None: ...

    def load_by_names(
        self, managed_type: ManagedType, names: Iterable[str]
    ) -> dict[str, ManagedRecord]: ...

    def load_by_status(
        self, managed_type: ManagedType, flag: Status
    ) -> Sequence[ManagedRecord]: ...

    def save(self, managed_type: ManagedType, record: ManagedRecord) -> None: ...

    def delete(self, managed_type: ManagedType, name: str) -> None: ...

    def schema_fields(self, managed_type: ManagedType) -> frozenset[str]: ...
