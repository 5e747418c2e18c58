"""In-process adapters: a dictionary-backed record store and a lock table."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from exportables.domain.errors import StoreError
from exportables.domain.model import ManagedRecord, has_status

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from exportables.domain.model import ManagedType, Status

DEFAULT_FIELDS: frozenset[str] = frozenset({"id", "name", "status", "module", "payload"})


@dataclass(slots=True)
class InMemoryRecordStore:
    """Record store keeping detached copies per managed type.

    ``fields`` overrides the persisted schema of individual types, which lets
    callers model a type that lacks the provenance columns.
    """

    fields: dict[str, frozenset[str]] = field(default_factory=dict["str", "frozenset[str]"])
    _rows: dict[str, dict[str, ManagedRecord]] = field(
        default_factory=dict["str", "dict[str, ManagedRecord]"]
    )
    _mutex: threading.Lock = field(default_factory=threading.Lock)
    writes: int = 0

    def _table(self, managed_type: ManagedType) -> dict[str, ManagedRecord]:
        return self._rows.setdefault(managed_type.table, {})

    def load(self, managed_type: ManagedType, name: str) -> ManagedRecord | None:
        with self._mutex:
            record = self._table(managed_type).get(name)
            return _detach(record) if record is not None else None

    def load_by_names(
        self, managed_type: ManagedType, names: Iterable[str]
    ) -> dict[str, ManagedRecord]:
        with self._mutex:
            table = self._table(managed_type)
            return {name: _detach(table[name]) for name in names if name in table}

    def load_by_status(self, managed_type: ManagedType, flag: Status) -> Sequence[ManagedRecord]:
        with self._mutex:
            return [
                _detach(record)
                for record in self._table(managed_type).values()
                if has_status(record, flag)
            ]

    def save(self, managed_type: ManagedType, record: ManagedRecord) -> None:
        with self._mutex:
            table = self._table(managed_type)
            for name, stored in table.items():
                if stored.id == record.id and name != record.name:
                    # Renamed in place: the storage identity moves with the row.
                    del table[name]
                    break
            clash = table.get(record.name)
            if clash is not None and clash.id != record.id:
                raise StoreError(
                    f"{managed_type.name}/{record.name} already exists with a different id"
                )
            table[record.name] = _detach(record)
            self.writes += 1

    def delete(self, managed_type: ManagedType, name: str) -> None:
        with self._mutex:
            self._table(managed_type).pop(name, None)
            self.writes += 1

    def schema_fields(self, managed_type: ManagedType) -> frozenset[str]:
        return self.fields.get(managed_type.name, DEFAULT_FIELDS)


@dataclass(slots=True)
class InMemoryLockTable:
    """Non-blocking named locks shared by the threads of one process."""

    _held: set[str] = field(default_factory=set["str"])
    _mutex: threading.Lock = field(default_factory=threading.Lock)

    def acquire(self, name: str) -> bool:
        with self._mutex:
            if name in self._held:
                return False
            self._held.add(name)
            return True

    def release(self, name: str) -> None:
        with self._mutex:
            self._held.discard(name)

    def is_held(self, name: str) -> bool:
        with self._mutex:
            return name in self._held


def _detach(record: ManagedRecord) -> ManagedRecord:
    detached = record.snapshot()
    detached.is_new = False
    return detached


if TYPE_CHECKING:
    from exportables.domain.ports import LockProvider, RecordStore

    _store_check: RecordStore = InMemoryRecordStore()
    _lock_check: LockProvider = InMemoryLockTable()
