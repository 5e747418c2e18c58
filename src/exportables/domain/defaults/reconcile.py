"""Merge declared defaults into the persisted records of one managed type.

The reconciler runs four strictly ordered phases, each finishing its writes
before the next one starts:

1) load the persisted defaults (records carrying ``IN_CODE``)
2) disappearance: demote overridden defaults that are no longer declared,
   keep fixed ones, delete the rest
3) customization detection: customized records that are declared again become
   ``OVERRIDDEN``; their payload is left alone and the code version is dropped
4) apply: write the remaining declared defaults, reusing storage identities

and then hands the applied records and their prior snapshots to the notifier.
Every store write is durable on its own. A :class:`StoreError` aborts the run
but leaves earlier writes in place; the caller holds the type lock throughout.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from exportables.domain.model import ManagedRecord, Status

if TYPE_CHECKING:
    from collections.abc import Mapping

    from exportables.domain.model import ManagedType
    from exportables.domain.ports import RecordStore

    from .notify import RebuildNotifier

log = getLogger(__name__)


@dataclass(slots=True)
class RebuildResult:
    """Outcome of one reconciliation pass for one managed type."""

    type_name: str
    applied: dict[str, ManagedRecord] = field(default_factory=dict["str", "ManagedRecord"])
    originals: dict[str, ManagedRecord | None] = field(
        default_factory=dict["str", "ManagedRecord | None"]
    )
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    overridden: int = 0
    demoted: int = 0
    deleted: int = 0
    kept_fixed: int = 0
    failed_listeners: int = 0

    @property
    def writes(self) -> int:
        return self.created + self.updated + self.overridden + self.demoted + self.deleted


@dataclass(slots=True)
class DefaultsReconciler:
    store: RecordStore
    notifier: RebuildNotifier | None = None

    def reconcile(
        self,
        managed_type: ManagedType,
        declared: Mapping[str, ManagedRecord],
    ) -> RebuildResult:
        """Bring the persisted records of ``managed_type`` in line with ``declared``."""

        result = RebuildResult(type_name=managed_type.name)
        pending = dict(declared)

        existing = self._load_existing_defaults(managed_type)
        self._remove_disappeared(managed_type, existing, pending, result)
        current = self._detect_customizations(managed_type, pending, result)
        self._apply_defaults(managed_type, pending, current, result)

        if self.notifier is not None:
            result.failed_listeners = self.notifier.notify(
                managed_type, result.applied, result.originals
            )

        log.info(
            "Rebuilt defaults for %s: created=%s, updated=%s, unchanged=%s, overridden=%s, "
            "demoted=%s, deleted=%s",
            managed_type.name,
            result.created,
            result.updated,
            result.unchanged,
            result.overridden,
            result.demoted,
            result.deleted,
        )
        return result

    def _load_existing_defaults(self, managed_type: ManagedType) -> dict[str, ManagedRecord]:
        records = self.store.load_by_status(managed_type, Status.IN_CODE)
        return {record.name: record for record in records}

    def _remove_disappeared(
        self,
        managed_type: ManagedType,
        existing: Mapping[str, ManagedRecord],
        pending: Mapping[str, ManagedRecord],
        result: RebuildResult,
    ) -> None:
        for name, record in existing.items():
            if name in pending:
                continue
            if record.has_status(Status.OVERRIDDEN):
                record.demote()
                self.store.save(managed_type, record)
                result.demoted += 1
                log.debug("Demoted %s/%s to a custom record", managed_type.name, name)
            elif record.has_status(Status.FIXED):
                result.kept_fixed += 1
                log.info(
                    "Fixed default %s/%s is no longer declared; keeping it",
                    managed_type.name,
                    name,
                )
            else:
                self.store.delete(managed_type, name)
                result.deleted += 1
                log.debug("Deleted vanished default %s/%s", managed_type.name, name)

    def _detect_customizations(
        self,
        managed_type: ManagedType,
        pending: dict[str, ManagedRecord],
        result: RebuildResult,
    ) -> dict[str, ManagedRecord]:
        current = self.store.load_by_names(managed_type, pending.keys())
        for name, record in current.items():
            # A row without any status predates reconciliation and belongs to the user.
            if not record.status:
                record.status = Status.CUSTOM
            if not record.has_status(Status.CUSTOM):
                continue
            if not record.has_status(Status.OVERRIDDEN):
                record.mark_overridden(pending[name].module)
                self.store.save(managed_type, record)
                result.overridden += 1
                log.debug("Marked %s/%s as overridden", managed_type.name, name)
            del pending[name]
        return current

    def _apply_defaults(
        self,
        managed_type: ManagedType,
        pending: Mapping[str, ManagedRecord],
        current: Mapping[str, ManagedRecord],
        result: RebuildResult,
    ) -> None:
        for name, record in pending.items():
            prior = current.get(name)
            status = record.status | Status.IN_CODE
            if prior is not None:
                record.id = prior.id
                record.is_new = False
                status |= prior.status
            record.status = Status.IN_CODE
            record.add_status(Status(status))

            result.originals[name] = prior.snapshot() if prior is not None else None
            result.applied[name] = record

            if prior is not None and prior.same_content(record):
                result.unchanged += 1
                continue
            self.store.save(managed_type, record)
            if prior is None:
                result.created += 1
            else:
                result.updated += 1


def reconcile(
    managed_type: ManagedType,
    declared: Mapping[str, ManagedRecord],
    store: RecordStore,
    *,
    notifier: RebuildNotifier | None = None,
) -> RebuildResult:
    """Functional entry point around :class:`DefaultsReconciler`."""

    return DefaultsReconciler(store=store, notifier=notifier).reconcile(managed_type, declared)
