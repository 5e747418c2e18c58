"""Rebuild orchestration: lock, guard, collect, reconcile, notify."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from exportables.config import RebuildConfig
from exportables.domain.errors import DefaultCollisionError, SchemaError, StoreError

from .collect import collect_defaults
from .lock import with_type_lock
from .notify import RebuildNotifier
from .reconcile import DefaultsReconciler, RebuildResult
from .schema import ensure_provenance_fields

if TYPE_CHECKING:
    from collections.abc import Iterable

    from exportables.domain.model import ManagedType
    from exportables.domain.ports import LockProvider, RecordStore

    from .registry import DefaultsRegistry

log = getLogger(__name__)


class RebuildOutcome(StrEnum):
    REBUILT = "rebuilt"
    LOCKED = "locked"
    SCHEMA_ERROR = "schema_error"
    FAILED = "failed"
    UNKNOWN_TYPE = "unknown_type"


@dataclass(slots=True)
class TypeRebuild:
    type_name: str
    outcome: RebuildOutcome
    result: RebuildResult | None = None
    error: str | None = None


@dataclass(slots=True)
class RebuildReport:
    """Per-type outcomes of a batch rebuild."""

    entries: dict[str, TypeRebuild] = field(default_factory=dict["str", "TypeRebuild"])

    def add(self, entry: TypeRebuild) -> None:
        self.entries[entry.type_name] = entry

    def outcome(self, type_name: str) -> RebuildOutcome | None:
        entry = self.entries.get(type_name)
        return entry.outcome if entry is not None else None

    def result(self, type_name: str) -> RebuildResult | None:
        entry = self.entries.get(type_name)
        return entry.result if entry is not None else None

    def names(self, outcome: RebuildOutcome) -> tuple[str, ...]:
        return tuple(name for name, entry in self.entries.items() if entry.outcome is outcome)

    @property
    def ok(self) -> bool:
        return all(
            entry.outcome in {RebuildOutcome.REBUILT, RebuildOutcome.LOCKED}
            for entry in self.entries.values()
        )


@dataclass(slots=True)
class DefaultsRebuilder:
    """Wire the rebuild stages together for a registry, a store and a lock provider."""

    registry: DefaultsRegistry
    store: RecordStore
    locks: LockProvider
    config: RebuildConfig = field(default_factory=RebuildConfig)

    def rebuild_type(self, managed_type: ManagedType) -> RebuildResult | None:
        """Rebuild one type; ``None`` means another rebuild held the lock.

        Exceptions (:class:`SchemaError`, :class:`StoreError`, collisions and
        whatever a provider raises) propagate after the lock has been released.
        """

        return with_type_lock(
            self.locks,
            managed_type.name,
            lambda: self._run(managed_type),
            prefix=self.config.lock_prefix,
        )

    def rebuild(self, type_names: Iterable[str] | None = None) -> RebuildReport:
        """Rebuild the named types, or every exportable type when ``type_names`` is None.

        Failures are contained per type and recorded in the report; no
        exception from one type's pipeline stops the remaining types.
        """

        report = RebuildReport()
        for name, managed_type in self._select(type_names):
            if managed_type is None:
                log.warning("Cannot rebuild unknown managed type %s", name)
                report.add(TypeRebuild(name, RebuildOutcome.UNKNOWN_TYPE))
                continue
            report.add(self._rebuild_contained(managed_type))
        return report

    def _select(
        self, type_names: Iterable[str] | None
    ) -> list[tuple[str, ManagedType | None]]:
        if type_names is None:
            return [
                (managed_type.name, managed_type)
                for managed_type in self.registry.types(exportable_only=True)
            ]
        return [(name, self.registry.find_type(name)) for name in dict.fromkeys(type_names)]

    def _rebuild_contained(self, managed_type: ManagedType) -> TypeRebuild:
        name = managed_type.name
        try:
            result = self.rebuild_type(managed_type)
        except SchemaError as exc:
            log.warning("Skipping rebuild of %s: %s", name, exc)
            return TypeRebuild(name, RebuildOutcome.SCHEMA_ERROR, error=str(exc))
        except (StoreError, DefaultCollisionError) as exc:
            log.exception("Rebuild of %s failed", name)
            return TypeRebuild(name, RebuildOutcome.FAILED, error=str(exc))
        except Exception as exc:
            # Providers and alterations may raise anything.
            log.exception("Rebuild of %s failed in a module callback", name)
            return TypeRebuild(name, RebuildOutcome.FAILED, error=f"{type(exc).__name__}: {exc}")
        if result is None:
            return TypeRebuild(name, RebuildOutcome.LOCKED)
        return TypeRebuild(name, RebuildOutcome.REBUILT, result=result)

    def _run(self, managed_type: ManagedType) -> RebuildResult:
        ensure_provenance_fields(managed_type, self.store)
        declared = collect_defaults(
            managed_type,
            self.registry,
            collision_policy=self.config.collision_policy,
        )
        reconciler = DefaultsReconciler(
            store=self.store,
            notifier=RebuildNotifier(self.registry),
        )
        return reconciler.reconcile(managed_type, declared)


def rebuild_defaults(
    type_names: Iterable[str] | None = None,
    *,
    registry: DefaultsRegistry,
    store: RecordStore,
    locks: LockProvider,
    config: RebuildConfig | None = None,
) -> RebuildReport:
    """Rebuild defaults for ``type_names`` (all exportable types when omitted)."""

    rebuilder = DefaultsRebuilder(
        registry=registry,
        store=store,
        locks=locks,
        config=config or RebuildConfig(),
    )
    return rebuilder.rebuild(type_names)
