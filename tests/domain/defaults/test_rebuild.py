from __future__ import annotations

import threading

from exportables.adapters.memory import InMemoryLockTable, InMemoryRecordStore
from exportables.config import RebuildConfig
from exportables.domain.defaults import (
    DefaultsRebuilder,
    DefaultsRegistry,
    RebuildOutcome,
    RebuildReport,
    rebuild_defaults,
)
from exportables.domain.model import Status
from tests.helpers.records import GADGET, HIDDEN, WIDGET, BlockingProvider, StaticProvider


def _rebuilder(
    registry: DefaultsRegistry,
    store: InMemoryRecordStore,
    locks: InMemoryLockTable,
    **config: str,
) -> DefaultsRebuilder:
    return DefaultsRebuilder(
        registry=registry,
        store=store,
        locks=locks,
        config=RebuildConfig(**config),  # type: ignore[arg-type]
    )


def test_rebuild_all_exportable_types(
    registry: DefaultsRegistry,
    memory_store: InMemoryRecordStore,
    memory_locks: InMemoryLockTable,
) -> None:
    registry.register_type(HIDDEN)
    registry.register_provider(WIDGET.default_hook, StaticProvider({"alpha": {}}), module="core")
    registry.register_provider(GADGET.default_hook, StaticProvider({"beta": {}}), module="core")
    hidden = StaticProvider({"gamma": {}})
    registry.register_provider(HIDDEN.default_hook, hidden, module="core")

    report = rebuild_defaults(registry=registry, store=memory_store, locks=memory_locks)

    assert report.names(RebuildOutcome.REBUILT) == ("widget", "gadget")
    assert report.ok
    assert hidden.calls == 0
    assert memory_store.load(WIDGET, "alpha") is not None
    assert memory_store.load(GADGET, "beta") is not None


def test_named_types_include_non_exportable_ones(
    registry: DefaultsRegistry,
    memory_store: InMemoryRecordStore,
    memory_locks: InMemoryLockTable,
) -> None:
    registry.register_type(HIDDEN)
    registry.register_provider(HIDDEN.default_hook, StaticProvider({"gamma": {}}), module="core")

    report = rebuild_defaults(
        ["hidden", "hidden"], registry=registry, store=memory_store, locks=memory_locks
    )

    assert list(report.entries) == ["hidden"]
    assert report.outcome("hidden") is RebuildOutcome.REBUILT
    result = report.result("hidden")
    assert result is not None
    assert result.created == 1


def test_schema_error_skips_only_that_type(
    registry: DefaultsRegistry, memory_locks: InMemoryLockTable
) -> None:
    store = InMemoryRecordStore(fields={"gadget": frozenset({"id", "name", "payload"})})
    registry.register_provider(WIDGET.default_hook, StaticProvider({"alpha": {}}), module="core")
    registry.register_provider(GADGET.default_hook, StaticProvider({"beta": {}}), module="core")

    report = rebuild_defaults(registry=registry, store=store, locks=memory_locks)

    assert report.outcome("gadget") is RebuildOutcome.SCHEMA_ERROR
    assert report.outcome("widget") is RebuildOutcome.REBUILT
    assert not report.ok
    assert store.load(GADGET, "beta") is None
    assert not memory_locks.is_held("entity_rebuild_gadget")


def test_unknown_type_is_reported(
    registry: DefaultsRegistry,
    memory_store: InMemoryRecordStore,
    memory_locks: InMemoryLockTable,
) -> None:
    report = rebuild_defaults(
        ["widget", "nope"], registry=registry, store=memory_store, locks=memory_locks
    )

    assert report.outcome("nope") is RebuildOutcome.UNKNOWN_TYPE
    assert report.outcome("widget") is RebuildOutcome.REBUILT


def test_collision_error_fails_only_that_type(
    registry: DefaultsRegistry,
    memory_store: InMemoryRecordStore,
    memory_locks: InMemoryLockTable,
) -> None:
    registry.register_provider(WIDGET.default_hook, StaticProvider({"alpha": {}}), module="a")
    registry.register_provider(WIDGET.default_hook, StaticProvider({"alpha": {}}), module="b")
    registry.register_provider(GADGET.default_hook, StaticProvider({"beta": {}}), module="a")
    rebuilder = _rebuilder(registry, memory_store, memory_locks, collision_policy="error")

    report = rebuilder.rebuild()

    entry = report.entries["widget"]
    assert entry.outcome is RebuildOutcome.FAILED
    assert entry.error is not None
    assert "alpha" in entry.error
    assert report.outcome("gadget") is RebuildOutcome.REBUILT
    assert not memory_locks.is_held("entity_rebuild_widget")


def test_failing_provider_fails_only_that_type(
    registry: DefaultsRegistry,
    memory_store: InMemoryRecordStore,
    memory_locks: InMemoryLockTable,
) -> None:
    def broken() -> dict[str, dict[str, int]]:
        raise ValueError("bad defaults file")

    registry.register_provider(WIDGET.default_hook, broken, module="core")
    registry.register_provider(GADGET.default_hook, StaticProvider({"beta": {}}), module="core")

    report = rebuild_defaults(registry=registry, store=memory_store, locks=memory_locks)

    entry = report.entries["widget"]
    assert entry.outcome is RebuildOutcome.FAILED
    assert entry.error == "ValueError: bad defaults file"
    assert report.outcome("gadget") is RebuildOutcome.REBUILT
    assert memory_store.load(GADGET, "beta") is not None
    assert not memory_locks.is_held("entity_rebuild_widget")


def test_failing_alteration_fails_only_that_type(
    registry: DefaultsRegistry,
    memory_store: InMemoryRecordStore,
    memory_locks: InMemoryLockTable,
) -> None:
    def broken(defaults: dict[str, object]) -> None:
        raise KeyError(next(iter(defaults)))

    registry.register_provider(WIDGET.default_hook, StaticProvider({"alpha": {}}), module="core")
    registry.register_alter(WIDGET.default_hook, broken)
    registry.register_provider(GADGET.default_hook, StaticProvider({"beta": {}}), module="core")

    report = rebuild_defaults(registry=registry, store=memory_store, locks=memory_locks)

    assert report.outcome("widget") is RebuildOutcome.FAILED
    assert report.outcome("gadget") is RebuildOutcome.REBUILT
    assert memory_store.load(WIDGET, "alpha") is None


def test_contended_type_is_skipped(
    registry: DefaultsRegistry,
    memory_store: InMemoryRecordStore,
    memory_locks: InMemoryLockTable,
) -> None:
    registry.register_provider(WIDGET.default_hook, StaticProvider({"alpha": {}}), module="core")
    memory_locks.acquire("entity_rebuild_widget")

    report = rebuild_defaults(["widget"], registry=registry, store=memory_store, locks=memory_locks)

    assert report.outcome("widget") is RebuildOutcome.LOCKED
    assert report.ok
    assert memory_store.writes == 0


def test_lock_prefix_is_configurable(
    registry: DefaultsRegistry,
    memory_store: InMemoryRecordStore,
    memory_locks: InMemoryLockTable,
) -> None:
    memory_locks.acquire("entity_rebuild_widget")
    rebuilder = _rebuilder(registry, memory_store, memory_locks, lock_prefix="other_")

    assert rebuilder.rebuild_type(WIDGET) is not None


def test_concurrent_rebuilds_run_one_reconciliation(
    registry: DefaultsRegistry,
    memory_store: InMemoryRecordStore,
    memory_locks: InMemoryLockTable,
) -> None:
    provider = BlockingProvider({"alpha": {"size": 1}})
    registry.register_provider(WIDGET.default_hook, provider, module="core")
    reports: list[RebuildReport] = []

    def first() -> None:
        reports.append(
            rebuild_defaults(
                ["widget"], registry=registry, store=memory_store, locks=memory_locks
            )
        )

    worker = threading.Thread(target=first)
    worker.start()
    try:
        assert provider.entered.wait(timeout=5)
        second = rebuild_defaults(
            ["widget"], registry=registry, store=memory_store, locks=memory_locks
        )
        writes_during_second = memory_store.writes
    finally:
        provider.release.set()
        worker.join(timeout=5)

    assert second.outcome("widget") is RebuildOutcome.LOCKED
    assert writes_during_second == 0
    assert reports[0].outcome("widget") is RebuildOutcome.REBUILT
    assert memory_store.writes == 1
    stored = memory_store.load(WIDGET, "alpha")
    assert stored is not None
    assert stored.status == Status.IN_CODE


def test_end_to_end_rebuild_scenario(
    registry: DefaultsRegistry,
    memory_store: InMemoryRecordStore,
    memory_locks: InMemoryLockTable,
) -> None:
    provider = StaticProvider({"alpha": {"value": "A"}})
    registry.register_provider(WIDGET.default_hook, provider, module="core")
    rebuilder = _rebuilder(registry, memory_store, memory_locks)

    rebuilder.rebuild(["widget"])
    stored = memory_store.load(WIDGET, "alpha")
    assert stored is not None
    assert (stored.status, stored.payload) == (Status.IN_CODE, {"value": "A"})

    stored.status = Status.CUSTOM
    stored.payload = {"value": "A'"}
    memory_store.save(WIDGET, stored)

    rebuilder.rebuild(["widget"])
    stored = memory_store.load(WIDGET, "alpha")
    assert stored is not None
    assert (stored.status, stored.payload) == (Status.OVERRIDDEN, {"value": "A'"})

    provider.defaults = {}
    rebuilder.rebuild(["widget"])
    stored = memory_store.load(WIDGET, "alpha")
    assert stored is not None
    assert (stored.status, stored.payload) == (Status.CUSTOM, {"value": "A'"})
