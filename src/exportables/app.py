"""Application orchestration entry points."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from exportables.adapters.export import export_record
from exportables.adapters.sqlalchemy import (
    SqlAlchemyLockTable,
    SqlAlchemyRecordStore,
    add_provenance_columns,
    configured_engine,
    create_type_tables,
    is_started,
    session_factory,
    startup,
)
from exportables.config import get_rebuild_config
from exportables.domain.defaults import (
    DefaultsRebuilder,
    DefaultsRegistry,
    RebuildReport,
    revert_record,
)
from exportables.domain.errors import RecordNotFoundError
from exportables.domain.model import Status

if TYPE_CHECKING:
    from collections.abc import Iterable

    from exportables.config import RebuildConfig
    from exportables.domain.model import ManagedRecord
    from exportables.domain.ports import LockProvider, RecordStore


log = getLogger(__name__)


@dataclass(slots=True)
class Services:
    """Registry, store and lock provider used by the application services."""

    registry: DefaultsRegistry
    store: RecordStore
    locks: LockProvider
    config: RebuildConfig

    def rebuilder(self) -> DefaultsRebuilder:
        return DefaultsRebuilder(
            registry=self.registry,
            store=self.store,
            locks=self.locks,
            config=self.config,
        )


def build_services(
    *,
    registry: DefaultsRegistry | None = None,
    store: RecordStore | None = None,
    locks: LockProvider | None = None,
    config: RebuildConfig | None = None,
) -> Services:
    """Fill in whatever the caller did not supply from configuration.

    The registry defaults to the modules installed under the configured entry
    point group; store and locks default to the SQLAlchemy adapter.
    """

    effective_config = config or get_rebuild_config()
    effective_registry = registry or DefaultsRegistry.from_entry_points(
        effective_config.entry_point_group
    )
    if store is None or locks is None:
        if not is_started():
            startup(managed_types=effective_registry.types())
        factory = session_factory()
        store = store or SqlAlchemyRecordStore(factory)
        locks = locks or SqlAlchemyLockTable(factory)
    return Services(
        registry=effective_registry,
        store=store,
        locks=locks,
        config=effective_config,
    )


def initialise_schema(services: Services) -> dict[str, tuple[str, ...]]:
    """Create missing type tables and add provenance columns to legacy ones."""

    engine = configured_engine()
    if engine is None:
        log.info("No SQLAlchemy engine configured; nothing to initialise")
        return {}
    managed_types = services.registry.types()
    create_type_tables(engine, managed_types)
    added: dict[str, tuple[str, ...]] = {}
    for managed_type in managed_types:
        columns = add_provenance_columns(engine, managed_type)
        if columns:
            added[managed_type.name] = columns
    return added


def rebuild_defaults(
    type_names: Iterable[str] | None = None,
    *,
    services: Services | None = None,
) -> RebuildReport:
    """Rebuild defaults for ``type_names`` using the configured adapters."""

    active = services or build_services()
    requested = None if type_names is None else tuple(type_names)
    log.info("Starting defaults rebuild: types=%s", requested or "all exportable")

    report = active.rebuilder().rebuild(requested)

    for name, entry in report.entries.items():
        log.info("Rebuild of %s: %s", name, entry.outcome)
    return report


def list_records(type_name: str, *, services: Services) -> list[ManagedRecord]:
    managed_type = services.registry.get_type(type_name)
    records = services.store.load_by_status(managed_type, Status(0))
    return sorted(records, key=lambda record: record.name)


def export_named_record(type_name: str, name: str, *, services: Services) -> str:
    managed_type = services.registry.get_type(type_name)
    record = services.store.load(managed_type, name)
    if record is None:
        raise RecordNotFoundError(f"{type_name}/{name} does not exist")
    return export_record(record, managed_type)


def revert_named_record(type_name: str, name: str, *, services: Services) -> ManagedRecord | None:
    managed_type = services.registry.get_type(type_name)
    return revert_record(
        managed_type,
        name,
        store=services.store,
        rebuilder=services.rebuilder(),
    )
