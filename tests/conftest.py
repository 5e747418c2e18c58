from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from exportables.adapters.memory import InMemoryLockTable, InMemoryRecordStore
from exportables.adapters.sqlalchemy import (
    SqlAlchemyLockTable,
    SqlAlchemyRecordStore,
    create_type_tables,
    shutdown,
    startup,
)
from exportables.adapters.sqlalchemy.migrations import upgrade_head
from exportables.domain.defaults import DefaultsRegistry
from tests.helpers.records import GADGET, WIDGET

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture
def memory_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def memory_locks() -> InMemoryLockTable:
    return InMemoryLockTable()


@pytest.fixture
def registry() -> DefaultsRegistry:
    registry = DefaultsRegistry()
    registry.register_type(WIDGET)
    registry.register_type(GADGET)
    return registry


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    upgrade_head(engine=engine)
    create_type_tables(engine, (WIDGET, GADGET))
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session_factory(sqlite_engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=sqlite_engine, expire_on_commit=False)


@pytest.fixture
def sqlite_store(sqlite_session_factory: sessionmaker[Session]) -> SqlAlchemyRecordStore:
    return SqlAlchemyRecordStore(sqlite_session_factory)


@pytest.fixture
def sqlite_locks(sqlite_session_factory: sessionmaker[Session]) -> SqlAlchemyLockTable:
    return SqlAlchemyLockTable(sqlite_session_factory, owner="test-owner")


@pytest.fixture
def started_adapter(sqlite_engine: Engine) -> Iterator[Engine]:
    startup(engine=sqlite_engine, managed_types=(WIDGET, GADGET), force=True)
    try:
        yield sqlite_engine
    finally:
        shutdown()
