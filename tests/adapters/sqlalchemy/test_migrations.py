from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import inspect, text
from sqlalchemy.orm import sessionmaker

from exportables.adapters.sqlalchemy import (
    SqlAlchemyRecordStore,
    add_provenance_columns,
    upgrade_head,
)
from exportables.domain.defaults import ensure_provenance_fields
from exportables.domain.model import ManagedType, Status

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

LEGACY = ManagedType("legacy_thing")


def test_upgrade_head_creates_semaphore_table(sqlite_engine: Engine) -> None:
    tables = set(inspect(sqlite_engine).get_table_names())

    assert {"semaphore", "alembic_version"} <= tables


def test_upgrade_head_is_repeatable(sqlite_engine: Engine) -> None:
    upgrade_head(engine=sqlite_engine)

    with sqlite_engine.connect() as connection:
        revision = connection.execute(text("SELECT version_num FROM alembic_version")).scalar_one()
    assert revision == "0001"


def test_provenance_columns_are_added_to_legacy_tables(sqlite_engine: Engine) -> None:
    with sqlite_engine.begin() as connection:
        connection.execute(
            text(
                "CREATE TABLE legacy_thing ("
                "id CHAR(32) PRIMARY KEY, name VARCHAR(255) UNIQUE NOT NULL, payload TEXT)"
            )
        )
        connection.execute(
            text(
                "INSERT INTO legacy_thing (id, name, payload) "
                "VALUES ('0123456789abcdef0123456789abcdef', 'old', '{}')"
            )
        )
    store = SqlAlchemyRecordStore(sessionmaker(bind=sqlite_engine))

    assert store.schema_fields(LEGACY) == frozenset({"id", "name", "payload"})

    added = add_provenance_columns(sqlite_engine, LEGACY)

    assert added == ("status", "module")
    ensure_provenance_fields(LEGACY, store)
    existing = store.load(LEGACY, "old")
    assert existing is not None
    assert existing.status == Status.CUSTOM
    assert existing.module is None
    assert add_provenance_columns(sqlite_engine, LEGACY) == ()
