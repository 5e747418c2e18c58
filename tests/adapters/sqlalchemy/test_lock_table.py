from __future__ import annotations

import logging
from typing import TYPE_CHECKING, NoReturn

import pytest
from sqlalchemy.exc import OperationalError

from exportables.adapters.sqlalchemy import SqlAlchemyLockTable
from exportables.domain.defaults import with_type_lock
from exportables.domain.errors import MissingFieldError

if TYPE_CHECKING:
    from sqlalchemy.orm import Session, sessionmaker


def test_lock_rows_are_exclusive(sqlite_session_factory: sessionmaker[Session]) -> None:
    first = SqlAlchemyLockTable(sqlite_session_factory, owner="first")
    second = SqlAlchemyLockTable(sqlite_session_factory, owner="second")

    assert first.acquire("entity_rebuild_widget")
    assert not second.acquire("entity_rebuild_widget")
    assert first.holder("entity_rebuild_widget") == "first"

    second.release("entity_rebuild_widget")
    assert first.holder("entity_rebuild_widget") == "first"

    first.release("entity_rebuild_widget")
    assert second.acquire("entity_rebuild_widget")


def test_with_type_lock_releases_row(sqlite_locks: SqlAlchemyLockTable) -> None:
    assert with_type_lock(sqlite_locks, "widget", lambda: "ran") == "ran"
    assert sqlite_locks.holder("entity_rebuild_widget") is None


def test_break_lock_removes_foreign_rows(sqlite_session_factory: sessionmaker[Session]) -> None:
    stale = SqlAlchemyLockTable(sqlite_session_factory, owner="crashed")
    fresh = SqlAlchemyLockTable(sqlite_session_factory, owner="fresh")
    stale.acquire("entity_rebuild_widget")

    assert fresh.break_lock("entity_rebuild_widget")
    assert not fresh.break_lock("entity_rebuild_widget")
    assert fresh.acquire("entity_rebuild_widget")


def test_default_owner_is_unique(sqlite_session_factory: sessionmaker[Session]) -> None:
    assert (
        SqlAlchemyLockTable(sqlite_session_factory).owner
        != SqlAlchemyLockTable(sqlite_session_factory).owner
    )


class _UnreachableDatabase:
    def begin(self) -> NoReturn:
        raise OperationalError("DELETE FROM semaphore", {}, Exception("database is gone"))


def test_release_failure_is_logged(
    sqlite_locks: SqlAlchemyLockTable, caplog: pytest.LogCaptureFixture
) -> None:
    assert sqlite_locks.acquire("entity_rebuild_widget")
    sqlite_locks.session_factory = _UnreachableDatabase()  # type: ignore[assignment]

    with caplog.at_level(logging.ERROR, logger="exportables.adapters.sqlalchemy.repositories"):
        sqlite_locks.release("entity_rebuild_widget")

    assert "Could not release advisory lock entity_rebuild_widget" in caplog.text


def test_release_failure_keeps_the_rebuild_error(sqlite_locks: SqlAlchemyLockTable) -> None:
    def rebuild() -> NoReturn:
        sqlite_locks.session_factory = _UnreachableDatabase()  # type: ignore[assignment]
        raise MissingFieldError("widget", ("status",))

    with pytest.raises(MissingFieldError):
        with_type_lock(sqlite_locks, "widget", rebuild)
