"""Record store and lock table backed by SQLAlchemy sessions.

Every write runs in its own ``session.begin()`` block, so each save or delete
is committed independently of the others.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, Any

from sqlalchemy import Integer, delete, insert, inspect, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from exportables.adapters.sqlalchemy.mappings import managed_table, semaphore_table
from exportables.domain.errors import StoreError
from exportables.domain.model import ManagedRecord, Status

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sqlalchemy import Row, Table
    from sqlalchemy.orm import Session, sessionmaker

    from exportables.domain.model import ManagedType

log = getLogger(__name__)


class SqlAlchemyRecordStore:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory

    def load(self, managed_type: ManagedType, name: str) -> ManagedRecord | None:
        table = managed_table(managed_type)
        stmt = select(table).where(table.c.name == name)
        rows = self._fetch(managed_type, stmt)
        return _to_record(table, rows[0]) if rows else None

    def load_by_names(
        self, managed_type: ManagedType, names: Iterable[str]
    ) -> dict[str, ManagedRecord]:
        wanted = list(names)
        if not wanted:
            return {}
        table = managed_table(managed_type)
        stmt = select(table).where(table.c.name.in_(wanted))
        records = (_to_record(table, row) for row in self._fetch(managed_type, stmt))
        return {record.name: record for record in records}

    def load_by_status(self, managed_type: ManagedType, flag: Status) -> Sequence[ManagedRecord]:
        table = managed_table(managed_type)
        bits = int(flag)
        stmt = (
            select(table)
            .where(table.c.status.op("&", return_type=Integer)(bits) == bits)
            .order_by(table.c.name)
        )
        return [_to_record(table, row) for row in self._fetch(managed_type, stmt)]

    def save(self, managed_type: ManagedType, record: ManagedRecord) -> None:
        table = managed_table(managed_type)
        values: dict[str, Any] = {
            "name": record.name,
            "status": record.status,
            "module": record.module,
            "payload": record.payload,
        }
        try:
            with self.session_factory.begin() as session:
                exists = session.execute(
                    select(table.c.id).where(table.c.id == record.id)
                ).scalar_one_or_none()
                if exists is None:
                    session.execute(insert(table).values(id=record.id, **values))
                else:
                    session.execute(update(table).where(table.c.id == record.id).values(**values))
        except SQLAlchemyError as exc:
            raise StoreError(f"Could not save {managed_type.name}/{record.name}: {exc}") from exc
        record.is_new = False

    def delete(self, managed_type: ManagedType, name: str) -> None:
        table = managed_table(managed_type)
        try:
            with self.session_factory.begin() as session:
                session.execute(delete(table).where(table.c.name == name))
        except SQLAlchemyError as exc:
            raise StoreError(f"Could not delete {managed_type.name}/{name}: {exc}") from exc

    def schema_fields(self, managed_type: ManagedType) -> frozenset[str]:
        """Return the column names actually present in the database."""

        try:
            with self.session_factory() as session:
                inspector = inspect(session.connection())
                if not inspector.has_table(managed_type.table):
                    return frozenset()
                columns = inspector.get_columns(managed_type.table)
        except SQLAlchemyError as exc:
            raise StoreError(f"Could not inspect table {managed_type.table}: {exc}") from exc
        return frozenset(column["name"] for column in columns)

    def _fetch(self, managed_type: ManagedType, stmt: Any) -> Sequence[Row[Any]]:
        try:
            with self.session_factory() as session:
                return session.execute(stmt).all()
        except SQLAlchemyError as exc:
            raise StoreError(f"Could not load {managed_type.name} records: {exc}") from exc


class SqlAlchemyLockTable:
    """Advisory locks stored as rows of the ``semaphore`` table."""

    def __init__(self, session_factory: sessionmaker[Session], *, owner: str | None = None) -> None:
        self.session_factory = session_factory
        self.owner = owner or uuid.uuid4().hex

    def acquire(self, name: str) -> bool:
        try:
            with self.session_factory.begin() as session:
                session.execute(
                    insert(semaphore_table).values(
                        name=name,
                        owner=self.owner,
                        acquired_at=datetime.now(tz=UTC),
                    )
                )
        except IntegrityError:
            log.debug("Lock %s is held by another owner", name)
            return False
        return True

    def release(self, name: str) -> None:
        """Delete our row for ``name``; a failure is logged, never raised.

        Release runs in ``finally`` blocks, where raising would replace the
        exception already in flight. A row left behind can be removed with
        :meth:`break_lock`.
        """

        try:
            with self.session_factory.begin() as session:
                session.execute(
                    delete(semaphore_table)
                    .where(semaphore_table.c.name == name)
                    .where(semaphore_table.c.owner == self.owner)
                )
        except SQLAlchemyError:
            log.exception("Could not release advisory lock %s", name)

    def holder(self, name: str) -> str | None:
        with self.session_factory() as session:
            stmt = select(semaphore_table.c.owner).where(semaphore_table.c.name == name)
            return session.execute(stmt).scalar_one_or_none()

    def break_lock(self, name: str) -> bool:
        """Remove ``name`` whoever holds it; returns whether a row was removed."""

        with self.session_factory.begin() as session:
            removed = session.execute(
                delete(semaphore_table).where(semaphore_table.c.name == name)
            ).rowcount
        if removed:
            log.warning("Broke advisory lock %s", name)
        return bool(removed)


def _to_record(table: Table, row: Row[Any]) -> ManagedRecord:
    values = row._mapping  # noqa: SLF001
    return ManagedRecord(
        id=values[table.c.id],
        name=values[table.c.name],
        status=Status.coerce(values[table.c.status]),
        module=values[table.c.module],
        payload=dict(values[table.c.payload] or {}),
        is_new=False,
    )


if TYPE_CHECKING:
    from typing import cast

    from exportables.domain.ports import LockProvider, RecordStore

    _factory_stub = cast("sessionmaker[Session]", object())
    _store_check: RecordStore = SqlAlchemyRecordStore(_factory_stub)
    _lock_check: LockProvider = SqlAlchemyLockTable(_factory_stub)
