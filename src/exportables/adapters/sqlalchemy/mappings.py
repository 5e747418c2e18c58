"""SQLAlchemy table metadata for managed records and advisory locks."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    MetaData,
    SmallInteger,
    String,
    Table,
    Text,
    TypeDecorator,
    Uuid,
    text,
)

from exportables.domain.model import Status, encode_payload

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.engine import Engine

    from exportables.domain.model import ManagedType

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class StatusType(TypeDecorator[Status]):
    """Small integer column holding :class:`Status` bits."""

    impl = SmallInteger
    cache_ok = True

    def process_bind_param(self, value: int | None, dialect: Dialect) -> int | None:
        _ = dialect
        if value is None:
            return None
        return int(value)

    def process_result_value(self, value: int | None, dialect: Dialect) -> Status:
        _ = dialect
        return Status.coerce(value)


class PayloadType(TypeDecorator[dict[str, Any]]):
    """JSON-encoded mapping of type-specific fields."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: dict[str, Any] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return encode_payload(value)

    def process_result_value(self, value: str | None, dialect: Dialect) -> dict[str, Any]:
        _ = dialect
        if value is None:
            return {}
        loaded = json.loads(value)
        if not isinstance(loaded, dict):
            return {}
        return cast(dict[str, Any], loaded)


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

# Advisory locks: a held lock is a row; inserting a duplicate name fails.
semaphore_table = Table(
    "semaphore",
    metadata,
    Column("name", String(255), primary_key=True),
    Column("owner", String(64), nullable=False),
    Column("acquired_at", UTCDateTime(), nullable=False),
)


def provenance_columns(managed_type: ManagedType) -> tuple[Column[Any], Column[Any]]:
    """Columns every managed table needs; status defaults to ``CUSTOM``."""

    return (
        Column(
            managed_type.status_field,
            StatusType(),
            key="status",
            nullable=False,
            default=Status.CUSTOM,
            server_default=text(str(int(Status.CUSTOM))),
        ),
        Column(managed_type.module_field, String(255), key="module", nullable=True),
    )


def managed_table(managed_type: ManagedType) -> Table:
    """Return (defining on first use) the table backing ``managed_type``."""

    existing = metadata.tables.get(managed_type.table)
    if existing is not None:
        return existing
    log.debug("Defining table %s for managed type %s", managed_type.table, managed_type.name)
    return Table(
        managed_type.table,
        metadata,
        Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
        Column("name", String(255), nullable=False, unique=True),
        *provenance_columns(managed_type),
        Column("payload", PayloadType(), nullable=False, default=dict),
    )


def create_type_tables(engine: Engine, managed_types: Iterable[ManagedType]) -> None:
    """Create the tables of ``managed_types`` that do not exist yet."""

    for managed_type in managed_types:
        log.info("Ensuring table %s", managed_type.table)
        managed_table(managed_type).create(engine, checkfirst=True)
