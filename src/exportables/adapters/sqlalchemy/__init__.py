"""SQLAlchemy adapter package for Exportables."""

from __future__ import annotations

from .engine import (
    StartupError,
    configured_engine,
    is_started,
    session_factory,
    shutdown,
    startup,
)
from .mappings import (
    create_type_tables,
    managed_table,
    metadata,
    provenance_columns,
    semaphore_table,
)
from .migrations import add_provenance_columns, upgrade_head
from .repositories import SqlAlchemyLockTable, SqlAlchemyRecordStore

__all__ = [
    "SqlAlchemyLockTable",
    "SqlAlchemyRecordStore",
    "StartupError",
    "add_provenance_columns",
    "configured_engine",
    "create_type_tables",
    "is_started",
    "managed_table",
    "metadata",
    "provenance_columns",
    "semaphore_table",
    "session_factory",
    "shutdown",
    "startup",
    "upgrade_head",
]
