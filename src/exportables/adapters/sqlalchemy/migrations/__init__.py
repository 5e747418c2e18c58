"""Utilities for managing Alembic migrations within the SQLAlchemy adapter."""

from __future__ import annotations

from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Final

from alembic import command
from alembic.config import Config
from alembic.operations import Operations
from alembic.runtime.migration import MigrationContext
from sqlalchemy import inspect

from exportables.adapters.sqlalchemy.mappings import provenance_columns
from exportables.config import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from exportables.domain.model import ManagedType

MIGRATIONS_PATH: Final[Path] = Path(__file__).resolve().parent

log = getLogger(__name__)


def _build_config() -> Config:
    """Return an Alembic Config pointing at the bundled migration scripts."""

    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_PATH))
    config.set_main_option("version_locations", str(MIGRATIONS_PATH / "versions"))
    return config


def upgrade_head(*, engine: Engine | None = None, database_uri: str | None = None) -> None:
    """Upgrade the database schema to the latest revision."""

    config = _build_config()
    if engine is not None:
        with engine.begin() as connection:
            config.attributes["connection"] = connection
            command.upgrade(config, "head")
        return
    config.set_main_option("sqlalchemy.url", database_uri or get_database_config().uri)
    command.upgrade(config, "head")


def add_provenance_columns(engine: Engine, managed_type: ManagedType) -> tuple[str, ...]:
    """Add the status and module columns to an existing table that lacks them.

    Returns the names of the columns that were added. Existing rows get the
    ``CUSTOM`` status through the column's server default.
    """

    added: list[str] = []
    with engine.begin() as connection:
        columns = inspect(connection).get_columns(managed_type.table)
        present = {column["name"] for column in columns}
        operations = Operations(MigrationContext.configure(connection))
        for column in provenance_columns(managed_type):
            if column.name in present:
                continue
            operations.add_column(managed_type.table, column)
            added.append(column.name)
    if added:
        log.info("Added provenance columns to %s: %s", managed_type.table, ", ".join(added))
    return tuple(added)
