"""Guard ensuring a managed type persists its provenance fields."""

from __future__ import annotations

from typing import TYPE_CHECKING

from exportables.domain.errors import MissingFieldError

if TYPE_CHECKING:
    from exportables.domain.model import ManagedType
    from exportables.domain.ports import RecordStore


def provenance_fields(managed_type: ManagedType) -> tuple[str, str]:
    return (managed_type.status_field, managed_type.module_field)


def ensure_provenance_fields(managed_type: ManagedType, store: RecordStore) -> None:
    """Raise :class:`MissingFieldError` unless status and module fields are persisted.

    Only the failing type is affected; batch rebuilds catch the error and move on.
    """

    persisted = store.schema_fields(managed_type)
    missing = tuple(name for name in provenance_fields(managed_type) if name not in persisted)
    if missing:
        raise MissingFieldError(managed_type.name, missing)
