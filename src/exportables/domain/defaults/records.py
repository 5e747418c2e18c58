"""User-side operations on managed records: save, delete and revert."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from exportables.domain.errors import FixedRecordError, NotRevertableError, RecordNotFoundError
from exportables.domain.model import Status

if TYPE_CHECKING:
    from exportables.domain.model import ManagedRecord, ManagedType
    from exportables.domain.ports import RecordStore

    from .rebuild import DefaultsRebuilder

log = getLogger(__name__)


def save_record(
    managed_type: ManagedType,
    record: ManagedRecord,
    store: RecordStore,
) -> ManagedRecord:
    """Persist a user edit of ``record``.

    New records start out ``CUSTOM``. Editing a code default makes it ``CUSTOM``
    as well; the next rebuild finds it declared again and marks it
    ``OVERRIDDEN``. Records that are already overridden stay overridden.
    Fixed records cannot be edited.
    """

    existing = store.load(managed_type, record.name)
    if existing is None:
        record.status = Status.CUSTOM
    else:
        if existing.has_status(Status.FIXED):
            raise FixedRecordError(f"{managed_type.name}/{record.name} is fixed")
        record.id = existing.id
        record.is_new = False
        record.module = existing.module
        overridden = existing.has_status(Status.OVERRIDDEN)
        record.status = Status.OVERRIDDEN if overridden else Status.CUSTOM
    store.save(managed_type, record)
    return record


def delete_record(managed_type: ManagedType, name: str, store: RecordStore) -> ManagedRecord:
    """Delete a record by name; code defaults come back on the next rebuild."""

    existing = _require(managed_type, name, store)
    if existing.has_status(Status.FIXED):
        raise FixedRecordError(f"{managed_type.name}/{name} is fixed and cannot be deleted")
    store.delete(managed_type, name)
    return existing


def revert_record(
    managed_type: ManagedType,
    name: str,
    *,
    store: RecordStore,
    rebuilder: DefaultsRebuilder,
) -> ManagedRecord | None:
    """Drop the customization of an overridden record and restore its code default.

    Returns the restored record, or ``None`` when the follow-up rebuild was
    skipped because another rebuild of the type was running; that rebuild
    restores the default instead.
    """

    existing = _require(managed_type, name, store)
    if not existing.has_status(Status.OVERRIDDEN):
        raise NotRevertableError(f"{managed_type.name}/{name} has no code default to revert to")
    store.delete(managed_type, name)
    log.info("Reverted %s/%s to the default from %s", managed_type.name, name, existing.module)
    if rebuilder.rebuild_type(managed_type) is None:
        return None
    return store.load(managed_type, name)


def _require(managed_type: ManagedType, name: str, store: RecordStore) -> ManagedRecord:
    existing = store.load(managed_type, name)
    if existing is None:
        raise RecordNotFoundError(f"{managed_type.name}/{name} does not exist")
    return existing
