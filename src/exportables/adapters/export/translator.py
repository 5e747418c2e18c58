"""Translate between managed records and their JSON export form."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import ValidationError

from exportables.domain.errors import ExportablesError
from exportables.domain.model import ManagedRecord, Status

from .schema import EXPORT_FORMAT_VERSION, RecordDocument, RecordDocumentList

if TYPE_CHECKING:
    from exportables.domain.model import ManagedType


class RecordImportError(ExportablesError, ValueError):
    """Raised when an export document cannot be turned into a record."""


def to_document(record: ManagedRecord, managed_type: ManagedType | None = None) -> RecordDocument:
    return RecordDocument(
        type=managed_type.name if managed_type is not None else None,
        name=record.name,
        module=record.module,
        fixed=record.has_status(Status.FIXED),
        payload=record.payload,
    )


def from_document(document: RecordDocument) -> ManagedRecord:
    if document.format > EXPORT_FORMAT_VERSION:
        raise RecordImportError(
            f"Export format {document.format} of {document.name!r} is newer than "
            f"supported version {EXPORT_FORMAT_VERSION}"
        )
    return ManagedRecord(
        name=document.name,
        status=Status.FIXED if document.fixed else Status(0),
        module=document.module,
        payload=dict(document.payload),
    )


def export_record(record: ManagedRecord, managed_type: ManagedType | None = None) -> str:
    """Serialize ``record`` as an indented JSON document."""

    return to_document(record, managed_type).model_dump_json(indent=2, exclude_none=True)


def import_record(text: str | bytes) -> ManagedRecord:
    """Validate one JSON export document and build the record it describes."""

    try:
        document = RecordDocument.model_validate_json(text)
    except ValidationError as exc:
        raise RecordImportError(f"Invalid record export: {exc}") from exc
    return from_document(document)


def import_records(text: str | bytes) -> list[ManagedRecord]:
    """Accept either a single document or a JSON list of documents."""

    stripped = text.lstrip()
    if stripped[:1] in ("[", b"["):
        try:
            documents = RecordDocumentList.model_validate_json(text).root
        except ValidationError as exc:
            raise RecordImportError(f"Invalid record export list: {exc}") from exc
        return [from_document(document) for document in documents]
    return [import_record(text)]
