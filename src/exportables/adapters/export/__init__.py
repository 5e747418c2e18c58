"""JSON export and import of managed records."""

from __future__ import annotations

from .provider import JsonDirectoryProvider
from .schema import EXPORT_FORMAT_VERSION, RecordDocument, RecordDocumentList
from .translator import (
    RecordImportError,
    export_record,
    from_document,
    import_record,
    import_records,
    to_document,
)

__all__ = [
    "EXPORT_FORMAT_VERSION",
    "JsonDirectoryProvider",
    "RecordDocument",
    "RecordDocumentList",
    "RecordImportError",
    "export_record",
    "from_document",
    "import_record",
    "import_records",
    "to_document",
]
