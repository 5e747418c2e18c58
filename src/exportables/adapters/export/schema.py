"""Pydantic models for exported managed records."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, RootModel

EXPORT_FORMAT_VERSION = 1


class ExportBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class RecordDocument(ExportBaseModel):
    """One record as written to an export file."""

    format: int = EXPORT_FORMAT_VERSION
    type: str | None = None
    name: str = Field(min_length=1)
    module: str | None = None
    fixed: bool = False
    payload: dict[str, Any] = Field(default_factory=dict)


class RecordDocumentList(RootModel[list[RecordDocument]]):
    """A file holding several exported records."""
