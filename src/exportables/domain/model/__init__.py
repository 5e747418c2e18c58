"""Public domain model surface."""

from __future__ import annotations

from exportables.domain.model.entity import Entity, new_id
from exportables.domain.model.record import (
    ManagedRecord,
    Payload,
    encode_payload,
    normalize_payload,
)
from exportables.domain.model.status import HasStatus, Status, has_status, validate_status
from exportables.domain.model.types import ManagedType

__all__ = [
    "Entity",
    "HasStatus",
    "ManagedRecord",
    "ManagedType",
    "Payload",
    "Status",
    "encode_payload",
    "has_status",
    "new_id",
    "normalize_payload",
    "validate_status",
]
