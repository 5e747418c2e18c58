"""Domain port definitions for adapters."""

from __future__ import annotations

from .locking import LockProvider
from .persistence import RecordStore

__all__ = ["LockProvider", "RecordStore"]
