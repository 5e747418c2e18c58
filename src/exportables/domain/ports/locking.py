"""Port for named advisory locks."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class LockProvider(Protocol):
    """Non-blocking advisory locks keyed by an arbitrary string."""

    def acquire(self, name: str) -> bool: ...

    def release(self, name: str) -> None: ...
