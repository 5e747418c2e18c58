"""Per-type mutual exclusion around a rebuild."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from exportables.config.rebuild import DEFAULT_LOCK_PREFIX

if TYPE_CHECKING:
    from collections.abc import Callable

    from exportables.domain.ports import LockProvider

log = getLogger(__name__)


def with_type_lock[T](
    locks: LockProvider,
    type_name: str,
    fn: Callable[[], T],
    *,
    prefix: str = DEFAULT_LOCK_PREFIX,
) -> T | None:
    """Run ``fn`` while holding the advisory lock for ``type_name``.

    Acquisition is attempted once. When another rebuild holds the lock nothing
    runs and ``None`` is returned. The lock is released on every exit path.
    """

    lock_name = f"{prefix}{type_name}"
    if not locks.acquire(lock_name):
        log.info("Rebuild of %s already in progress; skipping", type_name)
        return None
    try:
        return fn()
    finally:
        locks.release(lock_name)
