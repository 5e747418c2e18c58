"""Fan-out of post-rebuild events to registered listeners."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

    from exportables.domain.model import ManagedRecord, ManagedType

    from .registry import DefaultsRegistry

log = getLogger(__name__)


@dataclass(slots=True)
class RebuildNotifier:
    """Invoke the rebuild listeners of a managed type.

    Listeners only maintain caches or derived indexes: a failing listener is
    logged and skipped, and the records already written stay written.
    """

    registry: DefaultsRegistry

    def notify(
        self,
        managed_type: ManagedType,
        final: Mapping[str, ManagedRecord],
        prior: Mapping[str, ManagedRecord | None],
    ) -> int:
        """Call every listener with read-only views; return the number that failed."""

        final_view = MappingProxyType(dict(final))
        prior_view = MappingProxyType(dict(prior))
        failures = 0
        for listener in self.registry.listeners_for(managed_type.name):
            try:
                listener(final_view, prior_view)
            except Exception:
                failures += 1
                log.exception(
                    "Rebuild listener %r for %s failed",
                    getattr(listener, "__qualname__", listener),
                    managed_type.name,
                )
        return failures
