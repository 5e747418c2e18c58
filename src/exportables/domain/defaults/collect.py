"""Collect the defaults every registered module declares for a managed type."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from logging import getLogger
from typing import TYPE_CHECKING

from exportables.domain.errors import DefaultCollisionError
from exportables.domain.model import ManagedRecord, Status, normalize_payload

if TYPE_CHECKING:
    from exportables.config import CollisionPolicy
    from exportables.domain.model import ManagedType

    from .registry import DeclaredDefault, DefaultsRegistry

log = getLogger(__name__)

# Bits a provider may declare; CUSTOM belongs to users only.
_DECLARABLE = Status.IN_CODE | Status.LOCKED


def collect_defaults(
    managed_type: ManagedType,
    registry: DefaultsRegistry,
    *,
    collision_policy: CollisionPolicy = "warn",
) -> dict[str, ManagedRecord]:
    """Return the declared-defaults snapshot for ``managed_type``.

    Every provider registered for the type's default hook runs in registration
    order. Each declared record is copied and stamped with its map key as
    ``name`` and the provider's module as ``module``. Afterwards every
    alteration callback receives the complete mutable mapping. Finally every
    entry, including those an alteration added, is keyed by its name, limited
    to declarable status bits and has its payload normalized to stored JSON
    form so it compares equal to the persisted copy.
    """

    declared: dict[str, ManagedRecord] = {}
    declared_by: dict[str, str] = {}

    for registration in registry.providers_for(managed_type.default_hook):
        provided = registration.provider() or {}
        for name, default in provided.items():
            previous = declared_by.get(name)
            if previous is not None:
                if collision_policy == "error":
                    raise DefaultCollisionError(
                        managed_type.name, name, previous, registration.module
                    )
                log.warning(
                    "Default %s of type %s declared by %s replaces the one from %s",
                    name,
                    managed_type.name,
                    registration.module,
                    previous,
                )
            declared[name] = _stamp(default, name=name, module=registration.module)
            declared_by[name] = registration.module

    for alter in registry.alters_for(managed_type.default_hook):
        alter(declared)

    declared = {name: _finalize(name, record) for name, record in declared.items()}
    log.debug("Collected %d defaults for %s", len(declared), managed_type.name)
    return declared


def _stamp(default: DeclaredDefault, *, name: str, module: str) -> ManagedRecord:
    if isinstance(default, ManagedRecord):
        record = default.snapshot()
        record.name = name
    elif isinstance(default, Mapping):
        record = ManagedRecord(name=name, payload=dict(default))
    else:
        raise TypeError(
            f"Default {name!r} from module {module!r} must be a ManagedRecord or a mapping"
        )
    record.status = Status(record.status & _DECLARABLE)
    record.module = module
    return record


def _finalize(name: str, record: object) -> ManagedRecord:
    if not isinstance(record, ManagedRecord):
        raise TypeError(f"Alteration stored {type(record).__name__} for default {name!r}")
    return replace(
        record,
        name=name,
        status=Status(record.status & _DECLARABLE),
        payload=normalize_payload(record.payload),
    )
