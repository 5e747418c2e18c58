"""Defaults rebuild core.

Stages, in the order a rebuild runs them:
1) per-type advisory lock (``lock``)
2) provenance schema guard (``schema``)
3) candidate collection from registered providers and alterations (``collect``)
4) reconciliation against persisted records (``reconcile``)
5) post-rebuild notification (``notify``)
"""

from __future__ import annotations

from .collect import collect_defaults
from .lock import with_type_lock
from .notify import RebuildNotifier
from .rebuild import (
    DefaultsRebuilder,
    RebuildOutcome,
    RebuildReport,
    TypeRebuild,
    rebuild_defaults,
)
from .reconcile import DefaultsReconciler, RebuildResult, reconcile
from .records import delete_record, revert_record, save_record
from .registry import (
    DeclaredDefault,
    DefaultsAlter,
    DefaultsProvider,
    DefaultsRegistry,
    ModuleRegistrar,
    ProviderRegistration,
    RebuildListener,
)
from .schema import ensure_provenance_fields, provenance_fields

__all__ = [
    "DeclaredDefault",
    "DefaultsAlter",
    "DefaultsProvider",
    "DefaultsRebuilder",
    "DefaultsReconciler",
    "DefaultsRegistry",
    "ModuleRegistrar",
    "ProviderRegistration",
    "RebuildListener",
    "RebuildNotifier",
    "RebuildOutcome",
    "RebuildReport",
    "RebuildResult",
    "TypeRebuild",
    "collect_defaults",
    "delete_record",
    "ensure_provenance_fields",
    "provenance_fields",
    "rebuild_defaults",
    "reconcile",
    "revert_record",
    "save_record",
    "with_type_lock",
]
