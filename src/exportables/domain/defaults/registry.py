"""Explicit plugin registry for default providers, alterations and listeners.

Modules register callbacks keyed by hook name (providers, alterations) or by
managed type name (rebuild listeners). Nothing is discovered implicitly: a
registry is built by the caller, optionally from installed entry points, and
injected into the rebuild machinery.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from importlib import metadata
from logging import getLogger
from typing import TYPE_CHECKING, Any

from exportables.domain.errors import UnknownTypeError

if TYPE_CHECKING:
    from exportables.domain.model import ManagedRecord, ManagedType

type DeclaredDefault = ManagedRecord | Mapping[str, Any]
type DefaultsProvider = Callable[[], Mapping[str, DeclaredDefault]]
type DefaultsAlter = Callable[[dict[str, ManagedRecord]], None]
type RebuildListener = Callable[
    [Mapping[str, ManagedRecord], Mapping[str, ManagedRecord | None]], None
]
type ModuleSetup = Callable[[ModuleRegistrar], None]

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProviderRegistration:
    module: str
    hook: str
    provider: DefaultsProvider


@dataclass(slots=True)
class DefaultsRegistry:
    """Registered managed types and the callbacks attached to them."""

    _types: dict[str, ManagedType] = field(default_factory=dict["str", "ManagedType"])
    _providers: dict[str, list[ProviderRegistration]] = field(
        default_factory=dict["str", "list[ProviderRegistration]"]
    )
    _alters: dict[str, list[DefaultsAlter]] = field(
        default_factory=dict["str", "list[DefaultsAlter]"]
    )
    _listeners: dict[str, list[RebuildListener]] = field(
        default_factory=dict["str", "list[RebuildListener]"]
    )

    # Types ---------------------------------------------------------------

    def register_type(self, managed_type: ManagedType) -> ManagedType:
        if managed_type.name in self._types:
            log.warning("Replacing managed type %s", managed_type.name)
        self._types[managed_type.name] = managed_type
        return managed_type

    def find_type(self, name: str) -> ManagedType | None:
        return self._types.get(name)

    def get_type(self, name: str) -> ManagedType:
        managed_type = self._types.get(name)
        if managed_type is None:
            raise UnknownTypeError(f"Unknown managed type: {name}")
        return managed_type

    def types(self, *, exportable_only: bool = False) -> tuple[ManagedType, ...]:
        return tuple(
            managed_type
            for managed_type in self._types.values()
            if managed_type.exportable or not exportable_only
        )

    # Callbacks -----------------------------------------------------------

    def register_provider(self, hook: str, provider: DefaultsProvider, *, module: str) -> None:
        """Register ``provider`` as ``module``'s implementation of ``hook``.

        Providers run in registration order; on a name collision the later
        provider wins.
        """

        self._providers.setdefault(hook, []).append(
            ProviderRegistration(module=module, hook=hook, provider=provider)
        )

    def provides(
        self, hook: str, *, module: str
    ) -> Callable[[DefaultsProvider], DefaultsProvider]:
        """Decorator form of :meth:`register_provider`."""

        def decorator(provider: DefaultsProvider) -> DefaultsProvider:
            self.register_provider(hook, provider, module=module)
            return provider

        return decorator

    def providers_for(self, hook: str) -> tuple[ProviderRegistration, ...]:
        return tuple(self._providers.get(hook, ()))

    def register_alter(self, hook: str, alter: DefaultsAlter) -> None:
        self._alters.setdefault(hook, []).append(alter)

    def alters_for(self, hook: str) -> tuple[DefaultsAlter, ...]:
        return tuple(self._alters.get(hook, ()))

    def register_listener(self, type_name: str, listener: RebuildListener) -> None:
        self._listeners.setdefault(type_name, []).append(listener)

    def listeners_for(self, type_name: str) -> tuple[RebuildListener, ...]:
        return tuple(self._listeners.get(type_name, ()))

    # Modules -------------------------------------------------------------

    def module(self, name: str) -> ModuleRegistrar:
        """Return a registrar that stamps every provider with module ``name``."""

        return ModuleRegistrar(registry=self, name=name)

    def load_entry_points(self, group: str) -> tuple[str, ...]:
        """Let every installed module in entry point ``group`` register itself.

        Each entry point resolves to a callable taking a :class:`ModuleRegistrar`;
        the entry point name becomes the providing module name.
        """

        loaded: list[str] = []
        for entry_point in sorted(metadata.entry_points(group=group), key=lambda ep: ep.name):
            setup: ModuleSetup = entry_point.load()
            setup(self.module(entry_point.name))
            loaded.append(entry_point.name)
            log.debug("Registered module %s from %s", entry_point.name, entry_point.value)
        return tuple(loaded)

    @classmethod
    def from_entry_points(cls, group: str) -> DefaultsRegistry:
        registry = cls()
        registry.load_entry_points(group)
        return registry


@dataclass(frozen=True, slots=True)
class ModuleRegistrar:
    """Registry view bound to one providing module."""

    registry: DefaultsRegistry
    name: str

    def add_type(self, managed_type: ManagedType) -> ManagedType:
        return self.registry.register_type(managed_type)

    def provide(self, hook: str, provider: DefaultsProvider) -> None:
        self.registry.register_provider(hook, provider, module=self.name)

    def alter(self, hook: str, alter: DefaultsAlter) -> None:
        self.registry.register_alter(hook, alter)

    def listen(self, type_name: str, listener: RebuildListener) -> None:
        self.registry.register_listener(type_name, listener)
