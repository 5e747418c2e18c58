"""Descriptors for record types that opt into default reconciliation."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class ManagedType:
    """A record type whose defaults can be declared in code.

    ``table`` defaults to ``name`` and ``default_hook`` to ``default_<name>``;
    providers register against the hook, listeners against the type name.
    """

    name: str
    table: str = field(default="")
    default_hook: str = field(default="")
    exportable: bool = True
    status_field: str = "status"
    module_field: str = "module"

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Managed types need a name")
        if not self.table:
            object.__setattr__(self, "table", self.name)
        if not self.default_hook:
            object.__setattr__(self, "default_hook", f"default_{self.name}")
