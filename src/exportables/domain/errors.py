"""Domain error hierarchy."""

from __future__ import annotations


class ExportablesError(RuntimeError):
    """Base class for errors raised by the defaults machinery."""


class InvalidStatusError(ExportablesError, ValueError):
    """Raised when a status bit combination violates the status invariants."""


class SchemaError(ExportablesError):
    """Raised when a managed type cannot take part in a rebuild."""


class MissingFieldError(SchemaError):
    """Raised when a managed type lacks the status or module field."""

    def __init__(self, type_name: str, missing: tuple[str, ...]) -> None:
        super().__init__(
            f"Managed type {type_name!r} is missing provenance field(s): {', '.join(missing)}"
        )
        self.type_name = type_name
        self.missing = missing


class StoreError(ExportablesError):
    """Raised by record stores when a read or write fails."""


class DefaultCollisionError(ExportablesError):
    """Raised when two providers declare the same default and collisions are fatal."""

    def __init__(self, type_name: str, name: str, first: str, second: str) -> None:
        super().__init__(
            f"Default {name!r} of type {type_name!r} declared by both {first!r} and {second!r}"
        )
        self.type_name = type_name
        self.name = name
        self.modules = (first, second)


class RecordError(ExportablesError):
    """Raised when a user-side record operation is not allowed."""


class RecordNotFoundError(RecordError):
    """Raised when a named record does not exist in the store."""


class FixedRecordError(RecordError):
    """Raised when a fixed record would be customized or deleted."""


class NotRevertableError(RecordError):
    """Raised when reverting a record that has no overridden code default."""


class UnknownTypeError(ExportablesError, KeyError):
    """Raised when a managed type name is not registered."""
