"""
Exceptions raised by the dyn-form engine.

Construction-time problems (bad row configuration) are fatal and raised
before a session exists. Runtime problems are scoped to the operation
that caused them and leave session state unchanged.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from dyn_form.models.validation_result import ValidationResult


class FormEngineError(RuntimeError):
    """Base exception for dyn-form operations."""


class ConfigurationError(FormEngineError, ValueError):
    """Raised when a row configuration cannot be used to start a session."""

    def __init__(self, issues: list[str]) -> None:
        super().__init__(
            "Invalid row configuration:\n" + "\n".join(f"  - {issue}" for issue in issues)
        )
        self.issues = issues


class SchemaMismatch(FormEngineError):
    """Raised when imported CSV text lacks configured column headers."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"CSV headers do not match table columns (missing: {', '.join(missing)})")
        self.missing = missing


class ValidationFailed(FormEngineError):
    """Raised when a submission is attempted with invalid or missing values."""

    def __init__(self, result: "ValidationResult") -> None:
        super().__init__(f"Form has {result.error_count} validation error(s)")
        self.result = result


class StaleRowReference(FormEngineError):
    """Raised when a response addresses a row that is no longer rendered."""

    def __init__(self, row_id: int, field_id: str | None = None) -> None:
        super().__init__(f"Row {row_id} is no longer part of the current path")
        self.row_id = row_id
        self.field_id = field_id


class UnknownColumnError(FormEngineError, KeyError):
    """Raised when a table operation names a column the table does not have."""

    def __init__(self, header: str) -> None:
        super().__init__(f"Unknown column: {header}")
        self.header = header

    def __str__(self) -> str:
        return self.args[0]


class PersistenceError(FormEngineError):
    """Raised when the persistence collaborator fails."""


__all__ = [
    "FormEngineError",
    "ConfigurationError",
    "SchemaMismatch",
    "ValidationFailed",
    "StaleRowReference",
    "UnknownColumnError",
    "PersistenceError",
]
