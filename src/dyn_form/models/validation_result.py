"""
Validation result models for the submission gate.

Per-field validators only flag a field as invalid while the user types;
these models collect the outcome across every live field when the form
is about to be submitted.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field


class FieldValidationError(BaseModel):
    """Validation error for a specific field."""

    field_id: str = Field(..., description="Id of the field with error")
    row_id: int = Field(..., description="Row the field belongs to")
    error_type: Literal["required", "validator"] = Field(
        ..., description="Presence check or configured validator"
    )
    message: str = Field(..., description="Human-readable error message")
    received: Any | None = Field(default=None, description="Rejected value")


class ValidationResult(BaseModel):
    """Result of validating every live field of a session."""

    is_valid: bool = Field(..., description="Whether the form can be submitted")
    errors: list[FieldValidationError] = Field(
        default_factory=list, description="List of validation errors"
    )
    warnings: list[str] = Field(
        default_factory=list, description="Non-blocking warnings"
    )

    @property
    def error_count(self) -> int:
        """Get the number of validation errors."""
        return len(self.errors)

    def get_field_errors(self, field_id: str) -> list[FieldValidationError]:
        """Get all errors for a specific field."""
        return [e for e in self.errors if e.field_id == field_id]

    def to_error_dict(self) -> dict[str, list[str]]:
        """Convert errors to a dict mapping field ids to error messages."""
        result: dict[str, list[str]] = {}
        for error in self.errors:
            result.setdefault(error.field_id, []).append(error.message)
        return result
