"""
Submission gate for dyn-form.

Typing never blocks on validation; this check runs once, over every live
field, right before values are handed to the persistence collaborator.
"""

from typing import Iterable

from dyn_form.engine.field_model import FieldModel
from dyn_form.guardrails.constants import REQUIRED_MESSAGE
from dyn_form.models.form_state import FormState
from dyn_form.models.validation_result import FieldValidationError, ValidationResult


def _check_field(field: FieldModel) -> FieldValidationError | None:
    if field.config.required and field.is_empty():
        return FieldValidationError(
            field_id=field.id,
            row_id=field.row_id,
            error_type="required",
            message=REQUIRED_MESSAGE,
        )
    if not field.is_empty() and not field.validate(field.value):
        return FieldValidationError(
            field_id=field.id,
            row_id=field.row_id,
            error_type="validator",
            message=field.validation_message,
            received=field.value,
        )
    return None


def _live_fields(state: FormState) -> Iterable[FieldModel]:
    for row_id in state.current_rows:
        for field_id in state.row_fields.get(row_id, []):
            yield state.fields[field_id]


def check_submission(state: FormState) -> ValidationResult:
    """
    Validate every field on the rendered path.

    Args:
        state: The session's form state.

    Returns:
        ValidationResult listing required-field and validator failures.
    """
    errors = []
    warnings = []
    for field in _live_fields(state):
        error = _check_field(field)
        if error is not None:
            errors.append(error)
        if field.table is not None and field.table.filters:
            warnings.append(
                f"Table '{field.id}' has active filters; hidden rows are submitted too"
            )

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)
