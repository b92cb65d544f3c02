"""
Data models for dyn-form.

This module contains:
- Row configuration models (pydantic, parsed from JSON)
- Runtime state containers for sessions
- Validation results
"""

from dyn_form.models.row_config import (
    BRANCHING_TYPES,
    BranchCondition,
    ColumnConfig,
    FieldConfig,
    FieldOption,
    FieldType,
    RowConfig,
    TableConfig,
    parse_rows,
)
from dyn_form.models.form_state import (
    FileHandle,
    FormState,
    Reconciliation,
    format_file_size,
)
from dyn_form.models.validation_result import (
    FieldValidationError,
    ValidationResult,
)

__all__ = [
    # Row configuration
    "BRANCHING_TYPES",
    "BranchCondition",
    "ColumnConfig",
    "FieldConfig",
    "FieldOption",
    "FieldType",
    "RowConfig",
    "TableConfig",
    "parse_rows",
    # Runtime state
    "FileHandle",
    "FormState",
    "Reconciliation",
    "format_file_size",
    # Validation
    "FieldValidationError",
    "ValidationResult",
]
