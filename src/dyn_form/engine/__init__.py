"""
Branching form engine.

- BranchEngine: next-row decisions and path reconciliation
- FieldModel: per-field value model
- TableWidget: repeating-row sub-model for table fields
"""

from dyn_form.engine.branching import BranchEngine, condition_matches
from dyn_form.engine.field_model import FieldModel
from dyn_form.engine.table_widget import (
    CsvImportResult,
    PaginationState,
    SortState,
    TableRow,
    TableWidget,
)

__all__ = [
    "BranchEngine",
    "condition_matches",
    "FieldModel",
    "CsvImportResult",
    "PaginationState",
    "SortState",
    "TableRow",
    "TableWidget",
]
