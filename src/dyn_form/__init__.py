"""
dyn-form: Branching Multi-Step Forms.

Describe a form as rows of fields with branch conditions. The session
shows row 0, then decides which row follows each answer, pruning rows
that no longer apply when an earlier answer changes.

Simple Usage:
    from dyn_form import FormSession

    session = FormSession(rows)
    session.on_field_change("userType", "business")
    session.current_rows        # [0, 2]

    bag = session.submit()      # values + branch history

    # Redisplay later along the same path
    FormSession(rows).populate(bag)

Tables:
    table = session.table("items")
    row = table.add_row(values={"Name": "bolt", "Qty": "3"})
    table.sort("Qty")
    csv_text = table.export_rows()

Persistence:
    from dyn_form import FormSubmitter, HttpCollaborator

    submitter = FormSubmitter(HttpCollaborator(), "Requests", {"items": "RequestItems"})
    item_id = await submitter.submit_form(session)
    await submitter.load_form(FormSession(rows), item_id)
"""

from dyn_form.session import FormSession
from dyn_form.engine import (
    BranchEngine,
    FieldModel,
    TableRow,
    TableWidget,
)
from dyn_form.models import (
    BranchCondition,
    ColumnConfig,
    FieldConfig,
    FieldOption,
    FieldType,
    FileHandle,
    RowConfig,
    TableConfig,
    ValidationResult,
    FieldValidationError,
    parse_rows,
)
from dyn_form.exceptions import (
    ConfigurationError,
    FormEngineError,
    PersistenceError,
    SchemaMismatch,
    StaleRowReference,
    UnknownColumnError,
    ValidationFailed,
)
from dyn_form.persistence import (
    FormSubmitter,
    HttpCollaborator,
    InMemoryCollaborator,
)
from dyn_form.lookup import LookupService
from dyn_form.surface import NullSurface, RecordingSurface, RenderSurface

__all__ = [
    # Main interface
    "FormSession",
    # Engine
    "BranchEngine",
    "FieldModel",
    "TableRow",
    "TableWidget",
    # Configuration models
    "BranchCondition",
    "ColumnConfig",
    "FieldConfig",
    "FieldOption",
    "FieldType",
    "RowConfig",
    "TableConfig",
    "parse_rows",
    # Values
    "FileHandle",
    # Validation
    "ValidationResult",
    "FieldValidationError",
    # Errors
    "ConfigurationError",
    "FormEngineError",
    "PersistenceError",
    "SchemaMismatch",
    "StaleRowReference",
    "UnknownColumnError",
    "ValidationFailed",
    # Persistence
    "FormSubmitter",
    "HttpCollaborator",
    "InMemoryCollaborator",
    "LookupService",
    # Presentation
    "NullSurface",
    "RecordingSurface",
    "RenderSurface",
]

__version__ = "0.1.0"
