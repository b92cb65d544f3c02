"""
Row configuration models for branching forms.

A form is an ordered sequence of rows. Each row holds fields and,
optionally, branch conditions that pick the row shown after it. The
models accept the camelCase keys used by JSON configuration documents
as well as their snake_case attribute names.
"""

import json
from enum import Enum
from typing import Any, Callable, Literal, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from dyn_form.exceptions import ConfigurationError

Scalar = str | int | float | bool


class FieldType(str, Enum):
    """Supported field kinds."""

    TEXT = "text"
    NUMBER = "number"
    EMAIL = "email"
    PASSWORD = "password"
    DATE = "date"
    TIME = "time"
    TEXTAREA = "textarea"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    SELECT = "select"
    FILE = "file"
    TABLE = "table"


# Only these kinds can drive branching.
BRANCHING_TYPES = frozenset({FieldType.RADIO, FieldType.SELECT})


class _ConfigModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class FieldOption(_ConfigModel):
    """A selectable value for radio, select and option-backed table columns."""

    value: str = Field(..., description="Submitted value")
    label: str = Field(default="", description="Displayed text")


class ColumnConfig(_ConfigModel):
    """One column of a table field."""

    header: str = Field(..., description="Column header, also the row-object key")
    type: str = Field(
        default="text", description="Cell input type; number and date change sorting and filtering"
    )
    options: list[FieldOption] | None = Field(
        default=None, description="Turns the cell into a select"
    )
    filterable: bool = Field(default=False, description="Show a filter for this column")


class TableConfig(_ConfigModel):
    """Configuration for a table-typed field."""

    columns: list[ColumnConfig] = Field(..., min_length=1)
    sortable: bool = False
    filterable: bool = False
    pagination: bool = False

    @property
    def headers(self) -> list[str]:
        return [column.header for column in self.columns]

    def column(self, header: str) -> ColumnConfig | None:
        for column in self.columns:
            if column.header == header:
                return column
        return None


class BranchCondition(_ConfigModel):
    """Maps a controlling field's value to the row shown next."""

    field_id: str = Field(..., alias="fieldId")
    value: Scalar | list[Scalar] | None = Field(default=None)
    operator: Literal["and", "or"] | None = Field(
        default=None, description="Only meaningful when value is a list"
    )
    next_row: int = Field(..., alias="nextRow")
    default_branch: bool = Field(default=False, alias="defaultBranch")


class FieldConfig(_ConfigModel):
    """Static configuration of a single field."""

    id: str = Field(..., description="Unique across the form; key in the value bag")
    type: FieldType
    label: str = ""
    required: bool = True
    options: list[FieldOption] = Field(default_factory=list)
    table_config: TableConfig | None = Field(default=None, alias="tableConfig")
    validation: Callable[[Any], bool] | None = Field(default=None, exclude=True)
    pattern: str | None = Field(
        default=None, description="Regex the whole raw value must match"
    )
    validation_message: str | None = Field(default=None, alias="validationMessage")

    @property
    def drives_branching(self) -> bool:
        return self.type in BRANCHING_TYPES


class RowConfig(_ConfigModel):
    """One group of fields, addressed by a stable id."""

    id: int
    fields: list[FieldConfig] = Field(default_factory=list)
    branch_conditions: list[BranchCondition] | None = Field(
        default=None, alias="branchConditions"
    )

    @property
    def field_ids(self) -> list[str]:
        return [f.id for f in self.fields]

    @property
    def controlling_field_ids(self) -> list[str]:
        return [f.id for f in self.fields if f.drives_branching]

    def field(self, field_id: str) -> FieldConfig | None:
        for f in self.fields:
            if f.id == field_id:
                return f
        return None


def parse_rows(data: str | Sequence[dict[str, Any] | RowConfig]) -> list[RowConfig]:
    """
    Parse a row-configuration document.

    Args:
        data: JSON text, or a sequence of dicts / RowConfig instances.

    Returns:
        The rows in declaration order.

    Raises:
        ConfigurationError: If the document does not match the row schema.
    """
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as e:
            raise ConfigurationError([f"Row configuration is not valid JSON: {e}"]) from e

    rows: list[RowConfig] = []
    issues: list[str] = []
    for index, row in enumerate(data):
        if isinstance(row, RowConfig):
            rows.append(row)
            continue
        try:
            rows.append(RowConfig.model_validate(row))
        except ValidationError as e:
            issues.extend(
                f"rows[{index}].{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
                for err in e.errors()
            )

    if issues:
        raise ConfigurationError(issues)
    return rows
