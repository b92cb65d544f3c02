"""
Runtime state containers for a form session.

These are plain dataclasses rather than pydantic models: they hold live
objects (field models, file contents) and are mutated in place by the
branch engine and the session.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from dyn_form.engine.field_model import FieldModel


_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


def format_file_size(size: int) -> str:
    """Human-readable byte count, e.g. ``1.5 KB``."""
    if size <= 0:
        return "0 Bytes"
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{round(value, 2):g} {_SIZE_UNITS[unit]}"


@dataclass
class FileHandle:
    """A file selected for a file field, handed to the collaborator on submit."""

    name: str
    content: bytes = b""
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def is_image(self) -> bool:
        return self.content_type.startswith("image/")

    def describe(self) -> str:
        return f"{self.name} ({format_file_size(self.size)})"


@dataclass
class FormState:
    """
    The rendered path through a form.

    ``current_rows`` always starts with row 0; ``row_fields`` maps every
    live row id to the field ids instantiated for it, so pruning a row
    knows which field models to discard.
    """

    current_rows: list[int] = field(default_factory=list)
    fields: dict[str, "FieldModel"] = field(default_factory=dict)
    branch_history: dict[int, int] = field(default_factory=dict)
    row_fields: dict[int, list[str]] = field(default_factory=dict)

    def index_of(self, row_id: int) -> int | None:
        try:
            return self.current_rows.index(row_id)
        except ValueError:
            return None

    def row_of(self, field_id: str) -> int | None:
        for row_id, field_ids in self.row_fields.items():
            if field_id in field_ids:
                return row_id
        return None


@dataclass
class Reconciliation:
    """Outcome of one branch reconciliation."""

    row_id: int
    field_id: str
    next_row: int
    pruned: list[int] = field(default_factory=list)
    appended: int | None = None
    unchanged: bool = False
