"""
Live model of a single form field.

A FieldModel is created when its row becomes visible and discarded when
the row is pruned. It holds the current value and presentation state and
knows, per field kind, how to extract a submittable value and how to
accept a stored one.
"""

import logging
import re
from typing import Any

from dyn_form.config import FormEngineConfig, get_config
from dyn_form.engine.table_widget import TableWidget
from dyn_form.guardrails.constants import EMPTY_VALUES
from dyn_form.models.form_state import FileHandle
from dyn_form.models.row_config import FieldConfig, FieldOption, FieldType

logger = logging.getLogger("dyn-form.field")

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on", "checked"})


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


class FieldModel:
    """
    One field's value and presentation state.

    ``valid`` reflects the last value set through ``set_value`` and is
    meant for an inline indicator; it never blocks input.
    """

    def __init__(
        self,
        field_config: FieldConfig,
        row_id: int,
        config: FormEngineConfig | None = None,
    ):
        self.config = field_config
        self.row_id = row_id
        self._engine_config = config or get_config()

        self.options: list[FieldOption] = list(field_config.options)
        self.valid = True
        self.file_reference: str | None = None
        self.table: TableWidget | None = None

        if field_config.type == FieldType.TABLE:
            self.table = TableWidget(field_config.id, field_config.table_config, self._engine_config)

        self.value: Any = self._initial_value()

    def __repr__(self) -> str:
        return f"FieldModel(id={self.id!r}, type={self.type.value!r}, row={self.row_id})"

    @property
    def id(self) -> str:
        return self.config.id

    @property
    def type(self) -> FieldType:
        return self.config.type

    @property
    def drives_branching(self) -> bool:
        return self.config.drives_branching

    @property
    def validation_message(self) -> str:
        return self.config.validation_message or self._engine_config.default_validation_message

    def _initial_value(self) -> Any:
        if self.type == FieldType.CHECKBOX:
            return False
        if self.type in (FieldType.FILE, FieldType.RADIO, FieldType.TABLE):
            return None
        return ""

    # ------------------------------------------------------------------
    # Value model
    # ------------------------------------------------------------------

    def set_value(self, raw_value: Any) -> None:
        """Store a value typed or chosen by the user."""
        if self.type == FieldType.TABLE:
            raise TypeError(f"Table field '{self.id}' is edited through its TableWidget")
        if self.type == FieldType.CHECKBOX:
            raw_value = _to_bool(raw_value)
        self.value = raw_value
        self.valid = self.validate(raw_value)

    def extract_value(self) -> Any:
        """
        Value submitted for this field.

        Checkbox -> bool, file -> FileHandle or None, table ->
        ``{"rows": [...], "deletedIds": [...]}``, everything else -> the raw
        scalar.
        """
        if self.type == FieldType.TABLE:
            return self.table.extract()
        if self.type == FieldType.CHECKBOX:
            return bool(self.value)
        if self.type == FieldType.FILE:
            return self.value if isinstance(self.value, FileHandle) else None
        return self.value

    def populate(self, value: Any) -> None:
        """Accept a stored value, the inverse of ``extract_value``."""
        if self.type == FieldType.TABLE:
            self.table.load(value)
            return

        if self.type == FieldType.SELECT and not self.options:
            # Lookup options not loaded yet; set_options re-checks the value.
            self.value = "" if value is None else value
        elif self.type in (FieldType.RADIO, FieldType.SELECT):
            self.value = self._initial_value()
            if value not in (None, ""):
                match = next((o for o in self.options if o.value == str(value)), None)
                if match is None:
                    logger.warning("Field %s: stored value %r is not an option", self.id, value)
                else:
                    self.value = match.value
        elif self.type == FieldType.CHECKBOX:
            self.value = _to_bool(value)
        elif self.type == FieldType.FILE:
            # Content cannot be restored, only a reference to show.
            if isinstance(value, FileHandle):
                self.value = value
                self.file_reference = value.name
            elif isinstance(value, dict):
                self.file_reference = value.get("name") or value.get("fileName")
            elif value is not None:
                self.file_reference = str(value)
        else:
            self.value = "" if value is None else value

        self.valid = self.validate(self.value)

    def set_options(self, options: list[FieldOption | str]) -> None:
        """Replace the selectable options (lookup population)."""
        self.options = [
            o if isinstance(o, FieldOption) else FieldOption(value=o, label=o) for o in options
        ]
        if self.value not in (None, "") and self.value not in {o.value for o in self.options}:
            self.value = self._initial_value()

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, raw_value: Any) -> bool:
        """Run the configured validator; no validator means always valid."""
        if self.config.validation is not None:
            return bool(self.config.validation(raw_value))
        if self.config.pattern is not None:
            if raw_value in EMPTY_VALUES:
                return True
            return re.fullmatch(self.config.pattern, str(raw_value)) is not None
        return True

    def is_empty(self) -> bool:
        """Presence check used by the submission gate."""
        if self.type == FieldType.TABLE:
            return not self.table.rows
        if self.type == FieldType.CHECKBOX:
            return not self.value
        if self.type == FieldType.FILE:
            return self.value is None and not self.file_reference
        return self.value in EMPTY_VALUES
