"""
Form session.

This is the main entry point for dyn-form. A session turns a row
configuration into a live, branching form: it instantiates field models
for visible rows, routes field changes through the branch engine, and
produces or consumes the flat value bag exchanged with persistence.
"""

import json
import logging
from collections import deque
from typing import Any, Callable, Sequence

from dyn_form.config import FormEngineConfig, get_config
from dyn_form.engine.branching import BranchEngine
from dyn_form.engine.field_model import FieldModel
from dyn_form.engine.table_widget import TableWidget
from dyn_form.exceptions import StaleRowReference
from dyn_form.guardrails.submission_guardrails import check_submission
from dyn_form.inflight import InFlightRequests, RequestTicket
from dyn_form.models.form_state import FileHandle, FormState, Reconciliation
from dyn_form.models.row_config import RowConfig, parse_rows
from dyn_form.models.validation_result import ValidationResult
from dyn_form.surface import NullSurface, RenderSurface

logger = logging.getLogger("dyn-form.session")


class FormSession:
    """
    Top-level coordinator for one filled-in form.

    Usage:
        session = FormSession(rows)

        # Presentation layer forwards every change
        session.on_field_change("userType", "business")
        session.current_rows        # [0, 2]

        # Hand values to persistence
        bag = session.submit()

        # Redisplay a saved submission along the same path
        FormSession(rows).populate(bag)
    """

    def __init__(
        self,
        rows: str | Sequence[dict[str, Any] | RowConfig] | None = None,
        surface: RenderSurface | None = None,
        config: FormEngineConfig | None = None,
    ):
        """
        Initialize the session.

        Args:
            rows: Row configuration (JSON text, dicts or RowConfig). When
                  given, the session is initialized immediately.
            surface: Presentation layer notified of shown/removed rows.
            config: Engine configuration. If None, uses get_config().
        """
        self._config = config or get_config()
        self.surface: RenderSurface = surface or NullSurface()
        self.engine: BranchEngine | None = None
        self.state = FormState()
        self.requests = InFlightRequests()

        self._dispatching = False
        self._queued: deque[tuple[str, Any]] = deque()

        if rows is not None:
            self.initialize(rows)

    def initialize(self, rows: str | Sequence[dict[str, Any] | RowConfig]) -> None:
        """
        Load a row configuration and render row 0.

        Raises:
            ConfigurationError: If the configuration is malformed.
        """
        self.engine = BranchEngine(parse_rows(rows), self._config)
        self._reset()
        logger.info("Session initialized with %d row(s)", len(self.engine.rows))

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def config(self) -> FormEngineConfig:
        return self._config

    @property
    def current_rows(self) -> list[int]:
        return list(self.state.current_rows)

    @property
    def branch_history(self) -> dict[int, int]:
        return dict(self.state.branch_history)

    def field(self, field_id: str) -> FieldModel:
        """Live field model; raises KeyError if its row is not rendered."""
        return self.state.fields[field_id]

    def table(self, field_id: str) -> TableWidget:
        field = self.field(field_id)
        if field.table is None:
            raise TypeError(f"Field '{field_id}' is not a table field")
        return field.table

    def live_fields(self) -> list[FieldModel]:
        """Live field models in rendered order."""
        return [
            self.state.fields[field_id]
            for row_id in self.state.current_rows
            for field_id in self.state.row_fields.get(row_id, [])
        ]

    # ------------------------------------------------------------------
    # Row lifecycle
    # ------------------------------------------------------------------

    def _reset(self) -> None:
        for row_id in reversed(self.state.current_rows):
            self._discard_row(row_id)
        self.state = FormState(current_rows=[0])
        self._instantiate_row(0)

    def _instantiate_row(self, row_id: int) -> None:
        row = self.engine.row(row_id)
        for field_config in row.fields:
            self.state.fields[field_config.id] = FieldModel(field_config, row_id, self._config)
        self.state.row_fields[row_id] = row.field_ids
        self.requests.row_instantiated(row_id)
        self.surface.create_container(row_id, row.field_ids)

    def _discard_row(self, row_id: int) -> None:
        for field_id in self.state.row_fields.pop(row_id, []):
            self.state.fields.pop(field_id, None)
        self.surface.remove_row(row_id)

    def _apply(self, outcome: Reconciliation | None) -> None:
        if outcome is None or outcome.unchanged:
            return
        for row_id in outcome.pruned:
            self._discard_row(row_id)
        if outcome.appended is not None:
            self._instantiate_row(outcome.appended)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on_field_change(self, field_id: str, value: Any) -> Reconciliation | None:
        """
        Dispatch a field change from the presentation layer.

        The value is always stored on the field. Radio and select changes
        also reconcile the rendered path before this call returns. Changes
        to fields that are no longer rendered are ignored. A change
        dispatched while another one is being handled runs after it.

        Returns:
            The reconciliation outcome for controlling fields, else None.
        """
        if self._dispatching:
            logger.debug("Queueing change of %s until the current handler completes", field_id)
            self._queued.append((field_id, value))
            return None

        self._dispatching = True
        try:
            outcome = self._handle_change(field_id, value)
            while self._queued:
                self._handle_change(*self._queued.popleft())
            return outcome
        finally:
            self._queued.clear()
            self._dispatching = False

    def _handle_change(self, field_id: str, value: Any) -> Reconciliation | None:
        field = self.state.fields.get(field_id)
        if field is None:
            logger.debug("Ignoring change of %s: field is not rendered", field_id)
            return None

        field.set_value(value)
        if not field.drives_branching:
            return None

        outcome = self.engine.reconcile(self.state, field.row_id, field_id, field.value)
        self._apply(outcome)
        return outcome

    # ------------------------------------------------------------------
    # Value bag
    # ------------------------------------------------------------------

    def populate(self, values: dict[str, Any]) -> None:
        """
        Re-display a stored value bag.

        The form is reset to row 0, then rows are filled in rendered order.
        A row with a recorded entry in the stored branch history is followed
        by that row. Without a stored history, each controlling field with a
        stored value reconciles the path instead.
        """
        history = self._stored_history(values)
        self._dispatching = True
        try:
            self._reset()
            index = 0
            while index < len(self.state.current_rows):
                row_id = self.state.current_rows[index]
                self._populate_row(row_id, values, history)
                index += 1
        finally:
            self._queued.clear()
            self._dispatching = False
        logger.info("Populated session along path %s", self.state.current_rows)

    def _stored_history(self, values: dict[str, Any]) -> dict[int, int] | None:
        raw = values.get(self._config.branch_history_key)
        if raw in (None, ""):
            return None
        try:
            entries = json.loads(raw) if isinstance(raw, str) else raw
            return {int(row_id): int(next_row) for row_id, next_row in entries.items()}
        except (AttributeError, TypeError, ValueError):
            logger.warning("Ignoring unreadable branch history %r", raw)
            return None

    def _populate_row(
        self, row_id: int, values: dict[str, Any], history: dict[int, int] | None
    ) -> None:
        row = self.engine.row(row_id)
        for field_config in row.fields:
            if field_config.id in values:
                self.state.fields[field_config.id].populate(values[field_config.id])

        if history is not None and row.branch_conditions:
            if row_id in history:
                self._apply(self.engine.follow(self.state, row_id, history[row_id]))
            return

        for field_id in row.controlling_field_ids:
            field = self.state.fields[field_id]
            if values.get(field_id) in (None, "") or field.value in (None, ""):
                continue
            self._apply(self.engine.reconcile(self.state, row_id, field_id, field.value))

    def submit(self) -> dict[str, Any]:
        """
        Collect the value bag.

        Returns:
            ``{field_id: value}`` for every rendered field, plus the branch
            history as JSON text under the reserved history key.
        """
        bag: dict[str, Any] = {field.id: field.extract_value() for field in self.live_fields()}
        bag[self._config.branch_history_key] = json.dumps(
            {str(row_id): next_row for row_id, next_row in self.state.branch_history.items()}
        )
        return bag

    def validate(self) -> ValidationResult:
        """Run the submission gate over every rendered field."""
        return check_submission(self.state)

    # ------------------------------------------------------------------
    # Collaborator responses
    # ------------------------------------------------------------------

    def begin_request(self, field_id: str) -> RequestTicket:
        """Tie an outgoing collaborator request to a field's row instance."""
        field = self.field(field_id)
        return self.requests.issue(field.row_id, field_id)

    def apply_response(self, ticket: RequestTicket, apply: Callable[[FieldModel], None]) -> bool:
        """
        Apply a collaborator response if its row is still rendered.

        Returns:
            False when the response was stale and dropped.
        """
        try:
            self.requests.check(ticket, self.state.current_rows)
        except StaleRowReference:
            logger.debug(
                "Dropping response %s for %s: row %s was pruned",
                ticket.request_id, ticket.field_id, ticket.row_id,
            )
            return False
        finally:
            self.requests.complete(ticket)

        apply(self.state.fields[ticket.field_id])
        return True

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        """JSON-safe view of the rendered path and every live field."""
        rows = []
        for row_id in self.state.current_rows:
            fields = []
            for field_id in self.state.row_fields.get(row_id, []):
                field = self.state.fields[field_id]
                entry: dict[str, Any] = {
                    "id": field.id,
                    "type": field.type.value,
                    "label": field.config.label,
                    "required": field.config.required,
                    "valid": field.valid,
                }
                if field.table is not None:
                    entry["table"] = field.table.view_state()
                elif isinstance(field.value, FileHandle):
                    entry["value"] = field.value.describe()
                else:
                    entry["value"] = field.value
                if field.type.value == "file":
                    entry["fileReference"] = field.file_reference
                if field.options:
                    entry["options"] = [o.model_dump() for o in field.options]
                fields.append(entry)
            rows.append({"id": row_id, "fields": fields})

        return {
            "currentRows": self.current_rows,
            "branchHistory": {str(k): v for k, v in self.state.branch_history.items()},
            "rows": rows,
        }
