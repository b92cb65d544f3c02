"""
Branch engine: decides which row follows another and keeps the rendered
path consistent when a controlling field changes.

Rows are addressed by their configured id, never by their position in
the rendered path.
"""

import logging
from typing import Any, Sequence

from dyn_form.config import FormEngineConfig
from dyn_form.guardrails.config_guardrails import check_row_configuration
from dyn_form.models.form_state import FormState, Reconciliation
from dyn_form.models.row_config import BranchCondition, RowConfig

logger = logging.getLogger("dyn-form.engine")


def condition_matches(condition: BranchCondition, raw_value: Any) -> bool:
    """
    Explicit value match of one condition.

    A list value matches by membership with the ``or`` operator. Any other
    operator requires the raw value to equal every element, which only
    holds when all elements are equal to it.
    """
    if isinstance(condition.value, list):
        if condition.operator == "or":
            return raw_value in condition.value
        return all(v == raw_value for v in condition.value)
    if condition.value is None:
        return False
    return raw_value == condition.value


class BranchEngine:
    """
    Owns the row arena and the branching rules.

    Usage:
        engine = BranchEngine(rows)
        state = FormState(current_rows=[0])
        outcome = engine.reconcile(state, row_id=0, field_id="userType", raw_value="business")
        outcome.pruned, outcome.appended
    """

    def __init__(self, rows: Sequence[RowConfig], config: FormEngineConfig | None = None):
        check_row_configuration(rows, config)
        self.rows: dict[int, RowConfig] = {row.id: row for row in rows}

    def has_row(self, row_id: int) -> bool:
        return row_id in self.rows

    def row(self, row_id: int) -> RowConfig:
        return self.rows[row_id]

    def decide(self, row: RowConfig, field_id: str, raw_value: Any) -> int:
        """
        Pick the row that should follow ``row`` for a controlling value.

        Conditions for ``field_id`` are scanned in declaration order and
        the first explicit value match wins. Without one, the field's
        default-branch condition applies; without that, the row whose id
        follows ``row.id``.
        """
        fallback: BranchCondition | None = None
        for condition in row.branch_conditions or []:
            if condition.field_id != field_id:
                continue
            if condition_matches(condition, raw_value):
                return condition.next_row
            if condition.default_branch and fallback is None:
                fallback = condition

        if fallback is not None:
            return fallback.next_row
        return row.id + 1

    def reconcile(
        self,
        state: FormState,
        row_id: int,
        field_id: str,
        raw_value: Any,
    ) -> Reconciliation | None:
        """
        Bring the rendered path in line with a controlling field's value.

        Rows after ``row_id`` are pruned (with their history entries) and
        the decided row is appended, unless it already follows ``row_id``.
        Field models are not touched here; the caller instantiates and
        discards them from the returned outcome.

        Returns:
            The outcome, or None when ``row_id`` is not rendered.
        """
        if state.index_of(row_id) is None:
            logger.debug("Ignoring change of %s: row %s is not rendered", field_id, row_id)
            return None

        next_row = self.decide(self.rows[row_id], field_id, raw_value)
        return self.follow(state, row_id, next_row, field_id=field_id, raw_value=raw_value)

    def follow(
        self,
        state: FormState,
        row_id: int,
        next_row: int,
        field_id: str = "",
        raw_value: Any = None,
    ) -> Reconciliation | None:
        """
        Make ``next_row`` the row that follows ``row_id``.

        Same path rules as ``reconcile``, for a target that is already
        known, such as one read back from a stored branch history.
        """
        current_index = state.index_of(row_id)
        if current_index is None:
            logger.debug("Ignoring branch of row %s: row is not rendered", row_id)
            return None

        row = self.rows[row_id]
        if row.branch_conditions:
            state.branch_history[row_id] = next_row

        following = state.current_rows[current_index + 1:current_index + 2]
        if following == [next_row]:
            return Reconciliation(row_id=row_id, field_id=field_id, next_row=next_row, unchanged=True)

        pruned = state.current_rows[current_index + 1:]
        del state.current_rows[current_index + 1:]
        for pruned_id in pruned:
            state.branch_history.pop(pruned_id, None)

        appended = None
        if next_row in state.current_rows:
            logger.warning("Row %s branches back to rendered row %s; not appended", row_id, next_row)
        elif next_row in self.rows:
            state.current_rows.append(next_row)
            appended = next_row

        logger.info(
            "Row %s via %s=%r -> row %s (pruned %s)", row_id, field_id, raw_value, next_row, pruned
        )
        return Reconciliation(
            row_id=row_id,
            field_id=field_id,
            next_row=next_row,
            pruned=pruned,
            appended=appended,
        )
