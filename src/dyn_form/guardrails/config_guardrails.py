"""
Construction-time checks for row configurations.

A malformed configuration is refused before any session state exists,
so a bad ``nextRow`` or a duplicated id can never surface mid-session.
"""

import logging
import re
from collections import Counter
from typing import Sequence

from dyn_form.config import FormEngineConfig, get_config
from dyn_form.exceptions import ConfigurationError
from dyn_form.guardrails.constants import MAX_FIELD_ID_LENGTH, VALID_FIELD_ID
from dyn_form.models.row_config import FieldConfig, FieldType, RowConfig

logger = logging.getLogger("dyn-form.guardrails")


def _check_field_id(field_id: str) -> tuple[bool, str | None]:
    """Validate a field id."""
    if not field_id:
        return False, "Field id cannot be empty"
    if len(field_id) > MAX_FIELD_ID_LENGTH:
        return False, "Field id too long"
    if not VALID_FIELD_ID.match(field_id):
        return False, "Invalid characters in field id"
    return True, None


def _check_field(field: FieldConfig, reserved_key: str) -> list[str]:
    issues = []
    is_valid, error = _check_field_id(field.id)
    if not is_valid:
        issues.append(f"'{field.id}': {error}")
    if field.id == reserved_key:
        issues.append(f"'{field.id}': collides with the reserved branch history key")

    if field.type == FieldType.TABLE:
        if field.table_config is None:
            issues.append(f"'{field.id}': table field has no tableConfig")
        else:
            duplicates = [h for h, n in Counter(field.table_config.headers).items() if n > 1]
            if duplicates:
                issues.append(f"'{field.id}': duplicate column headers {duplicates}")

    if field.pattern is not None:
        try:
            re.compile(field.pattern)
        except re.error as e:
            issues.append(f"'{field.id}': invalid pattern ({e})")
    return issues


def _check_branches(row: RowConfig, row_ids: set[int]) -> list[str]:
    issues = []
    defaults: Counter[str] = Counter()
    for condition in row.branch_conditions or []:
        field = row.field(condition.field_id)
        if field is None:
            issues.append(
                f"Row {row.id}: branch condition refers to unknown field '{condition.field_id}'"
            )
        elif not field.drives_branching:
            logger.warning(
                "Row %s: %s field '%s' cannot drive branching",
                row.id, field.type.value, condition.field_id,
            )
        if condition.next_row not in row_ids:
            issues.append(
                f"Row {row.id}: branch target {condition.next_row} does not exist"
            )
        if condition.default_branch:
            defaults[condition.field_id] += 1

    for field_id, count in defaults.items():
        if count > 1:
            issues.append(
                f"Row {row.id}: field '{field_id}' has {count} default branches"
            )
    return issues


def check_row_configuration(
    rows: Sequence[RowConfig],
    config: FormEngineConfig | None = None,
) -> None:
    """
    Refuse row configurations the branch engine cannot run.

    Args:
        rows: The complete row set.
        config: Engine configuration (reserved keys). Defaults to get_config().

    Raises:
        ConfigurationError: Listing every problem found.
    """
    config = config or get_config()
    issues: list[str] = []

    if not rows:
        raise ConfigurationError(["Row configuration is empty"])

    row_counts = Counter(row.id for row in rows)
    for row_id, count in row_counts.items():
        if count > 1:
            issues.append(f"Duplicate row id {row_id}")
    row_ids = set(row_counts)
    if 0 not in row_ids:
        issues.append("No row with id 0 (the entry row)")

    field_counts = Counter(f.id for row in rows for f in row.fields)
    for field_id, count in field_counts.items():
        if count > 1:
            issues.append(f"Duplicate field id '{field_id}'")

    for row in rows:
        for field in row.fields:
            issues.extend(_check_field(field, config.branch_history_key))
        issues.extend(_check_branches(row, row_ids))

    if issues:
        logger.error("Rejected row configuration with %d issue(s)", len(issues))
        raise ConfigurationError(issues)
