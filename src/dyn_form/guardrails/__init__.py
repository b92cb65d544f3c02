"""
Guardrails for dyn-form.

Structural checks on row configurations and the submission gate.
"""

from dyn_form.guardrails.config_guardrails import check_row_configuration
from dyn_form.guardrails.submission_guardrails import check_submission

__all__ = [
    "check_row_configuration",
    "check_submission",
]
