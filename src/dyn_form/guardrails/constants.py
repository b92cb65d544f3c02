"""
Constants for guardrails in dyn-form.

This module contains the patterns and limits used by the configuration
and submission guardrails.
"""

import re

# Valid field id pattern: starts with a letter or underscore, then word
# characters, dashes, dots or colons ("table-items", "contact.email").
VALID_FIELD_ID = re.compile(r"^[A-Za-z_][\w\-.:]*$")

MAX_FIELD_ID_LENGTH = 100

# Values that count as "not provided" for required fields.
EMPTY_VALUES = (None, "")

REQUIRED_MESSAGE = "This field is required"
