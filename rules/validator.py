"""
Rule Validator - Schema checks for rule documents
=================================================

Checks a parsed rules document (from the rules file or a remote
import) and normalizes hand-edited values. Numeric strings in the
timing fields are converted to numbers in place; nothing else is
modified.
"""

import math
from dataclasses import dataclass
from typing import Any, Optional, Union

from .model import REQUIRED_FIELDS, NUMERIC_FIELDS, OPTIONAL_STRING_FIELDS


@dataclass
class ValidationResult:
    """
    Outcome of validate_rules.

    Attributes:
        is_valid (bool): Whether the document passed
        error (str): Description of the first problem found
    """
    is_valid: bool
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.is_valid


def _parse_number(text: str) -> Optional[Union[int, float]]:
    """Parse a numeric string, returning None if it is not a finite number."""
    text = text.strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_rules(rules: Any) -> ValidationResult:
    """
    Validate a rules document.

    Never raises. Stops at the first failing rule and reports its
    1-based position and the offending field.

    Args:
        rules: Parsed JSON value

    Returns:
        ValidationResult
    """
    if not isinstance(rules, list):
        return ValidationResult(False, "The provided rules data is not an array.")

    for index, rule in enumerate(rules, start=1):
        if not isinstance(rule, dict):
            return ValidationResult(False, f"Rule #{index} is not a valid object.")

        for prop in REQUIRED_FIELDS:
            value = rule.get(prop)
            if not isinstance(value, str) or not value.strip():
                return ValidationResult(
                    False,
                    f"Rule #{index} is missing or has an empty required string property: '{prop}'."
                )

        for prop in OPTIONAL_STRING_FIELDS:
            value = rule.get(prop)
            if value is not None and not isinstance(value, str):
                return ValidationResult(
                    False,
                    f"Rule #{index} has an invalid type for '{prop}'. Expected a string."
                )

        for prop in NUMERIC_FIELDS:
            if prop not in rule:
                continue

            value = rule[prop]
            if isinstance(value, str) and value.strip():
                parsed = _parse_number(value)
                if parsed is None:
                    return ValidationResult(
                        False,
                        f"Rule #{index} has a non-numeric string for '{prop}': '{value}'."
                    )
                value = parsed
            elif not _is_number(value) or not math.isfinite(value):
                return ValidationResult(
                    False,
                    f"Rule #{index} has an invalid type for '{prop}'. "
                    f"Expected a number or a numeric string, got {value!r}."
                )

            if value < 0:
                return ValidationResult(
                    False,
                    f"Rule #{index} has a negative value for '{prop}': {value}."
                )

            rule[prop] = value

    return ValidationResult(True)
