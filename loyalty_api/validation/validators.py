"""
Field Validators
----------------
Predicates used by the endpoint schemas in loyalty_api.validation.schemas.

Every predicate accepts any JSON value and returns a bool; none of them
raise. Booleans are never accepted where a number is expected.
"""

import math
import re
from datetime import datetime
from typing import Any, Callable

from email_validator import EmailNotValidError, validate_email

from loyalty_api.auth.roles import is_valid_role

Predicate = Callable[[Any], bool]

VALID_TRANSACTION_TYPES = ("purchase", "adjustment", "redemption", "transfer", "event")
VALID_PROMOTION_TYPES = ("automatic", "one-time")
VALID_OPERATORS = ("gte", "lte")
UOFT_EMAIL_SUFFIXES = ("@mail.utoronto.ca", "@utoronto.ca")

# JSON type names accepted in place of a predicate
PRIMITIVE_TYPES = ("string", "number", "boolean", "object", "array")

_UTORID_PATTERN = re.compile(r"[a-zA-Z0-9]{7,8}")
_DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")
_POSITIVE_INTEGER_STRING_PATTERN = re.compile(r"[1-9][0-9]*")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_integral(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value) and value.is_integer()


# ============================================================================
# IDENTITY FIELDS
# ============================================================================


def is_valid_utorid(value: Any) -> bool:
    """UTORid: 7 or 8 ASCII letters and digits."""
    return isinstance(value, str) and _UTORID_PATTERN.fullmatch(value) is not None


def is_valid_name(value: Any) -> bool:
    return isinstance(value, str) and 1 <= len(value) <= 50


def is_valid_uoft_email(value: Any) -> bool:
    """Well-formed address ending in @mail.utoronto.ca or @utoronto.ca."""
    if not isinstance(value, str) or not value.endswith(UOFT_EMAIL_SUFFIXES):
        return False
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def is_valid_password(value: Any) -> bool:
    """
    8 to 20 characters with at least one uppercase letter, one lowercase
    letter, one digit and one other character.
    """
    return (
        isinstance(value, str)
        and 8 <= len(value) <= 20
        and re.search(r"[A-Z]", value) is not None
        and re.search(r"[a-z]", value) is not None
        and re.search(r"[0-9]", value) is not None
        and re.search(r"[^A-Za-z0-9]", value) is not None
    )


# ============================================================================
# DATES AND TIMES
# ============================================================================


def is_valid_date(value: Any) -> bool:
    """Calendar date written as YYYY-MM-DD."""
    if not isinstance(value, str) or _DATE_PATTERN.fullmatch(value) is None:
        return False
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return False
    return True


def is_valid_iso_timestamp(value: Any) -> bool:
    """ISO-8601 timestamp; a trailing 'Z' is accepted for UTC."""
    if not isinstance(value, str) or not value:
        return False
    candidate = value[:-1] + "+00:00" if value.endswith(("Z", "z")) else value
    try:
        datetime.fromisoformat(candidate)
    except ValueError:
        return False
    return True


# ============================================================================
# NUMBERS
# ============================================================================


def is_positive_number(value: Any) -> bool:
    if not _is_number(value):
        return False
    if isinstance(value, float) and not math.isfinite(value):
        return False
    return value > 0


def is_positive_integer(value: Any) -> bool:
    return _is_integral(value) and value > 0


def is_non_negative_integer(value: Any) -> bool:
    return _is_integral(value) and value >= 0


def is_array_of_numbers(value: Any) -> bool:
    """List whose items are numbers or canonical integer strings ("12")."""
    if not isinstance(value, list):
        return False
    for item in value:
        if _is_number(item):
            continue
        if isinstance(item, str):
            try:
                if str(int(item)) == item:
                    continue
            except ValueError:
                pass
        return False
    return True


# ============================================================================
# QUERY STRING VALUES
# ============================================================================


def is_boolean_string(value: Any) -> bool:
    return value in ("true", "false")


def is_positive_integer_string(value: Any) -> bool:
    """Canonical positive integer such as "1" or "25" (no sign, no zero padding)."""
    return (
        isinstance(value, str)
        and _POSITIVE_INTEGER_STRING_PATTERN.fullmatch(value) is not None
    )


def is_number_string(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        return math.isfinite(float(value))
    except ValueError:
        return False


# ============================================================================
# ENUMERATIONS
# ============================================================================


def is_valid_transaction_type(value: Any) -> bool:
    return isinstance(value, str) and value in VALID_TRANSACTION_TYPES


def is_valid_promotion_type(value: Any) -> bool:
    return isinstance(value, str) and value in VALID_PROMOTION_TYPES


def is_valid_operator(value: Any) -> bool:
    return isinstance(value, str) and value in VALID_OPERATORS


# ============================================================================
# COMBINATORS
# ============================================================================


def nullable_or(predicate: Predicate) -> Predicate:
    """Accept None or anything ``predicate`` accepts."""

    def check(value: Any) -> bool:
        return value is None or predicate(value)

    check.__name__ = f"nullable_{getattr(predicate, '__name__', 'predicate')}"
    return check


def matches_primitive_type(type_name: str, value: Any) -> bool:
    """JSON type check for one of PRIMITIVE_TYPES."""
    if type_name == "string":
        return isinstance(value, str)
    if type_name == "number":
        return _is_number(value)
    if type_name == "boolean":
        return isinstance(value, bool)
    if type_name == "object":
        return isinstance(value, dict)
    if type_name == "array":
        return isinstance(value, list)
    raise ValueError(f"Unknown primitive type '{type_name}'")


def validate_field(validator: Any, value: Any) -> bool:
    """
    Apply a schema validator to a value.

    Raises:
        TypeError: If ``validator`` is neither a primitive type name nor callable
    """
    if isinstance(validator, str):
        return matches_primitive_type(validator, value)
    if callable(validator):
        return bool(validator(value))
    raise TypeError(f"Invalid validator type: {type(validator).__name__}")


__all__ = [
    "PRIMITIVE_TYPES",
    "VALID_OPERATORS",
    "VALID_PROMOTION_TYPES",
    "VALID_TRANSACTION_TYPES",
    "is_array_of_numbers",
    "is_boolean_string",
    "is_non_negative_integer",
    "is_number_string",
    "is_positive_integer",
    "is_positive_integer_string",
    "is_positive_number",
    "is_valid_date",
    "is_valid_iso_timestamp",
    "is_valid_name",
    "is_valid_operator",
    "is_valid_password",
    "is_valid_promotion_type",
    "is_valid_role",
    "is_valid_transaction_type",
    "is_valid_uoft_email",
    "is_valid_utorid",
    "matches_primitive_type",
    "nullable_or",
    "validate_field",
]
