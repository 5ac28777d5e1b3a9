"""
Endpoint Validation Schemas
---------------------------
Static, per-endpoint whitelist of accepted request fields.

Each endpoint key ("METHOD /path/template") maps to an ordered tuple of
FieldRule entries. A request is valid when:

    - it carries no field outside the schema
    - every required field is present and not null
    - every present field satisfies its validator

Null and absent are the same thing here. The table is built once at import
and cannot be modified afterwards.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Tuple, Union

from loguru import logger

from loyalty_api.validation.validators import (
    PRIMITIVE_TYPES,
    is_array_of_numbers,
    is_boolean_string,
    is_non_negative_integer,
    is_number_string,
    is_positive_integer,
    is_positive_integer_string,
    is_positive_number,
    is_valid_date,
    is_valid_iso_timestamp,
    is_valid_name,
    is_valid_operator,
    is_valid_password,
    is_valid_promotion_type,
    is_valid_role,
    is_valid_transaction_type,
    is_valid_uoft_email,
    is_valid_utorid,
    nullable_or,
    validate_field,
)

Validator = Union[str, Callable[[Any], bool]]


@dataclass(frozen=True)
class FieldRule:
    """One accepted field: its name, validator and whether it is required."""

    name: str
    validator: Validator
    required: bool = False

    def __post_init__(self):
        if isinstance(self.validator, str):
            if self.validator not in PRIMITIVE_TYPES:
                raise TypeError(
                    f"Field '{self.name}': unknown primitive type '{self.validator}'"
                )
        elif not callable(self.validator):
            raise TypeError(
                f"Field '{self.name}': validator must be a type name or callable, "
                f"got {type(self.validator).__name__}"
            )


EndpointSchema = Tuple[FieldRule, ...]


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validate_request; ``fields`` names the offending fields."""

    valid: bool
    error: Optional[str] = None
    fields: Tuple[str, ...] = ()

    def __bool__(self) -> bool:
        return self.valid


VALID = ValidationResult(valid=True)


def required(name: str, validator: Validator) -> FieldRule:
    return FieldRule(name, validator, required=True)


def optional(name: str, validator: Validator) -> FieldRule:
    return FieldRule(name, validator, required=False)


def build_schema(*rules: FieldRule) -> EndpointSchema:
    """
    Raises:
        ValueError: If a field name is declared twice
    """
    names = [rule.name for rule in rules]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ValueError(f"Duplicate schema fields: {', '.join(duplicates)}")
    return tuple(rules)


_TRANSACTION_ADJUSTMENT = build_schema(
    required("type", is_valid_transaction_type),
    required("amount", is_positive_integer),
    optional("remark", "string"),
)

_PAGINATION = (
    optional("page", is_positive_integer_string),
    optional("limit", is_positive_integer_string),
)


ENDPOINT_SCHEMAS: Mapping[str, EndpointSchema] = MappingProxyType(
    {
        # Authentication
        "POST /auth/tokens": build_schema(
            required("utorid", is_valid_utorid),
            required("password", "string"),
        ),
        "POST /auth/resets": build_schema(
            required("utorid", is_valid_utorid),
        ),
        "POST /auth/resets/{reset_token}": build_schema(
            required("utorid", is_valid_utorid),
            required("password", is_valid_password),
        ),
        # Users
        "POST /users": build_schema(
            required("utorid", is_valid_utorid),
            required("name", is_valid_name),
            required("email", is_valid_uoft_email),
            optional("birthday", is_valid_date),
        ),
        "GET /users": build_schema(
            optional("name", "string"),
            optional("role", is_valid_role),
            optional("verified", is_boolean_string),
            optional("activated", is_boolean_string),
            *_PAGINATION,
        ),
        "PATCH /users/{user_id}": build_schema(
            optional("email", is_valid_uoft_email),
            optional("verified", "boolean"),
            optional("suspicious", "boolean"),
            optional("role", is_valid_role),
        ),
        "PATCH /users/me": build_schema(
            optional("name", is_valid_name),
            optional("email", is_valid_uoft_email),
            optional("birthday", is_valid_date),
            optional("avatar", "object"),
        ),
        "PATCH /users/me/password": build_schema(
            required("old", "string"),
            required("new", is_valid_password),
        ),
        # Transactions
        "POST /transactions": build_schema(
            required("utorid", is_valid_utorid),
            required("type", is_valid_transaction_type),
            optional("spent", is_positive_number),
            optional("amount", "number"),
            optional("relatedId", "number"),
            optional("promotionIds", is_array_of_numbers),
            optional("remark", "string"),
        ),
        "GET /transactions": build_schema(
            optional("name", "string"),
            optional("createdBy", "string"),
            optional("suspicious", is_boolean_string),
            optional("promotionId", is_number_string),
            optional("type", is_valid_transaction_type),
            optional("relatedId", is_number_string),
            optional("amount", is_number_string),
            optional("operator", is_valid_operator),
            *_PAGINATION,
        ),
        "PATCH /transactions/{transaction_id}/suspicious": build_schema(
            required("suspicious", "boolean"),
        ),
        "PATCH /transactions/{transaction_id}/processed": build_schema(
            required("processed", "boolean"),
        ),
        "POST /users/{user_id}/transactions": _TRANSACTION_ADJUSTMENT,
        "POST /users/me/transactions": _TRANSACTION_ADJUSTMENT,
        "GET /users/me/transactions": build_schema(
            optional("type", is_valid_transaction_type),
            optional("relatedId", is_number_string),
            optional("promotionId", is_number_string),
            optional("amount", is_number_string),
            optional("operator", is_valid_operator),
            *_PAGINATION,
        ),
        # Events
        "POST /events": build_schema(
            required("name", "string"),
            required("description", "string"),
            required("location", "string"),
            required("startTime", is_valid_iso_timestamp),
            required("endTime", is_valid_iso_timestamp),
            optional("capacity", nullable_or(is_positive_integer)),
            required("points", is_positive_integer),
        ),
        "GET /events": build_schema(
            optional("name", "string"),
            optional("location", "string"),
            optional("started", is_boolean_string),
            optional("ended", is_boolean_string),
            optional("showFull", is_boolean_string),
            optional("published", is_boolean_string),
            *_PAGINATION,
        ),
        "PATCH /events/{event_id}": build_schema(
            optional("name", "string"),
            optional("description", "string"),
            optional("location", "string"),
            optional("startTime", is_valid_iso_timestamp),
            optional("endTime", is_valid_iso_timestamp),
            optional("capacity", nullable_or(is_positive_integer)),
            optional("points", is_non_negative_integer),
            optional("published", "boolean"),
        ),
        "POST /events/{event_id}/organizers": build_schema(
            required("utorid", is_valid_utorid),
        ),
        "POST /events/{event_id}/guests": build_schema(
            required("utorid", is_valid_utorid),
        ),
        "POST /events/{event_id}/transactions": build_schema(
            required("type", is_valid_transaction_type),
            optional("utorid", is_valid_utorid),
            required("amount", is_positive_integer),
            optional("remark", "string"),
        ),
        # Promotions
        "POST /promotions": build_schema(
            required("name", "string"),
            required("description", "string"),
            required("type", is_valid_promotion_type),
            required("startTime", is_valid_iso_timestamp),
            required("endTime", is_valid_iso_timestamp),
            optional("minSpending", nullable_or(is_positive_number)),
            optional("rate", is_positive_number),
            optional("points", is_non_negative_integer),
        ),
        "GET /promotions": build_schema(
            optional("name", "string"),
            optional("type", is_valid_promotion_type),
            optional("started", is_boolean_string),
            optional("ended", is_boolean_string),
            *_PAGINATION,
        ),
        "PATCH /promotions/{promotion_id}": build_schema(
            optional("name", "string"),
            optional("description", "string"),
            optional("type", is_valid_promotion_type),
            optional("startTime", is_valid_iso_timestamp),
            optional("endTime", is_valid_iso_timestamp),
            optional("minSpending", nullable_or(is_positive_number)),
            optional("rate", is_positive_number),
            optional("points", is_non_negative_integer),
        ),
    }
)


def validate_request(
    endpoint_key: str,
    data: Mapping[str, Any],
    schemas: Mapping[str, EndpointSchema] = ENDPOINT_SCHEMAS,
) -> ValidationResult:
    """
    Validate a request body or query string against its endpoint schema.

    Args:
        endpoint_key: e.g. "POST /auth/tokens"
        data: Parsed JSON body or query parameters
        schemas: Schema table, the module table by default

    Returns:
        ValidationResult; ``error`` and ``fields`` describe the first failure
    """
    schema = schemas.get(endpoint_key)
    if schema is None:
        logger.warning(f"No validation schema defined for endpoint: {endpoint_key}")
        return VALID

    if not isinstance(data, Mapping):
        return ValidationResult(valid=False, error="Request body must be a JSON object")

    allowed = {rule.name for rule in schema}
    extra_fields = tuple(name for name in data if name not in allowed)
    if extra_fields:
        logger.warning(
            f"Extra fields in request for endpoint {endpoint_key}: {', '.join(extra_fields)}"
        )
        return ValidationResult(
            valid=False,
            error=f"Invalid fields in request: {', '.join(extra_fields)}",
            fields=extra_fields,
        )

    for rule in schema:
        value = data.get(rule.name)

        if value is None:
            if rule.required:
                logger.warning(
                    f"Missing required field in request for endpoint {endpoint_key}: {rule.name}"
                )
                return ValidationResult(
                    valid=False,
                    error=f"Missing required field: {rule.name}",
                    fields=(rule.name,),
                )
            continue

        if not validate_field(rule.validator, value):
            logger.warning(
                f"Invalid value for field in request for endpoint {endpoint_key}: {rule.name}"
            )
            return ValidationResult(
                valid=False,
                error=f"Invalid value for field: {rule.name}",
                fields=(rule.name,),
            )

    return VALID
