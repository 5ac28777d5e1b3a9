"""
Request Validation Package
--------------------------
Declarative per-endpoint field whitelists.

- validators: total predicates for individual field values
- schemas: the endpoint schema table and validate_request()
- dependencies: FastAPI dependencies applying a schema to body or query
"""

from loyalty_api.validation.schemas import (
    ENDPOINT_SCHEMAS,
    EndpointSchema,
    FieldRule,
    ValidationResult,
    validate_request,
)
from loyalty_api.validation.dependencies import (
    UnknownEndpointSchemaError,
    ValidatedBody,
    ValidatedQuery,
)

__all__ = [
    "ENDPOINT_SCHEMAS",
    "EndpointSchema",
    "FieldRule",
    "ValidationResult",
    "validate_request",
    "UnknownEndpointSchemaError",
    "ValidatedBody",
    "ValidatedQuery",
]
