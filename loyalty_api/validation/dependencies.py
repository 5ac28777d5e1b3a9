"""
Request Validation Dependencies
-------------------------------
FastAPI dependencies that run the endpoint schema check before a handler.

    @router.post("/auth/tokens")
    async def login(body: dict = Depends(ValidatedBody("POST /auth/tokens"))):
        ...

The endpoint key is checked when the dependency is constructed, i.e. when the
router module is imported. A route wired to a key with no schema therefore
stops the application from starting instead of silently skipping validation.
"""

import json
from typing import Any, Dict, Mapping

from fastapi import HTTPException, Request, status
from loguru import logger

from loyalty_api.validation.schemas import (
    ENDPOINT_SCHEMAS,
    EndpointSchema,
    validate_request,
)


class UnknownEndpointSchemaError(LookupError):
    """A route asked for validation against an undeclared endpoint key."""


class _SchemaDependency:
    def __init__(
        self,
        endpoint_key: str,
        schemas: Mapping[str, EndpointSchema] = ENDPOINT_SCHEMAS,
    ):
        if endpoint_key not in schemas:
            raise UnknownEndpointSchemaError(
                f"No validation schema declared for endpoint '{endpoint_key}'"
            )
        self.endpoint_key = endpoint_key
        self.schemas = schemas

    def _check(self, data: Any) -> Dict[str, Any]:
        result = validate_request(self.endpoint_key, data, self.schemas)
        if not result.valid:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.error)
        return dict(data)


class ValidatedBody(_SchemaDependency):
    """Parse the JSON body and validate it; an empty body counts as {}."""

    async def __call__(self, request: Request) -> Dict[str, Any]:
        raw = await request.body()
        if not raw.strip():
            data: Any = {}
        else:
            try:
                data = json.loads(raw)
            except (ValueError, UnicodeDecodeError):
                logger.warning(f"Malformed JSON body for endpoint {self.endpoint_key}")
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Request body must be valid JSON",
                )
        return self._check(data)


class ValidatedQuery(_SchemaDependency):
    """Validate the query string parameters (all values are strings)."""

    async def __call__(self, request: Request) -> Dict[str, Any]:
        return self._check(dict(request.query_params))
