"""
API Models Package
---------------------
Pydantic request and response models for the HTTP layer.

Authentication models live in loyalty_api.auth.models.
"""

from loyalty_api.models.users_models import (
    PasswordChangeRequest,
    UserCreateRequest,
    UserCreatedResponse,
    UserListResponse,
    UserResponse,
    UserUpdateRequest,
    UserUpdateResponse,
)
from loyalty_api.models.response_models import ErrorResponse, HealthStatus

__all__ = [
    "PasswordChangeRequest",
    "UserCreateRequest",
    "UserCreatedResponse",
    "UserListResponse",
    "UserResponse",
    "UserUpdateRequest",
    "UserUpdateResponse",
    "ErrorResponse",
    "HealthStatus",
]
