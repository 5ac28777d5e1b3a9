"""
JWT Authentication Module
-------------------------
Stateless JWT authorization with a fixed role hierarchy.

Core Components:
- roles: the regular < cashier < manager < superuser ordering
- jwt_utils: token issuance and verification
- dependencies: identity extraction and role gates for FastAPI routes
- password_reset / rate_limiter: reset token lifecycle
- role_assignment: who may change whose role
- endpoints: /auth routes

Usage:
    from loyalty_api.auth import require_manager, AuthTokenPayload

    @router.get("/protected")
    async def protected_endpoint(user: AuthTokenPayload = Depends(require_manager)):
        return {"user_id": user.user_id, "role": user.role}
"""

from loyalty_api.auth.roles import ROLE_ORDER, Role, is_at_least, is_valid_role, role_index
from loyalty_api.auth.models import AuthTokenPayload
from loyalty_api.auth.jwt_utils import (
    create_access_token,
    decode_token,
    get_token_expiration_seconds,
    verify_token,
)
from loyalty_api.auth.dependencies import (
    RoleChecker,
    get_optional_identity,
    require_cashier,
    require_manager,
    require_minimum_role,
    require_regular,
    require_superuser,
)

__all__ = [
    # Roles
    "ROLE_ORDER",
    "Role",
    "is_at_least",
    "is_valid_role",
    "role_index",
    # Models
    "AuthTokenPayload",
    # JWT Utilities
    "create_access_token",
    "decode_token",
    "get_token_expiration_seconds",
    "verify_token",
    # Dependencies
    "RoleChecker",
    "get_optional_identity",
    "require_cashier",
    "require_manager",
    "require_minimum_role",
    "require_regular",
    "require_superuser",
]
