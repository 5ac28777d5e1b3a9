"""
FastAPI Authentication Dependencies
-----------------------------------
JWT-based identity extraction and role gates.

Identity extraction never rejects a request: a missing, malformed, expired or
tampered token simply yields no identity, so public and protected routes share
the same pass. Rejection happens in the role gates:

    no identity           -> 401
    unknown role          -> 403
    role below minimum    -> 403

Role Hierarchy (see loyalty_api.auth.roles):
SUPERUSER > MANAGER > CASHIER > REGULAR
"""

from typing import Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from loguru import logger

from loyalty_api.auth.jwt_utils import verify_token
from loyalty_api.auth.models import AuthTokenPayload
from loyalty_api.auth.roles import ROLE_ORDER, Role, role_index

# Extracts "Authorization: Bearer <token>"; anything else becomes None
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl="/auth/tokens",
    auto_error=False,
)


async def get_optional_identity(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
) -> Optional[AuthTokenPayload]:
    """
    Resolve the caller's identity from the bearer token, if any.

    The result is also stored on ``request.state.identity``.

    Returns:
        AuthTokenPayload for a valid token, None otherwise
    """
    identity = verify_token(token)
    if token and identity is None:
        logger.debug("Bearer token rejected; continuing without identity")
    request.state.identity = identity
    return identity


class RoleChecker:
    """
    Dependency class for hierarchical role checks.

    Admits any identity whose role is at or above ``min_role`` in the
    canonical ordering.

    Usage:
        require_manager = RoleChecker("manager")
        @router.get("/managers-only", dependencies=[Depends(require_manager)])
    """

    def __init__(self, min_role: str):
        """
        Args:
            min_role: Lowest role admitted by this gate

        Raises:
            ValueError: If min_role is not a known role
        """
        if isinstance(min_role, Role):
            min_role = min_role.value
        self.min_index = role_index(min_role)
        if self.min_index is None:
            raise ValueError(
                f"Invalid role '{min_role}'. Must be one of: {', '.join(ROLE_ORDER)}"
            )
        self.min_role = min_role

    def __call__(
        self, identity: Optional[AuthTokenPayload] = Depends(get_optional_identity)
    ) -> AuthTokenPayload:
        """
        Check the caller's role against the gate.

        Raises:
            HTTPException 401: If there is no authenticated identity
            HTTPException 403: If the role is unknown or insufficient
        """
        if identity is None:
            logger.warning(f"Unauthenticated access to {self.min_role}+ endpoint")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Unauthorized",
                headers={"WWW-Authenticate": "Bearer"},
            )

        identity_index = role_index(identity.role)
        if identity_index is None or identity_index < self.min_index:
            logger.warning(
                f"Access denied for user {identity.user_id} with role {identity.role} "
                f"(requires {self.min_role})"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden"
            )

        logger.debug(
            f"Access granted for user {identity.user_id} with role {identity.role}"
        )
        return identity


def require_minimum_role(min_role: str) -> RoleChecker:
    """Build a gate admitting ``min_role`` and everything above it."""
    return RoleChecker(min_role)


require_regular = RoleChecker(Role.REGULAR)
"""Any authenticated user."""

require_cashier = RoleChecker(Role.CASHIER)
"""Cashiers, managers and superusers."""

require_manager = RoleChecker(Role.MANAGER)
"""Managers and superusers."""

require_superuser = RoleChecker(Role.SUPERUSER)
"""Superusers only."""
