"""
Service Dependencies
--------------------
FastAPI providers for the services used by the routers.

Routes receive their services through Depends() so tests can swap them with
app.dependency_overrides.
"""

from fastapi import HTTPException, Request, status
from loguru import logger

from loyalty_api.auth.password_reset import PasswordResetManager
from loyalty_api.psql_db_services.users_service import UsersService


def get_users_service() -> UsersService:
    return UsersService()


def get_password_reset_manager(request: Request) -> PasswordResetManager:
    """The manager built during application startup."""
    manager = getattr(request.app.state, "password_reset_manager", None)
    if manager is None:
        logger.error("Password reset manager requested before application startup")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service unavailable",
        )
    return manager


def get_requester_identity(request: Request) -> str:
    """Network identity used as the reset rate-limit key."""
    if request.client and request.client.host:
        return request.client.host
    return "unknown"
