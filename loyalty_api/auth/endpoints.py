"""
Authentication Endpoints
------------------------
Login and password reset endpoints.

    POST /auth/tokens                 exchange credentials for a JWT
    POST /auth/resets                 request a password reset token
    POST /auth/resets/{reset_token}   spend a reset token on a new password

All three are public. Bodies are checked against the endpoint schemas before
the handler runs.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status
from loguru import logger

from loyalty_api.api.dependencies import (
    get_password_reset_manager,
    get_requester_identity,
    get_users_service,
)
from loyalty_api.auth.jwt_utils import create_access_token, token_expiry
from loyalty_api.auth.models import (
    AuthLoginRequest,
    AuthTokenResponse,
    MessageResponse,
    PasswordResetConsumeRequest,
    PasswordResetRequest,
    PasswordResetResponse,
)
from loyalty_api.auth.password_reset import PasswordResetError, PasswordResetManager
from loyalty_api.psql_db_services.users_service import UsersService
from loyalty_api.utils.password_hashing import PasswordHasher
from loyalty_api.validation import ValidatedBody

# ============================================================================
# ROUTER INITIALIZATION
# ============================================================================

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _reset_http_error(error: PasswordResetError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.detail)


# ============================================================================
# LOGIN
# ============================================================================


@router.post(
    "/tokens",
    response_model=AuthTokenResponse,
    summary="Authenticate user and get JWT auth token",
    description="""
    Authenticate with UTORid and password.

    An unknown UTORid and a wrong password produce the same 401 response.
    """,
)
async def login(
    body: Dict[str, Any] = Depends(ValidatedBody("POST /auth/tokens")),
    users_service: UsersService = Depends(get_users_service),
):
    """
    Authenticate user with UTORid and password and return JWT auth token.

    Raises:
        HTTPException 400: If the body fails validation
        HTTPException 401: If authentication fails
        HTTPException 500: If token generation fails
    """
    credentials = AuthLoginRequest(**body)
    logger.info(f"Login attempt for user: {credentials.utorid}")

    try:
        user = await users_service.get_user_by_utorid(credentials.utorid)
        if user is None or not PasswordHasher.verify_password(
            credentials.password, user.get("password_hash")
        ):
            logger.warning(f"Failed login for user: {credentials.utorid}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid credentials",
                headers={"WWW-Authenticate": "Bearer"},
            )

        issued_at = datetime.now(timezone.utc)
        token = create_access_token(user["user_id"], user["role"], issued_at=issued_at)
        await users_service.update_last_login(user["user_id"], issued_at)

        logger.info(f"User {credentials.utorid} authenticated successfully")
        return AuthTokenResponse(token=token, expires_at=token_expiry(issued_at))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Login error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )


# ============================================================================
# PASSWORD RESET
# ============================================================================


@router.post(
    "/resets",
    response_model=PasswordResetResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Request a password reset token",
    description="""
    Issue a one-hour reset token for an account, replacing any earlier one.

    Limited to one request per client per minute. The default superuser
    account cannot be reset through this endpoint.
    """,
)
async def request_password_reset(
    body: Dict[str, Any] = Depends(ValidatedBody("POST /auth/resets")),
    requester: str = Depends(get_requester_identity),
    manager: PasswordResetManager = Depends(get_password_reset_manager),
):
    """
    Raises:
        HTTPException 403: Protected account
        HTTPException 404: Unknown UTORid
        HTTPException 429: Rate limit window not elapsed
    """
    reset_request = PasswordResetRequest(**body)

    try:
        ticket = await manager.request_reset(reset_request.utorid, requester)
    except PasswordResetError as e:
        raise _reset_http_error(e)
    except Exception as e:
        logger.error(f"Password reset request error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )

    return PasswordResetResponse(
        reset_token=ticket.reset_token, expires_at=ticket.expires_at
    )


@router.post(
    "/resets/{reset_token}",
    response_model=MessageResponse,
    summary="Reset password with a reset token",
)
async def consume_password_reset(
    reset_token: str,
    body: Dict[str, Any] = Depends(ValidatedBody("POST /auth/resets/{reset_token}")),
    manager: PasswordResetManager = Depends(get_password_reset_manager),
):
    """
    Set a new password using a reset token. The token is single-use.

    Raises:
        HTTPException 400: New password fails the complexity rules
        HTTPException 401: UTORid does not own the token
        HTTPException 404: Unknown or already used token
        HTTPException 410: Expired token
    """
    consume_request = PasswordResetConsumeRequest(**body)

    try:
        await manager.consume_reset(
            reset_token, consume_request.utorid, consume_request.password
        )
    except PasswordResetError as e:
        raise _reset_http_error(e)
    except Exception as e:
        logger.error(f"Password reset error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )

    return MessageResponse(message="Password reset successful")
