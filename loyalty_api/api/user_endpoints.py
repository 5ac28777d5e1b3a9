"""
User Management Endpoints
-------------------------
Account registration, self-service and privilege management.

    POST  /users                 cashier+   register a regular user
    GET   /users                 manager+   filtered, paginated user list
    GET   /users/me              regular+   current user's record
    PATCH /users/me/password     regular+   change own password
    PATCH /users/{user_id}       manager+   verify, flag, change email or role
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, status
from loguru import logger

from loyalty_api.api.dependencies import get_users_service
from loyalty_api.auth.dependencies import require_cashier, require_manager, require_regular
from loyalty_api.auth.models import AuthTokenPayload, MessageResponse
from loyalty_api.auth.role_assignment import RoleAssignmentError, check_user_update
from loyalty_api.core.config_manager import settings
from loyalty_api.models.users_models import (
    PasswordChangeRequest,
    UserCreateRequest,
    UserCreatedResponse,
    UserListResponse,
    UserResponse,
    UserUpdateRequest,
    UserUpdateResponse,
)
from loyalty_api.psql_db_services.users_service import UsersService
from loyalty_api.utils.password_hashing import PasswordHasher
from loyalty_api.validation import ValidatedBody, ValidatedQuery


# ============================================================================
# ROUTER INITIALIZATION
# ============================================================================

router = APIRouter(prefix="/users", tags=["Users"])


def _internal_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error",
    )


# ============================================================================
#                           CREATE USER ENDPOINT
# ============================================================================
@router.post(
    "",
    response_model=UserCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
    description="""
    Create a regular, unverified account with a random temporary password.

    The response carries a reset token valid for seven days; the new user
    sets their first password with POST /auth/resets/{reset_token}.
    """,
)
async def create_user(
    current_user: AuthTokenPayload = Depends(require_cashier),
    body: Dict[str, Any] = Depends(ValidatedBody("POST /users")),
    users_service: UsersService = Depends(get_users_service),
):
    """
    Raises:
        HTTPException 400: If the body fails validation
        HTTPException 409: If the UTORid or email is already registered
        HTTPException 500: On internal server error
    """
    request = UserCreateRequest(**body)
    logger.info(f"User {current_user.user_id} registering utorid={request.utorid}")

    try:
        if await users_service.check_utorid_exists(request.utorid):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT, detail="User already exists"
            )

        activation_token = str(uuid4())
        expires_at = datetime.now(timezone.utc) + timedelta(
            days=settings.activation_token_expire_days
        )

        user = await users_service.create_user(
            utorid=request.utorid,
            email=request.email,
            name=request.name,
            password_hash=PasswordHasher.hash_password(secrets.token_urlsafe(16)),
            birthday=request.birthday,
            activation_token=activation_token,
            activation_expires_at=expires_at,
        )

        logger.info(f"User created successfully: user_id={user['user_id']}")
        return UserCreatedResponse(
            id=user["user_id"],
            utorid=user["utorid"],
            name=user["name"],
            email=user["email"],
            verified=user["is_verified"],
            expires_at=expires_at,
            reset_token=activation_token,
        )

    except HTTPException:
        raise
    except ValueError as e:
        logger.warning(f"User registration conflict: {e}")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating user: {e}", exc_info=True)
        raise _internal_error()


# ============================================================================
#                           LIST USERS ENDPOINT
# ============================================================================
@router.get(
    "",
    response_model=UserListResponse,
    summary="List users",
    description="""
    Managers and above page through users, optionally filtered by a
    UTORid/name substring, role, verification state and whether the user has
    ever logged in. Pages are 1-based; the default page size is 10.
    """,
)
async def list_users(
    current_user: AuthTokenPayload = Depends(require_manager),
    query: Dict[str, Any] = Depends(ValidatedQuery("GET /users")),
    users_service: UsersService = Depends(get_users_service),
):
    """
    Raises:
        HTTPException 400: Unknown or malformed query parameter
    """
    page = int(query.get("page", "1"))
    limit = int(query.get("limit", "10"))

    def _flag(name: str) -> Optional[bool]:
        return query[name] == "true" if name in query else None

    try:
        total, records = await users_service.list_users(
            name_filter=query.get("name"),
            role_filter=query.get("role"),
            verified=_flag("verified"),
            activated=_flag("activated"),
            limit=limit,
            offset=(page - 1) * limit,
        )
    except Exception as e:
        logger.error(f"Error listing users: {e}", exc_info=True)
        raise _internal_error()

    return UserListResponse(
        count=total, results=[UserResponse.from_record(record) for record in records]
    )


# ============================================================================
# CURRENT USER ENDPOINTS
# ============================================================================


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get the current user",
)
async def get_current_user_profile(
    current_user: AuthTokenPayload = Depends(require_regular),
    users_service: UsersService = Depends(get_users_service),
):
    """
    Raises:
        HTTPException 404: If the account behind the token no longer exists
    """
    try:
        user = await users_service.get_user_by_id(current_user.user_id)
    except Exception as e:
        logger.error(f"Error fetching user {current_user.user_id}: {e}", exc_info=True)
        raise _internal_error()

    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    return UserResponse.from_record(user)


@router.patch(
    "/me/password",
    response_model=MessageResponse,
    summary="Change the current user's password",
)
async def change_own_password(
    current_user: AuthTokenPayload = Depends(require_regular),
    body: Dict[str, Any] = Depends(ValidatedBody("PATCH /users/me/password")),
    users_service: UsersService = Depends(get_users_service),
):
    """
    Raises:
        HTTPException 400: New password fails the complexity rules
        HTTPException 403: Old password is wrong
        HTTPException 404: Account no longer exists
    """
    request = PasswordChangeRequest(**body)

    try:
        user = await users_service.get_user_by_id(current_user.user_id)
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="User not found"
            )

        if not PasswordHasher.verify_password(request.old, user.get("password_hash")):
            logger.warning(f"Wrong old password for user {current_user.user_id}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN, detail="Invalid old password"
            )

        await users_service.update_password_hash(
            current_user.user_id, PasswordHasher.hash_password(request.new)
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error changing password: {e}", exc_info=True)
        raise _internal_error()

    return MessageResponse(message="Password updated successfully")


# ============================================================================
# PRIVILEGE MANAGEMENT
# ============================================================================


@router.patch(
    "/{user_id}",
    response_model=UserUpdateResponse,
    response_model_exclude_none=True,
    summary="Update a user's status or role",
    description="""
    Managers may verify users, flag them suspicious, change their email and
    move them between regular and cashier. Superusers may additionally grant
    manager and superuser. Nobody may change their own role.
    """,
)
async def update_user(
    user_id: int,
    current_user: AuthTokenPayload = Depends(require_manager),
    body: Dict[str, Any] = Depends(ValidatedBody("PATCH /users/{user_id}")),
    users_service: UsersService = Depends(get_users_service),
):
    """
    Raises:
        HTTPException 400: Invalid body or disallowed state transition
        HTTPException 403: Actor lacks the privilege for this change
        HTTPException 404: Unknown user
        HTTPException 409: Email already used by another account
    """
    changes = UserUpdateRequest(**body)
    requested = changes.model_dump(exclude_none=True)

    if user_id <= 0:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    try:
        target = await users_service.get_user_by_id(user_id)
        if target is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="User not found"
            )

        updates = check_user_update(current_user, target, changes.model_dump())
        updated = await users_service.update_user(user_id, updates)
        if updated is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="User not found"
            )

    except HTTPException:
        raise
    except RoleAssignmentError as e:
        logger.warning(
            f"User {current_user.user_id} ({current_user.role}) "
            f"denied update of user {user_id}: {e.detail}"
        )
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating user {user_id}: {e}", exc_info=True)
        raise _internal_error()

    logger.info(
        f"User {user_id} updated by {current_user.user_id}: {', '.join(updates)}"
    )
    return UserUpdateResponse(
        id=updated["user_id"],
        utorid=updated["utorid"],
        name=updated.get("name"),
        email=updated["email"] if "email" in requested else None,
        verified=updated["is_verified"] if "verified" in requested else None,
        suspicious=updated["suspicious"] if "suspicious" in requested else None,
        role=updated["role"] if "role" in requested else None,
    )
