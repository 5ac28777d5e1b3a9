"""
JWT Utilities
-------------
Core JWT operations for access token issuance and verification.

Tokens are HS256-signed with the process-wide secret and carry
{sub, role, iat, exp}; exp is always iat + jwt_access_token_expire_seconds.
There is no server-side revocation list: a token stays valid until it
expires, and the role it carries is the role at issuance time.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from loguru import logger

from loyalty_api.core.config_manager import settings
from loyalty_api.auth.models import AuthTokenPayload
from loyalty_api.auth.roles import ROLE_ORDER, is_valid_role


def _as_timestamp(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp())


def get_token_expiration_seconds() -> int:
    """
    Get the access token lifetime in seconds.

    Returns:
        Number of seconds between issuance and expiry
    """
    return settings.jwt_access_token_expire_seconds


def create_access_token(
    user_id: int, role: str, issued_at: Optional[datetime] = None
) -> str:
    """
    Create a JWT access token for a user.

    Args:
        user_id: User's unique identifier
        role: User's role (regular, cashier, manager, superuser)
        issued_at: Issuance time, defaults to the current UTC time

    Returns:
        JWT access token string

    Raises:
        ValueError: If role is invalid
        JWTError: If token creation fails
    """
    if not is_valid_role(role):
        raise ValueError(
            f"Invalid role '{role}'. Must be one of: {', '.join(ROLE_ORDER)}"
        )

    iat = _as_timestamp(issued_at or datetime.now(timezone.utc))

    payload = {
        "sub": str(user_id),
        "role": role,
        "iat": iat,
        "exp": iat + get_token_expiration_seconds(),
    }

    try:
        token: str = jwt.encode(
            payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm
        )
        logger.debug(f"Access token created for user {user_id} with role {role}")
        return token

    except JWTError as e:
        logger.error(f"Failed to create access token: {e}")
        raise JWTError(f"Token creation failed: {str(e)}")


def token_expiry(issued_at: datetime) -> datetime:
    """Expiry matching a token issued at ``issued_at``."""
    return datetime.fromtimestamp(
        _as_timestamp(issued_at) + get_token_expiration_seconds(), tz=timezone.utc
    )


def decode_token(token: str) -> AuthTokenPayload:
    """
    Decode and validate a JWT access token.

    Performs cryptographic validation of the signature and expiration.
    No database queries are performed.

    Args:
        token: JWT token string

    Returns:
        AuthTokenPayload: Decoded and validated token payload

    Raises:
        JWTError: If token is invalid, expired, or malformed
        ValueError: If token payload is invalid
    """
    try:
        payload = jwt.decode(
            token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
        )

        for claim in ("sub", "role", "iat", "exp"):
            if claim not in payload:
                raise ValueError(f"Token missing {claim}")

        if not is_valid_role(payload["role"]):
            raise ValueError(f"Token carries unknown role {payload['role']!r}")

        token_payload = AuthTokenPayload(
            user_id=int(payload["sub"]),
            role=payload["role"],
            expire_at_time=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            issued_at_time=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
        )

        logger.debug(f"Token decoded successfully for user {token_payload.user_id}")
        return token_payload

    except JWTError as e:
        logger.warning(f"JWT decode failed: {e}")
        raise JWTError(f"Invalid token: {str(e)}")
    except (ValueError, TypeError) as e:
        logger.warning(f"Token payload validation failed: {e}")
        raise ValueError(f"Invalid token payload: {str(e)}")


def verify_token(token: Optional[str]) -> Optional[AuthTokenPayload]:
    """
    Verify a bearer token, collapsing every failure into "no identity".

    Expired, tampered and malformed tokens are indistinguishable to the
    caller; the reason is only logged.

    Returns:
        The authenticated identity, or None
    """
    if not token:
        return None
    try:
        return decode_token(token)
    except (JWTError, ValueError):
        return None
