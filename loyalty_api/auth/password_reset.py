"""
Password Reset Lifecycle
------------------------
Issues and consumes one-time password reset tokens.

Per user:

    no token --request_reset--> live token --consume / expire / re-request--> no token

Requesting a reset:
    1. the default superuser account is refused outright (403)
    2. one request per requester per rate-limit window (429)
    3. unknown accounts are refused (404)
    4. the requester's window starts; refused requests never start it
    5. any live token of the user is replaced by a new one (1 hour)

Consuming a token:
    1. unknown token (404)
    2. expired token (410)
    3. UTORid does not own the token (401)
    4. new password hash stored and token deleted in one transaction
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from uuid import uuid4

from loguru import logger

from loyalty_api.auth.rate_limiter import ResetRateLimiter, utc_now
from loyalty_api.core.config_manager import settings
from loyalty_api.psql_db_services.reset_tokens_service import (
    ResetTokenConsumedError,
    ResetTokensService,
)
from loyalty_api.psql_db_services.users_service import UsersService
from loyalty_api.utils.password_hashing import PasswordHasher


class PasswordResetError(Exception):
    """Base class for reset rejections; ``status_code`` maps to HTTP."""

    status_code = 400
    detail = "Password reset failed"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail or self.detail)
        self.detail = detail or self.detail


class ProtectedAccountError(PasswordResetError):
    status_code = 403
    detail = "Password reset is disabled for this account"


class ResetRateLimitedError(PasswordResetError):
    status_code = 429
    detail = "Too many requests"


class AccountNotFoundError(PasswordResetError):
    status_code = 404
    detail = "User not found"


class ResetTokenNotFoundError(PasswordResetError):
    status_code = 404
    detail = "Invalid reset token"


class ResetTokenExpiredError(PasswordResetError):
    status_code = 410
    detail = "Reset token expired"


class ResetTokenMismatchError(PasswordResetError):
    status_code = 401
    detail = "UTORid does not match reset token"


@dataclass(frozen=True)
class ResetTicket:
    """A freshly issued reset token."""

    reset_token: str
    expires_at: datetime


def _aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class PasswordResetManager:
    """
    Coordinates reset token storage, the requester rate limit and password
    hashing. One instance is built at startup and shared by all requests.
    """

    def __init__(
        self,
        users_service: UsersService,
        reset_tokens_service: ResetTokensService,
        rate_limiter: ResetRateLimiter,
        clock: Callable[[], datetime] = utc_now,
        token_lifetime: Optional[timedelta] = None,
        protected_utorid: Optional[str] = None,
    ):
        self.users_service = users_service
        self.reset_tokens_service = reset_tokens_service
        self.rate_limiter = rate_limiter
        self._clock = clock
        self.token_lifetime = token_lifetime or timedelta(
            seconds=settings.reset_token_expire_seconds
        )
        self.protected_utorid = protected_utorid or settings.default_superuser_utorid

    async def request_reset(self, utorid: str, requester: str) -> ResetTicket:
        """
        Issue a reset token for ``utorid``.

        Args:
            utorid: Account to reset
            requester: Network identity of the caller (rate-limit key)

        Raises:
            ProtectedAccountError: For the default superuser account
            ResetRateLimitedError: If ``requester`` asked within the window
            AccountNotFoundError: If no account has this UTORid
        """
        self.rate_limiter.purge()

        if utorid == self.protected_utorid:
            logger.warning(f"Reset refused for protected account (requester {requester})")
            raise ProtectedAccountError()

        if self.rate_limiter.is_limited(requester):
            logger.warning(f"Reset rate limit hit by {requester}")
            raise ResetRateLimitedError()

        user = await self.users_service.get_user_by_utorid(utorid)
        if user is None:
            logger.info(f"Reset requested for unknown UTORid by {requester}")
            raise AccountNotFoundError()

        if not self.rate_limiter.record(requester):
            logger.warning(f"Reset rate limit hit by {requester}")
            raise ResetRateLimitedError()

        now = self._clock()
        await self.purge_expired_tokens(now)

        ticket = ResetTicket(reset_token=str(uuid4()), expires_at=now + self.token_lifetime)
        await self.reset_tokens_service.replace_user_token(
            user["user_id"], ticket.reset_token, ticket.expires_at
        )

        logger.info(f"Reset token issued for user {user['user_id']}")
        return ticket

    async def consume_reset(self, reset_token: str, utorid: str, new_password: str) -> None:
        """
        Spend ``reset_token`` to set a new password.

        Raises:
            ResetTokenNotFoundError: Unknown or already consumed token
            ResetTokenExpiredError: Token past its expiry
            ResetTokenMismatchError: ``utorid`` does not own the token
        """
        record = await self.reset_tokens_service.get_reset_token(reset_token)
        if record is None:
            raise ResetTokenNotFoundError()

        if self._clock() > _aware(record["expires_at"]):
            logger.info(f"Expired reset token presented for user {record['user_id']}")
            raise ResetTokenExpiredError()

        if record["utorid"] != utorid:
            logger.warning(f"Reset token presented with wrong UTORid for user {record['user_id']}")
            raise ResetTokenMismatchError()

        password_hash = PasswordHasher.hash_password(new_password)
        try:
            await self.reset_tokens_service.consume_reset_token(
                record["token_id"], record["user_id"], password_hash
            )
        except ResetTokenConsumedError:
            raise ResetTokenNotFoundError()

        logger.info(f"Password reset completed for user {record['user_id']}")

    async def purge_expired_tokens(self, now: Optional[datetime] = None) -> int:
        """Delete expired reset tokens. Returns the number removed."""
        return await self.reset_tokens_service.delete_expired_tokens(now or self._clock())
