"""
PostgreSQL Operations for Password Reset Tokens
-----------------------------------------------
Storage for one-time password reset tokens.

A user has at most one live token: issuing a new one deletes the old ones in
the same transaction. Consuming a token updates the owner's password hash and
deletes the token in a single transaction, so neither effect is ever visible
without the other.
"""

from typing import Optional, Dict, Any
from datetime import datetime

from sqlalchemy import text
from loguru import logger

from loyalty_api.core.database_connection import DatabaseManager
from loyalty_api.psql_db_services.base_service import BaseDatabaseService


class ResetTokenConsumedError(LookupError):
    """The token disappeared between lookup and consumption."""


class ResetTokensService(BaseDatabaseService):
    """Service for reset token database operations."""

    def __init__(self, database_manager: Optional[DatabaseManager] = None):
        super().__init__(database_manager)

    async def get_reset_token(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Look up a reset token together with its owner's UTORid.

        Returns:
            Dictionary with token_id, user_id, token, expires_at and utorid,
            or None if the token does not exist
        """
        try:
            async with self.get_session() as session:
                sql_query = """
                    SELECT rt.token_id, rt.user_id, rt.token, rt.expires_at, u.utorid
                    FROM reset_tokens rt
                    JOIN users u ON u.user_id = rt.user_id
                    WHERE rt.token = :token
                """
                result = await session.execute(text(sql_query), {"token": token})
                record = result.mappings().one_or_none()
                return dict(record) if record else None
        except Exception as e:
            logger.error(f"Error fetching reset token: {e}")
            raise

    async def replace_user_token(
        self, user_id: int, token: str, expires_at: datetime
    ) -> Dict[str, Any]:
        """
        Delete every token of ``user_id`` and store ``token`` as the only one.

        Returns:
            The stored token record
        """
        self.validate_positive_integer(user_id, "user_id")
        self.validate_string_not_empty(token, "token")

        try:
            async with self.get_session() as session:
                deleted = await session.execute(
                    text("DELETE FROM reset_tokens WHERE user_id = :user_id"),
                    {"user_id": user_id},
                )
                result = await session.execute(
                    text(
                        """
                        INSERT INTO reset_tokens (user_id, token, expires_at)
                        VALUES (:user_id, :token, :expires_at)
                        RETURNING token_id, user_id, token, expires_at
                        """
                    ),
                    {"user_id": user_id, "token": token, "expires_at": expires_at},
                )
                record = result.mappings().one()
                self.log_operation(
                    "REPLACE",
                    user_id,
                    additional_context=f"{deleted.rowcount} previous token(s) removed",
                )
                return dict(record)
        except Exception as e:
            logger.error(f"Error replacing reset token for user {user_id}: {e}")
            raise

    async def consume_reset_token(
        self, token_id: int, user_id: int, password_hash: str
    ) -> None:
        """
        Delete the token and store the new password hash atomically.

        Raises:
            ResetTokenConsumedError: If the token was already deleted; the
                password update is rolled back
        """
        self.validate_string_not_empty(password_hash, "password_hash")

        try:
            async with self.get_session() as session:
                deleted = await session.execute(
                    text(
                        "DELETE FROM reset_tokens "
                        "WHERE token_id = :token_id AND user_id = :user_id"
                    ),
                    {"token_id": token_id, "user_id": user_id},
                )
                if deleted.rowcount == 0:
                    raise ResetTokenConsumedError(
                        f"Reset token {token_id} was already consumed"
                    )

                await session.execute(
                    text(
                        "UPDATE users SET password_hash = :password_hash "
                        "WHERE user_id = :user_id"
                    ),
                    {"user_id": user_id, "password_hash": password_hash},
                )
                self.log_operation("CONSUME", user_id)
        except ResetTokenConsumedError:
            logger.warning(f"Reset token {token_id} consumed concurrently")
            raise
        except Exception as e:
            logger.error(f"Error consuming reset token {token_id}: {e}")
            raise

    async def delete_expired_tokens(self, now: datetime) -> int:
        """
        Remove tokens whose expiry has passed.

        Returns:
            Number of tokens deleted
        """
        try:
            async with self.get_session() as session:
                result = await session.execute(
                    text("DELETE FROM reset_tokens WHERE expires_at < :now"),
                    {"now": now},
                )
                if result.rowcount:
                    logger.info(f"Purged {result.rowcount} expired reset token(s)")
                return result.rowcount
        except Exception as e:
            logger.error(f"Error purging expired reset tokens: {e}")
            raise
