"""
PostgreSQL CRUD Operations for Users
------------------------------------
Database service for the user records the authorization core touches:
- lookup by id and UTORid (credential verification)
- filtered, paginated listing
- creation, optionally together with an activation reset token
- password hash, last login and privilege field updates
"""

from typing import Optional, Dict, Any, List, Tuple
from datetime import date, datetime, timezone

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from loguru import logger

from loyalty_api.core.database_connection import DatabaseManager
from loyalty_api.psql_db_services.base_service import BaseDatabaseService
from loyalty_api.auth.roles import ROLE_ORDER, Role, is_valid_role


USER_COLUMNS = """
    user_id, utorid, email, name, birthday, role, points, is_verified,
    suspicious, created_at, last_login
"""


class UsersService(BaseDatabaseService):
    """
    Service for user database operations.

    Inherits from BaseDatabaseService for connection pooling,
    transaction management, and error handling.
    """

    UPDATABLE_COLUMNS = ("email", "is_verified", "suspicious", "role")

    def __init__(self, database_manager: Optional[DatabaseManager] = None):
        super().__init__(database_manager)

    # ========================================================================
    # VALIDATION HELPERS
    # ========================================================================

    def validate_user_role(self, user_role: str) -> None:
        """
        Raises:
            ValueError: If role is not part of the hierarchy
        """
        if not is_valid_role(user_role):
            raise ValueError(
                f"Invalid user role '{user_role}'. Must be one of: {', '.join(ROLE_ORDER)}"
            )

    async def check_utorid_exists(self, utorid: str) -> bool:
        """Check if UTORid already exists in database"""
        try:
            async with self.get_session() as session:
                sql_query = "SELECT 1 FROM users WHERE utorid = :utorid LIMIT 1"
                result = await session.execute(text(sql_query), {"utorid": utorid})
                return result.first() is not None
        except Exception as e:
            logger.error(f"Error checking utorid existence: {e}")
            raise

    async def check_email_exists(self, email: str) -> bool:
        """Check if email already exists in database"""
        try:
            async with self.get_session() as session:
                sql_query = "SELECT 1 FROM users WHERE email = :email LIMIT 1"
                result = await session.execute(text(sql_query), {"email": email})
                return result.first() is not None
        except Exception as e:
            logger.error(f"Error checking email existence: {e}")
            raise

    # ========================================================================
    # CREATE OPERATIONS
    # ========================================================================

    async def create_user(
        self,
        utorid: str,
        email: str,
        name: Optional[str],
        password_hash: str,
        birthday: Optional[date] = None,
        user_role: str = Role.REGULAR.value,
        is_verified: bool = False,
        activation_token: Optional[str] = None,
        activation_expires_at: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Create a new user record, optionally with an activation reset token.

        The user row and the reset token row are written in the same
        transaction.

        Args:
            utorid: Unique UTORid
            email: Unique institutional email
            name: Display name
            password_hash: bcrypt hash of the initial password
            birthday: Optional date of birth
            user_role: Role to assign. Defaults to 'regular'
            is_verified: Whether the account starts verified
            activation_token: Optional reset token issued with the account
            activation_expires_at: Expiry of the activation token

        Returns:
            Dictionary containing the created user record

        Raises:
            ValueError: If UTORid or email already exists, or role is invalid
        """
        self.validate_string_not_empty(utorid, "utorid")
        self.validate_user_role(user_role)

        if await self.check_utorid_exists(utorid):
            raise ValueError(f"UTORid '{utorid}' already exists")

        if await self.check_email_exists(email):
            raise ValueError(f"Email '{email}' already exists")

        try:
            async with self.get_session() as session:
                sql_query = f"""
                    INSERT INTO users (
                        utorid, email, name, birthday, role, points,
                        is_verified, suspicious, created_at, password_hash
                    )
                    VALUES (
                        :utorid, :email, :name, :birthday, :role, 0,
                        :is_verified, FALSE, :created_at, :password_hash
                    )
                    RETURNING {USER_COLUMNS}
                """
                params = {
                    "utorid": utorid,
                    "email": email,
                    "name": name,
                    "birthday": birthday,
                    "role": user_role,
                    "is_verified": is_verified,
                    "created_at": datetime.now(timezone.utc),
                    "password_hash": password_hash,
                }
                result = await session.execute(text(sql_query), params)
                created_user = result.mappings().one_or_none()

                if not created_user:
                    raise RuntimeError("Failed to create user record")

                if activation_token is not None:
                    await session.execute(
                        text(
                            """
                            INSERT INTO reset_tokens (user_id, token, expires_at)
                            VALUES (:user_id, :token, :expires_at)
                            """
                        ),
                        {
                            "user_id": created_user["user_id"],
                            "token": activation_token,
                            "expires_at": activation_expires_at,
                        },
                    )

                logger.info(f"User created successfully: {utorid}")
                return dict(created_user)

        except IntegrityError as e:
            logger.warning(f"Duplicate user {utorid}: {e}")
            raise ValueError(f"User '{utorid}' already exists")
        except Exception as e:
            logger.error(f"Error creating user {utorid}: {e}")
            raise

    # ========================================================================
    # READ OPERATIONS
    # ========================================================================

    async def get_user_by_id(self, user_id: int) -> Optional[Dict[str, Any]]:
        """
        Retrieve a user by their unique identifier.

        Returns:
            Dictionary containing user record or None if not found
        """
        self.validate_positive_integer(user_id, "user_id")

        try:
            async with self.get_session() as session:
                sql_query = f"""
                    SELECT {USER_COLUMNS}, password_hash FROM users
                    WHERE user_id = :user_id
                """
                result = await session.execute(text(sql_query), {"user_id": user_id})
                user_record = result.mappings().one_or_none()
                return dict(user_record) if user_record else None
        except Exception as e:
            logger.error(f"Error fetching user {user_id}: {e}")
            raise

    async def get_user_by_utorid(self, utorid: str) -> Optional[Dict[str, Any]]:
        """
        Retrieve a user by UTORid, including the stored password hash.

        Returns:
            Dictionary containing user record or None if not found
        """
        try:
            async with self.get_session() as session:
                sql_query = f"""
                    SELECT {USER_COLUMNS}, password_hash FROM users
                    WHERE utorid = :utorid
                """
                result = await session.execute(text(sql_query), {"utorid": utorid})
                user_record = result.mappings().one_or_none()
                return dict(user_record) if user_record else None
        except Exception as e:
            logger.error(f"Error fetching user {utorid}: {e}")
            raise

    async def list_users(
        self,
        name_filter: Optional[str] = None,
        role_filter: Optional[str] = None,
        verified: Optional[bool] = None,
        activated: Optional[bool] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> Tuple[int, List[Dict[str, Any]]]:
        """
        Retrieve one page of users matching the filters.

        Args:
            name_filter: Substring of the UTORid or the name
            role_filter: Exact role
            verified: Verification state
            activated: True for users who have logged in at least once
            limit: Page size
            offset: Number of matching rows to skip

        Returns:
            (total number of matching users, page of user records by user_id)
        """
        self.validate_positive_integer(limit, "limit")
        if offset < 0:
            raise ValueError(f"offset must be non-negative, got {offset}")
        if role_filter:
            self.validate_user_role(role_filter)

        conditions = []
        params: Dict[str, Any] = {}
        if name_filter:
            conditions.append("(utorid LIKE :name_pattern OR name LIKE :name_pattern)")
            params["name_pattern"] = f"%{name_filter}%"
        if role_filter:
            conditions.append("role = :role")
            params["role"] = role_filter
        if verified is not None:
            conditions.append("is_verified = :is_verified")
            params["is_verified"] = verified
        if activated is not None:
            conditions.append("last_login IS NOT NULL" if activated else "last_login IS NULL")
        where_clause = " AND ".join(conditions) or "TRUE"

        try:
            async with self.get_session() as session:
                count_result = await session.execute(
                    text(f"SELECT COUNT(*) FROM users WHERE {where_clause}"), params
                )
                total = count_result.scalar_one()

                page_result = await session.execute(
                    text(
                        f"SELECT {USER_COLUMNS} FROM users WHERE {where_clause} "
                        "ORDER BY user_id LIMIT :limit OFFSET :offset"
                    ),
                    {**params, "limit": limit, "offset": offset},
                )
                user_records = page_result.mappings().all()
                logger.debug(f"Retrieved {len(user_records)} of {total} users")
                return total, [dict(row) for row in user_records]
        except Exception as e:
            logger.error(f"Error listing users: {e}")
            raise

    # ========================================================================
    # UPDATE OPERATIONS
    # ========================================================================

    async def update_last_login(
        self, user_id: int, login_time: Optional[datetime] = None
    ) -> None:
        """Record a successful login."""
        try:
            async with self.get_session() as session:
                await session.execute(
                    text("UPDATE users SET last_login = :login_time WHERE user_id = :user_id"),
                    {
                        "user_id": user_id,
                        "login_time": login_time or datetime.now(timezone.utc),
                    },
                )
        except Exception as e:
            logger.error(f"Error updating last login for user {user_id}: {e}")
            raise

    async def update_password_hash(self, user_id: int, password_hash: str) -> bool:
        """
        Replace a user's stored password hash.

        Returns:
            True if the user existed and was updated
        """
        self.validate_string_not_empty(password_hash, "password_hash")

        try:
            async with self.get_session() as session:
                result = await session.execute(
                    text(
                        "UPDATE users SET password_hash = :password_hash "
                        "WHERE user_id = :user_id"
                    ),
                    {"user_id": user_id, "password_hash": password_hash},
                )
                updated = result.rowcount > 0
                self.log_operation("PASSWORD UPDATE", user_id, success=updated)
                return updated
        except Exception as e:
            logger.error(f"Error updating password for user {user_id}: {e}")
            raise

    async def update_user(
        self, user_id: int, update_fields: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """
        Update email, verification, suspicion and role fields.

        Returns:
            Updated user record dictionary or None if user not found

        Raises:
            ValueError: On unknown columns, invalid role, or duplicate email
        """
        if "role" in update_fields:
            self.validate_user_role(update_fields["role"])

        sql_query, query_parameters = self.build_dynamic_update_query(
            table_name="users",
            update_fields=update_fields,
            allowed_columns=self.UPDATABLE_COLUMNS,
            where_clause="user_id = :user_id",
            where_parameters={"user_id": user_id},
        )

        try:
            async with self.get_session() as session:
                result = await session.execute(text(sql_query), query_parameters)
                updated_user = result.mappings().one_or_none()

                if updated_user:
                    self.log_operation(
                        "UPDATE", user_id, additional_context=", ".join(update_fields)
                    )
                    return dict(updated_user)

                logger.warning(f"User {user_id} not found for update")
                return None
        except IntegrityError as e:
            logger.warning(f"Update of user {user_id} violates a constraint: {e}")
            raise ValueError("Email already in use")
        except Exception as e:
            logger.error(f"Error updating user {user_id}: {e}")
            raise
