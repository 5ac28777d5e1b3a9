"""
Comprehensive Unit Tests for UsersService
========================================
Async unit tests for the UsersService class with a mocked SQLAlchemy session.

Test Coverage:
- Validation methods
- Create operations (with and without activation token)
- Read operations (by id, by UTORid, filtered listing)
- Update operations (password, last login, privilege fields)
"""

import pytest
from unittest.mock import AsyncMock, MagicMock
from datetime import datetime, timezone
from contextlib import asynccontextmanager
from sqlalchemy.exc import IntegrityError

from loyalty_api.psql_db_services.users_service import UsersService
from loyalty_api.core.database_connection import DatabaseManager


def setup_mock_sqlalchemy_session(mock_db_manager, mock_result_data=None, rowcount=1):
    """
    Helper function to set up mock SQLAlchemy session and result for async context managers.

    Args:
        mock_db_manager: The mock database manager
        mock_result_data: Optional row returned by one_or_none()/one()/first()
        rowcount: Number of rows affected for update/delete operations
    """
    # Create mock result object with SQLAlchemy methods
    mock_result = MagicMock()
    mock_result.mappings.return_value = mock_result
    mock_result.one_or_none.return_value = mock_result_data
    mock_result.one.return_value = mock_result_data
    mock_result.first.return_value = mock_result_data
    mock_result.rowcount = rowcount

    # Create mock session
    mock_session = MagicMock()
    mock_session.commit = AsyncMock()
    mock_session.rollback = AsyncMock()
    mock_session.close = AsyncMock()
    mock_session.execute = AsyncMock(return_value=mock_result)

    # A fresh context manager per get_session() call, behaving like the real one
    @asynccontextmanager
    async def mock_get_session_cm():
        try:
            yield mock_session
        except Exception:
            await mock_session.rollback()
            raise
        else:
            await mock_session.commit()
        finally:
            await mock_session.close()

    mock_db_manager.get_session = MagicMock(side_effect=lambda: mock_get_session_cm())

    return mock_session, mock_result


def executed_sql(mock_session, call_index=0):
    """SQL text of the n-th execute() call."""
    return str(mock_session.execute.call_args_list[call_index].args[0])


@pytest.fixture
def mock_db_manager():
    """Mock database manager for testing."""
    return AsyncMock(spec=DatabaseManager)


@pytest.fixture
def users_service(mock_db_manager):
    """Create UsersService instance for testing."""
    return UsersService(database_manager=mock_db_manager)


@pytest.fixture
def sample_user_record():
    return {
        "user_id": 1,
        "utorid": "johndoe1",
        "email": "john.doe@mail.utoronto.ca",
        "name": "John Doe",
        "birthday": None,
        "role": "regular",
        "points": 0,
        "is_verified": False,
        "suspicious": False,
        "created_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
        "last_login": None,
    }


# ============================================================================
# VALIDATION
# ============================================================================


class TestUsersServiceValidation:
    """Test validation methods for UsersService."""

    def test_validate_user_role_valid(self, users_service):
        for role in ("regular", "cashier", "manager", "superuser"):
            users_service.validate_user_role(role)

    def test_validate_user_role_invalid(self, users_service):
        with pytest.raises(ValueError, match="Invalid user role"):
            users_service.validate_user_role("admin")

    def test_validate_positive_integer_rejects_bool(self, users_service):
        with pytest.raises(ValueError):
            users_service.validate_positive_integer(True, "user_id")

    def test_validate_positive_integer_rejects_zero(self, users_service):
        with pytest.raises(ValueError, match="must be positive"):
            users_service.validate_positive_integer(0, "user_id")

    @pytest.mark.asyncio
    async def test_check_utorid_exists_true(self, users_service, mock_db_manager):
        setup_mock_sqlalchemy_session(mock_db_manager, mock_result_data=(1,))
        assert await users_service.check_utorid_exists("johndoe1") is True

    @pytest.mark.asyncio
    async def test_check_email_exists_false(self, users_service, mock_db_manager):
        setup_mock_sqlalchemy_session(mock_db_manager, mock_result_data=None)
        assert await users_service.check_email_exists("x@mail.utoronto.ca") is False


# ============================================================================
# CREATE
# ============================================================================


class TestUsersServiceCreate:
    """Test user creation."""

    @pytest.mark.asyncio
    async def test_create_user_success(self, users_service, mock_db_manager, sample_user_record):
        # Arrange
        mock_session, _ = setup_mock_sqlalchemy_session(
            mock_db_manager, mock_result_data=sample_user_record
        )
        users_service.check_utorid_exists = AsyncMock(return_value=False)
        users_service.check_email_exists = AsyncMock(return_value=False)

        # Act
        result = await users_service.create_user(
            utorid="johndoe1",
            email="john.doe@mail.utoronto.ca",
            name="John Doe",
            password_hash="$2b$12$hash",
        )

        # Assert
        assert result == sample_user_record
        assert mock_session.execute.await_count == 1
        assert "INSERT INTO users" in executed_sql(mock_session)
        params = mock_session.execute.call_args.args[1]
        assert params["role"] == "regular"
        assert params["is_verified"] is False
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_create_user_with_activation_token(
        self, users_service, mock_db_manager, sample_user_record
    ):
        mock_session, _ = setup_mock_sqlalchemy_session(
            mock_db_manager, mock_result_data=sample_user_record
        )
        users_service.check_utorid_exists = AsyncMock(return_value=False)
        users_service.check_email_exists = AsyncMock(return_value=False)
        expires_at = datetime(2025, 1, 8, tzinfo=timezone.utc)

        await users_service.create_user(
            utorid="johndoe1",
            email="john.doe@mail.utoronto.ca",
            name="John Doe",
            password_hash="$2b$12$hash",
            activation_token="token-123",
            activation_expires_at=expires_at,
        )

        # Both inserts in one session
        assert mock_db_manager.get_session.call_count == 1
        assert mock_session.execute.await_count == 2
        assert "INSERT INTO reset_tokens" in executed_sql(mock_session, 1)
        assert mock_session.execute.call_args_list[1].args[1] == {
            "user_id": 1,
            "token": "token-123",
            "expires_at": expires_at,
        }

    @pytest.mark.asyncio
    async def test_create_user_duplicate_utorid(self, users_service):
        users_service.check_utorid_exists = AsyncMock(return_value=True)

        with pytest.raises(ValueError, match="already exists"):
            await users_service.create_user(
                utorid="johndoe1",
                email="john.doe@mail.utoronto.ca",
                name="John Doe",
                password_hash="$2b$12$hash",
            )

    @pytest.mark.asyncio
    async def test_create_user_duplicate_email(self, users_service):
        users_service.check_utorid_exists = AsyncMock(return_value=False)
        users_service.check_email_exists = AsyncMock(return_value=True)

        with pytest.raises(ValueError, match="Email"):
            await users_service.create_user(
                utorid="johndoe1",
                email="john.doe@mail.utoronto.ca",
                name="John Doe",
                password_hash="$2b$12$hash",
            )

    @pytest.mark.asyncio
    async def test_create_user_race_becomes_value_error(self, users_service, mock_db_manager):
        mock_session, _ = setup_mock_sqlalchemy_session(mock_db_manager)
        mock_session.execute.side_effect = IntegrityError("INSERT", {}, Exception("unique"))
        users_service.check_utorid_exists = AsyncMock(return_value=False)
        users_service.check_email_exists = AsyncMock(return_value=False)

        with pytest.raises(ValueError):
            await users_service.create_user(
                utorid="johndoe1",
                email="john.doe@mail.utoronto.ca",
                name="John Doe",
                password_hash="$2b$12$hash",
            )
        mock_session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_create_user_invalid_role(self, users_service):
        with pytest.raises(ValueError, match="Invalid user role"):
            await users_service.create_user(
                utorid="johndoe1",
                email="john.doe@mail.utoronto.ca",
                name="John Doe",
                password_hash="$2b$12$hash",
                user_role="owner",
            )


# ============================================================================
# READ
# ============================================================================


class TestUsersServiceRead:
    """Test user lookups."""

    @pytest.mark.asyncio
    async def test_get_user_by_id_found(self, users_service, mock_db_manager, sample_user_record):
        mock_session, _ = setup_mock_sqlalchemy_session(
            mock_db_manager, mock_result_data=sample_user_record
        )

        result = await users_service.get_user_by_id(1)

        assert result == sample_user_record
        assert "password_hash" in executed_sql(mock_session)

    @pytest.mark.asyncio
    async def test_get_user_by_id_not_found(self, users_service, mock_db_manager):
        setup_mock_sqlalchemy_session(mock_db_manager, mock_result_data=None)
        assert await users_service.get_user_by_id(99) is None

    @pytest.mark.asyncio
    async def test_get_user_by_id_invalid(self, users_service):
        with pytest.raises(ValueError):
            await users_service.get_user_by_id(0)

    @pytest.mark.asyncio
    async def test_get_user_by_utorid(self, users_service, mock_db_manager, sample_user_record):
        mock_session, _ = setup_mock_sqlalchemy_session(
            mock_db_manager, mock_result_data=sample_user_record
        )

        result = await users_service.get_user_by_utorid("johndoe1")

        assert result["utorid"] == "johndoe1"
        assert mock_session.execute.call_args.args[1] == {"utorid": "johndoe1"}

    @pytest.mark.asyncio
    async def test_list_users_with_filters(self, users_service, mock_db_manager, sample_user_record):
        # Arrange
        mock_session, mock_result = setup_mock_sqlalchemy_session(mock_db_manager)
        mock_result.scalar_one.return_value = 11
        mock_result.all.return_value = [sample_user_record]

        # Act
        total, users = await users_service.list_users(
            name_filter="john", role_filter="regular", verified=True, activated=False,
            limit=5, offset=10,
        )

        # Assert
        assert total == 11
        assert users == [sample_user_record]
        assert mock_db_manager.get_session.call_count == 1
        count_sql = executed_sql(mock_session, 0)
        page_sql = executed_sql(mock_session, 1)
        assert "COUNT(*)" in count_sql
        assert "utorid LIKE :name_pattern OR name LIKE :name_pattern" in page_sql
        assert "is_verified = :is_verified" in page_sql
        assert "last_login IS NULL" in page_sql
        assert "password_hash" not in page_sql
        assert mock_session.execute.call_args_list[1].args[1] == {
            "name_pattern": "%john%",
            "role": "regular",
            "is_verified": True,
            "limit": 5,
            "offset": 10,
        }

    @pytest.mark.asyncio
    async def test_list_users_without_filters(self, users_service, mock_db_manager):
        mock_session, mock_result = setup_mock_sqlalchemy_session(mock_db_manager)
        mock_result.scalar_one.return_value = 0
        mock_result.all.return_value = []

        assert await users_service.list_users() == (0, [])
        assert "WHERE TRUE" in executed_sql(mock_session, 0)

    @pytest.mark.asyncio
    async def test_list_users_rejects_bad_paging(self, users_service):
        with pytest.raises(ValueError):
            await users_service.list_users(limit=0)
        with pytest.raises(ValueError):
            await users_service.list_users(offset=-1)


# ============================================================================
# UPDATE
# ============================================================================


class TestUsersServiceUpdate:
    """Test user updates."""

    @pytest.mark.asyncio
    async def test_update_password_hash(self, users_service, mock_db_manager):
        mock_session, _ = setup_mock_sqlalchemy_session(mock_db_manager, rowcount=1)

        assert await users_service.update_password_hash(1, "$2b$12$new") is True
        assert mock_session.execute.call_args.args[1] == {
            "user_id": 1,
            "password_hash": "$2b$12$new",
        }

    @pytest.mark.asyncio
    async def test_update_password_hash_missing_user(self, users_service, mock_db_manager):
        setup_mock_sqlalchemy_session(mock_db_manager, rowcount=0)
        assert await users_service.update_password_hash(99, "$2b$12$new") is False

    @pytest.mark.asyncio
    async def test_update_last_login(self, users_service, mock_db_manager):
        mock_session, _ = setup_mock_sqlalchemy_session(mock_db_manager)
        login_time = datetime(2025, 1, 1, tzinfo=timezone.utc)

        await users_service.update_last_login(1, login_time)

        assert mock_session.execute.call_args.args[1] == {
            "user_id": 1,
            "login_time": login_time,
        }

    @pytest.mark.asyncio
    async def test_update_user_role(self, users_service, mock_db_manager, sample_user_record):
        updated = {**sample_user_record, "role": "cashier"}
        mock_session, _ = setup_mock_sqlalchemy_session(mock_db_manager, mock_result_data=updated)

        result = await users_service.update_user(1, {"role": "cashier", "suspicious": False})

        assert result["role"] == "cashier"
        sql = executed_sql(mock_session)
        assert "role = :set_role" in sql
        assert "suspicious = :set_suspicious" in sql

    @pytest.mark.asyncio
    async def test_update_user_not_found(self, users_service, mock_db_manager):
        setup_mock_sqlalchemy_session(mock_db_manager, mock_result_data=None)
        assert await users_service.update_user(99, {"is_verified": True}) is None

    @pytest.mark.asyncio
    async def test_update_user_rejects_unlisted_column(self, users_service):
        with pytest.raises(ValueError, match="Cannot update columns"):
            await users_service.update_user(1, {"password_hash": "x"})

    @pytest.mark.asyncio
    async def test_update_user_rejects_invalid_role(self, users_service):
        with pytest.raises(ValueError, match="Invalid user role"):
            await users_service.update_user(1, {"role": "owner"})

    @pytest.mark.asyncio
    async def test_update_user_duplicate_email(self, users_service, mock_db_manager):
        mock_session, _ = setup_mock_sqlalchemy_session(mock_db_manager)
        mock_session.execute.side_effect = IntegrityError("UPDATE", {}, Exception("unique"))

        with pytest.raises(ValueError, match="Email already in use"):
            await users_service.update_user(1, {"email": "taken@mail.utoronto.ca"})
