"""
Database Services Package
-------------------------
Database services for the loyalty points authorization core.

This package provides:
- Base service class with connection pooling and transaction management
- User service (credential lookup, creation, password and role updates)
- Reset token service (one-time password reset token storage)
"""

from loyalty_api.psql_db_services.base_service import BaseDatabaseService
from loyalty_api.psql_db_services.users_service import UsersService
from loyalty_api.psql_db_services.reset_tokens_service import (
    ResetTokenConsumedError,
    ResetTokensService,
)

__all__ = [
    "BaseDatabaseService",
    "UsersService",
    "ResetTokensService",
    "ResetTokenConsumedError",
]
