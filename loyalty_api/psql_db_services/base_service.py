"""
Base Database Service
--------------------
Shared plumbing for the users and reset token services: transactional
sessions, argument checks and operation logging.
"""

from typing import Optional, Dict, Any, Tuple, AsyncGenerator, Iterable
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from loyalty_api.core.database_connection import DatabaseManager


class BaseDatabaseService:
    """
    Base class for the PostgreSQL-backed services.

    Subclasses issue raw SQL through ``get_session()``; one ``async with``
    block is one transaction.
    """

    def __init__(self, database_manager: Optional[DatabaseManager] = None):
        """
        Args:
            database_manager: Defaults to the process-wide DatabaseManager
        """
        self.database_manager = database_manager or DatabaseManager()
        self._service_name = self.__class__.__name__

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session committed when the block exits cleanly, rolled back otherwise."""
        async with self.database_manager.get_session() as session:
            yield session

    # ========================================================================
    # ARGUMENT CHECKS
    # ========================================================================

    def validate_positive_integer(self, integer_value: int, parameter_name: str = "value") -> None:
        """
        Raises:
            ValueError: If the value is not an int (bools excluded) or is below 1
        """
        if not isinstance(integer_value, int) or isinstance(integer_value, bool):
            raise ValueError(f"{parameter_name} must be an integer")
        if integer_value < 1:
            raise ValueError(f"{parameter_name} must be positive, got {integer_value}")

    def validate_string_not_empty(self, string_value: str, parameter_name: str = "string") -> None:
        """
        Raises:
            ValueError: If the value is not a string or is blank
        """
        if not isinstance(string_value, str) or not string_value.strip():
            raise ValueError(f"{parameter_name} must be a non-empty string")

    # ========================================================================
    # QUERY BUILDING AND LOGGING
    # ========================================================================

    def build_dynamic_update_query(
        self,
        table_name: str,
        update_fields: Dict[str, Any],
        allowed_columns: Iterable[str],
        where_clause: str,
        where_parameters: Dict[str, Any],
    ) -> Tuple[str, Dict[str, Any]]:
        """
        UPDATE ... RETURNING * touching only ``update_fields``.

        Column names are interpolated into the SQL text, so each key must be
        listed in ``allowed_columns``. Values are bound as ``:set_<column>``.

        Raises:
            ValueError: If no fields are given or a column is not allowed
        """
        if not update_fields:
            raise ValueError("update_fields cannot be empty")

        unknown = [name for name in update_fields if name not in set(allowed_columns)]
        if unknown:
            raise ValueError(f"Cannot update columns: {', '.join(unknown)}")

        parameters = {f"set_{name}": value for name, value in update_fields.items()}
        parameters.update(where_parameters)
        assignments = ", ".join(f"{name} = :set_{name}" for name in update_fields)

        sql_query = f"""
            UPDATE {table_name}
            SET {assignments}
            WHERE {where_clause}
            RETURNING *
        """
        return sql_query, parameters

    def log_operation(
        self,
        operation_type: str,
        entity_identifier: Any,
        success: bool = True,
        additional_context: Optional[str] = None,
    ) -> None:
        """Info line for a completed write, error line for a failed one."""
        outcome = "succeeded" if success else "failed"
        message = f"{self._service_name}: {operation_type} {outcome} for {entity_identifier}"
        if additional_context:
            message += f" ({additional_context})"

        if success:
            logger.info(message)
        else:
            logger.error(message)
