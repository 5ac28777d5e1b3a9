"""
Database Connection Manager
---------------------------
Manages PostgreSQL database connections with SQLAlchemy async engine.
Provides both ORM sessions and raw SQL query capabilities.
"""

from typing import Any, Dict, Optional, AsyncGenerator, List, Union
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy import text
from loguru import logger

from loyalty_api.core.config_manager import settings


class DatabaseManager:
    """
    Manages database connections and operations using SQLAlchemy async engine.

    A single engine (and its pool) is shared by every service in the process;
    services receive sessions through get_session(), which commits on success
    and rolls back on any exception. Multi-statement operations that must be
    atomic (password reset consumption, token replacement) run inside one
    session and therefore one transaction.
    """

    _instance = None
    _engine = None
    _sessionmaker = None

    def __new__(cls, *args, **kwargs):
        """Implement singleton pattern."""
        if cls._instance is None:
            cls._instance = super(DatabaseManager, cls).__new__(cls)
        return cls._instance

    async def initialize(self, config: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize SQLAlchemy async engine.

        Args:
            config: Optional configuration override
        """
        if self._engine is not None:
            logger.warning("Database engine already initialized")
            return

        if config is None:
            config = {
                "host": settings.database_host,
                "port": settings.database_port,
                "dbname": settings.database_name,
                "user": settings.database_user,
                "password": settings.database_password,
                "min_connections": settings.database_pool_size,
                "max_connections": settings.database_pool_size
                + settings.database_max_overflow,
            }

        logger.info(
            f"Initializing database connection to {config.get('host')}:{config.get('port')}"
        )

        try:
            db_url = (
                f"postgresql+asyncpg://"
                f"{config['user']}:{config['password']}@"
                f"{config['host']}:{config['port']}/"
                f"{config['dbname']}"
            )

            self._engine = create_async_engine(
                db_url,
                pool_size=config.get("min_connections", 5),
                max_overflow=config.get("max_connections", 10)
                - config.get("min_connections", 5),
                pool_pre_ping=True,
                pool_recycle=3600,
                pool_timeout=30,
                echo=False,
            )

            self._sessionmaker = async_sessionmaker(
                bind=self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
            logger.info(
                "SQLAlchemy async engine and sessionmaker initialized successfully"
            )

        except Exception as e:
            logger.error(f"Error initializing SQLAlchemy engine: {e}")
            raise

    async def close(self) -> None:
        """Close SQLAlchemy engine."""
        if self._engine is not None:
            logger.info("Disposing SQLAlchemy engine")
            await self._engine.dispose()
            self._engine = None
            self._sessionmaker = None
            logger.info("SQLAlchemy engine disposed")

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get a SQLAlchemy async session from the sessionmaker.

        Yields:
            AsyncSession: Active SQLAlchemy session with automatic
                         commit on success or rollback on exception

        Raises:
            RuntimeError: If database not initialized

        Example:
            async with db_manager.get_session() as session:
                result = await session.execute(text("SELECT 1"))
                value = result.scalar()
        """
        if not self._sessionmaker:
            raise RuntimeError("Database not initialized. Call initialize() first.")

        session = self._sessionmaker()
        try:
            yield session
            await session.commit()
            logger.debug("Session committed successfully")
        except Exception as e:
            await session.rollback()
            logger.warning(f"Session rolled back due to error: {e}")
            raise
        finally:
            await session.close()

    async def execute_raw_query(
        self,
        query: str,
        params: Optional[Dict[str, Any]] = None,
        fetch_mode: str = "all",
    ) -> Union[List[Dict[str, Any]], Dict[str, Any], int, None]:
        """
        Execute a raw SQL query using SQLAlchemy's text() function.

        Args:
            query: SQL query string
            params: Query parameters as dictionary
            fetch_mode: Result fetch mode ('all', 'one', 'scalar', 'count', or None)

        Returns:
            Query results based on fetch mode:
            - 'all': List of dictionaries (rows)
            - 'one': Single dictionary (row)
            - 'scalar': Single value
            - 'count': Number of rows affected
            - None: No return value
        """
        async with self.get_session() as session:
            result = await session.execute(text(query), params or {})

            if fetch_mode == "all":
                return [dict(row) for row in result.mappings().all()]
            elif fetch_mode == "one":
                row = result.mappings().one_or_none()
                return dict(row) if row else None
            elif fetch_mode == "scalar":
                return result.scalar_one_or_none()
            elif fetch_mode == "count":
                return result.rowcount
            else:
                return None


# Global database manager instance
db_manager = DatabaseManager()
