"""
FastAPI Application Entry Point
-------------------------------
Main application initialization and configuration.
Registers routers, middleware, and lifecycle handlers.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from loyalty_api.core.config_manager import settings
from loyalty_api.core.database_connection import db_manager
from loyalty_api.core.logger_setup import configure_logger
from loyalty_api.auth.endpoints import router as auth_router
from loyalty_api.auth.password_reset import PasswordResetManager
from loyalty_api.auth.rate_limiter import ResetRateLimiter
from loyalty_api.api import health_endpoints, user_endpoints
from loyalty_api.psql_db_services import ResetTokensService, UsersService

configure_logger()


async def _verify_database_connectivity() -> None:
    """Run a trivial query so a bad connection fails startup, not the first request."""
    await db_manager.execute_raw_query("SELECT 1", fetch_mode="scalar")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""

    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Debug mode: {settings.debug}")

    try:
        await db_manager.initialize()
        await _verify_database_connectivity()
        logger.info("[SUCCESS] PostgreSQL connected and ready")
    except Exception as e:
        logger.error(f"[FAILED] PostgreSQL: {e}")
        await db_manager.close()
        raise

    # Shared by every request of this process
    app.state.reset_rate_limiter = ResetRateLimiter(settings.reset_rate_limit_seconds)
    app.state.password_reset_manager = PasswordResetManager(
        users_service=UsersService(db_manager),
        reset_tokens_service=ResetTokensService(db_manager),
        rate_limiter=app.state.reset_rate_limiter,
    )
    logger.info("[SUCCESS] Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application")
    try:
        await db_manager.close()
        logger.info("Application shutdown complete")
    except Exception as e:
        logger.error(f"Shutdown error: {e}")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Authorization core of the campus loyalty points program",
    lifespan=lifespan,
    debug=settings.debug,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    swagger_ui_parameters={"displayRequestDuration": True},
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(health_endpoints.router)
app.include_router(auth_router)
app.include_router(user_endpoints.router)
