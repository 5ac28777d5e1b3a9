"""
Health Check Endpoints
---------------------
Liveness endpoint for load balancers and the frontend.
"""

from datetime import datetime, timezone
from fastapi import APIRouter
from loguru import logger

from loyalty_api.models.response_models import HealthStatus


router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthStatus)
async def health_check():
    """
    Basic health check endpoint.

    Returns:
        HealthStatus: {"status": "ok", "timestamp": ...}
    """
    logger.debug("Health check requested")
    return HealthStatus(status="ok", timestamp=datetime.now(timezone.utc))
