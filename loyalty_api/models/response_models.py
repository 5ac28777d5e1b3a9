"""
Response Models
--------------
Shared response schemas that do not belong to a single resource.
"""

from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field


class HealthStatus(BaseModel):
    """
    Health check response schema.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "ok",
                "timestamp": "2025-10-13T10:30:00Z",
            }
        }
    )

    status: str = Field(default="ok", description="Service status")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Health check timestamp",
    )


class ErrorResponse(BaseModel):
    """Body of every rejected request."""

    detail: str = Field(..., description="Human readable error")
