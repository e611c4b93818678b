from datetime import datetime
from typing import Optional

from pydantic import Field

from scout.schemas.base import CamelModel


class ErrorResponse(CamelModel):
    """
    What:  Standardized error payload for every non-2xx response.

    Example:
        {
            "error": "route_not_found",
            "message": "Route not found",
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(
        default=None, alias="request_id", description="Request correlation ID"
    )


class MessageResponse(CamelModel):
    message: str


class LivenessResponse(CamelModel):
    """GET /health: process liveness only."""
    status: str = "OK"


class HealthResponse(CamelModel):
    """GET /api/health: liveness plus runtime facts, no dependency probes."""
    status: str = "OK"
    timestamp: datetime
    environment: str
    uptime: float = Field(description="Seconds since the app was created")


class RootResponse(CamelModel):
    message: str
    status: str = "healthy"
    timestamp: datetime
