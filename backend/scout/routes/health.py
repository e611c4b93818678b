"""
Knowledge Scout Backend - Liveness Routes
=========================================

What:  GET /health, GET /api/health and GET /.
Why:   Process-liveness signaling for load balancers and deploy platforms.
       None of these touch the database or the LLM: they must answer 200
       even when every downstream collaborator is unreachable.
"""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Request

from scout.schemas.common import HealthResponse, LivenessResponse, RootResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=LivenessResponse, summary="Minimal liveness probe")
async def health() -> LivenessResponse:
    return LivenessResponse()


@router.get("/api/health", response_model=HealthResponse, summary="Liveness with runtime facts")
async def api_health(request: Request) -> HealthResponse:
    return HealthResponse(
        timestamp=datetime.now(timezone.utc),
        environment=request.app.state.settings.environment,
        uptime=round(time.monotonic() - request.app.state.started_at, 2),
    )


@router.get("/", response_model=RootResponse, summary="Connectivity check")
async def root() -> RootResponse:
    return RootResponse(
        message="Knowledge Scout API is running",
        timestamp=datetime.now(timezone.utc),
    )
