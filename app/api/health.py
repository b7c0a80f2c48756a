"""Health check and discovery endpoints."""

import time
from datetime import UTC, datetime

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from app.schemas.health import ApiInfoResponse, HealthResponse

API_VERSION = "1.0.0"

# Process start, for uptime reporting.
_STARTED = time.monotonic()

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def get_health() -> HealthResponse:
    """
    Return service status, server time and process uptime.
    Used by load balancers and monitoring.
    """
    return HealthResponse(
        status="OK",
        timestamp=datetime.now(UTC).isoformat(),
        uptime=round(time.monotonic() - _STARTED, 3),
    )


@router.get("/", response_class=PlainTextResponse)
def root() -> str:
    return "Hello from acquisitions API!"


@router.get("/api", response_model=ApiInfoResponse)
def api_info() -> ApiInfoResponse:
    """Root of the JSON API; minimal payload for discovery."""
    return ApiInfoResponse(message="Welcome to the Acquisitions API", version=API_VERSION)
