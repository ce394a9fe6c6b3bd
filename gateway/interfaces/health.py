"""
Health check router.

Provides a simple health endpoint for liveness/readiness probes.
No business logic. Returns application status and version.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from gateway.core.config import Settings
from gateway.interfaces.backend.dependencies import get_settings
from gateway.interfaces.backend.schemas import HealthResponse
from gateway.shared.security.rate_limiting import enforce_rate_limit

router = APIRouter(tags=["health"], dependencies=[Depends(enforce_rate_limit)])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns application health status and version.",
)
def health_check(config: Settings = Depends(get_settings)) -> HealthResponse:
    """Return current application health status."""
    return HealthResponse(
        status="ok",
        version=config.version,
        environment=config.environment,
        timestamp=datetime.now(timezone.utc),
    )
