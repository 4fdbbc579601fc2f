"""
Health check endpoints.

Provides liveness and readiness probes. Readiness requires a loaded filter.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from routefilter.services.active_filter import ActiveFilter, get_active_filter

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    filter: str | None = None


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """
    Liveness probe.

    Returns healthy if the service is running.
    Does not check configuration.
    """
    return HealthResponse(status="healthy")


@router.get(
    "/ready",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse}},
)
async def ready(
    response: Response,
    holder: Annotated[ActiveFilter, Depends(get_active_filter)],
) -> HealthResponse:
    """
    Readiness probe.

    Returns ready once a filter is configured, 503 otherwise.
    """
    active = holder.current()
    if active is None:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="not ready")
    return HealthResponse(status="ready", filter=f"{active.plugin_type}/{active.name}")
