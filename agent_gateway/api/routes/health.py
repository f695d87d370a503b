"""
Health check endpoints.

Sandi Metz Principles:
- Single Responsibility: Health check logic only
- Small functions: Each check isolated
- Clear naming: Descriptive endpoint names
"""

import time
from typing import Dict, Literal, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from agent_gateway import __version__
from agent_gateway.api.deps import get_response_cache
from agent_gateway.cache.response_cache import ResponseCache
from agent_gateway.config import config
from agent_gateway.models.response import HealthResponse
from agent_gateway.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


class ComponentHealth(BaseModel):
    """Health status of a component."""

    status: Literal["healthy", "unhealthy", "degraded"] = Field(
        ..., description="Component status"
    )
    latency_ms: Optional[float] = Field(None, description="Check latency in ms")
    message: Optional[str] = Field(None, description="Status message")


class DetailedHealthResponse(BaseModel):
    """Detailed health check response."""

    status: Literal["healthy", "unhealthy", "degraded"] = Field(
        ..., description="Overall status"
    )
    environment: str = Field(..., description="Environment name")
    version: str = Field(..., description="Application version")
    components: Dict[str, ComponentHealth] = Field(
        default_factory=dict, description="Component health status"
    )


async def check_cache_health(cache: Optional[ResponseCache]) -> ComponentHealth:
    """Check the response cache backend."""
    if cache is None:
        return ComponentHealth(status="degraded", message="Caching disabled")

    try:
        start = time.time()
        is_healthy = await cache.health_check()
        latency = (time.time() - start) * 1000

        if is_healthy:
            return ComponentHealth(status="healthy", latency_ms=round(latency, 2))
        return ComponentHealth(status="unhealthy", message=f"{cache.name} check failed")

    except Exception as e:
        logger.error("Cache health check failed", error=str(e))
        return ComponentHealth(status="unhealthy", message=str(e))


def check_gateway_health(request: Request) -> ComponentHealth:
    """Check that the gateway was wired at startup."""
    app_state = getattr(request.app.state, "app_state", None)
    if app_state is None or getattr(app_state, "gateway", None) is None:
        return ComponentHealth(status="unhealthy", message="Gateway not initialized")
    return ComponentHealth(status="healthy")


def _basic_health() -> HealthResponse:
    return HealthResponse(
        status="healthy",
        environment=config.app_env,
        version=__version__,
    )


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Basic health check endpoint.

    Returns:
        Health status response
    """
    return _basic_health()


@router.get("/healthz", response_model=HealthResponse)
async def kubernetes_health_check() -> HealthResponse:
    """Kubernetes-style health check endpoint."""
    return _basic_health()


@router.get("/live", response_model=HealthResponse)
async def liveness_check() -> HealthResponse:
    """
    Kubernetes liveness probe endpoint.

    Always returns healthy if the application is running.
    """
    return _basic_health()


@router.get("/ready", response_model=DetailedHealthResponse)
async def readiness_check(
    request: Request,
    cache: Optional[ResponseCache] = Depends(get_response_cache),  # noqa: B008
) -> DetailedHealthResponse:
    """
    Kubernetes-style readiness check endpoint.

    Checks the gateway wiring and the cache backend.

    Returns:
        Detailed health status response
    """
    components = {
        "gateway": check_gateway_health(request),
        "cache": await check_cache_health(cache),
    }

    statuses = [c.status for c in components.values()]
    if all(s == "healthy" for s in statuses):
        overall_status = "healthy"
    elif any(s == "unhealthy" for s in statuses):
        overall_status = "unhealthy"
    else:
        overall_status = "degraded"

    return DetailedHealthResponse(
        status=overall_status,
        environment=config.app_env,
        version=__version__,
        components=components,
    )
