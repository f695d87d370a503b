"""
API dependency injection.

Sandi Metz Principles:
- Single Responsibility: Dependency lookup and injection
- Dependency Inversion: Routes receive services, not wiring
"""

from typing import Optional

from fastapi import Request

from agent_gateway.cache.response_cache import ResponseCache
from agent_gateway.exceptions import ConfigurationError
from agent_gateway.services.gateway import AgentGateway


async def get_gateway(request: Request) -> AgentGateway:
    """
    Get the gateway built at startup.

    Args:
        request: FastAPI request

    Returns:
        Agent gateway
    """
    app_state = getattr(request.app.state, "app_state", None)
    gateway = getattr(app_state, "gateway", None)
    if gateway is None:
        raise ConfigurationError("Gateway is not initialized")
    return gateway


async def get_response_cache(request: Request) -> Optional[ResponseCache]:
    """
    Get the response cache, if one is configured.

    Args:
        request: FastAPI request

    Returns:
        Response cache or None
    """
    app_state = getattr(request.app.state, "app_state", None)
    return getattr(app_state, "cache", None)
