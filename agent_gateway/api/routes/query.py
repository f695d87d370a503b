"""
AI query endpoints.

Sandi Metz Principles:
- Single Responsibility: HTTP request handling
- Small functions: Minimal logic in endpoints
- Dependency Injection: Gateway injected
"""

import math
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from agent_gateway.api.deps import get_gateway
from agent_gateway.exceptions import GatewayError, RateLimitedError
from agent_gateway.models.error import ErrorResponse
from agent_gateway.models.query import AgentQuery
from agent_gateway.models.response import GatewayResult
from agent_gateway.services.gateway import AgentGateway
from agent_gateway.utils.logger import get_logger, log_error

router = APIRouter()
logger = get_logger(__name__)

ERROR_RESPONSES: Dict[int | str, Dict[str, Any]] = {
    status: {"model": ErrorResponse} for status in (429, 500, 502, 503, 504)
}


class InvalidationResult(BaseModel):
    """Cache invalidation outcome."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    invalidated: bool = Field(..., description="Whether an entry was removed")


def error_response(error: GatewayError) -> JSONResponse:
    """
    Translate a gateway error into an HTTP response.

    Args:
        error: Gateway error

    Returns:
        JSON error response
    """
    body = ErrorResponse.from_exception(error)
    headers: Optional[Dict[str, str]] = None
    if isinstance(error, RateLimitedError):
        headers = {"Retry-After": str(max(1, math.ceil(error.retry_after or 0)))}
    return JSONResponse(
        status_code=error.status_code,
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
        headers=headers,
    )


@router.post(
    "/query",
    response_model=GatewayResult,
    response_model_by_alias=True,
    responses=ERROR_RESPONSES,
)
async def process_query(
    request: AgentQuery,
    gateway: AgentGateway = Depends(get_gateway),  # noqa: B008
):
    """
    Answer an AI query through the gateway.

    Args:
        request: Agent query
        gateway: Agent gateway (injected)

    Returns:
        Gateway result or typed error
    """
    try:
        return await gateway.handle(request)
    except GatewayError as e:
        if e.status_code >= 500:
            log_error(e, "process_query", caller_id=request.caller_id)
        return error_response(e)
    except Exception as e:
        logger.error("Unexpected error", error=str(e))
        return JSONResponse(
            status_code=500,
            content=ErrorResponse.internal_error().model_dump(
                mode="json", by_alias=True, exclude_none=True
            ),
        )


@router.delete("/cache", response_model=InvalidationResult, response_model_by_alias=True)
async def invalidate_cache(
    request: AgentQuery,
    gateway: AgentGateway = Depends(get_gateway),  # noqa: B008
) -> InvalidationResult:
    """
    Drop the cached response for a query.

    Args:
        request: Query identifying the entry
        gateway: Agent gateway (injected)

    Returns:
        Invalidation outcome
    """
    return InvalidationResult(invalidated=await gateway.invalidate(request))
