"""
Query response models.

Sandi Metz Principles:
- Small classes with clear purpose
- Immutable response data
- Clear naming conventions
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from agent_gateway.models.agent import NormalizedAgentResponse


class GatewayResult(BaseModel):
    """Outcome of one gateway request."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    normalized_response: NormalizedAgentResponse = Field(
        ..., description="Normalized agent response"
    )
    cache_hit: bool = Field(..., description="Whether the cache answered")
    coalesced: bool = Field(
        default=False, description="Whether an in-flight call was shared"
    )
    attempts: int = Field(default=0, ge=0, description="Upstream attempts made")
    latency_ms: float = Field(..., ge=0, description="Request latency in milliseconds")


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["healthy", "unhealthy"] = Field(..., description="Service status")
    environment: str = Field(..., description="Environment name")
    version: str = Field(..., description="Application version")
