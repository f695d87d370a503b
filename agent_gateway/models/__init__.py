"""
Models package for AgentGateway.

Exports all model classes for easy imports throughout the application.
"""

# Agent models
from agent_gateway.models.agent import (
    AgentPersona,
    BackendVariant,
    NormalizedAgentResponse,
    StructuredItem,
)

# Cache models
from agent_gateway.models.cache_entry import CacheEntry

# Error models
from agent_gateway.models.error import ErrorResponse

# Query models
from agent_gateway.models.query import AgentQuery

# Response models
from agent_gateway.models.response import GatewayResult, HealthResponse

__all__ = [
    "AgentPersona",
    "AgentQuery",
    "BackendVariant",
    "CacheEntry",
    "ErrorResponse",
    "GatewayResult",
    "HealthResponse",
    "NormalizedAgentResponse",
    "StructuredItem",
]
