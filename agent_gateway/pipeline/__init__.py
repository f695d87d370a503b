"""
Request pipeline module.

Contains the admission and sharing stages that sit in front of the agents:
- Rate Limiter
- Request Coalescer
"""

from agent_gateway.pipeline.coalescer import (
    CoalescingStats,
    InFlightRequest,
    RequestCoalescer,
)
from agent_gateway.pipeline.rate_limiter import (
    RateBucket,
    RateDecision,
    RateLimitConfig,
    RateLimiter,
)

__all__ = [
    "CoalescingStats",
    "InFlightRequest",
    "RateBucket",
    "RateDecision",
    "RateLimitConfig",
    "RateLimiter",
    "RequestCoalescer",
]
