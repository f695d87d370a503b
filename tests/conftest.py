"""
Pytest configuration and fixtures.

Provides common fixtures for testing.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from agent_gateway.agents.registry import InvokerRegistry
from agent_gateway.agents.retry import RetryConfig, RetryHandler
from agent_gateway.cache.response_cache import InMemoryResponseCache
from agent_gateway.config import AppConfig
from agent_gateway.models.agent import AgentPersona, BackendVariant
from agent_gateway.models.query import AgentQuery
from agent_gateway.pipeline.coalescer import RequestCoalescer
from agent_gateway.pipeline.rate_limiter import RateLimitConfig, RateLimiter
from agent_gateway.services.gateway import AgentGateway
from tests.mocks.agent_mocks import MockAgentInvoker


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


async def no_sleep(delay: float) -> None:
    """Sleep replacement that returns immediately."""


@pytest.fixture
def test_config() -> AppConfig:
    """
    Create test configuration.

    Returns:
        Test configuration instance
    """
    return AppConfig(
        app_env="development",
        aws_region="us-east-1",
        shopping_agent_id="AGENTSHOP1",
        pricing_agent_id="AGENTPRICE",
        dispute_agent_id="",
        redis_host="localhost",
        redis_port=6379,
    )


@pytest.fixture
def clock() -> FakeClock:
    """Manually advanced clock."""
    return FakeClock()


@pytest.fixture
def mock_redis_pool():
    """
    Mock Redis connection pool.

    Returns:
        Mocked Redis pool
    """
    pool = MagicMock()
    pool.disconnect = AsyncMock()
    return pool


@pytest.fixture
def mock_redis_client():
    """
    Mock Redis client.

    Returns:
        Mocked Redis client
    """
    client = MagicMock()
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock(return_value=True)
    client.delete = AsyncMock(return_value=1)
    client.ping = AsyncMock(return_value=True)
    return client


@pytest.fixture
def sample_query() -> AgentQuery:
    """
    Sample direct-model query for testing.

    Returns:
        Agent query
    """
    return AgentQuery(
        caller_id="wallet-a",
        backend_variant=BackendVariant.DIRECT_MODEL,
        agent=AgentPersona.SHOPPING_ASSISTANT,
        query="Find wireless headphones under 100 USDC",
        params={"maxPrice": 100},
    )


@pytest.fixture
def mock_invoker() -> MockAgentInvoker:
    """Direct-model mock invoker."""
    return MockAgentInvoker(BackendVariant.DIRECT_MODEL)


@pytest.fixture
def gateway_factory():
    """
    Build gateways around mock invokers.

    Returns:
        Factory taking invokers and optional overrides
    """

    def build(
        *invokers: MockAgentInvoker,
        capacity: float = 20.0,
        max_retries: int = 2,
        cache: object = "default",
        ttl_policy=None,
    ) -> AgentGateway:
        registry = InvokerRegistry()
        for invoker in invokers:
            registry.register(invoker)
        return AgentGateway(
            rate_limiter=RateLimiter(RateLimitConfig(capacity=capacity)),
            cache=InMemoryResponseCache() if cache == "default" else cache,
            coalescer=RequestCoalescer(),
            invokers=registry,
            retry=RetryHandler(RetryConfig(max_retries=max_retries), sleep=no_sleep),
            ttl_policy=ttl_policy,
        )

    return build
