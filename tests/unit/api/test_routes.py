"""Test API routes."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from agent_gateway.api.deps import get_gateway
from agent_gateway.exceptions import (
    InternalCoalescingError,
    RateLimitedError,
    ResponseParseError,
    UpstreamRateLimitError,
    UpstreamRejectedError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
)
from agent_gateway.main import create_application
from tests.mocks.agent_mocks import MockAgentInvoker

QUERY_BODY = {
    "callerId": "wallet-a",
    "backendVariant": "direct_model",
    "agent": "shopping_assistant",
    "query": "Find wireless headphones under 100 USDC",
    "params": {"maxPrice": 100},
}


@pytest.fixture
def app():
    """Create test FastAPI app."""
    return create_application()


@pytest.fixture
def gateway(gateway_factory, mock_invoker):
    """Gateway around a mock direct-model invoker."""
    return gateway_factory(mock_invoker, capacity=3)


@pytest.fixture
def client(app, gateway):
    """Create test client with dependency override."""
    app.state.app_state = SimpleNamespace(gateway=gateway, cache=gateway.cache)
    app.dependency_overrides[get_gateway] = lambda: gateway
    return TestClient(app)


@pytest.fixture
def failing_client(app):
    """Client whose gateway raises the configured error."""
    mock_gateway = AsyncMock()
    app.dependency_overrides[get_gateway] = lambda: mock_gateway
    return TestClient(app), mock_gateway


class TestHealthRoutes:
    """Test health check routes."""

    @pytest.mark.parametrize("path", ["/health", "/healthz", "/live"])
    def test_should_return_health_status(self, client, path):
        response = client.get(path)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "version" in data

    def test_should_return_readiness_status(self, client):
        """Test readiness check with a healthy cache."""
        response = client.get("/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["components"]["cache"]["status"] == "healthy"
        assert data["components"]["gateway"]["status"] == "healthy"

    def test_readiness_unhealthy_before_startup(self, app):
        response = TestClient(app).get("/ready")

        assert response.json()["status"] == "unhealthy"

    def test_readiness_unhealthy_when_cache_down(self, app, gateway):
        cache = AsyncMock()
        cache.name = "redis"
        cache.health_check.return_value = False
        app.state.app_state = SimpleNamespace(gateway=gateway, cache=cache)

        data = TestClient(app).get("/ready").json()

        assert data["status"] == "unhealthy"
        assert data["components"]["cache"]["status"] == "unhealthy"


class TestQueryRoutes:
    """Test query routes."""

    def test_should_answer_query(self, client):
        response = client.post("/ai/query", json=QUERY_BODY)

        assert response.status_code == 200
        data = response.json()
        assert data["cacheHit"] is False
        assert data["coalesced"] is False
        assert data["attempts"] == 1
        assert data["latencyMs"] >= 0
        assert data["normalizedResponse"]["text"] == "mock response"
        assert data["normalizedResponse"]["structuredItems"][0]["id"] == "p-1"
        assert data["normalizedResponse"]["variant"] == "direct_model"

    def test_should_hit_cache_on_repeat(self, client, mock_invoker):
        client.post("/ai/query", json=QUERY_BODY)

        response = client.post("/ai/query", json={**QUERY_BODY, "callerId": "wallet-b"})

        assert response.json()["cacheHit"] is True
        assert mock_invoker.call_count == 1

    def test_should_rate_limit_with_retry_after(self, client):
        """Test the fourth call with capacity 3 is refused with a retry hint."""
        for _ in range(3):
            assert client.post("/ai/query", json=QUERY_BODY).status_code == 200

        response = client.post("/ai/query", json=QUERY_BODY)

        assert response.status_code == 429
        assert int(response.headers["Retry-After"]) >= 1
        data = response.json()
        assert data["error"] == "rate_limited"
        assert data["retryAfter"] > 0
        assert "message" in data

    def test_should_reject_invalid_request(self, client):
        response = client.post("/ai/query", json={"callerId": "wallet-a"})

        assert response.status_code == 422
        data = response.json()
        assert data["error"] == "validation_error"
        assert "query" in data["message"]

    def test_should_reject_unknown_agent(self, client):
        response = client.post("/ai/query", json={**QUERY_BODY, "agent": "astrologer"})

        assert response.status_code == 422

    @pytest.mark.parametrize(
        "error,status,kind",
        [
            (RateLimitedError(2.5), 429, "rate_limited"),
            (ResponseParseError("bad json"), 502, "response_parse_error"),
            (UpstreamRejectedError("denied"), 502, "upstream_rejected"),
            (UpstreamRateLimitError("slow", retry_after=4), 502, "upstream_rate_limited"),
            (UpstreamUnavailableError("down"), 503, "upstream_unavailable"),
            (UpstreamTimeoutError("slow"), 504, "upstream_timeout"),
            (InternalCoalescingError("cancelled"), 500, "internal_coalescing_error"),
        ],
    )
    def test_should_map_gateway_errors(self, failing_client, error, status, kind):
        client, mock_gateway = failing_client
        mock_gateway.handle.side_effect = error

        response = client.post("/ai/query", json=QUERY_BODY)

        assert response.status_code == status
        assert response.json()["error"] == kind

    def test_should_hide_unexpected_errors(self, failing_client):
        client, mock_gateway = failing_client
        mock_gateway.handle.side_effect = RuntimeError("secret detail")

        response = client.post("/ai/query", json=QUERY_BODY)

        assert response.status_code == 500
        assert response.json()["error"] == "internal_error"
        assert "secret" not in response.json()["message"]

    def test_should_fail_when_gateway_missing(self, app):
        response = TestClient(app).post("/ai/query", json=QUERY_BODY)

        assert response.status_code == 500
        assert response.json()["error"] == "configuration_error"

    def test_should_invalidate_cache(self, client):
        client.post("/ai/query", json=QUERY_BODY)

        response = client.request("DELETE", "/ai/cache", json=QUERY_BODY)

        assert response.status_code == 200
        assert response.json() == {"invalidated": True}
        assert client.post("/ai/query", json=QUERY_BODY).json()["cacheHit"] is False

    def test_should_tag_request_id(self, client):
        response = client.post(
            "/ai/query", json=QUERY_BODY, headers={"X-Request-ID": "trace-123"}
        )

        assert response.headers["X-Request-ID"] == "trace-123"
