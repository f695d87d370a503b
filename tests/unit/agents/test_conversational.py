"""
Tests for the Bedrock Agents invoker.
"""

import json
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, ReadTimeoutError

from agent_gateway.agents.conversational import AgentTarget, BedrockAgentInvoker
from agent_gateway.agents.timeout_handler import TimeoutConfig, TimeoutHandler
from agent_gateway.exceptions import (
    ConfigurationError,
    ResponseParseError,
    UpstreamRateLimitError,
    UpstreamTimeoutError,
)
from agent_gateway.models.agent import AgentPersona, BackendVariant
from agent_gateway.models.query import AgentQuery


def agent_reply(text: str, session_id: str = "sess-1") -> dict:
    return {
        "sessionId": session_id,
        "contentType": "text/plain",
        "completion": iter([{"chunk": {"bytes": text.encode("utf-8")}}]),
    }


@pytest.fixture
def client():
    """Mock bedrock-agent-runtime client."""
    client = MagicMock()
    client.invoke_agent.return_value = agent_reply("Try the Sony WH-CH720N.")
    return client


@pytest.fixture
def invoker(client):
    return BedrockAgentInvoker(
        client=client,
        targets={AgentPersona.SHOPPING_ASSISTANT: AgentTarget("AGENT123", "ALIAS1")},
        timeout_handler=TimeoutHandler(TimeoutConfig(timeout_seconds=5)),
    )


def query(**overrides) -> AgentQuery:
    fields = {
        "caller_id": "wallet-a",
        "backend_variant": BackendVariant.CONVERSATIONAL,
        "agent": AgentPersona.SHOPPING_ASSISTANT,
        "query": "Find wireless headphones",
    }
    fields.update(overrides)
    return AgentQuery(**fields)


class TestBedrockAgentInvoker:
    """Test conversational backend."""

    def test_variant(self, invoker):
        assert invoker.variant == BackendVariant.CONVERSATIONAL
        assert invoker.get_name() == "conversational"

    @pytest.mark.asyncio
    async def test_invoke_normalizes_completion(self, invoker):
        result = await invoker.invoke(query(session_id="sess-1"))

        assert result.text == "Try the Sony WH-CH720N."
        assert result.variant == BackendVariant.CONVERSATIONAL
        assert result.agent == AgentPersona.SHOPPING_ASSISTANT
        assert result.session_id == "sess-1"

    @pytest.mark.asyncio
    async def test_continues_given_session(self, invoker, client):
        await invoker.invoke(query(session_id="sess-existing"))

        kwargs = client.invoke_agent.call_args.kwargs
        assert kwargs["sessionId"] == "sess-existing"
        assert kwargs["agentId"] == "AGENT123"
        assert kwargs["agentAliasId"] == "ALIAS1"
        assert kwargs["inputText"] == "Find wireless headphones"

    @pytest.mark.asyncio
    async def test_new_conversation_gets_unique_session(self, invoker, client):
        """Test each new conversation gets its own session id."""
        client.invoke_agent.side_effect = lambda **kw: agent_reply("hi", kw["sessionId"])

        first = await invoker.invoke(query())
        second = await invoker.invoke(query())

        assert first.session_id
        assert second.session_id
        assert first.session_id != second.session_id

    @pytest.mark.asyncio
    async def test_params_sent_as_session_attributes(self, invoker, client):
        await invoker.invoke(query(params={"maxPrice": 100, "brand": "Sony", "skip": None}))

        attributes = client.invoke_agent.call_args.kwargs["sessionState"][
            "promptSessionAttributes"
        ]
        assert attributes == {"maxPrice": "100", "brand": "Sony"}
        assert json.loads(attributes["maxPrice"]) == 100

    @pytest.mark.asyncio
    async def test_no_session_state_without_params(self, invoker, client):
        await invoker.invoke(query())

        assert "sessionState" not in client.invoke_agent.call_args.kwargs

    @pytest.mark.asyncio
    async def test_unconfigured_persona(self, invoker):
        with pytest.raises(ConfigurationError):
            await invoker.invoke(query(agent=AgentPersona.DISPUTE_RESOLVER))

    @pytest.mark.asyncio
    async def test_throttling_mapped(self, invoker, client):
        client.invoke_agent.side_effect = ClientError(
            {
                "Error": {"Code": "ThrottlingException", "Message": "slow down"},
                "ResponseMetadata": {"HTTPStatusCode": 429, "HTTPHeaders": {}},
            },
            "InvokeAgent",
        )

        with pytest.raises(UpstreamRateLimitError):
            await invoker.invoke(query())

    @pytest.mark.asyncio
    async def test_read_timeout_mapped(self, invoker, client):
        client.invoke_agent.side_effect = ReadTimeoutError(endpoint_url="https://bedrock")

        with pytest.raises(UpstreamTimeoutError):
            await invoker.invoke(query())

    @pytest.mark.asyncio
    async def test_missing_completion_is_parse_error(self, invoker, client):
        client.invoke_agent.return_value = {"sessionId": "sess-1"}

        with pytest.raises(ResponseParseError):
            await invoker.invoke(query())
