"""
Conversational backend: Bedrock Agents.

Sandi Metz Principles:
- Single Responsibility: Session-scoped agent calls
- Dependency Injection: Runtime client and targets injected
"""

import json
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Mapping

from agent_gateway.agents.base import BaseAgentInvoker
from agent_gateway.agents.response_parser import AgentResponseParser
from agent_gateway.agents.timeout_handler import TimeoutHandler
from agent_gateway.exceptions import ConfigurationError
from agent_gateway.models.agent import (
    AgentPersona,
    BackendVariant,
    NormalizedAgentResponse,
)
from agent_gateway.models.query import AgentQuery
from agent_gateway.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AgentTarget:
    """Bedrock agent serving one persona."""

    agent_id: str
    alias_id: str = "TSTALIASID"


def new_session_id() -> str:
    """Generate a session id for a new conversation."""
    return uuid.uuid4().hex


class BedrockAgentInvoker(BaseAgentInvoker):
    """
    Calls Bedrock Agent Runtime ``invoke_agent``.

    The session id keeps agent memory for one conversation; a request
    without one starts a new conversation.
    """

    variant = BackendVariant.CONVERSATIONAL

    def __init__(
        self,
        client: Any,
        targets: Mapping[AgentPersona, AgentTarget],
        timeout_handler: TimeoutHandler | None = None,
        enable_trace: bool = False,
    ):
        """
        Initialize invoker.

        Args:
            client: boto3 ``bedrock-agent-runtime`` client
            targets: Agent id per persona
            timeout_handler: Bounds each upstream call
            enable_trace: Ask Bedrock for trace events
        """
        super().__init__(timeout_handler)
        self._client = client
        self._targets = dict(targets)
        self._enable_trace = enable_trace

    async def invoke(self, request: AgentQuery) -> NormalizedAgentResponse:
        target = self._target_for(request.agent)
        session_id = request.session_id or new_session_id()

        response = await self._run_blocking(
            request, self._invoke_agent, target, session_id, request
        )
        return AgentResponseParser.parse_agent_completion(
            response, request.agent, session_id
        )

    def _target_for(self, agent: AgentPersona) -> AgentTarget:
        target = self._targets.get(agent)
        if target is None or not target.agent_id:
            raise ConfigurationError(f"No Bedrock agent configured for {agent.value}")
        return target

    def _invoke_agent(
        self, target: AgentTarget, session_id: str, request: AgentQuery
    ) -> Dict[str, Any]:
        """Call the agent and drain its event stream. Runs in a worker thread."""
        kwargs: Dict[str, Any] = {
            "agentId": target.agent_id,
            "agentAliasId": target.alias_id,
            "sessionId": session_id,
            "inputText": request.query,
            "enableTrace": self._enable_trace,
        }
        if request.params:
            kwargs["sessionState"] = {
                "promptSessionAttributes": self._session_attributes(request.params)
            }

        response = self._client.invoke_agent(**kwargs)

        collected = dict(response)
        if "completion" in response:
            # Stream errors surface while iterating
            collected["completion"] = list(response["completion"])
        return collected

    @staticmethod
    def _session_attributes(params: Mapping[str, Any]) -> Dict[str, str]:
        """Bedrock session attributes are string to string."""
        return {
            str(key): value if isinstance(value, str) else json.dumps(value, default=str)
            for key, value in params.items()
            if value is not None
        }
