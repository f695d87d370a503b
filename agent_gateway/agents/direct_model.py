"""
Direct model backend: Bedrock Runtime ``invoke_model``.

Sandi Metz Principles:
- Single Responsibility: Stateless single-shot model calls
- Dependency Injection: Runtime client injected
"""

import json
from typing import Any, Dict, Mapping, Tuple

from agent_gateway.agents.base import BaseAgentInvoker
from agent_gateway.agents.prompts import PromptBuilder
from agent_gateway.agents.response_parser import AgentResponseParser
from agent_gateway.agents.timeout_handler import TimeoutHandler
from agent_gateway.exceptions import ConfigurationError, ValidationError
from agent_gateway.models.agent import BackendVariant, NormalizedAgentResponse
from agent_gateway.models.query import AgentQuery
from agent_gateway.utils.logger import get_logger

logger = get_logger(__name__)

ANTHROPIC_VERSION = "bedrock-2023-05-31"

GENERATION_KEYS = ("max_tokens", "temperature", "top_p")


class BedrockModelInvoker(BaseAgentInvoker):
    """
    Calls a foundation model with a fully-formed prompt.

    No session: every call stands alone.
    """

    variant = BackendVariant.DIRECT_MODEL

    def __init__(
        self,
        client: Any,
        model_id: str,
        max_tokens: int = 1024,
        temperature: float = 0.2,
        timeout_handler: TimeoutHandler | None = None,
    ):
        """
        Initialize invoker.

        Args:
            client: boto3 ``bedrock-runtime`` client
            model_id: Bedrock model id
            max_tokens: Default completion length
            temperature: Default sampling temperature
            timeout_handler: Bounds each upstream call
        """
        super().__init__(timeout_handler)
        self._client = client
        self._model_id = model_id
        self._max_tokens = max_tokens
        self._temperature = temperature

    @property
    def model_id(self) -> str:
        """Get model id."""
        return self._model_id

    async def invoke(self, request: AgentQuery) -> NormalizedAgentResponse:
        generation, prompt_params = self._split_params(request.params)
        system, prompt = PromptBuilder.build(request.agent, request.query, prompt_params)
        body = self.build_request_body(system, prompt, generation)

        payload = await self._run_blocking(request, self._invoke_model, body)
        decoded = AgentResponseParser.decode_body(payload)
        return AgentResponseParser.parse_model_body(decoded, request.agent)

    def build_request_body(
        self, system: str, prompt: str, generation: Mapping[str, Any]
    ) -> Dict[str, Any]:
        """
        Build the request body for the configured model family.

        Args:
            system: System prompt
            prompt: User prompt
            generation: Generation overrides (max_tokens, temperature, top_p)

        Returns:
            Request body
        """
        try:
            max_tokens = int(generation.get("max_tokens", self._max_tokens))
            temperature = float(generation.get("temperature", self._temperature))
            top_p = float(generation["top_p"]) if "top_p" in generation else None
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid generation parameter: {e}") from e

        if self._model_id.startswith("anthropic.") or ".anthropic." in self._model_id:
            body: Dict[str, Any] = {
                "anthropic_version": ANTHROPIC_VERSION,
                "max_tokens": max_tokens,
                "temperature": temperature,
                "system": system,
                "messages": [{"role": "user", "content": prompt}],
            }
            if top_p is not None:
                body["top_p"] = top_p
            return body

        if "amazon.nova" in self._model_id:
            inference = {"maxTokens": max_tokens, "temperature": temperature}
            if top_p is not None:
                inference["topP"] = top_p
            return {
                "system": [{"text": system}],
                "messages": [{"role": "user", "content": [{"text": prompt}]}],
                "inferenceConfig": inference,
            }

        if "amazon.titan" in self._model_id:
            return {
                "inputText": f"{system}\n\n{prompt}",
                "textGenerationConfig": {
                    "maxTokenCount": max_tokens,
                    "temperature": temperature,
                },
            }

        raise ConfigurationError(f"Unsupported model family: {self._model_id}")

    def _invoke_model(self, body: Dict[str, Any]) -> Any:
        """Call the model and read its body. Runs in a worker thread."""
        response = self._client.invoke_model(
            modelId=self._model_id,
            body=json.dumps(body),
            contentType="application/json",
            accept="application/json",
        )
        stream = response.get("body")
        if stream is None:
            return None
        return stream.read() if hasattr(stream, "read") else stream

    @staticmethod
    def _split_params(
        params: Mapping[str, Any],
    ) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        """Separate generation settings from prompt preferences."""
        generation = {k: v for k, v in params.items() if k in GENERATION_KEYS}
        prompt_params = {k: v for k, v in params.items() if k not in GENERATION_KEYS}
        return generation, prompt_params
