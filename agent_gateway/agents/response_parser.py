"""
Agent response parser.

Sandi Metz Principles:
- Single Responsibility: Parse and normalize backend responses
- Small methods: Each envelope handled separately
- Clear naming: Self-documenting code
"""

import json
import re
from typing import Any, Dict, List, Mapping, Optional

from agent_gateway.exceptions import ResponseParseError
from agent_gateway.models.agent import (
    AgentPersona,
    BackendVariant,
    NormalizedAgentResponse,
    StructuredItem,
)

_JSON_FENCE = re.compile(r"```json[ \t]*\n(.*?)```", re.DOTALL | re.IGNORECASE)
_JSON_ARRAY = re.compile(r"^\[\s*[\{\]]")

ITEM_LIST_KEYS = ("items", "recommendations", "products", "results")
ITEM_ID_KEYS = ("id", "productId", "product_id", "sku")
ITEM_LABEL_KEYS = ("label", "name", "title")
ITEM_SCORE_KEYS = ("score", "confidence", "relevance")


class AgentResponseParser:
    """
    Parser for backend responses.

    Converts each backend envelope into NormalizedAgentResponse.
    Any shape it does not recognize raises ResponseParseError.
    """

    @staticmethod
    def parse_agent_completion(
        response: Any, agent: AgentPersona, session_id: str
    ) -> NormalizedAgentResponse:
        """
        Parse a collected ``invoke_agent`` response.

        Args:
            response: Mapping with a ``completion`` list of stream events
            agent: Agent persona
            session_id: Conversation session

        Returns:
            Normalized response
        """
        if not isinstance(response, Mapping) or "completion" not in response:
            raise ResponseParseError("agent response has no completion stream")

        events = response["completion"]
        if not isinstance(events, list):
            raise ResponseParseError("agent completion is not a list of events")

        chunks: List[str] = []
        citations: List[Any] = []
        for event in events:
            if not isinstance(event, Mapping):
                raise ResponseParseError(f"unexpected stream event: {type(event).__name__}")
            chunk = event.get("chunk")
            if chunk is None:
                continue
            chunks.append(AgentResponseParser._decode_chunk(chunk))
            citations.extend(AgentResponseParser._extract_citations(chunk))

        text = "".join(chunks)
        return NormalizedAgentResponse(
            text=text,
            structured_items=AgentResponseParser.extract_items(text),
            raw={
                "sessionId": response.get("sessionId", session_id),
                "completion": text,
                "citations": citations,
                "chunkCount": len(chunks),
            },
            variant=BackendVariant.CONVERSATIONAL,
            agent=agent,
            session_id=session_id,
        )

    @staticmethod
    def parse_model_body(body: Any, agent: AgentPersona) -> NormalizedAgentResponse:
        """
        Parse an ``invoke_model`` response body.

        Recognizes Anthropic Messages, Amazon Nova and Titan envelopes.

        Args:
            body: Decoded JSON body
            agent: Agent persona

        Returns:
            Normalized response
        """
        if not isinstance(body, Mapping):
            raise ResponseParseError("model response body is not a JSON object")

        text = AgentResponseParser._extract_model_text(body)
        return NormalizedAgentResponse(
            text=text,
            structured_items=AgentResponseParser.extract_items(text),
            raw=dict(body),
            variant=BackendVariant.DIRECT_MODEL,
            agent=agent,
        )

    @staticmethod
    def decode_body(payload: Any) -> Dict[str, Any]:
        """
        Decode a raw model body into JSON.

        Args:
            payload: Bytes or string body

        Returns:
            Decoded JSON object
        """
        if isinstance(payload, (bytes, bytearray)):
            try:
                payload = payload.decode("utf-8")
            except UnicodeDecodeError as e:
                raise ResponseParseError(f"body is not UTF-8: {e}") from e
        if not isinstance(payload, str):
            raise ResponseParseError(f"unexpected body type: {type(payload).__name__}")
        try:
            return json.loads(payload)
        except json.JSONDecodeError as e:
            raise ResponseParseError(f"body is not valid JSON: {e}") from e

    @staticmethod
    def extract_items(text: str) -> List[StructuredItem]:
        """
        Extract ranked items from a JSON payload in the text.

        Free text yields no items.

        Args:
            text: Response text

        Returns:
            Ordered structured items
        """
        candidate = AgentResponseParser._json_candidate(text)
        if candidate is None:
            return []

        try:
            data = json.loads(candidate)
        except json.JSONDecodeError as e:
            raise ResponseParseError(f"malformed JSON in response: {e}") from e

        entries = AgentResponseParser._item_list(data)
        return [
            AgentResponseParser._to_item(entry, position)
            for position, entry in enumerate(entries)
        ]

    @staticmethod
    def _decode_chunk(chunk: Any) -> str:
        if not isinstance(chunk, Mapping):
            raise ResponseParseError("stream chunk is not an object")
        data = chunk.get("bytes")
        if data is None:
            return ""
        if not isinstance(data, (bytes, bytearray)):
            raise ResponseParseError("stream chunk bytes have unexpected type")
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ResponseParseError(f"stream chunk is not UTF-8: {e}") from e

    @staticmethod
    def _extract_citations(chunk: Mapping) -> List[Any]:
        attribution = chunk.get("attribution") or {}
        if not isinstance(attribution, Mapping):
            return []
        return list(attribution.get("citations", []))

    @staticmethod
    def _extract_model_text(body: Mapping) -> str:
        if "content" in body:
            return AgentResponseParser._join_blocks(body["content"], "content")

        if "output" in body:
            try:
                blocks = body["output"]["message"]["content"]
            except (KeyError, TypeError) as e:
                raise ResponseParseError("nova output has no message content") from e
            return AgentResponseParser._join_blocks(blocks, "output")

        if "results" in body:
            results = body["results"]
            if not isinstance(results, list) or not results:
                raise ResponseParseError("titan results are empty")
            text = results[0].get("outputText") if isinstance(results[0], Mapping) else None
            if not isinstance(text, str):
                raise ResponseParseError("titan result has no outputText")
            return text

        raise ResponseParseError(
            f"unrecognized model response envelope: keys={sorted(body.keys())}"
        )

    @staticmethod
    def _join_blocks(blocks: Any, where: str) -> str:
        if not isinstance(blocks, list):
            raise ResponseParseError(f"{where} is not a list of blocks")
        parts = []
        for block in blocks:
            if not isinstance(block, Mapping):
                raise ResponseParseError(f"{where} block is not an object")
            text = block.get("text")
            if text is None:
                continue
            if not isinstance(text, str):
                raise ResponseParseError(f"{where} block text is not a string")
            parts.append(text)
        return "".join(parts)

    @staticmethod
    def _json_candidate(text: str) -> Optional[str]:
        match = _JSON_FENCE.search(text)
        if match:
            return match.group(1).strip()
        stripped = text.strip()
        if stripped.startswith("{") or _JSON_ARRAY.match(stripped):
            return stripped
        return None

    @staticmethod
    def _item_list(data: Any) -> List[Any]:
        if isinstance(data, list):
            return data
        if isinstance(data, Mapping):
            for key in ITEM_LIST_KEYS:
                value = data.get(key)
                if isinstance(value, list):
                    return value
            return []
        raise ResponseParseError(f"unexpected JSON payload: {type(data).__name__}")

    @staticmethod
    def _to_item(entry: Any, position: int) -> StructuredItem:
        if not isinstance(entry, Mapping):
            raise ResponseParseError(f"item {position} is not an object")

        item_id = _first(entry, ITEM_ID_KEYS)
        item_id = str(item_id) if item_id is not None else str(position)
        label = _first(entry, ITEM_LABEL_KEYS)
        score = _first(entry, ITEM_SCORE_KEYS)

        try:
            score_value = float(score) if score is not None else 0.0
        except (TypeError, ValueError) as e:
            raise ResponseParseError(f"item {position} has non-numeric score") from e

        return StructuredItem(
            id=item_id,
            label=str(label) if label is not None else item_id,
            score=score_value,
        )


def _first(entry: Mapping, keys) -> Any:
    for key in keys:
        if entry.get(key) is not None:
            return entry[key]
    return None
