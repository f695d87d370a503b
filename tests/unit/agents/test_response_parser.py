"""
Tests for agent response parser.
"""

import json

import pytest

from agent_gateway.agents.response_parser import AgentResponseParser
from agent_gateway.exceptions import ResponseParseError
from agent_gateway.models.agent import AgentPersona, BackendVariant

SHOPPING = AgentPersona.SHOPPING_ASSISTANT

ITEMS_TEXT = """Here are my picks:
```json
{"items": [
  {"productId": "p-42", "name": "Sony WH-CH720N", "score": 0.92},
  {"productId": "p-17", "name": "JBL Tune 760NC", "score": 0.85}
]}
```"""


def chunk(text: str, citations=None) -> dict:
    event = {"chunk": {"bytes": text.encode("utf-8")}}
    if citations is not None:
        event["chunk"]["attribution"] = {"citations": citations}
    return event


class TestParseAgentCompletion:
    """Test conversational responses."""

    def test_joins_chunks_in_order(self):
        response = {
            "sessionId": "sess-1",
            "completion": [chunk("Hello, "), {"trace": {}}, chunk("shopper!")],
        }

        result = AgentResponseParser.parse_agent_completion(response, SHOPPING, "sess-1")

        assert result.text == "Hello, shopper!"
        assert result.variant == BackendVariant.CONVERSATIONAL
        assert result.session_id == "sess-1"
        assert result.raw["chunkCount"] == 2
        assert result.structured_items == []

    def test_collects_citations(self):
        response = {"completion": [chunk("Answer", citations=[{"ref": 1}])]}

        result = AgentResponseParser.parse_agent_completion(response, SHOPPING, "s-1")

        assert result.raw["citations"] == [{"ref": 1}]
        assert result.raw["sessionId"] == "s-1"

    def test_extracts_items_from_completion(self):
        response = {"completion": [chunk(ITEMS_TEXT)]}

        result = AgentResponseParser.parse_agent_completion(response, SHOPPING, "s-1")

        assert [item.id for item in result.structured_items] == ["p-42", "p-17"]

    def test_missing_completion_raises(self):
        with pytest.raises(ResponseParseError):
            AgentResponseParser.parse_agent_completion({"sessionId": "s"}, SHOPPING, "s")

    def test_non_bytes_chunk_raises(self):
        response = {"completion": [{"chunk": {"bytes": 12345}}]}

        with pytest.raises(ResponseParseError):
            AgentResponseParser.parse_agent_completion(response, SHOPPING, "s")


class TestParseModelBody:
    """Test direct model responses."""

    def test_anthropic_messages(self):
        body = {
            "id": "msg_1",
            "content": [{"type": "text", "text": "Best pick: "}, {"type": "text", "text": "Sony"}],
            "stop_reason": "end_turn",
        }

        result = AgentResponseParser.parse_model_body(body, SHOPPING)

        assert result.text == "Best pick: Sony"
        assert result.variant == BackendVariant.DIRECT_MODEL
        assert result.session_id is None
        assert result.raw == body

    def test_nova_output(self):
        body = {"output": {"message": {"role": "assistant", "content": [{"text": "Nova says hi"}]}}}

        result = AgentResponseParser.parse_model_body(body, SHOPPING)

        assert result.text == "Nova says hi"

    def test_titan_results(self):
        body = {"results": [{"outputText": "Titan text", "tokenCount": 3}]}

        assert AgentResponseParser.parse_model_body(body, SHOPPING).text == "Titan text"

    def test_unknown_envelope_raises(self):
        with pytest.raises(ResponseParseError):
            AgentResponseParser.parse_model_body({"completion": "old style"}, SHOPPING)

    def test_non_object_body_raises(self):
        with pytest.raises(ResponseParseError):
            AgentResponseParser.parse_model_body(["not", "an", "object"], SHOPPING)

    def test_content_not_a_list_raises(self):
        with pytest.raises(ResponseParseError):
            AgentResponseParser.parse_model_body({"content": "text"}, SHOPPING)

    def test_empty_titan_results_raises(self):
        with pytest.raises(ResponseParseError):
            AgentResponseParser.parse_model_body({"results": []}, SHOPPING)


class TestDecodeBody:
    """Test raw body decoding."""

    def test_decodes_bytes(self):
        assert AgentResponseParser.decode_body(b'{"a": 1}') == {"a": 1}

    def test_decodes_string(self):
        assert AgentResponseParser.decode_body('{"a": 1}') == {"a": 1}

    def test_invalid_json_raises(self):
        with pytest.raises(ResponseParseError):
            AgentResponseParser.decode_body(b"<html>502 Bad Gateway</html>")

    def test_none_raises(self):
        with pytest.raises(ResponseParseError):
            AgentResponseParser.decode_body(None)


class TestExtractItems:
    """Test structured item extraction."""

    def test_free_text_has_no_items(self):
        assert AgentResponseParser.extract_items("Just some advice.") == []

    def test_bracketed_prose_is_not_json(self):
        assert AgentResponseParser.extract_items("[Note] prices vary by seller") == []

    def test_untagged_fence_is_free_text(self):
        text = "Install it with:\n```\npip install widget\n```\nThen run it."

        assert AgentResponseParser.extract_items(text) == []

    def test_other_language_fences_are_free_text(self):
        text = "Example:\n```python\nprint(1)\n```\nand\n```bash\nls\n```"

        assert AgentResponseParser.extract_items(text) == []

    def test_json_fence_after_other_fence(self):
        text = "Run:\n```bash\nls\n```\nResults:\n" + ITEMS_TEXT.split(":\n", 1)[1]

        items = AgentResponseParser.extract_items(text)

        assert [item.id for item in items] == ["p-42", "p-17"]

    def test_fenced_items(self):
        items = AgentResponseParser.extract_items(ITEMS_TEXT)

        assert items[0].id == "p-42"
        assert items[0].label == "Sony WH-CH720N"
        assert items[0].score == pytest.approx(0.92)

    def test_bare_array_with_defaults(self):
        text = json.dumps([{"title": "First"}, {"sku": "X-2"}])

        items = AgentResponseParser.extract_items(text)

        assert items[0].id == "0"
        assert items[0].label == "First"
        assert items[0].score == 0.0
        assert items[1].id == "X-2"
        assert items[1].label == "X-2"

    def test_recommendations_key(self):
        text = json.dumps({"recommendations": [{"id": 7, "label": "Lamp", "confidence": "0.5"}]})

        items = AgentResponseParser.extract_items(text)

        assert items[0].id == "7"
        assert items[0].score == 0.5

    def test_malformed_json_raises(self):
        with pytest.raises(ResponseParseError):
            AgentResponseParser.extract_items('{"items": [{"id": 1},]')

    def test_non_numeric_score_raises(self):
        with pytest.raises(ResponseParseError):
            AgentResponseParser.extract_items('{"items": [{"id": 1, "score": "high"}]}')

    def test_non_object_item_raises(self):
        with pytest.raises(ResponseParseError):
            AgentResponseParser.extract_items('{"items": ["just a string"]}')

    def test_scalar_payload_raises(self):
        with pytest.raises(ResponseParseError):
            AgentResponseParser.extract_items("```json\n42\n```")
