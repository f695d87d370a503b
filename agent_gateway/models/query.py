"""
Query request and validation models.

Sandi Metz Principles:
- Small classes focused on data validation
- Clear property names
- Single responsibility per model
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from agent_gateway.models.agent import AgentPersona, BackendVariant
from agent_gateway.utils.hasher import generate_fingerprint


class AgentQuery(BaseModel):
    """Incoming AI query with validation."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    caller_id: str = Field(
        ..., min_length=1, max_length=256, description="Caller identity"
    )
    backend_variant: BackendVariant = Field(
        default=BackendVariant.CONVERSATIONAL, description="Backend to call"
    )
    agent: AgentPersona = Field(
        default=AgentPersona.SHOPPING_ASSISTANT, description="Agent persona"
    )
    query: str = Field(
        ...,
        min_length=1,
        max_length=10000,
        description="User query text",
        examples=["Find wireless headphones under 100 USDC"],
    )
    params: Dict[str, Any] = Field(
        default_factory=dict, description="Preferences and generation parameters"
    )
    session_id: Optional[str] = Field(
        None,
        min_length=2,
        max_length=100,
        description="Conversation session to continue (conversational only)",
    )
    use_cache: bool = Field(default=True, description="Enable cache lookup and store")

    @field_validator("query")
    @classmethod
    def validate_query(cls, v: str) -> str:
        """Validate and normalize query."""
        v = v.strip()
        if not v:
            raise ValueError("Query cannot be empty")
        return v

    @field_validator("caller_id")
    @classmethod
    def validate_caller_id(cls, v: str) -> str:
        """Validate caller id."""
        v = v.strip()
        if not v:
            raise ValueError("Caller id cannot be empty")
        return v

    @property
    def is_conversational(self) -> bool:
        """Check if the query targets the conversational backend."""
        return self.backend_variant == BackendVariant.CONVERSATIONAL

    def fingerprint(self) -> str:
        """
        Fingerprint of the request.

        A continued conversation folds its session id into the parameter
        set so turns of different conversations never share a result.

        Returns:
            Hex fingerprint
        """
        params = dict(self.params)
        if self.is_conversational and self.session_id:
            params["__session_id"] = self.session_id
        return generate_fingerprint(
            self.backend_variant.value, self.agent.value, self.query, params
        )
