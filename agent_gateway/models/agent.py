"""
Agent backend and normalized response models.

Sandi Metz Principles:
- Small classes focused on agent interaction
- One result shape for every backend
- Clear naming conventions
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class BackendVariant(str, Enum):
    """Kinds of AI backend the gateway can call."""

    CONVERSATIONAL = "conversational"
    DIRECT_MODEL = "direct_model"


class AgentPersona(str, Enum):
    """Marketplace agents served by the gateway."""

    SHOPPING_ASSISTANT = "shopping_assistant"
    PRICING_OPTIMIZER = "pricing_optimizer"
    DISPUTE_RESOLVER = "dispute_resolver"


class StructuredItem(BaseModel):
    """One ranked item extracted from an agent answer."""

    id: str = Field(..., description="Item identifier")
    label: str = Field(..., description="Display label")
    score: float = Field(default=0.0, description="Relevance or confidence score")


class NormalizedAgentResponse(BaseModel):
    """Backend-agnostic agent response."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    text: str = Field(..., description="Response text")
    structured_items: List[StructuredItem] = Field(
        default_factory=list, description="Ordered items parsed from the response"
    )
    raw: Dict[str, Any] = Field(
        default_factory=dict, description="Raw backend payload"
    )
    variant: BackendVariant = Field(..., description="Backend that produced it")
    agent: AgentPersona = Field(..., description="Agent persona")
    session_id: Optional[str] = Field(
        None, description="Conversation session (conversational backend only)"
    )

    @property
    def has_items(self) -> bool:
        """Check if structured items were extracted."""
        return bool(self.structured_items)
