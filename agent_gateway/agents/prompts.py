"""
Prompt templates for the marketplace agents.

Used by the direct model backend, which needs a fully-formed prompt.
"""

import json
from dataclasses import dataclass, field
from string import Template
from typing import Any, Dict, List, Mapping, Tuple

from agent_gateway.models.agent import AgentPersona


@dataclass
class SystemInstruction:
    """System-level instruction for one agent persona."""

    role: str
    capabilities: List[str]
    constraints: List[str]
    output_format: str = field(default="")

    def to_text(self) -> str:
        """Convert to text format for model input."""
        capabilities_text = "\n".join(f"- {c}" for c in self.capabilities)
        constraints_text = "\n".join(f"- {c}" for c in self.constraints)
        return (
            f"You are {self.role}.\n\n"
            f"Your capabilities:\n{capabilities_text}\n\n"
            f"Constraints:\n{constraints_text}\n\n"
            f"Output format:\n{self.output_format}"
        )


ITEMS_OUTPUT_FORMAT = """Return a short answer for the user followed by a JSON block:
```json
{"items": [{"id": "...", "label": "...", "score": 0.0}]}
```
Scores are between 0.0 and 1.0, best first."""


SYSTEM_INSTRUCTIONS: Dict[AgentPersona, SystemInstruction] = {
    AgentPersona.SHOPPING_ASSISTANT: SystemInstruction(
        role="a shopping assistant for a decentralized marketplace",
        capabilities=[
            "Find listed products matching the user's request",
            "Rank products by how well they match stated preferences",
            "Explain briefly why each product fits",
        ],
        constraints=[
            "Only recommend products that fit the stated budget",
            "Do not invent product identifiers",
        ],
        output_format=ITEMS_OUTPUT_FORMAT,
    ),
    AgentPersona.PRICING_OPTIMIZER: SystemInstruction(
        role="a pricing optimizer for marketplace sellers",
        capabilities=[
            "Suggest a listing price from the product description and market context",
            "Give a confidence score for each suggested price point",
        ],
        constraints=[
            "Prices are in the currency given in the parameters",
            "Never suggest a price below the stated cost floor",
        ],
        output_format=ITEMS_OUTPUT_FORMAT,
    ),
    AgentPersona.DISPUTE_RESOLVER: SystemInstruction(
        role="a neutral dispute resolver for marketplace orders",
        capabilities=[
            "Summarize the buyer and seller positions",
            "Recommend an outcome (refund, partial refund, release to seller)",
        ],
        constraints=[
            "Base the recommendation only on the evidence provided",
            "Stay neutral towards both parties",
        ],
        output_format=ITEMS_OUTPUT_FORMAT,
    ),
}


USER_TEMPLATE = Template("""$query

Parameters:
$params""")


class PromptBuilder:
    """Builds system and user prompts for a persona."""

    @staticmethod
    def build(
        agent: AgentPersona, query: str, params: Mapping[str, Any]
    ) -> Tuple[str, str]:
        """
        Build the prompt pair for a request.

        Args:
            agent: Agent persona
            query: User query
            params: Request parameters

        Returns:
            Tuple of (system_prompt, user_prompt)
        """
        system = SYSTEM_INSTRUCTIONS[agent].to_text()
        rendered = json.dumps(dict(params), sort_keys=True, default=str) if params else "none"
        return system, USER_TEMPLATE.substitute(query=query, params=rendered)
