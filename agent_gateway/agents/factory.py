"""
Agent invoker factory.

Sandi Metz Principles:
- Single Responsibility: Create invoker instances from configuration
- Open/Closed: Easy to add new backends
- Dependency Inversion: Returns interface, not concrete class
"""

from typing import Dict, Optional

import boto3
from botocore.config import Config as BotoConfig

from agent_gateway.agents.conversational import AgentTarget, BedrockAgentInvoker
from agent_gateway.agents.direct_model import BedrockModelInvoker
from agent_gateway.agents.registry import InvokerRegistry
from agent_gateway.agents.timeout_handler import TimeoutConfig, TimeoutHandler
from agent_gateway.config import AppConfig, config
from agent_gateway.models.agent import AgentPersona
from agent_gateway.utils.logger import get_logger

logger = get_logger(__name__)


class InvokerFactory:
    """
    Builds Bedrock invokers from application configuration.
    """

    @staticmethod
    def agent_targets(settings: AppConfig) -> Dict[AgentPersona, AgentTarget]:
        """
        Map each persona to its configured Bedrock agent.

        Args:
            settings: Application configuration

        Returns:
            Targets for personas with an agent id
        """
        targets = {
            AgentPersona.SHOPPING_ASSISTANT: AgentTarget(
                settings.shopping_agent_id, settings.shopping_agent_alias_id
            ),
            AgentPersona.PRICING_OPTIMIZER: AgentTarget(
                settings.pricing_agent_id, settings.pricing_agent_alias_id
            ),
            AgentPersona.DISPUTE_RESOLVER: AgentTarget(
                settings.dispute_agent_id, settings.dispute_agent_alias_id
            ),
        }
        return {persona: t for persona, t in targets.items() if t.agent_id}

    @staticmethod
    def create_registry(
        settings: AppConfig | None = None,
        session: Optional[boto3.Session] = None,
    ) -> InvokerRegistry:
        """
        Create registry holding both backend variants.

        Args:
            settings: Application configuration (defaults to global config)
            session: boto3 session for custom credentials

        Returns:
            Invoker registry
        """
        settings = settings or config
        session = session or boto3.Session()
        boto_config = BotoConfig(
            region_name=settings.aws_region,
            connect_timeout=5,
            read_timeout=settings.invoke_timeout_seconds,
            # Retries are the gateway's decision
            retries={"max_attempts": 0},
        )
        timeout = TimeoutHandler(TimeoutConfig(settings.invoke_timeout_seconds))

        registry = InvokerRegistry()
        registry.register(
            BedrockAgentInvoker(
                client=session.client("bedrock-agent-runtime", config=boto_config),
                targets=InvokerFactory.agent_targets(settings),
                timeout_handler=timeout,
            )
        )
        registry.register(
            BedrockModelInvoker(
                client=session.client("bedrock-runtime", config=boto_config),
                model_id=settings.bedrock_model_id,
                max_tokens=settings.bedrock_max_tokens,
                temperature=settings.bedrock_temperature,
                timeout_handler=timeout,
            )
        )
        logger.info("Created Bedrock invokers", region=settings.aws_region)
        return registry
