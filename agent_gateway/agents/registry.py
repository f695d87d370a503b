"""
Agent invoker registry.

Sandi Metz Principles:
- Single Responsibility: Manage invoker instances
- Open/Closed: Easy to add/remove backends
- Dependency Inversion: Depends on invoker interface
"""

from typing import Dict, List

from agent_gateway.agents.base import BaseAgentInvoker
from agent_gateway.exceptions import ConfigurationError
from agent_gateway.models.agent import BackendVariant
from agent_gateway.utils.logger import get_logger

logger = get_logger(__name__)


class InvokerRegistry:
    """
    Registry of invokers keyed by backend variant.
    """

    def __init__(self):
        """Initialize empty invoker registry."""
        self._invokers: Dict[BackendVariant, BaseAgentInvoker] = {}

    def register(self, invoker: BaseAgentInvoker) -> None:
        """
        Register an invoker instance.

        Args:
            invoker: Invoker instance to register

        Raises:
            ConfigurationError: If the variant is already registered
        """
        variant = invoker.variant
        if variant in self._invokers:
            raise ConfigurationError(f"Backend '{variant.value}' is already registered")

        self._invokers[variant] = invoker
        logger.info(f"Registered backend: {variant.value}")

    def get(self, variant: BackendVariant) -> BaseAgentInvoker:
        """
        Get invoker by variant.

        Args:
            variant: Backend variant

        Returns:
            Invoker instance

        Raises:
            ConfigurationError: If variant not registered
        """
        invoker = self._invokers.get(variant)
        if not invoker:
            available = ", ".join(self.list_variants())
            raise ConfigurationError(
                f"Backend '{variant.value}' not found. Available backends: {available}"
            )
        return invoker

    def has(self, variant: BackendVariant) -> bool:
        """Check if a variant is registered."""
        return variant in self._invokers

    def list_variants(self) -> List[str]:
        """
        Get names of registered variants.

        Returns:
            Sorted variant names
        """
        return sorted(variant.value for variant in self._invokers)

    def __len__(self) -> int:
        return len(self._invokers)
