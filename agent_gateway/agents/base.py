"""
Agent invoker base class and interface.

Sandi Metz Principles:
- Single Responsibility: Invoker abstraction
- Interface Segregation: Minimal invoker interface
- Dependency Inversion: Depend on abstraction, not concrete classes
"""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, TypeVar

from botocore.exceptions import BotoCoreError, ClientError

from agent_gateway.agents.errors import map_botocore_error, map_client_error
from agent_gateway.agents.timeout_handler import TimeoutHandler
from agent_gateway.models.agent import BackendVariant, NormalizedAgentResponse
from agent_gateway.models.query import AgentQuery
from agent_gateway.utils.logger import get_logger, log_agent_call

logger = get_logger(__name__)

T = TypeVar("T")


class BaseAgentInvoker(ABC):
    """
    Abstract base class for agent backends.

    Each variant calls its upstream once and normalizes the answer.
    Retrying is left to the caller.
    """

    variant: BackendVariant

    def __init__(self, timeout_handler: TimeoutHandler | None = None):
        """
        Initialize invoker.

        Args:
            timeout_handler: Bounds each upstream call
        """
        self._timeout = timeout_handler or TimeoutHandler()

    @abstractmethod
    async def invoke(self, request: AgentQuery) -> NormalizedAgentResponse:
        """
        Call the backend for a request.

        Args:
            request: Agent query

        Returns:
            Normalized response

        Raises:
            UpstreamError: If the call fails or times out
            ResponseParseError: If the response has an unexpected shape
        """
        pass

    def get_name(self) -> str:
        """
        Get invoker name.

        Returns:
            Backend variant name (e.g., "conversational")
        """
        return self.variant.value

    async def _run_blocking(
        self, request: AgentQuery, func: Callable[..., T], *args: Any
    ) -> T:
        """
        Run a blocking AWS call in a worker thread under the timeout.

        Args:
            request: Query being served (for logging)
            func: Blocking callable
            *args: Arguments for ``func``

        Returns:
            Result of ``func``
        """
        start = time.perf_counter()
        context = f"{self.get_name()}:{request.agent.value}"
        try:
            return await self._timeout.execute(
                lambda: asyncio.to_thread(self._guarded, context, func, *args)
            )
        finally:
            log_agent_call(
                self.get_name(),
                request.agent.value,
                round((time.perf_counter() - start) * 1000, 2),
            )

    @staticmethod
    def _guarded(context: str, func: Callable[..., T], *args: Any) -> T:
        """Translate botocore failures into gateway errors."""
        try:
            return func(*args)
        except ClientError as e:
            raise map_client_error(e, context) from e
        except BotoCoreError as e:
            raise map_botocore_error(e, context) from e
