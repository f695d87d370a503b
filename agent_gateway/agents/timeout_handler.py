"""
Upstream call timeout handler.

Sandi Metz Principles:
- Single Responsibility: Bound upstream call duration
- Small methods: Each method < 10 lines
- Clear naming: Self-documenting code
"""

import asyncio
from typing import Awaitable, Callable, TypeVar

from agent_gateway.exceptions import UpstreamTimeoutError
from agent_gateway.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class TimeoutConfig:
    """Configuration for timeout handling."""

    def __init__(self, timeout_seconds: float = 20.0):
        """
        Initialize timeout configuration.

        Args:
            timeout_seconds: Timeout in seconds (default: 20)
        """
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        self.timeout_seconds = timeout_seconds


class TimeoutHandler:
    """
    Handler for bounding upstream calls.

    Wraps async operations with timeout protection. Never retries.
    """

    def __init__(self, config: TimeoutConfig | None = None):
        """
        Initialize timeout handler.

        Args:
            config: Timeout configuration (creates default if None)
        """
        self._config = config or TimeoutConfig()

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        timeout_seconds: float | None = None,
    ) -> T:
        """
        Execute operation with timeout.

        Args:
            operation: Async function to execute
            timeout_seconds: Optional override timeout (uses config if None)

        Returns:
            Operation result

        Raises:
            UpstreamTimeoutError: If operation times out
        """
        timeout = timeout_seconds or self._config.timeout_seconds

        try:
            return await asyncio.wait_for(operation(), timeout=timeout)
        except asyncio.TimeoutError as e:
            logger.error("Upstream call timed out", timeout=timeout)
            raise UpstreamTimeoutError(
                f"Upstream call timed out after {timeout} seconds"
            ) from e

    def get_timeout(self) -> float:
        """
        Get configured timeout value.

        Returns:
            Timeout in seconds
        """
        return self._config.timeout_seconds
