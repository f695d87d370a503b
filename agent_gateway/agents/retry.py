"""
Retry policy for upstream agent calls.

Sandi Metz Principles:
- Single Responsibility: Manage retry logic
- Small methods: Each method < 15 lines
- Dependency Injection: Configuration and sleep injected
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple, TypeVar

from agent_gateway.exceptions import (
    UpstreamError,
    UpstreamRateLimitError,
    UpstreamUnavailableError,
)
from agent_gateway.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

RetryCallback = Callable[[int, Exception, float], None]


@dataclass
class RetryConfig:
    """Retry configuration."""

    max_retries: int = 2
    initial_delay: float = 0.5
    max_delay: float = 8.0
    exponential_base: float = 2.0

    @property
    def max_attempts(self) -> int:
        """Total attempts including the first one."""
        return self.max_retries + 1


class RetryHandler:
    """
    Exponential backoff retry handler.

    Only transient upstream errors are retried. Throttling honors the
    server's retry hint when one was given.
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize retry handler.

        Args:
            config: Retry configuration (uses defaults if None)
            sleep: Async sleep function
        """
        self._config = config or RetryConfig()
        self._sleep = sleep

    @property
    def config(self) -> RetryConfig:
        """Get retry configuration."""
        return self._config

    async def execute(
        self,
        func: Callable[[], Awaitable[T]],
        on_retry: Optional[RetryCallback] = None,
    ) -> Tuple[T, int]:
        """
        Execute function with retry logic.

        Args:
            func: Async function to execute
            on_retry: Called with (attempt, error, delay) before each retry

        Returns:
            Tuple of (result, attempts made)

        Raises:
            UpstreamUnavailableError: Transient failures exhausted the budget
            UpstreamRateLimitError: Throttling exhausted the budget
            Exception: Non-retryable errors, unchanged
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return await func(), attempt
            except UpstreamError as e:
                if not e.retryable:
                    raise
                if attempt >= self._config.max_attempts:
                    raise self._exhausted(e, attempt) from e

                delay = self.calculate_delay(attempt, e)
                logger.warning(
                    f"Attempt {attempt} failed, retrying in {delay:.2f}s",
                    error=str(e),
                    kind=e.kind,
                )
                if on_retry:
                    on_retry(attempt, e, delay)
                await self._sleep(delay)

    def calculate_delay(self, attempt: int, error: Exception | None = None) -> float:
        """
        Calculate delay before the next attempt.

        Args:
            attempt: Attempt that just failed (1-indexed)
            error: The failure, used for server retry hints

        Returns:
            Delay in seconds
        """
        if isinstance(error, UpstreamRateLimitError) and error.retry_after is not None:
            return min(error.retry_after, self._config.max_delay)

        delay = self._config.initial_delay * (
            self._config.exponential_base ** (attempt - 1)
        )
        return min(delay, self._config.max_delay)

    @staticmethod
    def _exhausted(error: UpstreamError, attempts: int) -> UpstreamError:
        """Error surfaced once the retry budget is spent."""
        logger.error(f"All {attempts} attempts failed", error=str(error))
        if isinstance(error, UpstreamRateLimitError):
            return UpstreamRateLimitError(
                f"Upstream still throttling after {attempts} attempts: {error.message}",
                retry_after=error.retry_after,
            )
        return UpstreamUnavailableError(
            f"Upstream unavailable after {attempts} attempts: {error.message}"
        )
