"""
Per-caller token bucket rate limiting.

Sandi Metz Principles:
- Single Responsibility: Admission control
- Small methods: Refill and consume isolated
- Dependency Injection: Configuration and clock injected
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Dict

from agent_gateway.exceptions import ValidationError
from agent_gateway.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class RateLimitConfig:
    """Rate limit configuration."""

    capacity: float = 20.0
    refill_per_second: float = 0.5

    def __post_init__(self):
        if self.capacity <= 0:
            raise ValueError("capacity must be positive")
        if self.refill_per_second <= 0:
            raise ValueError("refill_per_second must be positive")


@dataclass
class RateBucket:
    """Token bucket state of one caller."""

    caller_id: str
    tokens: float
    last_refill: float


@dataclass(frozen=True)
class RateDecision:
    """Outcome of an admission check."""

    allowed: bool
    retry_after: float = 0.0
    remaining: float = 0.0

    @classmethod
    def allow(cls, remaining: float) -> "RateDecision":
        """Create an allowed decision."""
        return cls(allowed=True, remaining=remaining)

    @classmethod
    def deny(cls, retry_after: float, remaining: float) -> "RateDecision":
        """Create a denied decision."""
        return cls(allowed=False, retry_after=retry_after, remaining=remaining)


class RateLimiter:
    """
    Token bucket rate limiter keyed by caller.

    Buckets start full and refill lazily on each check.
    Never blocks: denied callers get a retry hint.
    """

    def __init__(
        self,
        config: RateLimitConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize rate limiter.

        Args:
            config: Rate limit configuration
            clock: Monotonic time source in seconds
        """
        self._config = config or RateLimitConfig()
        self._clock = clock
        self._buckets: Dict[str, RateBucket] = {}
        self._lock = asyncio.Lock()

    @property
    def config(self) -> RateLimitConfig:
        """Get rate limit configuration."""
        return self._config

    async def check_and_consume(self, caller_id: str, cost: float = 1) -> RateDecision:
        """
        Refill the caller's bucket and try to take ``cost`` tokens.

        Args:
            caller_id: Caller identity
            cost: Tokens this request costs

        Returns:
            Allowed or denied decision

        Raises:
            ValidationError: If cost is not positive or exceeds capacity
        """
        self._validate_cost(cost)

        async with self._lock:
            bucket = self._refill(caller_id)
            if bucket.tokens >= cost:
                bucket.tokens -= cost
                return RateDecision.allow(remaining=bucket.tokens)

            retry_after = (cost - bucket.tokens) / self._config.refill_per_second
            logger.warning(
                "Rate limit exceeded",
                caller_id=caller_id,
                tokens=round(bucket.tokens, 3),
                retry_after=round(retry_after, 3),
            )
            return RateDecision.deny(retry_after=retry_after, remaining=bucket.tokens)

    async def remaining(self, caller_id: str) -> float:
        """
        Get tokens currently available to a caller.

        Args:
            caller_id: Caller identity

        Returns:
            Available tokens
        """
        async with self._lock:
            return self._refill(caller_id).tokens

    async def prune_idle(self, idle_seconds: float) -> int:
        """
        Drop buckets that are full and unused for ``idle_seconds``.

        A dropped bucket is recreated full, so no state is lost.

        Args:
            idle_seconds: Minimum idle time

        Returns:
            Number of buckets removed
        """
        async with self._lock:
            now = self._clock()
            idle = [
                caller_id
                for caller_id, bucket in self._buckets.items()
                if now - bucket.last_refill >= idle_seconds
                and self._tokens_at(bucket, now) >= self._config.capacity
            ]
            for caller_id in idle:
                del self._buckets[caller_id]
            return len(idle)

    @property
    def bucket_count(self) -> int:
        """Get number of tracked callers."""
        return len(self._buckets)

    def _validate_cost(self, cost: float) -> None:
        if cost <= 0:
            raise ValidationError("Request cost must be positive")
        if cost > self._config.capacity:
            raise ValidationError(
                f"Request cost {cost} exceeds bucket capacity {self._config.capacity}"
            )

    def _refill(self, caller_id: str) -> RateBucket:
        """Get the caller's bucket refilled up to now. Caller holds the lock."""
        now = self._clock()
        bucket = self._buckets.get(caller_id)
        if bucket is None:
            bucket = RateBucket(caller_id, self._config.capacity, now)
            self._buckets[caller_id] = bucket
            return bucket

        bucket.tokens = self._tokens_at(bucket, now)
        bucket.last_refill = now
        return bucket

    def _tokens_at(self, bucket: RateBucket, now: float) -> float:
        elapsed = max(0.0, now - bucket.last_refill)
        return min(
            self._config.capacity,
            bucket.tokens + elapsed * self._config.refill_per_second,
        )
