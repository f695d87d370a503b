"""
Request coalescing.

Merges concurrent identical requests into one upstream call.

Sandi Metz Principles:
- Single Responsibility: In-flight call sharing
- Async-safe: Create-or-join is atomic under a lock
- Memory-bounded: Entries live only while a call runs
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Generic, Tuple, TypeVar

from agent_gateway.exceptions import InternalCoalescingError
from agent_gateway.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class InFlightRequest(Generic[T]):
    """A producer call currently running for one fingerprint."""

    fingerprint: str
    task: "asyncio.Task[T]"
    waiters: int = 0


@dataclass
class CoalescingStats:
    """Statistics for coalescing."""

    total_calls: int = 0
    coalesced: int = 0
    unique: int = 0

    @property
    def coalesce_rate(self) -> float:
        """Get share of calls that joined an in-flight request."""
        if self.total_calls == 0:
            return 0.0
        return self.coalesced / self.total_calls


class RequestCoalescer:
    """
    Runs at most one producer per fingerprint at a time.

    Callers arriving while a producer runs wait for its result, or its
    failure. Nothing is remembered once the call finishes.
    """

    def __init__(self, cancel_when_abandoned: bool = False):
        """
        Initialize coalescer.

        Args:
            cancel_when_abandoned: Cancel a shared call once every waiter
                has been cancelled
        """
        self._cancel_when_abandoned = cancel_when_abandoned
        self._in_flight: Dict[str, InFlightRequest] = {}
        self._lock = asyncio.Lock()
        self._stats = CoalescingStats()

    async def run_exclusive(
        self, fingerprint: str, producer: Callable[[], Awaitable[T]]
    ) -> T:
        """
        Run ``producer`` unless a call for ``fingerprint`` is in flight.

        Args:
            fingerprint: Request fingerprint
            producer: Async callable producing the result

        Returns:
            Shared producer result

        Raises:
            Exception: Whatever the shared producer raised
            InternalCoalescingError: If the shared call was cancelled
        """
        result, _ = await self.run(fingerprint, producer)
        return result

    async def run(
        self, fingerprint: str, producer: Callable[[], Awaitable[T]]
    ) -> Tuple[T, bool]:
        """
        Same as ``run_exclusive`` but also reports whether the call was shared.

        Returns:
            Tuple of (result, joined_existing_call)
        """
        in_flight, joined = await self._get_or_create(fingerprint, producer)
        return await self._wait(in_flight), joined

    async def _get_or_create(
        self, fingerprint: str, producer: Callable[[], Awaitable[T]]
    ) -> Tuple[InFlightRequest, bool]:
        async with self._lock:
            self._stats.total_calls += 1

            existing = self._in_flight.get(fingerprint)
            if existing is not None and not existing.task.done():
                existing.waiters += 1
                self._stats.coalesced += 1
                logger.debug(
                    "Joined in-flight request",
                    fingerprint=fingerprint[:16],
                    waiters=existing.waiters,
                )
                return existing, True

            self._stats.unique += 1
            task = asyncio.ensure_future(producer())
            in_flight = InFlightRequest(fingerprint=fingerprint, task=task, waiters=1)
            self._in_flight[fingerprint] = in_flight
            task.add_done_callback(lambda _: self._release(in_flight))
            return in_flight, False

    async def _wait(self, in_flight: InFlightRequest) -> T:
        try:
            return await asyncio.shield(in_flight.task)
        except asyncio.CancelledError:
            if in_flight.task.cancelled() and not self._current_task_cancelling():
                raise InternalCoalescingError(
                    f"Shared call for {in_flight.fingerprint[:16]} was cancelled"
                ) from None
            self._abandon(in_flight)
            raise
        finally:
            in_flight.waiters = max(0, in_flight.waiters - 1)

    def _abandon(self, in_flight: InFlightRequest) -> None:
        """Handle a waiter being cancelled."""
        remaining = in_flight.waiters - 1
        logger.debug(
            "Waiter abandoned request",
            fingerprint=in_flight.fingerprint[:16],
            remaining=remaining,
        )
        if self._cancel_when_abandoned and remaining <= 0:
            in_flight.task.cancel()

    def _release(self, in_flight: InFlightRequest) -> None:
        """Drop the entry once its call finished."""
        if self._in_flight.get(in_flight.fingerprint) is in_flight:
            del self._in_flight[in_flight.fingerprint]
        # Retrieve the exception so an unawaited failure is not reported
        if not in_flight.task.cancelled():
            in_flight.task.exception()

    @staticmethod
    def _current_task_cancelling() -> bool:
        task = asyncio.current_task()
        return task is not None and task.cancelling() > 0

    @property
    def in_flight_count(self) -> int:
        """Get number of calls currently in flight."""
        return len(self._in_flight)

    def is_in_flight(self, fingerprint: str) -> bool:
        """Check if a call is running for ``fingerprint``."""
        return fingerprint in self._in_flight

    @property
    def stats(self) -> CoalescingStats:
        """Get coalescing statistics."""
        return self._stats

    def reset_stats(self):
        """Reset statistics."""
        self._stats = CoalescingStats()
