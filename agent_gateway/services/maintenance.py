"""
Background maintenance for the gateway.

Sandi Metz Principles:
- Single Responsibility: Periodic housekeeping
- Clear lifecycle: start() and stop() own the background task
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

from agent_gateway.services.gateway import AgentGateway
from agent_gateway.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class MaintenanceReport:
    """Outcome of one maintenance pass."""

    purged_entries: int = 0
    pruned_buckets: int = 0
    cache_size: Optional[int] = None


class MaintenanceTask:
    """
    Periodically purges expired cache entries and idle rate buckets.
    """

    def __init__(
        self,
        gateway: AgentGateway,
        interval_seconds: float = 60.0,
        bucket_idle_seconds: float = 600.0,
    ):
        """
        Initialize maintenance task.

        Args:
            gateway: Gateway whose cache and limiter are maintained
            interval_seconds: Delay between passes
            bucket_idle_seconds: Idle time before a full bucket is dropped
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._gateway = gateway
        self._interval = interval_seconds
        self._bucket_idle = bucket_idle_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        """Check if the background loop is active."""
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the background loop. No-op if already running."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info("Maintenance task started", interval=self._interval)

    async def stop(self) -> None:
        """Cancel the background loop and wait for it to exit."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Maintenance task stopped")

    async def run_once(self) -> MaintenanceReport:
        """
        Run one maintenance pass.

        Returns:
            What was cleaned up
        """
        report = MaintenanceReport()
        cache = self._gateway.cache
        if cache is not None:
            report.purged_entries = await cache.purge_expired()
            report.cache_size = await cache.size()

        report.pruned_buckets = await self._gateway.rate_limiter.prune_idle(
            self._bucket_idle
        )

        logger.info(
            "Maintenance pass complete",
            purged_entries=report.purged_entries,
            pruned_buckets=report.pruned_buckets,
            cache_size=report.cache_size,
            in_flight=self._gateway.coalescer.in_flight_count,
            **self._gateway.stats.to_dict(),
        )
        return report

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.run_once()
            except Exception as e:
                logger.error("Maintenance pass failed", error=str(e))
