"""
Response cache contract and in-memory implementation.

Sandi Metz Principles:
- Single Responsibility: Fingerprint -> response storage with expiry
- Small methods: Each operation < 15 lines
- Dependency Injection: Clock injected
"""

import asyncio
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Callable, Optional

from agent_gateway.models.agent import NormalizedAgentResponse
from agent_gateway.models.cache_entry import CacheEntry
from agent_gateway.utils.logger import get_logger, log_cache_hit, log_cache_miss

logger = get_logger(__name__)


class ResponseCache(ABC):
    """
    Abstract response cache.

    Expired entries behave as absent.
    """

    name = "cache"

    @abstractmethod
    async def get(self, fingerprint: str) -> Optional[CacheEntry]:
        """
        Get live entry for fingerprint.

        Args:
            fingerprint: Request fingerprint

        Returns:
            Cache entry, or None if absent or expired
        """

    @abstractmethod
    async def put(
        self, fingerprint: str, response: NormalizedAgentResponse, ttl: float
    ) -> bool:
        """
        Store response, replacing any existing entry.

        Args:
            fingerprint: Request fingerprint
            response: Normalized response
            ttl: Time-to-live in seconds

        Returns:
            True if stored
        """

    @abstractmethod
    async def add(
        self, fingerprint: str, response: NormalizedAgentResponse, ttl: float
    ) -> bool:
        """
        Store response only if no live entry exists.

        Returns:
            True if inserted, False if a live entry was already there
        """

    @abstractmethod
    async def invalidate(self, fingerprint: str) -> bool:
        """
        Remove entry.

        Returns:
            True if an entry was removed
        """

    @abstractmethod
    async def purge_expired(self) -> int:
        """
        Remove expired entries.

        Returns:
            Number of entries removed
        """

    @abstractmethod
    async def size(self) -> int:
        """Get number of stored entries."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove all entries."""

    async def health_check(self) -> bool:
        """Check cache backend health."""
        return True


class InMemoryResponseCache(ResponseCache):
    """
    Process-local response cache.

    Optionally bounded: inserting past ``max_entries`` evicts the
    oldest entry.
    """

    name = "memory"

    def __init__(
        self,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize cache.

        Args:
            max_entries: Maximum entries kept (None = unbounded)
            clock: Time source in epoch seconds
        """
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = asyncio.Lock()
        self._evictions = 0

    async def get(self, fingerprint: str) -> Optional[CacheEntry]:
        async with self._lock:
            entry = self._entries.get(fingerprint)
            if entry is None:
                log_cache_miss(fingerprint)
                return None

            if entry.is_expired(self._clock()):
                del self._entries[fingerprint]
                log_cache_miss(fingerprint, expired=True)
                return None

            log_cache_hit(fingerprint, source=self.name)
            return entry

    async def put(
        self, fingerprint: str, response: NormalizedAgentResponse, ttl: float
    ) -> bool:
        async with self._lock:
            self._insert(fingerprint, response, ttl)
            return True

    async def add(
        self, fingerprint: str, response: NormalizedAgentResponse, ttl: float
    ) -> bool:
        async with self._lock:
            existing = self._entries.get(fingerprint)
            if existing is not None and not existing.is_expired(self._clock()):
                return False
            self._insert(fingerprint, response, ttl)
            return True

    async def invalidate(self, fingerprint: str) -> bool:
        async with self._lock:
            removed = self._entries.pop(fingerprint, None) is not None
        if removed:
            logger.info("Cache entry invalidated", fingerprint=fingerprint[:16])
        return removed

    async def purge_expired(self) -> int:
        async with self._lock:
            now = self._clock()
            expired = [fp for fp, e in self._entries.items() if e.is_expired(now)]
            for fingerprint in expired:
                del self._entries[fingerprint]
        if expired:
            logger.debug("Expired entries purged", count=len(expired))
        return len(expired)

    async def size(self) -> int:
        return len(self._entries)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    @property
    def evictions(self) -> int:
        """Get number of capacity evictions."""
        return self._evictions

    def _insert(
        self, fingerprint: str, response: NormalizedAgentResponse, ttl: float
    ) -> None:
        """Insert entry as newest, evicting oldest past capacity. Lock held."""
        entry = CacheEntry.create(fingerprint, response, ttl, self._clock())
        self._entries.pop(fingerprint, None)
        self._entries[fingerprint] = entry

        while self._max_entries is not None and len(self._entries) > self._max_entries:
            oldest, _ = self._entries.popitem(last=False)
            self._evictions += 1
            logger.debug("Cache entry evicted", fingerprint=oldest[:16])
