"""
Redis-backed response cache.

Sandi Metz Principles:
- Single Responsibility: Cache operations over a key-value repository
- Small methods: Each operation < 10 lines
- Dependency Injection: Repository injected
"""

import math
import time
from typing import Callable, Optional

from pydantic import ValidationError as PydanticValidationError

from agent_gateway.cache.response_cache import ResponseCache
from agent_gateway.models.agent import NormalizedAgentResponse
from agent_gateway.models.cache_entry import CacheEntry
from agent_gateway.repositories.redis_repository import RedisRepository
from agent_gateway.utils.hasher import FINGERPRINT_PREFIX, generate_cache_key
from agent_gateway.utils.logger import get_logger, log_cache_hit, log_cache_miss

logger = get_logger(__name__)


class RedisResponseCache(ResponseCache):
    """
    Response cache stored in Redis.

    Redis expires keys on its own; ``expires_at`` is still checked on
    read so a late key never serves stale data.
    """

    name = "redis"

    def __init__(
        self,
        repository: RedisRepository,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize cache service.

        Args:
            repository: Redis repository
            clock: Time source in epoch seconds
        """
        self._repository = repository
        self._clock = clock

    async def get(self, fingerprint: str) -> Optional[CacheEntry]:
        key = generate_cache_key(fingerprint)
        data = await self._repository.fetch(key)
        if not data:
            log_cache_miss(fingerprint)
            return None

        entry = self._decode(key, data)
        if entry is None or entry.is_expired(self._clock()):
            # A concurrent put may have replaced the value since the fetch
            await self._repository.delete_if_unchanged(key, data)
            log_cache_miss(fingerprint, expired=entry is not None)
            return None

        log_cache_hit(fingerprint, source=self.name)
        return entry

    async def put(
        self, fingerprint: str, response: NormalizedAgentResponse, ttl: float
    ) -> bool:
        key = generate_cache_key(fingerprint)
        entry = CacheEntry.create(fingerprint, response, ttl, self._clock())
        success = await self._repository.store(
            key, entry.model_dump_json(), self._ttl_seconds(ttl)
        )

        if success:
            logger.info("Cache stored", fingerprint=fingerprint[:16], ttl=ttl)
        else:
            logger.error("Cache store failed", fingerprint=fingerprint[:16])
        return success

    async def add(
        self, fingerprint: str, response: NormalizedAgentResponse, ttl: float
    ) -> bool:
        key = generate_cache_key(fingerprint)
        entry = CacheEntry.create(fingerprint, response, ttl, self._clock())
        return await self._repository.compare_and_insert(
            key, entry.model_dump_json(), self._ttl_seconds(ttl)
        )

    async def invalidate(self, fingerprint: str) -> bool:
        return await self._repository.delete(generate_cache_key(fingerprint))

    async def purge_expired(self) -> int:
        # Redis drops expired keys itself
        return 0

    async def size(self) -> int:
        return await self._repository.count_by_pattern(f"{FINGERPRINT_PREFIX}*")

    async def clear(self) -> None:
        count = await self._repository.delete_by_pattern(f"{FINGERPRINT_PREFIX}*")
        logger.info("Cache invalidated by pattern", count=count)

    async def health_check(self) -> bool:
        return await self._repository.ping()

    @staticmethod
    def _ttl_seconds(ttl: float) -> int:
        """Redis expiry is whole seconds; round up so it never expires early."""
        return max(1, math.ceil(ttl))

    @staticmethod
    def _decode(key: str, data: str) -> Optional[CacheEntry]:
        try:
            return CacheEntry.model_validate_json(data)
        except PydanticValidationError as e:
            logger.error("Corrupt cache entry", key=key, error=str(e))
            return None
