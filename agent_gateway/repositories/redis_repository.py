"""
Redis repository for key-value access.

Sandi Metz Principles:
- Single Responsibility: Redis data access
- Small methods: Each operation isolated
- Dependency Injection: Redis pool injected
"""

from typing import Optional

from redis.asyncio import ConnectionPool, Redis

from agent_gateway.config import AppConfig, config
from agent_gateway.utils.logger import get_logger

logger = get_logger(__name__)

_DELETE_IF_EQUAL = """
if redis.call("GET", KEYS[1]) == ARGV[1] then
    return redis.call("DEL", KEYS[1])
end
return 0
"""


async def create_redis_pool(settings: AppConfig | None = None) -> ConnectionPool:
    """
    Create Redis connection pool.

    Args:
        settings: Application configuration (defaults to global config)

    Returns:
        Redis connection pool
    """
    settings = settings or config
    return ConnectionPool.from_url(
        settings.redis_url,
        max_connections=settings.redis_max_connections,
        decode_responses=True,
    )


class RedisRepository:
    """
    Repository for Redis operations.

    Exposes get / put with TTL / compare-and-insert over string values.
    Failures are logged and reported as absent or not stored.
    """

    def __init__(self, pool: ConnectionPool):
        """
        Initialize repository.

        Args:
            pool: Redis connection pool
        """
        self._pool = pool

    async def fetch(self, key: str) -> Optional[str]:
        """
        Fetch value by key.

        Args:
            key: Storage key

        Returns:
            Stored value if found, None otherwise
        """
        try:
            async with Redis(connection_pool=self._pool) as client:
                return await client.get(key)
        except Exception as e:
            logger.error("Redis fetch failed", key=key, error=str(e))
            return None

    async def store(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> bool:
        """
        Store value.

        Args:
            key: Storage key
            value: Serialized value
            ttl_seconds: Time-to-live in seconds

        Returns:
            True if stored successfully, False otherwise
        """
        try:
            async with Redis(connection_pool=self._pool) as client:
                if ttl_seconds:
                    await client.setex(key, ttl_seconds, value)
                else:
                    await client.set(key, value)
                return True
        except Exception as e:
            logger.error("Redis store failed", key=key, error=str(e))
            return False

    async def compare_and_insert(
        self, key: str, value: str, ttl_seconds: Optional[int] = None
    ) -> bool:
        """
        Store value only if key does not exist.

        Args:
            key: Storage key
            value: Serialized value
            ttl_seconds: Time-to-live in seconds

        Returns:
            True if inserted, False if key existed or on error
        """
        try:
            async with Redis(connection_pool=self._pool) as client:
                result = await client.set(key, value, ex=ttl_seconds or None, nx=True)
                return bool(result)
        except Exception as e:
            logger.error("Redis compare-and-insert failed", key=key, error=str(e))
            return False

    async def delete(self, key: str) -> bool:
        """
        Delete key.

        Args:
            key: Storage key

        Returns:
            True if deleted, False otherwise
        """
        try:
            async with Redis(connection_pool=self._pool) as client:
                result = await client.delete(key)
                return result > 0
        except Exception as e:
            logger.error("Redis delete failed", key=key, error=str(e))
            return False

    async def delete_if_unchanged(self, key: str, expected: str) -> bool:
        """
        Delete key only while it still holds ``expected``.

        Args:
            key: Storage key
            expected: Value read earlier

        Returns:
            True if deleted, False if the value changed, is gone or on error
        """
        try:
            async with Redis(connection_pool=self._pool) as client:
                result = await client.eval(_DELETE_IF_EQUAL, 1, key, expected)
                return bool(result)
        except Exception as e:
            logger.error("Redis conditional delete failed", key=key, error=str(e))
            return False

    async def ping(self) -> bool:
        """
        Ping Redis server.

        Returns:
            True if connected, False otherwise
        """
        try:
            async with Redis(connection_pool=self._pool) as client:
                await client.ping()
                return True
        except Exception as e:
            logger.error("Redis ping failed", error=str(e))
            return False

    async def delete_by_pattern(self, pattern: str) -> int:
        """
        Delete keys matching pattern.

        Args:
            pattern: Key pattern (e.g., "gateway:cache:*")

        Returns:
            Number of keys deleted
        """
        try:
            async with Redis(connection_pool=self._pool) as client:
                keys = []
                async for key in client.scan_iter(match=pattern):
                    keys.append(key)
                if keys:
                    return await client.delete(*keys)
                return 0
        except Exception as e:
            logger.error("Pattern delete failed", pattern=pattern, error=str(e))
            return 0

    async def count_by_pattern(self, pattern: str) -> int:
        """
        Count keys matching pattern.

        Args:
            pattern: Key pattern

        Returns:
            Number of matching keys
        """
        try:
            async with Redis(connection_pool=self._pool) as client:
                count = 0
                async for _ in client.scan_iter(match=pattern):
                    count += 1
                return count
        except Exception as e:
            logger.error("Pattern scan failed", pattern=pattern, error=str(e))
            return 0
