"""
Redis cache shared by every scheduler instance.
Stores short-lived workload projections and backs distributed locks.
"""

import json
import logging
from typing import Any, Optional

import redis.asyncio as redis

from .config import settings

logger = logging.getLogger(__name__)

WORKLOAD_SUMMARY_KEY = "workload:summary"


class CacheManager:
    """
    Async Redis cache manager with connection pooling.

    Cache failures are logged and reported as misses; callers fall back to
    the database, which stays authoritative.
    """

    def __init__(self, key_prefix: Optional[str] = None):
        self._redis: Optional[redis.Redis] = None
        self._pool: Optional[redis.ConnectionPool] = None
        self.key_prefix = key_prefix if key_prefix is not None else settings.redis.key_prefix

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    @property
    def client(self) -> Optional[redis.Redis]:
        """Underlying client, or None before connect()."""
        return self._redis

    async def connect(self) -> None:
        """Initialize Redis connection pool."""
        self._pool = redis.ConnectionPool.from_url(
            settings.redis.url, **settings.redis.redis_config
        )
        self._redis = redis.Redis(connection_pool=self._pool)

    async def disconnect(self) -> None:
        """Close Redis connections."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
        if self._pool:
            await self._pool.disconnect()
            self._pool = None

    async def ping(self) -> bool:
        """Check that Redis answers; False when disconnected or unreachable."""
        if not self._redis:
            return False

        try:
            return bool(await self._redis.ping())
        except redis.RedisError as e:
            logger.warning("Redis ping failed: %s", str(e))
            return False

    async def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache.

        Args:
            key: Cache key (without prefix)

        Returns:
            Cached value or None if not found
        """
        if not self._redis:
            logger.debug("Redis not connected - cannot get cache key: %s", key)
            return None

        try:
            value = await self._redis.get(self._key(key))
            if value:
                return json.loads(value)
        except (redis.RedisError, ValueError) as e:
            logger.error("Failed to get cache key '%s': %s", key, str(e), exc_info=True)
            return None
        return None

    async def set(
        self, key: str, value: Any, ttl: Optional[int] = None
    ) -> bool:
        """
        Set value in cache with optional TTL.

        Args:
            key: Cache key (without prefix)
            value: JSON-serializable value
            ttl: Time to live in seconds; None persists indefinitely

        Returns:
            True if successful, False otherwise
        """
        if not self._redis:
            logger.debug("Redis not connected - cannot set cache key: %s", key)
            return False

        try:
            serialized = json.dumps(value, default=str)

            if ttl is None:
                await self._redis.set(self._key(key), serialized)
            else:
                await self._redis.setex(self._key(key), ttl, serialized)

            return True
        except (redis.RedisError, TypeError) as e:
            logger.error("Failed to set cache key '%s': %s", key, str(e), exc_info=True)
            return False

    async def delete(self, key: str) -> bool:
        """
        Delete key from cache.

        Args:
            key: Cache key (without prefix)

        Returns:
            True if successful, False otherwise
        """
        if not self._redis:
            return False

        try:
            await self._redis.delete(self._key(key))
            return True
        except redis.RedisError as e:
            logger.error("Failed to delete cache key '%s': %s", key, str(e), exc_info=True)
            return False



# Global cache instance
cache = CacheManager()
