"""
Redis caching layer for availability snapshots.
"""

import json
import logging
from typing import Any, Optional

import redis.asyncio as redis
from redis.asyncio import Redis
from redis.exceptions import RedisError
from redis.exceptions import ConnectionError as RedisConnectionError

from .config import get_settings

logger = logging.getLogger(__name__)


class CacheKeyBuilder:
    """Helper class for building consistent cache keys."""

    @staticmethod
    def availability(
        branch_id: str,
        activity: Optional[str],
        date_from: Optional[str],
        date_to: Optional[str]
    ) -> str:
        """Build cache key for an availability listing."""
        return f"availability:{branch_id}:{activity or 'all'}:{date_from or 'open'}:{date_to or 'open'}"

    @staticmethod
    def branch_availability_pattern(branch_id: str) -> str:
        """Build pattern matching every availability listing of a branch."""
        return f"availability:{branch_id}:*"


class RedisCache:
    """Redis cache manager with connection handling and operations."""

    def __init__(self):
        self.client: Optional[Redis] = None
        self.pool: Optional[redis.ConnectionPool] = None

    async def initialize(self) -> None:
        """Initialize Redis connection pool and client."""
        settings = get_settings()

        try:
            self.pool = redis.ConnectionPool.from_url(
                settings.redis_url,
                max_connections=settings.redis_max_connections,
                retry_on_timeout=True,
                socket_keepalive=True,
                health_check_interval=30
            )
            self.client = Redis(connection_pool=self.pool)

            await self.client.ping()
            logger.info("Redis cache initialized successfully")

        except RedisConnectionError as e:
            logger.error("Failed to connect to Redis: %s", e)
            await self.close()
            raise

    async def close(self) -> None:
        """Close Redis connections."""
        if self.client:
            await self.client.close()
        if self.pool:
            await self.pool.disconnect()
        self.client = None
        self.pool = None
        logger.info("Redis cache connections closed")

    async def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found
        """
        if not self.client:
            logger.warning("Redis client not initialized")
            return None

        try:
            value = await self.client.get(key)
            if value:
                return json.loads(value.decode('utf-8'))
            return None
        except (RedisError, ValueError) as e:
            logger.warning("Failed to get cache key %s: %s", key, e)
            return None

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None
    ) -> bool:
        """
        Set value in cache.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time to live in seconds

        Returns:
            True if successful, False otherwise
        """
        if not self.client:
            logger.warning("Redis client not initialized")
            return False

        try:
            serialized_value = json.dumps(value, default=str)
            if ttl:
                await self.client.setex(key, ttl, serialized_value)
            else:
                await self.client.set(key, serialized_value)
            return True
        except (RedisError, TypeError) as e:
            logger.warning("Failed to set cache key %s: %s", key, e)
            return False

    async def delete(self, key: str) -> bool:
        """Delete key from cache."""
        if not self.client:
            return False

        try:
            await self.client.delete(key)
            return True
        except RedisError as e:
            logger.warning("Failed to delete cache key %s: %s", key, e)
            return False

    async def delete_pattern(self, pattern: str) -> int:
        """
        Delete all keys matching a pattern.

        Args:
            pattern: Pattern to match (e.g., "availability:*")

        Returns:
            Number of keys deleted
        """
        if not self.client:
            return 0

        try:
            keys = [key async for key in self.client.scan_iter(match=pattern)]
            if keys:
                await self.client.delete(*keys)
            return len(keys)
        except RedisError as e:
            logger.warning(f"Failed to delete keys with pattern {pattern}: {e}")
            return 0

    async def ping(self) -> bool:
        """Check that the Redis server answers."""
        if not self.client:
            return False
        try:
            return bool(await self.client.ping())
        except RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False


# Global cache instance
cache = RedisCache()


async def init_cache() -> None:
    """Initialize the global cache instance."""
    await cache.initialize()


async def close_cache() -> None:
    """Close the global cache instance."""
    await cache.close()


def get_cache() -> RedisCache:
    """Get the global cache instance."""
    return cache


class CacheInvalidator:
    """Helper class for cache invalidation strategies."""

    @staticmethod
    async def invalidate_branch_availability(branch_id: str) -> None:
        """Drop every cached availability listing of a branch."""
        deleted = await cache.delete_pattern(CacheKeyBuilder.branch_availability_pattern(str(branch_id)))
        logger.info(f"Invalidated {deleted} availability cache entries for branch {branch_id}")
