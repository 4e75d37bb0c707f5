"""Redis service for distributed state shared between workers.

The only distributed state this application keeps is the per-owner mutation
lock (see ``owner_lock_service``). Redis is optional: when it is not
configured or unreachable and ``redis_required`` is false the application
runs in single-worker mode with process-local locks.
"""

import logging
from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from ..config import settings

logger = logging.getLogger(__name__)


class RedisService:
    """Async Redis connection holder for multi-worker deployment."""

    def __init__(self) -> None:
        """Initialize the Redis service (not connected yet)."""
        self._redis: Optional[aioredis.Redis] = None

    async def connect(self) -> None:
        """Initialize Redis connection with connection pooling."""
        self._redis = aioredis.from_url(
            settings.redis_url,
            max_connections=settings.redis_max_connections,
            socket_timeout=settings.redis_socket_timeout,
            decode_responses=True,
        )
        try:
            await self._redis.ping()
        except RedisError:
            await self._redis.aclose()
            self._redis = None
            raise
        logger.info(f"Redis connected: max_connections={settings.redis_max_connections}")

    async def disconnect(self) -> None:
        """Close Redis connection and cleanup resources."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
        logger.info("Redis disconnected")

    @property
    def client(self) -> aioredis.Redis:
        """Get Redis client instance."""
        if self._redis is None:
            raise RuntimeError("Redis not connected. Call connect() first.")
        return self._redis

    @property
    def is_connected(self) -> bool:
        """Check if Redis is connected."""
        return self._redis is not None

    async def ping(self) -> bool:
        """True if connected and the server answers PING."""
        if self._redis is None:
            return False
        try:
            return bool(await self._redis.ping())
        except RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False


# Global instance
redis_service = RedisService()
