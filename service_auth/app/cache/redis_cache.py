"""
Redis backend for the metadata cache.
"""

from datetime import timedelta
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.errors import AccessLayerException
from shared.logging import get_logger


class RedisDistributedCache:
    """Thin adapter exposing the cache interface on top of redis.asyncio.

    Errors raised by the client are not caught here; the metadata layer
    surfaces them to its caller unchanged.
    """

    def __init__(self, redis_url: str, client: Optional[redis.Redis] = None):
        self.redis_url = redis_url
        self.logger = get_logger("auth.cache.redis")
        self.redis: Optional[redis.Redis] = client

    async def start(self, verify: bool = True):
        """Open the connection pool and, when ``verify`` is set, check the server answers.

        The pool itself connects lazily, so a cache switched off by
        DISABLE_REDIS can start without a reachable server.
        """
        try:
            if self.redis is None:
                self.redis = redis.from_url(
                    self.redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                    socket_connect_timeout=5,
                    socket_timeout=5,
                    health_check_interval=30
                )

            if verify:
                await self.redis.ping()

            self.logger.info("Redis cache started", redis_url=self.redis_url, verified=verify)

        except RedisError as e:
            self.logger.error("Failed to start Redis cache", error=str(e))
            raise AccessLayerException("REDIS_START_FAILED", str(e))

    async def stop(self):
        """Close the connection pool."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            self.logger.info("Redis cache stopped")

    def _client(self) -> redis.Redis:
        if self.redis is None:
            raise AccessLayerException("REDIS_NOT_STARTED", "Redis cache used before start()")
        return self.redis

    async def exists(self, key: str) -> bool:
        return await self._client().exists(key) > 0

    async def get(self, key: str) -> Optional[str]:
        return await self._client().get(key)

    async def set(self, key: str, value: str) -> None:
        await self._client().set(key, value)

    async def set_expiry(self, key: str, ttl: timedelta) -> None:
        # EXPIRE with 0 deletes the key, so a zero TTL is stored as non-expiring
        if ttl.total_seconds() <= 0:
            await self._client().persist(key)
        else:
            await self._client().expire(key, ttl)

    async def delete(self, key: str) -> bool:
        return await self._client().delete(key) > 0

    async def flush(self) -> None:
        await self._client().flushdb()

    async def health_check(self) -> bool:
        """Check Redis health."""
        try:
            await self._client().ping()
            return True
        except (RedisError, AccessLayerException) as e:
            self.logger.warning("Redis health check failed", error=str(e))
            return False
