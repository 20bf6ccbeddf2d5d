"""
Redis connection management.

Redis backs short-lived counters (login rate limiting). Tenant scope and
company lists are never stored here: they are recomputed from the database
on every request.
"""

import logging

import redis.asyncio as aioredis

from collaboranexio.config import settings

logger = logging.getLogger(__name__)


class RedisManager:
    """
    Redis connection lifecycle plus the counter primitives we need.

    Handles:
    - Connection lifecycle
    - Key namespacing
    - TTL-bound counters
    """

    def __init__(self) -> None:
        self._client: aioredis.Redis | None = None

    async def init(self) -> None:
        """Initialize Redis connection pool."""
        logger.info("Initializing Redis connection...")

        self._client = aioredis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=20,
        )

        await self._client.ping()
        logger.info("Redis connection initialized")

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            logger.info("Redis connection closed")

    @property
    def client(self) -> aioredis.Redis:
        """Get Redis client."""
        if not self._client:
            raise RuntimeError("Redis not initialized. Call init() first.")
        return self._client

    def _build_key(self, namespace: str, key: str) -> str:
        """
        Build namespaced key.

        Format: collaboranexio:{namespace}:{key}
        Example: collaboranexio:rl_auth:203.0.113.7:auth
        """
        return f"collaboranexio:{namespace}:{key}"

    async def increment(
        self,
        namespace: str,
        key: str,
        ttl: int | None = None,
    ) -> int:
        """
        Increment a counter, creating it if needed.

        The TTL is only set when the key is created so the window does not
        slide on every hit.

        Returns:
            New counter value
        """
        cache_key = self._build_key(namespace, key)

        pipe = self.client.pipeline()
        pipe.incr(cache_key)
        if ttl:
            pipe.expire(cache_key, ttl, nx=True)
        results = await pipe.execute()
        return results[0]

    async def get_ttl(self, namespace: str, key: str) -> int:
        """Get remaining TTL for a key in seconds."""
        return await self.client.ttl(self._build_key(namespace, key))


# Global instance
redis_manager = RedisManager()
