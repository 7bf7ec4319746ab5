import json
import logging

import redis.asyncio as redis

from blogrpc.config import settings

logger = logging.getLogger(__name__)

TAXONOMY_PREFIX = "blog:taxonomy:"


class CacheManager:
    """
    Cache-aside manager backed by Redis, used for the derived category
    and series lists.

    Every public method is safe to call without Redis: reads return None
    and writes are skipped, so the blog keeps working off the database
    alone.
    """

    def __init__(self) -> None:
        self._redis: redis.Redis | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self, url: str | None = None) -> None:
        """Open the connection pool.  Called once at application startup."""
        url = url or settings.REDIS_URL
        if not url:
            logger.info("REDIS_URL not set; taxonomy cache disabled")
            return
        self._redis = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await self._redis.ping()
            logger.info("Redis connected: %s", url)
        except Exception as exc:  # pragma: no cover
            logger.warning("Redis ping failed, cache disabled: %s", exc)
            await self._redis.aclose()
            self._redis = None

    async def disconnect(self) -> None:
        """Close the connection pool.  Called once at application shutdown."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    # ------------------------------------------------------------------
    # Core cache operations
    # ------------------------------------------------------------------

    async def get(self, key: str) -> dict | list | None:
        """Return the cached value for *key*, or None on a miss / error."""
        if not self._redis:
            return None
        try:
            data = await self._redis.get(key)
        except Exception as exc:
            logger.debug("Cache GET error for key=%r: %s", key, exc)
            return None
        return json.loads(data) if data is not None else None

    async def set(self, key: str, value: dict | list, ttl: int | None = None) -> None:
        """
        Store *value* under *key* with an optional TTL (seconds).

        Failures are logged and swallowed; a cache write must never fail
        a request.
        """
        if not self._redis:
            return
        try:
            await self._redis.set(key, json.dumps(value, default=str), ex=ttl)
        except Exception as exc:
            logger.debug("Cache SET error for key=%r: %s", key, exc)

    async def delete_pattern(self, pattern: str) -> None:
        """Delete all keys matching *pattern* using SCAN."""
        if not self._redis:
            return
        try:
            keys = [key async for key in self._redis.scan_iter(match=pattern)]
            if keys:
                await self._redis.delete(*keys)
                logger.debug("Cache invalidated %d key(s) matching %r", len(keys), pattern)
        except Exception as exc:
            logger.debug("Cache DELETE_PATTERN error for pattern=%r: %s", pattern, exc)

    # ------------------------------------------------------------------
    # Domain-level helpers
    # ------------------------------------------------------------------

    @staticmethod
    def taxonomy_key(kind: str) -> str:
        return f"{TAXONOMY_PREFIX}{kind}"

    async def invalidate_taxonomy(self) -> None:
        """Drop cached category/series lists after any blog post write."""
        await self.delete_pattern(f"{TAXONOMY_PREFIX}*")


# Module-level singleton shared across all request handlers.
cache = CacheManager()
