"""
Signal Cache Module
===================

Redis read-through / write-through cache for external lookups.

Upstream open-data APIs are slow, rate limited and change slowly, so
every lookup is cached with a source-specific TTL (30 minutes for live
weather up to 30 days for cadastral data). Keys are deterministic:

- ``signals:<source>:<lat>:<lon>`` with coordinates rounded to the
  precision the source is meaningful at
- ``signals:<source>:<station>`` for monitoring-station lookups

Entries are replaced atomically with SETEX, so concurrent refreshes of
the same key only cost redundant work. Unavailable results (None) are
never stored, the next call retries the upstream.
"""

import json
import logging
from typing import Any, Awaitable, Callable, Optional

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError

from spotscore.core.config import settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "signals"


def location_key(source: str, latitude: float, longitude: float, precision: int) -> str:
    """
    Build the cache key for a coordinate lookup.

    Rounding lets nearby points share one cached answer (spatial binning).

    Returns:
        String key like "signals:drought:45.76:4.84"
    """
    return f"{KEY_PREFIX}:{source}:{latitude:.{precision}f}:{longitude:.{precision}f}"


def station_key(source: str, station_code: str) -> str:
    return f"{KEY_PREFIX}:{source}:{station_code}"


class SignalCache:
    """
    Caches gateway payloads in Redis.

    When Redis is disabled or unreachable the cache is a pass-through:
    every ``get_or_fetch`` calls the fetcher. Cache errors are logged
    and never fail a lookup.
    """

    def __init__(self, client: Optional[redis.Redis] = None, enabled: bool = True):
        self.redis_client = client
        self.enabled = enabled and client is not None

    @classmethod
    def from_settings(cls) -> "SignalCache":
        if not settings.CACHE_ENABLED:
            logger.info("Signal cache disabled by configuration")
            return cls(client=None, enabled=False)

        client = redis.Redis(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            db=settings.REDIS_DB,
            decode_responses=True,
            socket_connect_timeout=2,  # Fail fast if Redis is down
        )
        return cls(client=client)

    async def connect(self) -> None:
        """Ping Redis once; disable caching if it is unreachable."""
        if not self.enabled:
            return
        try:
            await self.redis_client.ping()
            logger.info(f"Signal cache connected to Redis at {settings.REDIS_HOST}:{settings.REDIS_PORT}")
        except (RedisConnectionError, OSError):
            self.enabled = False
            logger.warning("Redis connection failed. Caching is DISABLED.")

    async def close(self) -> None:
        if self.redis_client is not None:
            await self.redis_client.aclose()

    async def get(self, key: str) -> Optional[Any]:
        if not self.enabled:
            return None
        try:
            data = await self.redis_client.get(key)
        except RedisError as e:
            logger.error(f"Error reading from cache: {e}")
            return None

        if data is None:
            logger.debug(f"Cache MISS for {key}")
            return None
        logger.debug(f"Cache HIT for {key}")
        return json.loads(data)

    async def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        if not self.enabled:
            return False
        try:
            await self.redis_client.setex(name=key, time=ttl_seconds, value=json.dumps(value))
            return True
        except (RedisError, TypeError) as e:
            logger.error(f"Error writing to cache: {e}")
            return False

    async def get_or_fetch(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[Optional[Any]]],
        ttl_seconds: int,
    ) -> Optional[Any]:
        """
        Return the cached payload for ``key`` or fetch and store it.

        Args:
            key: Cache key (see ``location_key`` / ``station_key``).
            fetcher: Coroutine factory producing a JSON-serializable
                payload, or None when the upstream has no answer.
            ttl_seconds: Expiry for a freshly fetched payload.
        """
        cached = await self.get(key)
        if cached is not None:
            return cached

        payload = await fetcher()
        if payload is not None:
            await self.set(key, payload, ttl_seconds)
        return payload
