"""
Redis Caching Service

Async cache store used by every part of the recommendation core.

Features:
- Async Redis client (redis.asyncio) with a single connection pool
- get / set / delete / delete_pattern / exists / mget / mset
- Automatic JSON serialization/deserialization
- Fail-open: when Redis is unreachable every read is a miss and every
  write reports False; no RedisError ever reaches a caller
- Availability probing: a failed connection marks the store unavailable
  and it is re-probed at most every `cache_reconnect_interval` seconds

Cache Strategy:
- Cache-aside everywhere: read, on miss recompute and set
- Values are never modified in place; stale entries are deleted and
  rebuilt lazily on the next read
- Key layout comes from services/cache_keys.py
"""

import json
import logging
import time
from typing import Any, Optional

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from library_api.config import Settings

logger = logging.getLogger(__name__)


class CacheService:
    """
    Fail-open key/value cache over Redis.

    Build one instance per process with CacheService.connect() during
    application startup and pass it to the services that need it.
    A CacheService created with client=None is a pure pass-through.
    """

    def __init__(self, client: Optional[aioredis.Redis], settings: Settings) -> None:
        self._client = client
        self._settings = settings
        self._available = client is not None
        self._last_probe = 0.0

    # =========================================================================
    # Connection Lifecycle
    # =========================================================================

    @classmethod
    async def connect(cls, settings: Settings) -> "CacheService":
        """
        Create the Redis client and check that it answers.

        A failed ping does not raise: the store starts in unavailable mode
        and is probed again later.
        """
        if not settings.cache_enabled:
            logger.info("Caching disabled by configuration")
            return cls(None, settings)

        client = aioredis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=settings.cache_socket_timeout,
            socket_timeout=settings.cache_socket_timeout,
        )
        service = cls(client, settings)

        try:
            await client.ping()
            logger.info("Successfully connected to Redis")
        except RedisError as e:
            logger.warning(f"Failed to connect to Redis: {e}. Caching disabled until it recovers.")
            service._available = False
            service._last_probe = time.monotonic()

        return service

    async def close(self) -> None:
        """Close the Redis connection on shutdown."""
        if self._client is not None:
            try:
                await self._client.aclose()
                logger.info("Redis connection closed")
            except RedisError as e:
                logger.warning(f"Redis close error: {e}")
            self._client = None
            self._available = False

    async def is_available(self) -> bool:
        """
        Report whether the backing store can be used right now.

        When the store was marked down, a PING is attempted once the
        reconnect interval has elapsed.
        """
        if self._client is None:
            return False
        if self._available:
            return True

        now = time.monotonic()
        if now - self._last_probe < self._settings.cache_reconnect_interval:
            return False

        self._last_probe = now
        try:
            await self._client.ping()
        except RedisError:
            return False

        logger.info("Redis reachable again, caching re-enabled")
        self._available = True
        return True

    def _handle_error(self, operation: str, target: str, error: Exception) -> None:
        """Log a backing-store failure; connection failures mark the store down."""
        logger.warning(f"Cache {operation} error for {target}: {error}")
        if isinstance(error, (RedisConnectionError, RedisTimeoutError)):
            self._available = False
            self._last_probe = time.monotonic()

    # =========================================================================
    # Core Cache Operations
    # =========================================================================

    async def get(self, key: str) -> Optional[Any]:
        """
        Get a value from the cache.

        Returns:
            Cached value (deserialized from JSON) or None if not found/error
        """
        if not await self.is_available():
            return None

        try:
            value = await self._client.get(key)
        except RedisError as e:
            self._handle_error("get", key, e)
            return None

        if value is None:
            logger.debug(f"Cache MISS: {key}")
            return None

        try:
            logger.debug(f"Cache HIT: {key}")
            return json.loads(value)
        except json.JSONDecodeError as e:
            logger.warning(f"Cache JSON decode error for {key}: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Set a value in the cache with a TTL.

        Args:
            key: Cache key
            value: JSON-serializable value
            ttl: Time-to-live in seconds (default from settings)

        Returns:
            True if successfully cached, False otherwise
        """
        if not await self.is_available():
            return False

        if ttl is None:
            ttl = self._settings.cache_default_ttl

        try:
            serialized = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            logger.warning(f"Cache serialization error for {key}: {e}")
            return False

        try:
            await self._client.setex(key, ttl, serialized)
            logger.debug(f"Cache SET: {key} (TTL: {ttl}s)")
            return True
        except RedisError as e:
            self._handle_error("set", key, e)
            return False

    async def delete(self, key: str) -> bool:
        """Delete a key. Returns True if the command ran, False otherwise."""
        if not await self.is_available():
            return False

        try:
            await self._client.delete(key)
            logger.debug(f"Cache DELETE: {key}")
            return True
        except RedisError as e:
            self._handle_error("delete", key, e)
            return False

    async def delete_pattern(self, pattern: str) -> bool:
        """
        Delete all keys matching a glob pattern.

        Keys are collected with incremental SCAN, never KEYS, and removed
        with one multi-key DELETE.

        Examples:
            await cache.delete_pattern("search:*")
            await cache.delete_pattern("recommendations:42:*")
        """
        if not await self.is_available():
            return False

        try:
            keys = [key async for key in self._client.scan_iter(match=pattern, count=100)]
            if keys:
                await self._client.delete(*keys)
            logger.debug(f"Cache DELETE PATTERN: {pattern} ({len(keys)} keys)")
            return True
        except RedisError as e:
            self._handle_error("delete pattern", pattern, e)
            return False

    async def exists(self, key: str) -> bool:
        if not await self.is_available():
            return False

        try:
            return await self._client.exists(key) == 1
        except RedisError as e:
            self._handle_error("exists", key, e)
            return False

    async def mget(self, keys: list[str]) -> dict[str, Any]:
        """
        Get several keys in one round trip.

        Returns:
            Mapping of key -> value for the keys that were found
        """
        if not keys or not await self.is_available():
            return {}

        try:
            values = await self._client.mget(keys)
        except RedisError as e:
            self._handle_error("mget", f"{len(keys)} keys", e)
            return {}

        result: dict[str, Any] = {}
        for key, value in zip(keys, values):
            if value is None:
                continue
            try:
                result[key] = json.loads(value)
            except json.JSONDecodeError:
                result[key] = value
        return result

    async def mset(self, data: dict[str, Any], ttl: Optional[int] = None) -> bool:
        """Set several keys with the same TTL in one pipelined round trip."""
        if not data or not await self.is_available():
            return False

        if ttl is None:
            ttl = self._settings.cache_default_ttl

        try:
            serialized = {key: json.dumps(value, default=str) for key, value in data.items()}
        except (TypeError, ValueError) as e:
            logger.warning(f"Cache serialization error in mset: {e}")
            return False

        try:
            async with self._client.pipeline(transaction=False) as pipe:
                for key, value in serialized.items():
                    pipe.setex(key, ttl, value)
                await pipe.execute()
            return True
        except RedisError as e:
            self._handle_error("mset", f"{len(data)} keys", e)
            return False

    # =========================================================================
    # Cache Statistics (for monitoring)
    # =========================================================================

    async def stats(self) -> dict:
        """
        Get cache statistics for the health endpoint.

        Returns:
            Dictionary with connection status and hit/miss counters
        """
        if not await self.is_available():
            return {"status": "disconnected"}

        try:
            info = await self._client.info("stats")
            return {
                "status": "connected",
                "hits": info.get("keyspace_hits", 0),
                "misses": info.get("keyspace_misses", 0),
                "keys": await self._client.dbsize(),
            }
        except RedisError:
            return {"status": "error"}
