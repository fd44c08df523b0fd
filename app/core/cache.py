"""Redis read-through cache for the public list listings."""

import json
import logging
from typing import Any, Awaitable, Callable

import redis.asyncio as redis

from app.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

PUBLIC_LISTS_PREFIX = "lists"
PUBLIC_LISTS_PAGED_PREFIX = "lists_paged"

# Keys per SCAN page and per DEL round trip when flushing a namespace
FLUSH_BATCH_SIZE = 500

CACHE_ERRORS = (redis.RedisError, OSError)


class CacheService:
    """Async Redis cache holding JSON values.

    Redis failures are logged and swallowed: reads miss and writes are
    dropped, so a broken cache only costs extra database queries.
    """

    def __init__(self, client: redis.Redis | None = None):
        self._redis = client

    def _client(self) -> redis.Redis:
        if self._redis is None:
            self._redis = redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
        return self._redis

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    async def get(self, key: str) -> Any | None:
        """Cached value for key, or None on a miss."""
        try:
            raw = await self._client().get(key)
        except CACHE_ERRORS as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"Ignoring undecodable cache entry {key}")
            return None

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        try:
            await self._client().set(key, json.dumps(value), ex=ttl or None)
        except CACHE_ERRORS as e:
            logger.warning(f"Cache write failed for {key}: {e}")
            return False
        return True

    async def get_or_load(
        self,
        key: str,
        loader: Callable[[], Awaitable[Any]],
        ttl: int,
    ) -> Any:
        """
        Read-through lookup.

        On a miss the loader runs and its result is stored for ttl seconds.
        Empty results are cached like any other value; only None is never
        stored, since it cannot be told apart from a miss.
        """
        cached = await self.get(key)
        if cached is not None:
            return cached

        value = await loader()
        if value is not None:
            await self.set(key, value, ttl=ttl)
        return value

    async def flush_prefix(self, prefix: str) -> int:
        """Delete every key starting with prefix. Returns the number deleted."""
        deleted = 0
        batch: list[str] = []
        try:
            client = self._client()
            async for key in client.scan_iter(match=f"{prefix}*", count=FLUSH_BATCH_SIZE):
                batch.append(key)
                if len(batch) >= FLUSH_BATCH_SIZE:
                    deleted += await client.delete(*batch)
                    batch = []
            if batch:
                deleted += await client.delete(*batch)
        except CACHE_ERRORS as e:
            logger.warning(f"Cache flush failed for {prefix}*: {e}")
        return deleted

    async def invalidate_public_lists(self, media_type: str) -> int:
        """Drop every cached public listing (paged or not) of a media type."""
        deleted = 0
        for prefix in (PUBLIC_LISTS_PREFIX, PUBLIC_LISTS_PAGED_PREFIX):
            deleted += await self.flush_prefix(f"{prefix}:{media_type}:")
        if deleted:
            logger.debug(f"Invalidated {deleted} cached {media_type} listings")
        return deleted

    @staticmethod
    def public_lists_key(media_type: str, sort: str, limit: int) -> str:
        return f"{PUBLIC_LISTS_PREFIX}:{media_type}:{sort}:{limit}"

    @staticmethod
    def public_lists_paged_key(media_type: str, sort: str, kind: str | None, page: int, limit: int) -> str:
        return f"{PUBLIC_LISTS_PAGED_PREFIX}:{media_type}:{sort}:{kind or 'all'}:{page}:{limit}"


_cache: CacheService | None = None


def get_cache() -> CacheService:
    """Process-wide cache service; also the FastAPI dependency."""
    global _cache
    if _cache is None:
        _cache = CacheService()
    return _cache
