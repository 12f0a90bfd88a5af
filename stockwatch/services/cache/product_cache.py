"""Read-through side cache for product listings and details."""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import redis.asyncio as redis
from redis.exceptions import RedisError

from stockwatch.config import settings
from stockwatch.services.cache.keys import CacheKeyKind, ttl_for

logger = logging.getLogger(__name__)


class ProductCache:
    """JSON values with a TTL per cache-entry class.

    The cache is never authoritative: any cache-store error is treated as a
    miss on read and as a skipped write on set.
    """

    def __init__(self, client: redis.Redis):
        self._client = client

    async def get(self, key: str) -> Any | None:
        try:
            raw = await self._client.get(key)
        except RedisError as exc:
            logger.warning("Cache read failed for %s, serving from store: %s", key, exc)
            return None
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, kind: CacheKeyKind, value: Any) -> None:
        ttl = ttl_for(kind)
        if value in (None, [], {}):
            ttl = min(ttl, settings.CACHE_TTL_EMPTY_RESULT)
        try:
            await self._client.set(key, json.dumps(value), ex=ttl)
        except RedisError as exc:
            logger.warning("Cache write failed for %s: %s", key, exc)

    async def remember(
        self,
        key: str,
        kind: CacheKeyKind,
        loader: Callable[[], Awaitable[Any]],
    ) -> tuple[Any, bool]:
        """Return ``(value, from_cache)``, loading and caching on a miss."""

        cached = await self.get(key)
        if cached is not None:
            return cached, True

        value = await loader()
        await self.set(key, kind, value)
        return value, False
