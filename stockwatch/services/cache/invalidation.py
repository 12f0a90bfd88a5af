"""Eviction of cache entries derived from product data."""

from __future__ import annotations

import logging
from collections.abc import Iterable

import redis.asyncio as redis
from pydantic import BaseModel, Field
from redis.exceptions import RedisError

from stockwatch.errors import CacheUnavailableError
from stockwatch.services.cache.keys import (
    CATEGORIES_LIST_KEY,
    FEATURED_PRODUCTS_KEY,
    PRODUCT_COUNTS_KEY,
    PRODUCT_LIST_PATTERN,
    SEARCH_PATTERN,
    product_key,
    related_pattern,
)

logger = logging.getLogger(__name__)

# Evicted after every product mutation, whatever the product.
UNCONDITIONAL_KEYS = (FEATURED_PRODUCTS_KEY, CATEGORIES_LIST_KEY, PRODUCT_COUNTS_KEY)
UNCONDITIONAL_PATTERNS = (PRODUCT_LIST_PATTERN, SEARCH_PATTERN)


class InvalidationReport(BaseModel):
    keys: list[str] = Field(default_factory=list)
    patterns: list[str] = Field(default_factory=list)
    deleted: int = 0
    succeeded: bool = True
    error: str | None = None


class CacheInvalidator:
    """Decides which cache keys a product mutation makes stale and evicts them.

    Call after the store write has committed and before responding. Evictions
    are issued one after another; a cache-store failure stops the pass, is
    logged and reported, and never propagates to the caller since the TTL on
    every entry bounds how long a missed eviction can serve stale data.
    """

    def __init__(self, client: redis.Redis, *, scan_count: int = 500):
        self._client = client
        self._scan_count = scan_count

    async def invalidate(self, product_id: str | None = None) -> InvalidationReport:
        """Evict the unconditional set, plus the keys of ``product_id`` if given."""

        product_ids = [product_id] if product_id else []
        return await self.invalidate_many(product_ids)

    async def invalidate_many(self, product_ids: Iterable[str]) -> InvalidationReport:
        """Evict the unconditional set once and the per-product keys of each id."""

        product_ids = list(dict.fromkeys(product_ids))
        keys = list(UNCONDITIONAL_KEYS)
        patterns = list(UNCONDITIONAL_PATTERNS)
        for product_id in product_ids:
            keys.append(product_key(product_id))
            patterns.append(related_pattern(product_id))

        report = InvalidationReport(keys=keys, patterns=patterns)
        try:
            for key in keys:
                report.deleted += await self._delete(key)
            for pattern in patterns:
                report.deleted += await self._delete_pattern(pattern)
        except CacheUnavailableError as exc:
            report.succeeded = False
            report.error = exc.message
            logger.warning(
                "Cache invalidation incomplete, entries expire by TTL",
                extra={"keys": keys, "patterns": patterns, "error": exc.message},
            )
            return report

        logger.debug(
            "Invalidated product caches",
            extra={"deleted": report.deleted, "product_ids": product_ids},
        )
        return report

    async def _delete(self, key: str) -> int:
        try:
            return await self._client.delete(key)
        except RedisError as exc:
            raise CacheUnavailableError(str(exc)) from exc

    async def _delete_pattern(self, pattern: str) -> int:
        try:
            matched = [
                key
                async for key in self._client.scan_iter(
                    match=pattern, count=self._scan_count
                )
            ]
            if not matched:
                return 0
            return await self._client.unlink(*matched)
        except RedisError as exc:
            raise CacheUnavailableError(str(exc)) from exc
