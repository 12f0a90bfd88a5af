"""Redis-backed product document store."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any, Generic, NamedTuple, TypeVar

import redis.asyncio as redis
from redis.asyncio.client import Pipeline
from redis.exceptions import WatchError

from stockwatch.config import settings
from stockwatch.errors import (
    ConcurrentUpdateError,
    DuplicateSkuError,
    ProductNotFoundError,
)
from stockwatch.models.product import BulkUpdateResult, Product

logger = logging.getLogger(__name__)

T = TypeVar("T")

Mutator = Callable[[Product], T]
Stager = Callable[[Pipeline, Product, Any], None]

_store_client: redis.Redis | None = None


def get_store_client() -> redis.Redis:
    """Return a singleton client for the product store."""

    global _store_client
    if _store_client is None:
        _store_client = redis.from_url(
            settings.STORE_REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            health_check_interval=30,
        )
    return _store_client


class Mutation(NamedTuple, Generic[T]):
    product: Product
    result: T
    changed: bool


class RedisProductStore:
    """One JSON document per product with optimistic per-document updates.

    ``update`` WATCHes the document, runs the mutator on a fresh copy and
    commits with MULTI/EXEC; a concurrent write aborts the EXEC and the whole
    read-modify-write is retried. Derived fields computed by the mutator are
    therefore always consistent with the quantity they were derived from.
    """

    IDS_KEY = "products:ids"

    def __init__(self, client: redis.Redis, *, max_retries: int | None = None):
        self._client = client
        self._max_retries = max_retries or settings.STORE_MAX_RETRIES

    @property
    def client(self) -> redis.Redis:
        return self._client

    @staticmethod
    def _key(product_id: str) -> str:
        return f"products:doc:{product_id}"

    @staticmethod
    def _sku_key(sku: str) -> str:
        return f"products:sku:{sku.upper()}"

    async def insert(self, product: Product) -> Product:
        sku_key = self._sku_key(product.sku)
        async with self._client.pipeline(transaction=True) as pipe:
            try:
                await pipe.watch(sku_key)
                if await pipe.exists(sku_key):
                    raise DuplicateSkuError(f"SKU {product.sku} is already in use")
                pipe.multi()
                pipe.set(self._key(product.id), product.model_dump_json())
                pipe.sadd(self.IDS_KEY, product.id)
                pipe.set(sku_key, product.id)
                await pipe.execute()
            except WatchError as error:
                # Someone claimed the SKU between WATCH and EXEC.
                raise DuplicateSkuError(
                    f"SKU {product.sku} is already in use"
                ) from error

        logger.info("Stored product %s (sku=%s)", product.id, product.sku)
        return product

    async def get(self, product_id: str) -> Product | None:
        raw = await self._client.get(self._key(product_id))
        if not raw:
            return None
        return Product.model_validate_json(raw)

    async def get_many(self, product_ids: Iterable[str]) -> list[Product]:
        ids = list(product_ids)
        if not ids:
            return []
        raws = await self._client.mget([self._key(pid) for pid in ids])
        return [Product.model_validate_json(raw) for raw in raws if raw]

    async def all(self) -> list[Product]:
        ids = await self._client.smembers(self.IDS_KEY)
        products = await self.get_many(sorted(ids))
        products.sort(key=lambda p: p.created_at, reverse=True)
        return products

    async def find(self, predicate: Callable[[Product], bool]) -> list[Product]:
        return [p for p in await self.all() if predicate(p)]

    async def update(
        self,
        product_id: str,
        mutate: Mutator[T],
        *,
        stage: Stager | None = None,
    ) -> Mutation[T]:
        """Atomically apply ``mutate`` to one product document.

        ``mutate`` edits the product in place and may raise a domain error to
        abort. ``stage`` queues extra commands into the same MULTI block and
        runs only when the document actually changed. The mutator may run more
        than once under contention, so it must not have external side effects.
        """

        key = self._key(product_id)
        for attempt in range(1, self._max_retries + 1):
            async with self._client.pipeline(transaction=True) as pipe:
                try:
                    await pipe.watch(key)
                    raw = await pipe.get(key)
                    if not raw:
                        raise ProductNotFoundError()

                    product = Product.model_validate_json(raw)
                    original = product.model_dump()
                    result = mutate(product)
                    if product.model_dump() == original:
                        return Mutation(product, result, False)

                    pipe.multi()
                    pipe.set(key, product.model_dump_json())
                    if stage is not None:
                        stage(pipe, product, result)
                    await pipe.execute()
                    return Mutation(product, result, True)
                except WatchError:
                    logger.debug(
                        "Concurrent write on product %s, retrying (attempt %d)",
                        product_id,
                        attempt,
                    )

        logger.warning(
            "Giving up on product %s after %d conflicting attempts",
            product_id,
            self._max_retries,
        )
        raise ConcurrentUpdateError()

    async def update_many(
        self,
        product_ids: Iterable[str],
        mutate: Mutator[Any],
    ) -> BulkUpdateResult:
        """Apply ``mutate`` to each listed product, one atomic update per document."""

        matched = modified = 0
        for product_id in dict.fromkeys(product_ids):
            try:
                mutation = await self.update(product_id, mutate)
            except ProductNotFoundError:
                continue
            matched += 1
            modified += int(mutation.changed)
        return BulkUpdateResult(matched_count=matched, modified_count=modified)

    async def ping(self) -> bool:
        return bool(await self._client.ping())


def create_product_store(client: redis.Redis | None = None) -> RedisProductStore:
    """Factory function to create a product store."""
    return RedisProductStore(client or get_store_client())
