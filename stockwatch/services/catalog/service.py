"""Catalog reads (through the cache) and catalog mutations (evicting it)."""

from __future__ import annotations

import logging
import math

from stockwatch.config import settings
from stockwatch.errors import ProductNotFoundError
from stockwatch.models.inventory import InventoryState
from stockwatch.models.product import (
    BulkProductUpdate,
    BulkUpdateResult,
    Product,
    ProductCounts,
    ProductCreate,
    ProductPage,
    ProductUpdate,
    ProductView,
    VariantView,
    slugify,
)
from stockwatch.services.cache.invalidation import CacheInvalidator
from stockwatch.services.cache.keys import (
    CATEGORIES_LIST_KEY,
    FEATURED_PRODUCTS_KEY,
    PRODUCT_COUNTS_KEY,
    CacheKeyKind,
    product_key,
    product_list_key,
    related_key,
    search_key,
)
from stockwatch.services.cache.product_cache import ProductCache
from stockwatch.services.inventory.service import threshold_for
from stockwatch.services.inventory.state_machine import classify
from stockwatch.services.storage.product_store import RedisProductStore

logger = logging.getLogger(__name__)

SORT_FIELDS = {"created_at", "updated_at", "price", "name"}


def to_view(product: Product) -> ProductView:
    threshold = threshold_for(product)
    return ProductView(
        id=product.id,
        sku=product.sku,
        name=product.name,
        slug=product.slug,
        description=product.description,
        price=product.price,
        category=product.category,
        tags=product.tags,
        images=product.images,
        is_featured=product.is_featured,
        is_active=product.is_active,
        has_variants=product.has_variants,
        variants=[
            VariantView(
                id=v.id,
                sku=v.sku,
                options=v.options,
                price=v.price,
                quantity=v.quantity,
                is_active=v.is_active,
                stock_state=classify(v.quantity, threshold),
            )
            for v in product.variants
        ],
        quantity=product.available_quantity,
        stock_state=classify(product.available_quantity, threshold),
        created_at=product.created_at,
        updated_at=product.updated_at,
    )


def _dump(products: list[Product]) -> list[dict]:
    return [to_view(p).model_dump(mode="json") for p in products]


def to_detail(product: Product) -> dict:
    return to_view(product).model_dump(mode="json", exclude={"is_featured"})


def _sort(products: list[Product], sort: str) -> list[Product]:
    descending = sort.startswith("-")
    field = sort.lstrip("-")
    if field not in SORT_FIELDS:
        field, descending = "created_at", True
    return sorted(products, key=lambda p: getattr(p, field), reverse=descending)


class CatalogService:
    """Product CRUD and the cached read path.

    Every mutation evicts dependent cache entries after the store write and
    before returning.
    """

    def __init__(
        self,
        store: RedisProductStore,
        cache: ProductCache,
        invalidator: CacheInvalidator,
    ) -> None:
        self._store = store
        self._cache = cache
        self._invalidator = invalidator

    # Mutations

    async def create(self, payload: ProductCreate) -> ProductView:
        product = await self._store.insert(payload.build())
        # A new product has no product:{id} entry yet.
        await self._invalidator.invalidate()
        return to_view(product)

    async def update(self, product_id: str, payload: ProductUpdate) -> ProductView:
        changes = payload.changes()

        def _apply(product: Product) -> None:
            for field, value in changes.items():
                setattr(product, field, value)
            if "name" in changes:
                product.slug = slugify(product.name)
            product.touch()

        mutation = await self._store.update(product_id, _apply)
        await self._invalidator.invalidate(product_id)
        return to_view(mutation.product)

    async def deactivate(self, product_id: str) -> ProductView:
        """Soft delete; products stay in the store for order history."""

        def _deactivate(product: Product) -> None:
            if product.is_active:
                product.is_active = False
                product.touch()

        mutation = await self._store.update(product_id, _deactivate)
        await self._invalidator.invalidate(product_id)
        logger.info("Deactivated product %s", product_id)
        return to_view(mutation.product)

    async def toggle_featured(self, product_id: str) -> ProductView:
        def _toggle(product: Product) -> None:
            product.is_featured = not product.is_featured

        mutation = await self._store.update(product_id, _toggle)
        await self._invalidator.invalidate()
        return to_view(mutation.product)

    async def bulk_update(self, payload: BulkProductUpdate) -> BulkUpdateResult:
        changes = payload.update.changes()
        content = set(changes) - {"is_featured"}

        def _apply(product: Product) -> None:
            before = product.model_dump(include=content)
            for field, value in changes.items():
                setattr(product, field, value)
            if "name" in changes:
                product.slug = slugify(product.name)
            if product.model_dump(include=content) != before:
                product.touch()

        result = await self._store.update_many(payload.ids, _apply)

        # Per-product entries hold ProductDetail, which carries neither the
        # featured flag nor a timestamp bumped by it.
        if payload.featured_only:
            await self._invalidator.invalidate()
        else:
            await self._invalidator.invalidate_many(payload.ids)

        logger.info(
            "Bulk update matched %d and modified %d product(s)",
            result.matched_count,
            result.modified_count,
        )
        return result

    # Reads

    async def get_product(self, product_id: str) -> dict:
        async def _load() -> dict | None:
            product = await self._store.get(product_id)
            if product is None:
                return None
            return to_detail(product)

        data, _ = await self._cache.remember(
            product_key(product_id), CacheKeyKind.PRODUCT, _load
        )
        if data is None:
            raise ProductNotFoundError()
        return data

    async def list_products(
        self,
        page: int = 1,
        limit: int = 10,
        sort: str = "-created_at",
        category: str | None = None,
    ) -> dict:
        limit = min(limit, 100)

        async def _load() -> dict:
            products = await self._store.find(
                lambda p: p.is_active and (category is None or p.category == category)
            )
            products = _sort(products, sort)
            start = (page - 1) * limit
            return ProductPage(
                items=[to_view(p) for p in products[start : start + limit]],
                total=len(products),
                page=page,
                limit=limit,
                pages=math.ceil(len(products) / limit) if products else 0,
            ).model_dump(mode="json")

        data, _ = await self._cache.remember(
            product_list_key(page, limit, sort, category),
            CacheKeyKind.PRODUCT_LIST,
            _load,
        )
        return data

    async def featured(self, limit: int = 10) -> list[dict]:
        async def _load() -> list[dict]:
            products = await self._store.find(lambda p: p.is_active and p.is_featured)
            return _dump(products[: settings.FEATURED_PRODUCTS_LIMIT])

        data, _ = await self._cache.remember(
            FEATURED_PRODUCTS_KEY, CacheKeyKind.FEATURED, _load
        )
        return data[:limit]

    async def related(self, product_id: str, limit: int = 4) -> list[dict]:
        async def _load() -> list[dict]:
            product = await self._store.get(product_id)
            if product is None:
                return []
            tags = set(product.tags)
            related = await self._store.find(
                lambda p: p.id != product_id
                and p.is_active
                and (
                    (product.category is not None and p.category == product.category)
                    or bool(tags.intersection(p.tags))
                )
            )
            return [to_detail(p) for p in related[:limit]]

        data, _ = await self._cache.remember(
            related_key(product_id, limit), CacheKeyKind.RELATED, _load
        )
        return data

    async def search(
        self,
        query: str | None = None,
        category: str | None = None,
        min_price: float | None = None,
        max_price: float | None = None,
        tags: list[str] | None = None,
        in_stock: bool = False,
        page: int = 1,
        limit: int = 10,
    ) -> dict:
        params = {
            "q": query.strip().lower() if query else None,
            "category": category,
            "min_price": min_price,
            "max_price": max_price,
            "tags": sorted(t.lower() for t in tags) if tags else None,
            "in_stock": in_stock or None,
            "page": page,
            "limit": limit,
        }

        def _matches(product: Product) -> bool:
            if not product.is_active:
                return False
            if params["q"]:
                needle = params["q"]
                if not (
                    needle in product.name.lower()
                    or needle in product.description.lower()
                    or needle == product.sku.lower()
                ):
                    return False
            if category is not None and product.category != category:
                return False
            if min_price is not None and product.price < min_price:
                return False
            if max_price is not None and product.price > max_price:
                return False
            if params["tags"] and not set(params["tags"]).intersection(product.tags):
                return False
            if in_stock and product.available_quantity <= 0:
                return False
            return True

        async def _load() -> dict:
            products = await self._store.find(_matches)
            start = (page - 1) * limit
            return ProductPage(
                items=[to_view(p) for p in products[start : start + limit]],
                total=len(products),
                page=page,
                limit=limit,
                pages=math.ceil(len(products) / limit) if products else 0,
            ).model_dump(mode="json")

        data, _ = await self._cache.remember(
            search_key(params), CacheKeyKind.SEARCH, _load
        )
        return data

    async def categories(self) -> list[str]:
        async def _load() -> list[str]:
            products = await self._store.find(lambda p: p.is_active)
            return sorted({p.category for p in products if p.category})

        data, _ = await self._cache.remember(
            CATEGORIES_LIST_KEY, CacheKeyKind.CATEGORIES, _load
        )
        return data

    async def counts(self) -> dict:
        async def _load() -> dict:
            products = await self._store.all()
            active = [p for p in products if p.is_active]
            states = [
                classify(p.available_quantity, threshold_for(p)) for p in active
            ]
            return ProductCounts(
                active=len(active),
                inactive=len(products) - len(active),
                out_of_stock=states.count(InventoryState.OUT_OF_STOCK),
                low_stock=states.count(InventoryState.LOW_STOCK),
                total=len(products),
            ).model_dump()

        data, _ = await self._cache.remember(
            PRODUCT_COUNTS_KEY, CacheKeyKind.COUNTS, _load
        )
        return data
