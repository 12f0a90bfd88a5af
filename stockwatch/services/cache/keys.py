"""Cache key scheme shared by the read path and the invalidator.

Every cache key is produced here so readers and the invalidator cannot drift
apart on key shape.
"""

from __future__ import annotations

import hashlib
import json
from enum import StrEnum

from stockwatch.config import settings


class CacheKeyKind(StrEnum):
    PRODUCT = "product"
    RELATED = "related"
    FEATURED = "featured"
    CATEGORIES = "categories"
    PRODUCT_LIST = "products:list"
    SEARCH = "search:products"
    COUNTS = "products:counts"


def build_key(kind: CacheKeyKind, *parts: object) -> str:
    """Join ``kind`` and its parameters into a ``:``-separated key."""

    return ":".join([kind.value, *(str(p) for p in parts)])


FEATURED_PRODUCTS_KEY = build_key(CacheKeyKind.FEATURED, "products")
CATEGORIES_LIST_KEY = build_key(CacheKeyKind.CATEGORIES, "list")
PRODUCT_COUNTS_KEY = build_key(CacheKeyKind.COUNTS)
PRODUCT_LIST_PATTERN = build_key(CacheKeyKind.PRODUCT_LIST, "*")
SEARCH_PATTERN = build_key(CacheKeyKind.SEARCH, "*")


def product_key(product_id: str) -> str:
    return build_key(CacheKeyKind.PRODUCT, product_id)


def related_key(product_id: str, limit: int) -> str:
    return build_key(CacheKeyKind.RELATED, product_id, limit)


def related_pattern(product_id: str) -> str:
    return build_key(CacheKeyKind.RELATED, product_id, "*")


def product_list_key(
    page: int,
    limit: int,
    sort: str,
    category: str | None = None,
) -> str:
    return build_key(CacheKeyKind.PRODUCT_LIST, page, limit, sort, category or "all")


def search_key(params: dict) -> str:
    """Hash the normalized search parameters so the key stays short."""

    canonical = json.dumps(
        {k: v for k, v in params.items() if v is not None},
        sort_keys=True,
        default=str,
    )
    digest = hashlib.sha1(canonical.encode("utf-8")).hexdigest()
    return build_key(CacheKeyKind.SEARCH, digest)


def ttl_for(kind: CacheKeyKind) -> int:
    """TTL in seconds for a cache-entry class."""

    return {
        CacheKeyKind.PRODUCT: settings.CACHE_TTL_PRODUCT_DETAILS,
        CacheKeyKind.COUNTS: settings.CACHE_TTL_PRODUCT_DETAILS,
        CacheKeyKind.RELATED: settings.CACHE_TTL_RELATED_PRODUCTS,
        CacheKeyKind.FEATURED: settings.CACHE_TTL_FEATURED_PRODUCTS,
        CacheKeyKind.CATEGORIES: settings.CACHE_TTL_PRODUCT_LIST,
        CacheKeyKind.PRODUCT_LIST: settings.CACHE_TTL_PRODUCT_LIST,
        CacheKeyKind.SEARCH: settings.CACHE_TTL_SEARCH_RESULTS,
    }[kind]
