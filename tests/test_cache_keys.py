"""Tests for the cache key scheme."""

from stockwatch.config import settings
from stockwatch.services.cache.keys import (
    CATEGORIES_LIST_KEY,
    FEATURED_PRODUCTS_KEY,
    PRODUCT_COUNTS_KEY,
    PRODUCT_LIST_PATTERN,
    SEARCH_PATTERN,
    CacheKeyKind,
    product_key,
    product_list_key,
    related_key,
    related_pattern,
    search_key,
    ttl_for,
)


def test_key_shapes():
    assert product_key("p1") == "product:p1"
    assert related_key("p1", 4) == "related:p1:4"
    assert related_pattern("p1") == "related:p1:*"
    assert FEATURED_PRODUCTS_KEY == "featured:products"
    assert CATEGORIES_LIST_KEY == "categories:list"
    assert PRODUCT_COUNTS_KEY == "products:counts"
    assert PRODUCT_LIST_PATTERN == "products:list:*"
    assert SEARCH_PATTERN == "search:products:*"


def test_product_list_key_defaults_category_to_all():
    assert (
        product_list_key(1, 10, "-created_at")
        == "products:list:1:10:-created_at:all"
    )
    assert (
        product_list_key(2, 20, "price", "lamps")
        == "products:list:2:20:price:lamps"
    )


def test_search_key_ignores_param_order_and_none_values():
    first = search_key({"q": "lamp", "page": 1, "category": None})
    second = search_key({"page": 1, "q": "lamp"})

    assert first == second
    assert first.startswith("search:products:")
    assert search_key({"q": "desk", "page": 1}) != first


def test_ttl_per_kind():
    assert ttl_for(CacheKeyKind.PRODUCT) == settings.CACHE_TTL_PRODUCT_DETAILS
    assert ttl_for(CacheKeyKind.SEARCH) == settings.CACHE_TTL_SEARCH_RESULTS
    assert ttl_for(CacheKeyKind.FEATURED) == settings.CACHE_TTL_FEATURED_PRODUCTS
    assert ttl_for(CacheKeyKind.RELATED) == settings.CACHE_TTL_RELATED_PRODUCTS
