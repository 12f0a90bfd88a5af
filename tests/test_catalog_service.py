"""Tests for catalog mutations and the cached read path."""

from unittest.mock import AsyncMock

import pytest

from stockwatch.errors import DuplicateSkuError, ProductNotFoundError
from stockwatch.models.product import BulkProductUpdate, ProductCreate, ProductUpdate
from stockwatch.services.cache.invalidation import CacheInvalidator
from stockwatch.services.cache.product_cache import ProductCache
from stockwatch.services.catalog.service import CatalogService, to_detail


@pytest.mark.asyncio
async def test_create_generates_sku_and_slug(catalog_service):
    view = await catalog_service.create(
        ProductCreate(name="Aurora Floor Lamp!", price=19.999, quantity=0)
    )

    assert view.slug == "aurora-floor-lamp"
    assert view.sku.startswith("AUR-")
    assert view.price == 20.0
    assert view.stock_state == "out_of_stock"


@pytest.mark.asyncio
async def test_duplicate_sku_rejected(catalog_service):
    await catalog_service.create(ProductCreate(name="Lamp", price=5, sku="lmp-001"))

    with pytest.raises(DuplicateSkuError):
        await catalog_service.create(
            ProductCreate(name="Other", price=5, sku="LMP-001")
        )


@pytest.mark.asyncio
async def test_read_is_cached_until_mutation(
    catalog_service, make_product, cache_client
):
    product = await make_product(name="Desk Lamp", quantity=10)

    first = await catalog_service.get_product(product.id)
    assert await cache_client.exists(f"product:{product.id}")

    await catalog_service.update(product.id, ProductUpdate(price=12.5))
    fresh = await catalog_service.get_product(product.id)

    assert first["price"] == 49.9
    assert fresh["price"] == 12.5


@pytest.mark.asyncio
async def test_inventory_change_is_visible_on_next_read(
    catalog_service, inventory_service, make_product
):
    product = await make_product(quantity=10)
    assert (await catalog_service.get_product(product.id))["quantity"] == 10

    await inventory_service.apply_quantity_change(product.id, 0)

    view = await catalog_service.get_product(product.id)
    assert view["quantity"] == 0
    assert view["stock_state"] == "out_of_stock"


@pytest.mark.asyncio
async def test_missing_product_raises(catalog_service):
    with pytest.raises(ProductNotFoundError):
        await catalog_service.get_product("ghost")


@pytest.mark.asyncio
async def test_reads_fall_through_when_cache_is_down(
    catalog_service, make_product, cache_server
):
    product = await make_product(quantity=3)
    cache_server.connected = False

    view = await catalog_service.get_product(product.id)
    page = await catalog_service.list_products()

    assert view["id"] == product.id
    assert page["total"] == 1


@pytest.mark.asyncio
async def test_featured_listing_follows_toggle(catalog_service, make_product):
    product = await make_product(quantity=3)
    assert await catalog_service.featured() == []

    await catalog_service.toggle_featured(product.id)

    assert [p["id"] for p in await catalog_service.featured()] == [product.id]


@pytest.mark.asyncio
async def test_deactivate_hides_product_from_listings(catalog_service, make_product):
    product = await make_product(category="lighting")
    assert (await catalog_service.list_products())["total"] == 1
    assert await catalog_service.categories() == ["lighting"]

    view = await catalog_service.deactivate(product.id)

    assert view.is_active is False
    assert (await catalog_service.list_products())["total"] == 0
    assert await catalog_service.categories() == []
    counts = await catalog_service.counts()
    assert (counts["active"], counts["inactive"]) == (0, 1)


@pytest.mark.asyncio
async def test_search_and_related(catalog_service, make_product):
    lamp = await make_product(name="Desk Lamp", category="lighting", tags=["brass"])
    shade = await make_product(name="Lamp Shade", category="lighting", quantity=0)
    await make_product(name="Sofa", category="seating", tags=["velvet"])

    found = await catalog_service.search(query="lamp", in_stock=True)
    related = await catalog_service.related(lamp.id)

    assert [p["id"] for p in found["items"]] == [lamp.id]
    assert [p["id"] for p in related] == [shade.id]


@pytest.mark.asyncio
async def test_featured_bulk_update_invalidates_once(
    product_store, cache_client, make_product
):
    products = [
        await make_product(name=f"Item {i}", sku=f"ITM-{i:05d}") for i in range(50)
    ]
    invalidator = AsyncMock(spec=CacheInvalidator)
    catalog = CatalogService(product_store, ProductCache(cache_client), invalidator)

    result = await catalog.bulk_update(
        BulkProductUpdate(
            ids=[p.id for p in products], update=ProductUpdate(is_featured=True)
        )
    )

    assert result.matched_count == 50
    assert result.modified_count == 50
    invalidator.invalidate.assert_awaited_once_with()
    invalidator.invalidate_many.assert_not_awaited()


@pytest.mark.asyncio
async def test_bulk_update_of_other_fields_evicts_each_product(
    product_store, cache_client, make_product
):
    products = [
        await make_product(name=f"Item {i}", sku=f"ITM-{i:05d}") for i in range(3)
    ]
    invalidator = AsyncMock(spec=CacheInvalidator)
    catalog = CatalogService(product_store, ProductCache(cache_client), invalidator)
    ids = [p.id for p in products] + ["ghost"]

    result = await catalog.bulk_update(
        BulkProductUpdate(ids=ids, update=ProductUpdate(price=10))
    )

    assert result.matched_count == 3
    invalidator.invalidate_many.assert_awaited_once_with(ids)


@pytest.mark.asyncio
async def test_featured_bulk_update_keeps_cached_detail_fresh(
    catalog_service, make_product, product_store
):
    product = await make_product(quantity=3)
    before = await catalog_service.get_product(product.id)

    await catalog_service.bulk_update(
        BulkProductUpdate(ids=[product.id], update=ProductUpdate(is_featured=True))
    )

    after = await catalog_service.get_product(product.id)
    stored = await product_store.get(product.id)
    assert stored.is_featured is True
    assert stored.updated_at == product.updated_at
    assert after == to_detail(stored)
    assert after == before
    assert [p["id"] for p in await catalog_service.featured()] == [product.id]
