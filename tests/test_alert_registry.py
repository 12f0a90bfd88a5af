"""Tests for back-in-stock subscriptions and the restock fan-out."""

import json

import pytest

from stockwatch.errors import (
    AlertNotFoundError,
    AlreadyInStockError,
    DuplicateSubscriptionError,
    ProductNotFoundError,
)


@pytest.mark.asyncio
async def test_subscribe_records_watcher_and_alert(
    alert_registry, make_product, product_store
):
    product = await make_product(quantity=0)

    alert = await alert_registry.subscribe("user-a", product.id)

    assert alert.status == "pending"
    assert alert.product.name == product.name
    assert (await product_store.get(product.id)).watching_users == ["user-a"]
    views = await alert_registry.list_alerts("user-a")
    assert [v.product_id for v in views] == [product.id]


@pytest.mark.asyncio
async def test_duplicate_subscription_rejected(
    alert_registry, make_product, product_store
):
    product = await make_product(quantity=0)
    await alert_registry.subscribe("user-a", product.id)

    with pytest.raises(DuplicateSubscriptionError):
        await alert_registry.subscribe("user-a", product.id)

    assert (await product_store.get(product.id)).watching_users == ["user-a"]


@pytest.mark.asyncio
async def test_subscribe_to_stocked_or_missing_product(alert_registry, make_product):
    product = await make_product(quantity=4)

    with pytest.raises(AlreadyInStockError):
        await alert_registry.subscribe("user-a", product.id)
    with pytest.raises(ProductNotFoundError):
        await alert_registry.subscribe("user-a", "ghost")


@pytest.mark.asyncio
async def test_unsubscribe(alert_registry, make_product, product_store):
    product = await make_product(quantity=0)
    await alert_registry.subscribe("user-a", product.id)

    assert await alert_registry.unsubscribe("user-a", product.id) is True
    assert await alert_registry.unsubscribe("user-a", product.id) is False
    assert await alert_registry.unsubscribe("user-a", "ghost") is False
    assert (await product_store.get(product.id)).watching_users == []
    assert await alert_registry.list_alerts("user-a") == []


@pytest.mark.asyncio
async def test_restock_fan_out_is_exactly_once(
    alert_registry, inventory_service, make_product, store_client
):
    product = await make_product(quantity=0)
    await alert_registry.subscribe("user-a", product.id)
    await alert_registry.subscribe("user-b", product.id)

    await inventory_service.apply_quantity_change(product.id, 3, "increment")
    repeated = await alert_registry.on_restock(product.id)

    assert repeated == []
    entries = await store_client.xrange("stock-alerts:notifications")
    users = sorted(json.loads(fields["payload"])["user_id"] for _, fields in entries)
    assert users == ["user-a", "user-b"]

    alerts = await alert_registry.list_alerts("user-a")
    assert alerts[0].status == "notified"
    assert alerts[0].notified_at is not None

    with pytest.raises(AlreadyInStockError):
        await alert_registry.subscribe("user-c", product.id)


@pytest.mark.asyncio
async def test_next_sell_out_allows_new_subscriptions(
    alert_registry, inventory_service, make_product
):
    product = await make_product(quantity=0)
    await alert_registry.subscribe("user-a", product.id)
    await inventory_service.apply_quantity_change(product.id, 5)
    await inventory_service.apply_quantity_change(product.id, 0)

    alert = await alert_registry.subscribe("user-a", product.id)

    assert alert.status == "pending"
    result = await inventory_service.apply_quantity_change(product.id, 1)
    assert result.notified == 1


@pytest.mark.asyncio
async def test_cancel_alert_by_id(alert_registry, make_product):
    product = await make_product(quantity=0)
    alert = await alert_registry.subscribe("user-a", product.id)

    with pytest.raises(AlertNotFoundError):
        await alert_registry.cancel_alert("user-b", alert.id)

    cancelled = await alert_registry.cancel_alert("user-a", alert.id)

    assert cancelled.id == alert.id
    assert await alert_registry.list_alerts("user-a") == []


@pytest.mark.asyncio
async def test_inactive_variant_restock_keeps_watchers(
    alert_registry, inventory_service, make_product, product_store
):
    product = await make_product(
        variants=[{"quantity": 0}, {"quantity": 0, "is_active": False}]
    )
    hidden = product.variants[1]
    await alert_registry.subscribe("user-a", product.id)

    result = await inventory_service.apply_quantity_change(
        product.id, 6, variant_id=hidden.id
    )

    assert result.notified == 0
    stored = await product_store.get(product.id)
    assert stored.watching_users == ["user-a"]
    assert stored.available_quantity == 0
    assert await inventory_service.dispatch_pending_restocks() == []


@pytest.mark.asyncio
async def test_subscribe_to_inactive_product(
    alert_registry, catalog_service, make_product, product_store
):
    product = await make_product(quantity=0)
    await catalog_service.deactivate(product.id)

    with pytest.raises(ProductNotFoundError):
        await alert_registry.subscribe("user-a", product.id)

    assert (await product_store.get(product.id)).watching_users == []
