"""Tests for the stock alert subscription endpoints."""

import pytest

ADMIN_HEADERS = {"X-User-Id": "admin-1", "X-User-Role": "admin"}
USER = {"X-User-Id": "shopper-1"}


@pytest.mark.asyncio
async def test_subscribe_and_unsubscribe(client, make_product):
    product = await make_product(name="Desk Lamp", quantity=0)

    created = await client.post(f"/products/{product.id}/alert", headers=USER)
    duplicate = await client.post(f"/products/{product.id}/alert", headers=USER)

    assert created.status_code == 200
    body = created.json()
    assert body["success"] is True
    assert body["product_name"] == "Desk Lamp"
    assert body["is_in_stock"] is False
    assert body["alert"]["status"] == "pending"
    assert duplicate.status_code == 400

    removed = await client.delete(f"/products/{product.id}/alert", headers=USER)
    listed = await client.get("/alerts", headers=USER)

    assert removed.status_code == 204
    assert listed.json() == []


@pytest.mark.asyncio
async def test_subscribe_requires_identity(client, make_product):
    product = await make_product(quantity=0)

    response = await client.post(f"/products/{product.id}/alert")

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_subscribe_rejected_when_in_stock(client, make_product):
    product = await make_product(quantity=3)

    response = await client.post(
        "/alerts", json={"product_id": product.id}, headers=USER
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Product is already in stock"


@pytest.mark.asyncio
async def test_alert_lifecycle(client, make_product):
    product = await make_product(quantity=0)

    created = await client.post(
        "/alerts", json={"product_id": product.id}, headers=USER
    )
    assert created.status_code == 201
    alert_id = created.json()["alert"]["id"]

    await client.patch(
        f"/products/{product.id}/inventory",
        json={"quantity": 8},
        headers=ADMIN_HEADERS,
    )

    listed = (await client.get("/alerts", headers=USER)).json()
    assert listed[0]["status"] == "notified"
    assert listed[0]["product"]["quantity"] == 8

    deleted = await client.delete(f"/alerts/{alert_id}", headers=USER)
    missing = await client.delete(f"/alerts/{alert_id}", headers=USER)

    assert deleted.status_code == 200
    assert deleted.json()["id"] == alert_id
    assert missing.status_code == 404
