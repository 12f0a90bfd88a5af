"""Routes for back-in-stock subscriptions."""

from __future__ import annotations

from fastapi import APIRouter, Response, status

from stockwatch.api.dependencies import AlertRegistryDependency
from stockwatch.api.identity import CurrentUserId
from stockwatch.models.alert import (
    CreateAlertRequest,
    StockAlert,
    StockAlertView,
    SubscriptionConfirmation,
)

router = APIRouter(tags=["alerts"])


@router.post(
    "/products/{product_id}/alert",
    response_model=SubscriptionConfirmation,
    status_code=status.HTTP_200_OK,
    summary="Get notified when an out-of-stock product is back",
)
async def subscribe_to_stock_alert(
    product_id: str,
    user_id: CurrentUserId,
    registry: AlertRegistryDependency,
) -> SubscriptionConfirmation:
    return _confirmation(await registry.subscribe(user_id, product_id))


@router.delete(
    "/products/{product_id}/alert",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Stop waiting for a product",
)
async def unsubscribe_from_stock_alert(
    product_id: str,
    user_id: CurrentUserId,
    registry: AlertRegistryDependency,
) -> Response:
    await registry.unsubscribe(user_id, product_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/alerts",
    response_model=SubscriptionConfirmation,
    status_code=status.HTTP_201_CREATED,
)
async def create_alert(
    payload: CreateAlertRequest,
    user_id: CurrentUserId,
    registry: AlertRegistryDependency,
) -> SubscriptionConfirmation:
    return _confirmation(await registry.subscribe(user_id, payload.product_id))


@router.get("/alerts", response_model=list[StockAlertView])
async def list_alerts(
    user_id: CurrentUserId,
    registry: AlertRegistryDependency,
) -> list[StockAlertView]:
    return await registry.list_alerts(user_id)


@router.delete("/alerts/{alert_id}", response_model=StockAlert)
async def delete_alert(
    alert_id: str,
    user_id: CurrentUserId,
    registry: AlertRegistryDependency,
) -> StockAlert:
    return await registry.cancel_alert(user_id, alert_id)


def _confirmation(alert: StockAlertView) -> SubscriptionConfirmation:
    product = alert.product
    return SubscriptionConfirmation(
        product_id=alert.product_id,
        product_name=product.name if product else "",
        is_in_stock=bool(product and product.quantity > 0),
        alert=StockAlert(**alert.model_dump(exclude={"product"})),
    )
