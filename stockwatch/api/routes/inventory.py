"""Admin routes that change stock or report on stock alerts."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Query, status

from stockwatch.api.dependencies import InventoryDependency
from stockwatch.api.identity import AdminOnly
from stockwatch.models.inventory import (
    InventoryChangeResult,
    InventoryUpdateRequest,
    OrderInventoryEvent,
    OrderInventoryOutcome,
    StockCheckReport,
    StockCheckRequest,
    StockReport,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["inventory"])


@router.get(
    "/products/inventory/low-stock",
    response_model=StockReport,
    dependencies=[AdminOnly],
    summary="List stock levels that entered the low-stock band",
)
async def get_low_stock_products(
    inventory: InventoryDependency,
    threshold: int | None = Query(None, ge=1),
) -> StockReport:
    """Each low-stock episode is reported once; reported levels are marked sent."""

    entries = await inventory.collect_low_stock(threshold)
    return StockReport(count=len(entries), data=entries)


@router.get(
    "/products/inventory/back-in-stock",
    response_model=StockReport,
    dependencies=[AdminOnly],
    summary="Announce restocked products whose subscribers were not notified yet",
)
async def get_back_in_stock_products(inventory: InventoryDependency) -> StockReport:
    entries = await inventory.dispatch_pending_restocks()
    return StockReport(count=len(entries), data=entries)


@router.patch(
    "/products/{product_id}/inventory",
    response_model=InventoryChangeResult,
    dependencies=[AdminOnly],
    summary="Set, increment or decrement the stock of a product or variant",
)
async def update_product_inventory(
    product_id: str,
    payload: InventoryUpdateRequest,
    inventory: InventoryDependency,
) -> InventoryChangeResult:
    return await inventory.apply_quantity_change(
        product_id,
        payload.quantity,
        payload.operation,
        variant_id=payload.variant_id,
    )


@router.post(
    "/inventory/order-events",
    response_model=OrderInventoryOutcome,
    dependencies=[AdminOnly],
    summary="Adjust stock after an order status change",
)
async def apply_order_event(
    payload: OrderInventoryEvent,
    inventory: InventoryDependency,
) -> OrderInventoryOutcome:
    logger.info(
        "Order %s moved %s -> %s",
        payload.order_id,
        payload.previous_status,
        payload.status,
    )
    return await inventory.apply_order_transition(payload)


@router.post(
    "/inventory/check",
    response_model=StockCheckReport,
    status_code=status.HTTP_200_OK,
    summary="Check whether the requested quantities are available",
)
async def check_stock(
    payload: StockCheckRequest,
    inventory: InventoryDependency,
) -> StockCheckReport:
    return await inventory.check_stock_levels(payload.items)
