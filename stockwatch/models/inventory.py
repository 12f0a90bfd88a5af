"""Schemas for inventory transitions and the admin inventory endpoints."""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, Field


class InventoryState(StrEnum):
    IN_STOCK = "in_stock"
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"


class QuantityOperation(StrEnum):
    SET = "set"
    INCREMENT = "increment"
    DECREMENT = "decrement"


class InventoryUpdateRequest(BaseModel):
    """Body of PATCH /products/{id}/inventory."""

    # Sign is checked by the state machine so a negative value maps to
    # InvalidQuantityError (400) rather than a schema error.
    quantity: int
    operation: QuantityOperation = QuantityOperation.SET
    variant_id: str | None = None


class StockTransition(BaseModel):
    """Outcome of one pass through the inventory state machine."""

    previous_quantity: int
    new_quantity: int
    previous_state: InventoryState
    state: InventoryState
    was_out_of_stock: bool = Field(
        ..., description="Stock was at zero before this change"
    )
    is_back_in_stock: bool = Field(
        ..., description="This change moved the stock from zero to positive"
    )


class InventoryChangeResult(BaseModel):
    """Response of PATCH /products/{id}/inventory."""

    product_id: str
    variant_id: str | None = None
    previous_quantity: int
    new_quantity: int
    previous_state: InventoryState
    state: InventoryState
    was_out_of_stock: bool
    is_back_in_stock: bool
    has_subscribers: bool
    notified: int = 0


class LowStockEntry(BaseModel):
    product_id: str
    name: str
    sku: str
    variant_id: str | None = None
    quantity: int
    threshold: int


class BackInStockEntry(BaseModel):
    product_id: str
    name: str
    sku: str
    variant_id: str | None = None
    quantity: int
    subscribers: int


class StockReport(BaseModel):
    """Envelope for the admin enumeration endpoints."""

    count: int
    data: list[LowStockEntry] | list[BackInStockEntry]


class OrderItem(BaseModel):
    product_id: str = Field(..., min_length=1)
    variant_id: str | None = None
    quantity: int = Field(..., gt=0)


OrderStatus = Literal[
    "pending",
    "processing",
    "shipped",
    "delivered",
    "cancelled",
    "refunded",
]


class OrderInventoryEvent(BaseModel):
    """Body of POST /inventory/order-events, sent when an order changes status."""

    order_id: str = Field(..., min_length=1)
    status: OrderStatus
    previous_status: OrderStatus | None = None
    items: list[OrderItem] = Field(..., min_length=1)


class OrderInventoryOutcome(BaseModel):
    action: Literal["reserved", "returned", "none"]
    changes: list[InventoryChangeResult] = Field(default_factory=list)
    skipped: list[str] = Field(
        default_factory=list,
        description="Product ids whose stock could not be adjusted",
    )


class StockCheckRequest(BaseModel):
    items: list[OrderItem] = Field(..., min_length=1)


class StockCheckLine(BaseModel):
    product_id: str
    variant_id: str | None = None
    name: str | None = None
    sku: str | None = None
    available: int
    requested: int
    in_stock: bool
    message: str | None = None


class StockCheckReport(BaseModel):
    in_stock: bool
    items: list[StockCheckLine]
