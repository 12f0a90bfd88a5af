"""Stock alert subscriptions and the notifications they produce."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field


class StockAlert(BaseModel):
    """Normalized subscription record, unique per (user, product)."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    user_id: str
    product_id: str
    status: Literal["pending", "notified"] = "pending"
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    notified_at: datetime | None = None


class AlertProductSummary(BaseModel):
    id: str
    name: str
    price: float
    quantity: int
    images: list[str] = Field(default_factory=list)


class StockAlertView(StockAlert):
    product: AlertProductSummary | None = None


class CreateAlertRequest(BaseModel):
    """Body of POST /alerts."""

    product_id: str = Field(..., min_length=1)


class SubscriptionConfirmation(BaseModel):
    success: bool = True
    message: str = "You will be notified when this product is back in stock"
    product_id: str
    product_name: str
    is_in_stock: bool
    alert: StockAlert


class StockAlertNotification(BaseModel):
    """One (user, product) pair produced by a restock fan-out."""

    user_id: str
    product_id: str
    product_name: str
    variant_id: str | None = None
    quantity: int
    type: Literal["back_in_stock"] = "back_in_stock"
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def title(self) -> str:
        return f"{self.product_name} is back in stock"
