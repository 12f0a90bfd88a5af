"""In-app notification schemas."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from pydantic import BaseModel, Field

from stockwatch.models.alert import StockAlertNotification


class InboxNotification(BaseModel):
    """Notification as delivered into a user's inbox."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    user_id: str
    type: str
    title: str
    message: str
    data: dict = Field(default_factory=dict)
    delivered_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_stock_alert(cls, alert: StockAlertNotification) -> InboxNotification:
        return cls(
            user_id=alert.user_id,
            type=alert.type,
            title=alert.title,
            message=(
                f"Good news! {alert.product_name} is available again "
                f"({alert.quantity} in stock)."
            ),
            data={
                "product_id": alert.product_id,
                "variant_id": alert.variant_id,
                "quantity": alert.quantity,
            },
        )


class InboxResponse(BaseModel):
    count: int
    items: list[InboxNotification]
