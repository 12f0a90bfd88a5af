"""Back-in-stock subscriptions and their exactly-once fan-out."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from redis.asyncio.client import Pipeline

from stockwatch.config import settings
from stockwatch.errors import (
    AlertNotFoundError,
    AlreadyInStockError,
    DuplicateSubscriptionError,
    ProductNotFoundError,
    VariantNotFoundError,
)
from stockwatch.models.alert import (
    AlertProductSummary,
    StockAlert,
    StockAlertNotification,
    StockAlertView,
)
from stockwatch.models.product import Product, Variant
from stockwatch.services.storage.alert_store import StockAlertStore
from stockwatch.services.storage.product_store import RedisProductStore

logger = logging.getLogger(__name__)


class StockAlertRegistry:
    """Tracks who waits for which out-of-stock product and notifies them once.

    The product's ``watching_users`` list is the set of active subscriptions;
    the normalized :class:`StockAlert` records mirror it and are written in
    the same store transaction. Restock notifications are appended to the
    notification stream inside that transaction too, so the guard flip, the
    watcher reset and the fan-out commit or fail together.
    """

    def __init__(
        self,
        store: RedisProductStore,
        alerts: StockAlertStore,
        *,
        stream_key: str | None = None,
    ) -> None:
        self._store = store
        self._alerts = alerts
        self._stream_key = stream_key or settings.NOTIFICATIONS_STREAM_KEY

    async def subscribe(self, user_id: str, product_id: str) -> StockAlertView:
        alert = StockAlert(user_id=user_id, product_id=product_id)

        def _add_watcher(product: Product) -> StockAlert:
            if not product.is_active:
                raise ProductNotFoundError()
            if product.available_quantity > 0:
                raise AlreadyInStockError()
            if user_id in product.watching_users:
                raise DuplicateSubscriptionError()
            product.watching_users.append(user_id)
            return alert

        def _stage(pipe: Pipeline, product: Product, created: StockAlert) -> None:
            self._alerts.stage_pending(pipe, created)

        mutation = await self._store.update(product_id, _add_watcher, stage=_stage)
        logger.info(
            "User %s subscribed to stock alerts for product %s",
            user_id,
            product_id,
            extra={"watchers": len(mutation.product.watching_users)},
        )
        return StockAlertView(
            **mutation.result.model_dump(), product=_summary(mutation.product)
        )

    async def unsubscribe(self, user_id: str, product_id: str) -> bool:
        """Drop the subscription; returns False when there was none."""

        def _remove_watcher(product: Product) -> bool:
            if user_id not in product.watching_users:
                return False
            product.watching_users = [
                uid for uid in product.watching_users if uid != user_id
            ]
            return True

        try:
            mutation = await self._store.update(product_id, _remove_watcher)
            removed = mutation.result
        except ProductNotFoundError:
            removed = False
        record_deleted = await self._alerts.delete(user_id, product_id)

        if removed or record_deleted:
            logger.info(
                "User %s unsubscribed from stock alerts for product %s",
                user_id,
                product_id,
            )
        return removed or record_deleted

    async def on_restock(
        self,
        product_id: str,
        variant_id: str | None = None,
    ) -> list[StockAlertNotification]:
        """Fan out one notification per watcher of a restocked product.

        No-op when the restock was already announced
        (``is_back_in_stock_alert_sent``), the stock is empty again or the
        restocked variant is inactive.
        Returns the (user, product) pairs that were queued.
        """

        notified_at = datetime.now(UTC)

        def _claim_fan_out(product: Product) -> list[StockAlertNotification]:
            level = (
                product.find_variant(variant_id)
                if variant_id is not None
                else product.inventory
            )
            if level is None:
                raise VariantNotFoundError()
            if level.is_back_in_stock_alert_sent or level.quantity <= 0:
                return []
            # Inactive variants do not count towards available stock.
            if isinstance(level, Variant) and not level.is_active:
                return []

            notifications = [
                StockAlertNotification(
                    user_id=user_id,
                    product_id=product.id,
                    product_name=product.name,
                    variant_id=variant_id,
                    quantity=level.quantity,
                    created_at=notified_at,
                )
                for user_id in product.watching_users
            ]
            level.is_back_in_stock_alert_sent = True
            product.watching_users = []
            return notifications

        def _stage(
            pipe: Pipeline,
            product: Product,
            notifications: list[StockAlertNotification],
        ) -> None:
            for notification in notifications:
                pipe.xadd(
                    self._stream_key,
                    {"payload": notification.model_dump_json()},
                )
                self._alerts.stage_notified(
                    pipe, notification.user_id, product.id, notified_at
                )

        mutation = await self._store.update(product_id, _claim_fan_out, stage=_stage)
        if mutation.changed:
            logger.info(
                "Back-in-stock fan-out for product %s",
                product_id,
                extra={
                    "variant_id": variant_id,
                    "subscribers": len(mutation.result),
                },
            )
        return mutation.result

    async def list_alerts(self, user_id: str) -> list[StockAlertView]:
        alerts = await self._alerts.list_for_user(user_id)
        products = {
            p.id: p for p in await self._store.get_many({a.product_id for a in alerts})
        }
        views = []
        for alert in alerts:
            product = products.get(alert.product_id)
            summary = _summary(product) if product is not None else None
            views.append(StockAlertView(**alert.model_dump(), product=summary))
        return views

    async def cancel_alert(self, user_id: str, alert_id: str) -> StockAlert:
        alert = await self._alerts.find_by_id(user_id, alert_id)
        if alert is None:
            raise AlertNotFoundError()
        await self.unsubscribe(user_id, alert.product_id)
        return alert


def _summary(product: Product) -> AlertProductSummary:
    return AlertProductSummary(
        id=product.id,
        name=product.name,
        price=product.price,
        quantity=product.available_quantity,
        images=product.images,
    )
