"""Inventory operations: quantity changes and the reports built on their flags."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from redis.exceptions import RedisError

from stockwatch.config import settings
from stockwatch.errors import (
    InventoryTargetError,
    ProductNotFoundError,
    StockwatchError,
    VariantNotFoundError,
)
from stockwatch.models.inventory import (
    BackInStockEntry,
    InventoryChangeResult,
    LowStockEntry,
    OrderInventoryEvent,
    OrderInventoryOutcome,
    OrderItem,
    QuantityOperation,
    StockCheckLine,
    StockCheckReport,
    StockTransition,
)
from stockwatch.models.product import Product, StockLevel, Variant
from stockwatch.services.alerts.registry import StockAlertRegistry
from stockwatch.services.cache.invalidation import CacheInvalidator
from stockwatch.services.inventory.state_machine import (
    apply_transition,
    resolve_quantity,
)
from stockwatch.services.storage.product_store import RedisProductStore

logger = logging.getLogger(__name__)

_RESERVING_STATUSES = {"processing", "shipped"}
_RESERVED_STATUSES = {"processing", "shipped", "delivered"}
_RETURNING_STATUSES = {"cancelled", "refunded"}


def stock_target(product: Product, variant_id: str | None) -> StockLevel:
    """Return the stock level a quantity change applies to."""

    if variant_id is not None:
        variant = product.find_variant(variant_id)
        if variant is None:
            raise VariantNotFoundError()
        return variant
    if product.has_variants:
        raise InventoryTargetError(
            "Product tracks stock per variant, variant_id is required"
        )
    return product.inventory


def _awaits_fan_out(level: StockLevel) -> bool:
    if isinstance(level, Variant) and not level.is_active:
        return False
    return level.quantity > 0 and not level.is_back_in_stock_alert_sent


def threshold_for(product: Product, override: int | None = None) -> int:
    if override is not None:
        return override
    if product.low_stock_threshold is not None:
        return product.low_stock_threshold
    return settings.LOW_STOCK_THRESHOLD


class InventoryService:
    """Runs stock changes through the state machine, alerts and cache, in order.

    For one change: the quantity and its flags commit in a single store
    transaction, then the restock fan-out runs if the change was a restock,
    then the product's cache entries are evicted. The caller responds only
    after all three steps.
    """

    def __init__(
        self,
        store: RedisProductStore,
        alerts: StockAlertRegistry,
        invalidator: CacheInvalidator,
    ) -> None:
        self._store = store
        self._alerts = alerts
        self._invalidator = invalidator

    async def apply_quantity_change(
        self,
        product_id: str,
        quantity: int,
        operation: QuantityOperation | str = QuantityOperation.SET,
        variant_id: str | None = None,
    ) -> InventoryChangeResult:
        def _transition(product: Product) -> StockTransition:
            level = stock_target(product, variant_id)
            new_quantity = resolve_quantity(level.quantity, quantity, operation)
            transition = apply_transition(level, new_quantity, threshold_for(product))
            product.touch()
            return transition

        mutation = await self._store.update(product_id, _transition)
        transition = mutation.result
        has_subscribers = bool(mutation.product.watching_users)

        logger.info(
            "Inventory updated for product %s: %d -> %d (%s)",
            product_id,
            transition.previous_quantity,
            transition.new_quantity,
            transition.state,
            extra={"variant_id": variant_id, "operation": str(operation)},
        )

        notified = 0
        if transition.is_back_in_stock:
            try:
                notifications = await self._alerts.on_restock(product_id, variant_id)
                notified = len(notifications)
            except (StockwatchError, RedisError) as exc:
                # The guard is still unset; dispatch_pending_restocks retries.
                logger.warning(
                    "Back-in-stock fan-out for product %s deferred: %s",
                    product_id,
                    exc,
                    extra={"variant_id": variant_id},
                )

        await self._invalidator.invalidate(product_id)

        return InventoryChangeResult(
            product_id=product_id,
            variant_id=variant_id,
            previous_quantity=transition.previous_quantity,
            new_quantity=transition.new_quantity,
            previous_state=transition.previous_state,
            state=transition.state,
            was_out_of_stock=transition.was_out_of_stock,
            is_back_in_stock=transition.is_back_in_stock,
            has_subscribers=has_subscribers,
            notified=notified,
        )

    async def apply_order_transition(
        self, event: OrderInventoryEvent
    ) -> OrderInventoryOutcome:
        """Take stock when an order starts processing, give it back on cancel/refund."""

        previous = event.previous_status
        if event.status in _RETURNING_STATUSES and previous not in _RETURNING_STATUSES:
            action, operation = "returned", QuantityOperation.INCREMENT
        elif event.status in _RESERVING_STATUSES and previous not in _RESERVED_STATUSES:
            action, operation = "reserved", QuantityOperation.DECREMENT
        else:
            return OrderInventoryOutcome(action="none")

        outcome = OrderInventoryOutcome(action=action)
        for item in event.items:
            if operation is QuantityOperation.DECREMENT:
                await self._warn_on_shortfall(event.order_id, item)
            try:
                change = await self.apply_quantity_change(
                    item.product_id,
                    item.quantity,
                    operation,
                    variant_id=item.variant_id,
                )
            except StockwatchError as exc:
                # Lines are applied independently of each other.
                logger.warning(
                    "Order %s cannot adjust stock of %s, skipping: %s",
                    event.order_id,
                    item.product_id,
                    exc.message,
                    extra={"variant_id": item.variant_id},
                )
                outcome.skipped.append(item.product_id)
                continue
            outcome.changes.append(change)

        logger.info(
            "Order %s inventory %s for %d item(s)",
            event.order_id,
            action,
            len(outcome.changes),
        )
        return outcome

    async def _warn_on_shortfall(self, order_id: str, item: OrderItem) -> None:
        product = await self._store.get(item.product_id)
        if product is None:
            return
        level = (
            product.find_variant(item.variant_id)
            if item.variant_id is not None
            else product.inventory
        )
        if level is not None and level.quantity < item.quantity:
            logger.warning(
                "Insufficient stock for product %s on order %s: %d < %d",
                item.product_id,
                order_id,
                level.quantity,
                item.quantity,
            )

    async def check_stock_levels(self, items: Sequence[OrderItem]) -> StockCheckReport:
        products = {
            p.id: p for p in await self._store.get_many({i.product_id for i in items})
        }
        lines = []
        for item in items:
            product = products.get(item.product_id)
            if product is None:
                lines.append(
                    StockCheckLine(
                        product_id=item.product_id,
                        variant_id=item.variant_id,
                        available=0,
                        requested=item.quantity,
                        in_stock=False,
                        message="Product not found",
                    )
                )
                continue

            if item.variant_id is not None:
                variant = product.find_variant(item.variant_id)
                available = variant.quantity if variant is not None else 0
                message = None if variant is not None else "Variant not found"
            else:
                available = product.available_quantity
                message = None

            lines.append(
                StockCheckLine(
                    product_id=product.id,
                    variant_id=item.variant_id,
                    name=product.name,
                    sku=product.sku,
                    available=available,
                    requested=item.quantity,
                    in_stock=message is None and available >= item.quantity,
                    message=message,
                )
            )

        return StockCheckReport(
            in_stock=all(line.in_stock for line in lines),
            items=lines,
        )

    async def collect_low_stock(
        self, threshold: int | None = None
    ) -> list[LowStockEntry]:
        """Report each stock level newly in the low-stock band, once per episode."""

        def _is_candidate(product: Product) -> bool:
            limit = threshold_for(product, threshold)
            return product.is_active and any(
                0 < level.quantity <= limit and not level.is_low_stock_alert_sent
                for _, level in product.stock_levels()
            )

        def _mark_sent(product: Product) -> list[LowStockEntry]:
            limit = threshold_for(product, threshold)
            entries = []
            for variant_id, level in product.stock_levels():
                if 0 < level.quantity <= limit and not level.is_low_stock_alert_sent:
                    level.is_low_stock_alert_sent = True
                    entries.append(
                        LowStockEntry(
                            product_id=product.id,
                            name=product.name,
                            sku=product.sku,
                            variant_id=variant_id,
                            quantity=level.quantity,
                            threshold=limit,
                        )
                    )
            return entries

        report: list[LowStockEntry] = []
        for product in await self._store.find(_is_candidate):
            try:
                mutation = await self._store.update(product.id, _mark_sent)
            except ProductNotFoundError:
                continue
            report.extend(mutation.result)

        report.sort(key=lambda e: e.quantity)
        logger.info("Low-stock report produced %d entries", len(report))
        return report

    async def dispatch_pending_restocks(self) -> list[BackInStockEntry]:
        """Run the fan-out for restocked levels that have not announced it yet."""

        def _is_pending(product: Product) -> bool:
            return any(_awaits_fan_out(level) for _, level in product.stock_levels())

        report = []
        for product in await self._store.find(_is_pending):
            for variant_id, level in product.stock_levels():
                if not _awaits_fan_out(level):
                    continue
                notifications = await self._alerts.on_restock(product.id, variant_id)
                report.append(
                    BackInStockEntry(
                        product_id=product.id,
                        name=product.name,
                        sku=product.sku,
                        variant_id=variant_id,
                        quantity=level.quantity,
                        subscribers=len(notifications),
                    )
                )

        logger.info("Back-in-stock sweep covered %d stock level(s)", len(report))
        return report
