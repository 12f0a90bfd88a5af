"""Stock-count lifecycle of a product or variant.

Every quantity change goes through :func:`apply_transition`, which is the only
place the alert guards on a :class:`StockLevel` are derived. States are
recomputed from the quantity each time; there is no terminal state.

Rules, evaluated in order with the quantity before and after the change:

1. ``previous <= 0 < new``: back in stock. ``was_out_of_stock`` and both alert
   guards are reset so the restock fan-out can fire.
2. ``new <= 0``: out of stock. ``was_out_of_stock`` is set and the low-stock
   guard is reset.
3. ``new <= threshold``: low stock. The low-stock guard is left for the
   consumer that reports low stock to flip.
4. Otherwise in stock, no further flag changes.
"""

from __future__ import annotations

from stockwatch.errors import InvalidQuantityError
from stockwatch.models.inventory import (
    InventoryState,
    QuantityOperation,
    StockTransition,
)
from stockwatch.models.product import StockLevel


def classify(quantity: int, threshold: int) -> InventoryState:
    if quantity <= 0:
        return InventoryState.OUT_OF_STOCK
    if quantity <= threshold:
        return InventoryState.LOW_STOCK
    return InventoryState.IN_STOCK


def resolve_quantity(
    previous: int,
    amount: int,
    operation: QuantityOperation | str = QuantityOperation.SET,
) -> int:
    """Apply ``operation`` with ``amount`` to ``previous``.

    Decrement floors at zero instead of failing.
    """

    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidQuantityError("Quantity must be an integer")
    if amount < 0:
        raise InvalidQuantityError("Quantity must be a non-negative integer")

    try:
        operation = QuantityOperation(operation)
    except ValueError as error:
        raise InvalidQuantityError(
            f"Unsupported inventory operation: {operation}"
        ) from error

    if operation is QuantityOperation.INCREMENT:
        return previous + amount
    if operation is QuantityOperation.DECREMENT:
        return max(0, previous - amount)
    return amount


def apply_transition(
    level: StockLevel,
    new_quantity: int,
    threshold: int,
) -> StockTransition:
    """Write ``new_quantity`` onto ``level`` and derive its flags in place."""

    if new_quantity < 0:
        raise InvalidQuantityError("Quantity must be a non-negative integer")

    previous_quantity = level.quantity
    was_out_of_stock = previous_quantity <= 0
    is_back_in_stock = was_out_of_stock and new_quantity > 0

    level.quantity = new_quantity

    if is_back_in_stock:
        level.was_out_of_stock = False
        level.is_back_in_stock_alert_sent = False
        level.is_low_stock_alert_sent = False
    elif new_quantity <= 0:
        level.was_out_of_stock = True
        level.is_low_stock_alert_sent = False

    return StockTransition(
        previous_quantity=previous_quantity,
        new_quantity=new_quantity,
        previous_state=classify(previous_quantity, threshold),
        state=classify(new_quantity, threshold),
        was_out_of_stock=was_out_of_stock,
        is_back_in_stock=is_back_in_stock,
    )
