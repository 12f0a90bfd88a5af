"""Tests for the inventory state machine."""

import pytest

from stockwatch.errors import InvalidQuantityError
from stockwatch.models.inventory import InventoryState, QuantityOperation
from stockwatch.models.product import StockLevel
from stockwatch.services.inventory.state_machine import (
    apply_transition,
    classify,
    resolve_quantity,
)


def _level(quantity, **flags):
    return StockLevel(**{**StockLevel.initial_flags(quantity), **flags})


@pytest.mark.parametrize(
    ("quantity", "state"),
    [
        (0, InventoryState.OUT_OF_STOCK),
        (1, InventoryState.LOW_STOCK),
        (5, InventoryState.LOW_STOCK),
        (6, InventoryState.IN_STOCK),
    ],
)
def test_classify_uses_inclusive_threshold(quantity, state):
    assert classify(quantity, threshold=5) is state


def test_resolve_quantity_operations():
    assert resolve_quantity(10, 4, QuantityOperation.SET) == 4
    assert resolve_quantity(10, 4, "increment") == 14
    assert resolve_quantity(10, 4, QuantityOperation.DECREMENT) == 6


def test_decrement_floors_at_zero():
    assert resolve_quantity(3, 5, QuantityOperation.DECREMENT) == 0


@pytest.mark.parametrize("operation", list(QuantityOperation))
def test_negative_amount_rejected_for_every_operation(operation):
    with pytest.raises(InvalidQuantityError):
        resolve_quantity(10, -1, operation)


def test_unknown_operation_rejected():
    with pytest.raises(InvalidQuantityError):
        resolve_quantity(10, 1, "multiply")


def test_non_integer_amount_rejected():
    with pytest.raises(InvalidQuantityError):
        resolve_quantity(10, 2.5)
    with pytest.raises(InvalidQuantityError):
        resolve_quantity(10, True)


def test_initial_flags_of_new_stock():
    empty = _level(0)
    stocked = _level(8)

    assert empty.was_out_of_stock is True
    assert empty.is_back_in_stock_alert_sent is True
    assert stocked.was_out_of_stock is False
    assert stocked.is_low_stock_alert_sent is False


def test_sell_out_marks_out_of_stock_and_resets_low_stock_guard():
    level = _level(3, is_low_stock_alert_sent=True)

    transition = apply_transition(level, 0, threshold=5)

    assert transition.state is InventoryState.OUT_OF_STOCK
    assert transition.previous_state is InventoryState.LOW_STOCK
    assert transition.is_back_in_stock is False
    assert level.was_out_of_stock is True
    assert level.is_low_stock_alert_sent is False


def test_restock_resets_guards():
    level = _level(0, is_low_stock_alert_sent=True)

    transition = apply_transition(level, 10, threshold=5)

    assert transition.is_back_in_stock is True
    assert transition.was_out_of_stock is True
    assert level.quantity == 10
    assert level.was_out_of_stock is False
    assert level.is_back_in_stock_alert_sent is False
    assert level.is_low_stock_alert_sent is False


def test_low_stock_change_leaves_low_stock_guard_alone():
    level = _level(10)
    apply_transition(level, 4, threshold=5)
    assert level.is_low_stock_alert_sent is False

    level.is_low_stock_alert_sent = True
    transition = apply_transition(level, 2, threshold=5)

    assert transition.state is InventoryState.LOW_STOCK
    assert level.is_low_stock_alert_sent is True
    assert level.is_back_in_stock_alert_sent is True


def test_positive_to_positive_change_is_not_a_restock():
    level = _level(4)

    transition = apply_transition(level, 40, threshold=5)

    assert transition.is_back_in_stock is False
    assert transition.state is InventoryState.IN_STOCK
    assert level.is_back_in_stock_alert_sent is True


def test_zero_to_zero_keeps_out_of_stock():
    level = _level(0)

    transition = apply_transition(level, 0, threshold=5)

    assert transition.is_back_in_stock is False
    assert level.was_out_of_stock is True
    assert level.is_back_in_stock_alert_sent is True


def test_transition_rejects_negative_quantity():
    with pytest.raises(InvalidQuantityError):
        apply_transition(_level(3), -1, threshold=5)
