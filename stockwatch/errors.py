"""Error taxonomy shared by the inventory, alert and cache services."""

from __future__ import annotations

from fastapi import status


class StockwatchError(Exception):
    """Base error carrying a stable, client-safe message and HTTP status."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class DomainError(StockwatchError):
    """Violation of a business rule; reported to the caller as a 4xx."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Request violates a business rule"


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class ProductNotFoundError(NotFoundError):
    default_message = "Product not found"


class VariantNotFoundError(NotFoundError):
    default_message = "Variant not found"


class AlertNotFoundError(NotFoundError):
    default_message = "Alert not found"


class InvalidQuantityError(DomainError):
    default_message = "Quantity must be a non-negative integer"


class InventoryTargetError(DomainError):
    default_message = "Quantity change does not match how the product tracks stock"


class AlreadyInStockError(DomainError):
    default_message = "Product is already in stock"


class DuplicateSubscriptionError(DomainError):
    default_message = "You are already subscribed to stock alerts for this product"


class DuplicateSkuError(DomainError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "A product with this SKU already exists"


class ConcurrentUpdateError(StockwatchError):
    """Optimistic transaction kept losing the race for a document."""

    status_code = status.HTTP_409_CONFLICT
    default_message = "Product was modified concurrently, please retry"


class CacheUnavailableError(StockwatchError):
    """Cache store could not be reached.

    Soft error: raised inside the cache layer and swallowed at its boundary,
    never rendered as a response.
    """

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Cache store unavailable"
