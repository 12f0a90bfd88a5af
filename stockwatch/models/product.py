"""Product documents and catalog API schemas."""

from __future__ import annotations

import random
import re
import uuid
from datetime import UTC, datetime

from pydantic import BaseModel, Field

from stockwatch.models.inventory import InventoryState


def _utcnow() -> datetime:
    return datetime.now(UTC)


def slugify(name: str) -> str:
    """Lower-case, strip punctuation and collapse whitespace into dashes."""

    slug = re.sub(r"[^a-z0-9\s-]", "", name.lower())
    slug = re.sub(r"\s+", "-", slug.strip())
    return re.sub(r"-+", "-", slug)


def generate_sku(name: str) -> str:
    """Build a SKU such as ``LAM-48213`` from the product name."""

    prefix = re.sub(r"[^A-Z0-9]", "X", name[:3].upper()).ljust(3, "X")
    return f"{prefix}-{random.randint(10000, 99999)}"


class StockLevel(BaseModel):
    """Quantity plus the alert guards derived from it.

    The flags are recomputed by the inventory state machine on every quantity
    change and are never accepted from clients.
    """

    quantity: int = Field(0, ge=0)
    is_low_stock_alert_sent: bool = False
    was_out_of_stock: bool = False
    # Starts true so a product created empty does not look "restocked".
    is_back_in_stock_alert_sent: bool = True

    @classmethod
    def initial_flags(cls, quantity: int) -> dict:
        return {
            "quantity": quantity,
            "is_low_stock_alert_sent": False,
            "was_out_of_stock": quantity == 0,
            "is_back_in_stock_alert_sent": True,
        }


class Inventory(StockLevel):
    """Stock of a simple product."""

    sku: str | None = None
    barcode: str | None = None


class VariantOption(BaseModel):
    name: str = Field(..., min_length=1, description="e.g. Color, Size")
    value: str = Field(..., min_length=1, description="e.g. Red, XL")


class Variant(StockLevel):
    """Sellable variant, owned by exactly one product."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    sku: str | None = None
    options: list[VariantOption] = Field(default_factory=list)
    price: float | None = Field(None, ge=0)
    is_active: bool = True


class Product(BaseModel):
    """Product document as persisted in the product store."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    sku: str
    name: str
    slug: str
    description: str = ""
    price: float = Field(..., ge=0)
    category: str | None = None
    tags: list[str] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)
    is_featured: bool = False
    is_active: bool = True
    has_variants: bool = False
    variants: list[Variant] = Field(default_factory=list)
    inventory: Inventory = Field(default_factory=Inventory)
    low_stock_threshold: int | None = Field(None, ge=0)
    watching_users: list[str] = Field(
        default_factory=list,
        description="Users waiting for a back-in-stock alert, without duplicates",
    )
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def available_quantity(self) -> int:
        if self.has_variants:
            return sum(v.quantity for v in self.variants if v.is_active)
        return self.inventory.quantity

    def stock_levels(self) -> list[tuple[str | None, StockLevel]]:
        """Return the authoritative stock levels as ``(variant_id, level)`` pairs."""

        if self.has_variants:
            return [(v.id, v) for v in self.variants]
        return [(None, self.inventory)]

    def find_variant(self, variant_id: str) -> Variant | None:
        for variant in self.variants:
            if variant.id == variant_id:
                return variant
        return None

    def touch(self) -> None:
        self.updated_at = _utcnow()


class VariantCreate(BaseModel):
    sku: str | None = None
    options: list[VariantOption] = Field(default_factory=list)
    price: float | None = Field(None, ge=0)
    quantity: int = Field(0, ge=0)
    is_active: bool = True


class ProductCreate(BaseModel):
    """Body of POST /products."""

    name: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    price: float = Field(..., ge=0)
    sku: str | None = Field(None, min_length=3, max_length=50)
    category: str | None = None
    tags: list[str] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)
    is_featured: bool = False
    quantity: int = Field(0, ge=0, description="Initial stock of a simple product")
    barcode: str | None = None
    variants: list[VariantCreate] = Field(default_factory=list)
    low_stock_threshold: int | None = Field(None, ge=0)

    def build(self) -> Product:
        has_variants = bool(self.variants)
        variants = [
            Variant(
                sku=v.sku,
                options=v.options,
                price=v.price,
                is_active=v.is_active,
                **StockLevel.initial_flags(v.quantity),
            )
            for v in self.variants
        ]
        sku = (self.sku or generate_sku(self.name)).strip().upper()
        return Product(
            sku=sku,
            name=self.name.strip(),
            slug=slugify(self.name),
            description=self.description.strip(),
            price=round(self.price, 2),
            category=self.category,
            tags=[t.strip().lower() for t in self.tags if t.strip()],
            images=self.images,
            is_featured=self.is_featured,
            has_variants=has_variants,
            variants=variants,
            inventory=Inventory(
                sku=sku,
                barcode=self.barcode,
                **StockLevel.initial_flags(0 if has_variants else self.quantity),
            ),
            low_stock_threshold=self.low_stock_threshold,
        )


class ProductUpdate(BaseModel):
    """Body of PATCH /products/{id}.

    Stock is deliberately absent: quantities change only through the
    inventory endpoints so the alert flags are always recomputed.
    """

    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    price: float | None = Field(None, ge=0)
    category: str | None = None
    tags: list[str] | None = None
    images: list[str] | None = None
    is_featured: bool | None = None
    is_active: bool | None = None
    low_stock_threshold: int | None = Field(None, ge=0)

    def changes(self) -> dict:
        nullable = {"category", "low_stock_threshold"}
        changes = {
            field: value
            for field, value in self.model_dump(exclude_unset=True).items()
            if value is not None or field in nullable
        }
        if "tags" in changes:
            changes["tags"] = [t.strip().lower() for t in changes["tags"] if t.strip()]
        if "price" in changes:
            changes["price"] = round(changes["price"], 2)
        return changes


class BulkProductUpdate(BaseModel):
    """Body of PATCH /products/bulk."""

    ids: list[str] = Field(..., min_length=1)
    update: ProductUpdate

    @property
    def featured_only(self) -> bool:
        return set(self.update.changes()) <= {"is_featured"}


class BulkUpdateResult(BaseModel):
    matched_count: int
    modified_count: int


class VariantView(BaseModel):
    id: str
    sku: str | None
    options: list[VariantOption]
    price: float | None
    quantity: int
    is_active: bool
    stock_state: InventoryState


class ProductDetail(BaseModel):
    """Product content served (and cached) by the detail and related reads.

    Excludes featured placement, which only the shared listings carry.
    """

    id: str
    sku: str
    name: str
    slug: str
    description: str
    price: float
    category: str | None
    tags: list[str]
    images: list[str]
    is_active: bool
    has_variants: bool
    variants: list[VariantView]
    quantity: int
    stock_state: InventoryState
    created_at: datetime
    updated_at: datetime


class ProductView(ProductDetail):
    """Listing and mutation representation, including featured placement."""

    is_featured: bool


class ProductPage(BaseModel):
    items: list[ProductView]
    total: int
    page: int
    limit: int
    pages: int


class ProductCounts(BaseModel):
    active: int
    inactive: int
    out_of_stock: int
    low_stock: int
    total: int
