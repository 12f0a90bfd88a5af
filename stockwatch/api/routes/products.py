"""Catalog routes: cached reads and the mutations that invalidate them."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Query, status

from stockwatch.api.dependencies import CatalogDependency
from stockwatch.api.identity import AdminOnly
from stockwatch.models.product import (
    BulkProductUpdate,
    BulkUpdateResult,
    ProductCounts,
    ProductCreate,
    ProductDetail,
    ProductPage,
    ProductUpdate,
    ProductView,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["products"])


@router.get("", response_model=ProductPage, summary="List active products")
async def list_products(
    catalog: CatalogDependency,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort: str = Query("-created_at"),
    category: str | None = None,
) -> dict:
    return await catalog.list_products(page, limit, sort, category)


@router.post(
    "",
    response_model=ProductView,
    status_code=status.HTTP_201_CREATED,
    dependencies=[AdminOnly],
    summary="Create a product",
)
async def create_product(
    payload: ProductCreate, catalog: CatalogDependency
) -> ProductView:
    product = await catalog.create(payload)
    logger.info("Created product %s (%s)", product.id, product.sku)
    return product


@router.get("/featured", response_model=list[ProductView])
async def get_featured_products(
    catalog: CatalogDependency,
    limit: int = Query(10, ge=1, le=50),
) -> list[dict]:
    return await catalog.featured(limit)


@router.get("/search", response_model=ProductPage)
async def search_products(
    catalog: CatalogDependency,
    q: str | None = None,
    category: str | None = None,
    min_price: float | None = Query(None, ge=0),
    max_price: float | None = Query(None, ge=0),
    tags: str | None = Query(None, description="Comma separated tags"),
    in_stock: bool = False,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> dict:
    tag_list = [t for t in tags.split(",") if t.strip()] if tags else None
    return await catalog.search(
        query=q,
        category=category,
        min_price=min_price,
        max_price=max_price,
        tags=tag_list,
        in_stock=in_stock,
        page=page,
        limit=limit,
    )


@router.get("/categories", response_model=list[str])
async def list_categories(catalog: CatalogDependency) -> list[str]:
    return await catalog.categories()


@router.get(
    "/counts",
    response_model=ProductCounts,
    dependencies=[AdminOnly],
)
async def get_product_counts(catalog: CatalogDependency) -> dict:
    return await catalog.counts()


@router.patch(
    "/bulk",
    response_model=BulkUpdateResult,
    dependencies=[AdminOnly],
    summary="Apply the same change to many products",
)
async def bulk_update_products(
    payload: BulkProductUpdate, catalog: CatalogDependency
) -> BulkUpdateResult:
    return await catalog.bulk_update(payload)


@router.get("/{product_id}", response_model=ProductDetail)
async def get_product(product_id: str, catalog: CatalogDependency) -> dict:
    return await catalog.get_product(product_id)


@router.patch(
    "/{product_id}",
    response_model=ProductView,
    dependencies=[AdminOnly],
)
async def update_product(
    product_id: str,
    payload: ProductUpdate,
    catalog: CatalogDependency,
) -> ProductView:
    return await catalog.update(product_id, payload)


@router.delete(
    "/{product_id}",
    response_model=ProductView,
    dependencies=[AdminOnly],
    summary="Deactivate a product (soft delete)",
)
async def delete_product(product_id: str, catalog: CatalogDependency) -> ProductView:
    return await catalog.deactivate(product_id)


@router.patch(
    "/{product_id}/featured",
    response_model=ProductView,
    dependencies=[AdminOnly],
)
async def toggle_featured_product(
    product_id: str, catalog: CatalogDependency
) -> ProductView:
    return await catalog.toggle_featured(product_id)


@router.get("/{product_id}/related", response_model=list[ProductDetail])
async def get_related_products(
    product_id: str,
    catalog: CatalogDependency,
    limit: int = Query(4, ge=1, le=20),
) -> list[dict]:
    return await catalog.related(product_id, limit)
