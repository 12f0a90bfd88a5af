"""FastAPI dependency wiring for the services."""

from __future__ import annotations

from typing import Annotated

import redis.asyncio as redis
from fastapi import Depends

from stockwatch.services.alerts.registry import StockAlertRegistry
from stockwatch.services.cache.client import get_redis_client
from stockwatch.services.cache.invalidation import CacheInvalidator
from stockwatch.services.cache.product_cache import ProductCache
from stockwatch.services.catalog.service import CatalogService
from stockwatch.services.inventory.service import InventoryService
from stockwatch.services.notifications.inbox import NotificationInbox
from stockwatch.services.storage.alert_store import StockAlertStore
from stockwatch.services.storage.product_store import (
    RedisProductStore,
    get_store_client,
)

CacheClient = Annotated[redis.Redis, Depends(get_redis_client)]
StoreClient = Annotated[redis.Redis, Depends(get_store_client)]


def get_product_store(client: StoreClient) -> RedisProductStore:
    return RedisProductStore(client)


def get_invalidator(client: CacheClient) -> CacheInvalidator:
    return CacheInvalidator(client)


def get_alert_registry(
    store: Annotated[RedisProductStore, Depends(get_product_store)],
    client: StoreClient,
) -> StockAlertRegistry:
    return StockAlertRegistry(store, StockAlertStore(client))


def get_inventory_service(
    store: Annotated[RedisProductStore, Depends(get_product_store)],
    alerts: Annotated[StockAlertRegistry, Depends(get_alert_registry)],
    invalidator: Annotated[CacheInvalidator, Depends(get_invalidator)],
) -> InventoryService:
    return InventoryService(store, alerts, invalidator)


def get_catalog_service(
    store: Annotated[RedisProductStore, Depends(get_product_store)],
    client: CacheClient,
    invalidator: Annotated[CacheInvalidator, Depends(get_invalidator)],
) -> CatalogService:
    return CatalogService(store, ProductCache(client), invalidator)


def get_notification_inbox(client: StoreClient) -> NotificationInbox:
    return NotificationInbox(client)


AlertRegistryDependency = Annotated[StockAlertRegistry, Depends(get_alert_registry)]
InventoryDependency = Annotated[InventoryService, Depends(get_inventory_service)]
CatalogDependency = Annotated[CatalogService, Depends(get_catalog_service)]
InboxDependency = Annotated[NotificationInbox, Depends(get_notification_inbox)]
