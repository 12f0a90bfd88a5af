"""Pytest configuration and fixtures for the stockwatch service."""

import pytest
import pytest_asyncio
from fakeredis import FakeServer
from fakeredis import aioredis as fakeredis
from httpx import ASGITransport, AsyncClient

from stockwatch.config import settings
from stockwatch.models.product import ProductCreate, VariantCreate
from stockwatch.services.alerts.registry import StockAlertRegistry
from stockwatch.services.cache.client import get_redis_client
from stockwatch.services.cache.invalidation import CacheInvalidator
from stockwatch.services.cache.product_cache import ProductCache
from stockwatch.services.catalog.service import CatalogService
from stockwatch.services.inventory.service import InventoryService
from stockwatch.services.storage.alert_store import StockAlertStore
from stockwatch.services.storage.product_store import (
    RedisProductStore,
    get_store_client,
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "unit: marks tests as unit tests")


@pytest.fixture()
def cache_server():
    """Backing server of the cache store; set ``connected = False`` to take it down."""
    return FakeServer()


@pytest_asyncio.fixture()
async def cache_client(cache_server):
    client = fakeredis.FakeRedis(server=cache_server, decode_responses=True)
    try:
        yield client
    finally:
        cache_server.connected = True
        await client.flushdb()
        await client.aclose()


@pytest_asyncio.fixture()
async def store_client():
    client = fakeredis.FakeRedis(server=FakeServer(), decode_responses=True)
    try:
        yield client
    finally:
        await client.flushdb()
        await client.aclose()


@pytest.fixture()
def product_store(store_client):
    return RedisProductStore(store_client, max_retries=20)


@pytest.fixture()
def invalidator(cache_client):
    return CacheInvalidator(cache_client)


@pytest.fixture()
def alert_registry(product_store, store_client):
    return StockAlertRegistry(product_store, StockAlertStore(store_client))


@pytest.fixture()
def inventory_service(product_store, alert_registry, invalidator):
    return InventoryService(product_store, alert_registry, invalidator)


@pytest.fixture()
def catalog_service(product_store, cache_client, invalidator):
    return CatalogService(product_store, ProductCache(cache_client), invalidator)


@pytest.fixture()
def make_product(product_store):
    """Insert a product straight into the store and return it."""

    async def _make(name="Aurora Floor Lamp", quantity=10, variants=None, **fields):
        payload = ProductCreate(
            name=name,
            price=fields.pop("price", 49.9),
            quantity=quantity,
            variants=[VariantCreate(**v) for v in variants or []],
            **fields,
        )
        return await product_store.insert(payload.build())

    return _make


@pytest.fixture(autouse=True)
def auth_not_required():
    original = settings.AUTH_REQUIRED
    settings.AUTH_REQUIRED = False
    yield
    settings.AUTH_REQUIRED = original


@pytest_asyncio.fixture()
async def client(cache_client, store_client):
    """Return an HTTPX async client pointing at the FastAPI app."""
    from stockwatch.main import app

    app.dependency_overrides[get_redis_client] = lambda: cache_client
    app.dependency_overrides[get_store_client] = lambda: store_client
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://testserver",
        ) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.pop(get_redis_client, None)
        app.dependency_overrides.pop(get_store_client, None)
