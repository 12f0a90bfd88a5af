"""System-level routes such as health checks."""

from __future__ import annotations

import logging

from fastapi import APIRouter
from redis.exceptions import RedisError

from stockwatch.api.dependencies import CacheClient, StoreClient
from stockwatch.config import settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])


@router.get("/")
async def read_root() -> dict[str, str]:
    """Service banner used by smoke tests."""

    return {"message": "Stockwatch inventory service"}


@router.get("/health")
async def health_check(store: StoreClient, cache: CacheClient) -> dict[str, str]:
    """Health check with store and cache connectivity.

    A lost cache only degrades the service: reads fall through to the store.
    """

    store_status = await _ping(store)
    cache_status = await _ping(cache)

    if store_status != "connected":
        overall = "unhealthy"
    elif cache_status != "connected":
        overall = "degraded"
    else:
        overall = "healthy"

    return {
        "status": overall,
        "store": store_status,
        "cache": cache_status,
        "environment": settings.ENVIRONMENT,
    }


async def _ping(client) -> str:
    try:
        await client.ping()
    except (RedisError, OSError) as exc:
        logger.warning("Health ping failed: %s", exc)
        return "disconnected"
    return "connected"
