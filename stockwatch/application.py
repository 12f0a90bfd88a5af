"""FastAPI application factory and bootstrap helpers."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

from stockwatch.api.routes import include_api_routes
from stockwatch.config import settings
from stockwatch.errors import StockwatchError
from stockwatch.services.cache.client import get_redis_client
from stockwatch.services.storage.product_store import get_store_client

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown events."""
    try:
        await get_redis_client().ping()
    except (RedisError, OSError):
        # Reads fall through to the store until the cache comes back
        logger.warning("Cache unavailable at startup, serving uncached reads")

    yield

    await get_redis_client().aclose()
    await get_store_client().aclose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="Stockwatch",
        description="Inventory state, back-in-stock alerts and catalog caching",
        version="1.0.0",
        lifespan=lifespan,
    )

    _configure_cors(app)
    _register_error_handlers(app)
    include_api_routes(app)

    return app


def _configure_cors(app: FastAPI) -> None:
    """Allow broad access in non-production environments."""

    if settings.is_production:
        return

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StockwatchError)
    async def _handle_domain_error(
        request: Request, exc: StockwatchError
    ) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=exc.status_code, content={"detail": exc.message}
        )
