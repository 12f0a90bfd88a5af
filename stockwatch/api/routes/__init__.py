"""API route registration."""

from fastapi import FastAPI

from stockwatch.api.routes import alerts, inventory, notifications, products, system


def include_api_routes(app: FastAPI) -> None:
    """Attach all API routers to the application."""

    app.include_router(system.router)
    # Inventory paths live under /products and must match before /{product_id}
    app.include_router(inventory.router)
    app.include_router(alerts.router)
    app.include_router(notifications.router)
    app.include_router(products.router)
