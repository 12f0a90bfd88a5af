"""FastAPI application entry point."""

from stockwatch.application import create_app

app = create_app()

__all__ = ["app"]
