"""
Configuration settings for the application.
"""

import logging
import os

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # Cache store (side cache, never authoritative)
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")

    # Product / alert store
    STORE_REDIS_URL: str = os.getenv("STORE_REDIS_URL", "redis://localhost:6379/1")
    STORE_MAX_RETRIES: int = int(os.getenv("STORE_MAX_RETRIES", "5"))

    # Inventory
    LOW_STOCK_THRESHOLD: int = int(os.getenv("LOW_STOCK_THRESHOLD", "5"))

    # Cache TTLs in seconds, one per cache-entry class
    CACHE_TTL_PRODUCT_DETAILS: int = int(os.getenv("CACHE_TTL_PRODUCT_DETAILS", "3600"))
    CACHE_TTL_PRODUCT_LIST: int = int(os.getenv("CACHE_TTL_PRODUCT_LIST", "1800"))
    CACHE_TTL_RELATED_PRODUCTS: int = int(
        os.getenv("CACHE_TTL_RELATED_PRODUCTS", "1800")
    )
    CACHE_TTL_SEARCH_RESULTS: int = int(os.getenv("CACHE_TTL_SEARCH_RESULTS", "900"))
    CACHE_TTL_FEATURED_PRODUCTS: int = int(
        os.getenv("CACHE_TTL_FEATURED_PRODUCTS", "3600")
    )
    CACHE_TTL_EMPTY_RESULT: int = int(os.getenv("CACHE_TTL_EMPTY_RESULT", "300"))
    FEATURED_PRODUCTS_LIMIT: int = int(os.getenv("FEATURED_PRODUCTS_LIMIT", "12"))

    # Restock notifications
    NOTIFICATIONS_STREAM_KEY: str = os.getenv(
        "NOTIFICATIONS_STREAM_KEY", "stock-alerts:notifications"
    )
    NOTIFICATIONS_CONSUMER_GROUP: str = os.getenv(
        "NOTIFICATIONS_CONSUMER_GROUP",
        "stock-alert-notifiers",
    )
    NOTIFICATIONS_DLQ_STREAM_KEY: str = os.getenv(
        "NOTIFICATIONS_DLQ_STREAM_KEY", "stock-alerts:dlq"
    )
    NOTIFICATION_INBOX_LIMIT: int = int(os.getenv("NOTIFICATION_INBOX_LIMIT", "100"))
    BATCH_MAX_MESSAGES: int = int(os.getenv("BATCH_MAX_MESSAGES", "32"))
    BATCH_MAX_WAIT_MS: int = int(os.getenv("BATCH_MAX_WAIT_MS", "200"))
    WORKER_CONCURRENCY: int = int(os.getenv("WORKER_CONCURRENCY", "2"))

    # Auth (identity is forwarded by the gateway)
    AUTH_REQUIRED: bool = os.getenv("AUTH_REQUIRED", "false").lower() == "true"

    @property
    def is_production(self) -> bool:
        """
        Check if running in production environment.
        """
        return self.ENVIRONMENT.lower() == "production"

    def __init__(self):
        self.debug = os.getenv("DEBUG", "false").lower() == "true"
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        logging.basicConfig(level=self.log_level)
        self.logger = logging.getLogger(__name__)

        self.logger.debug(
            f"Config initialized with environment={self.ENVIRONMENT}, "
            f"debug={self.debug}, log_level={self.log_level}"
        )


# Create a global settings instance for import
settings = Settings()
