"""Worker delivering back-in-stock notifications into user inboxes."""

from __future__ import annotations

import asyncio
import logging

from stockwatch.config import settings
from stockwatch.models.alert import StockAlertNotification
from stockwatch.models.notification import InboxNotification
from stockwatch.services.notifications.inbox import NotificationInbox
from stockwatch.services.queue.dlq_manager import DLQManager
from stockwatch.services.queue.redis_stream import (
    RedisStreamService,
    create_redis_stream_service,
)
from stockwatch.services.storage.product_store import get_store_client
from stockwatch.services.workers.base import BaseStreamWorker

logger = logging.getLogger(__name__)


class NotificationWorker(BaseStreamWorker):
    """Consumes the restock stream produced by the alert registry."""

    def __init__(
        self,
        *,
        redis_service: RedisStreamService,
        dlq_manager: DLQManager,
        inbox: NotificationInbox,
        consumer_name: str | None = None,
    ) -> None:
        super().__init__(
            redis_service=redis_service,
            dlq_manager=dlq_manager,
            consumer_name=consumer_name,
        )
        self.inbox = inbox

    async def handle(self, payload: str) -> None:
        alert = StockAlertNotification.model_validate_json(payload)
        await self.inbox.deliver(InboxNotification.from_stock_alert(alert))
        logger.info(
            "Delivered back-in-stock notification",
            extra={"user_id": alert.user_id, "product_id": alert.product_id},
        )


def create_notification_worker() -> NotificationWorker:
    """Factory function to create a notification worker with all dependencies."""
    client = get_store_client()
    redis_service = create_redis_stream_service(client)
    return NotificationWorker(
        redis_service=redis_service,
        dlq_manager=DLQManager(redis_service),
        inbox=NotificationInbox(client),
    )


async def run_worker(concurrency: int | None = None) -> None:
    """Run one or more notification workers."""
    worker_count = concurrency or max(1, settings.WORKER_CONCURRENCY)
    workers = [create_notification_worker() for _ in range(worker_count)]

    tasks = [asyncio.create_task(worker.run_forever()) for worker in workers]
    await asyncio.gather(*tasks, return_exceptions=True)


def main() -> None:
    """CLI entry point."""
    try:
        asyncio.run(run_worker())
    except KeyboardInterrupt:
        logger.info("Notification worker interrupted, shutting down")


if __name__ == "__main__":
    main()
