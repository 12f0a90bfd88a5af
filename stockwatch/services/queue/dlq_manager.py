"""Dead letter stream for notifications that could not be delivered."""

from __future__ import annotations

import logging

from stockwatch.config import settings
from stockwatch.services.queue.redis_stream import RedisStreamService

logger = logging.getLogger(__name__)


class DLQManager:
    """Parks failed notification payloads with the error that rejected them."""

    def __init__(
        self, redis_service: RedisStreamService, dlq_stream: str | None = None
    ):
        self.redis_service = redis_service
        self.dlq_stream = dlq_stream or settings.NOTIFICATIONS_DLQ_STREAM_KEY

    async def send_to_dlq(
        self,
        entry_id: str,
        payload: str,
        error: Exception,
    ) -> None:
        try:
            await self.redis_service.add_to_stream(
                fields={
                    "payload": payload,
                    "error": str(error),
                    "entry_id": entry_id,
                    "original_stream": self.redis_service.stream_key,
                },
                stream_key=self.dlq_stream,
            )
            logger.warning(
                "Notification sent to DLQ",
                extra={
                    "entry_id": entry_id,
                    "dlq_stream": self.dlq_stream,
                    "error": str(error),
                },
            )
        except Exception as dlq_error:
            logger.error(
                "Failed to send notification to DLQ: %s",
                dlq_error,
                extra={"entry_id": entry_id, "original_error": str(error)},
                exc_info=True,
            )
