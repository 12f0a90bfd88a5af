"""Base consumer loop for Redis stream workers."""

from __future__ import annotations

import asyncio
import logging
import os
import socket
import uuid
from abc import ABC, abstractmethod
from collections.abc import Sequence

from stockwatch.config import settings
from stockwatch.services.queue.dlq_manager import DLQManager
from stockwatch.services.queue.redis_stream import RedisStreamService

logger = logging.getLogger(__name__)


class BaseStreamWorker(ABC):
    """Reads batches from a consumer group and hands each payload to ``handle``.

    Every entry is acknowledged and deleted once handled; entries whose
    handling raised are parked in the DLQ first.
    """

    def __init__(
        self,
        *,
        redis_service: RedisStreamService,
        dlq_manager: DLQManager,
        consumer_name: str | None = None,
    ):
        self.redis_service = redis_service
        self.dlq_manager = dlq_manager
        self.consumer_name = consumer_name or self._build_consumer_name()
        self.batch_size = settings.BATCH_MAX_MESSAGES
        self.block_ms = settings.BATCH_MAX_WAIT_MS
        self._shutdown_event = asyncio.Event()

    @abstractmethod
    async def handle(self, payload: str) -> None:
        """Process one message payload."""

    async def run_forever(self) -> None:
        await self.redis_service.ensure_consumer_group()

        logger.info(
            "Worker started",
            extra={
                "stream": self.redis_service.stream_key,
                "group": self.redis_service.group_name,
                "consumer": self.consumer_name,
            },
        )

        try:
            while not self.is_shutdown_requested():
                await self.run_once()
        except asyncio.CancelledError:
            logger.info("Worker %s cancelled", self.consumer_name)
            raise

    async def run_once(self) -> int:
        """Read and process one batch; returns the number of entries seen."""
        try:
            entries = await self.redis_service.read_batch(
                consumer_name=self.consumer_name,
                count=self.batch_size,
                block_ms=self.block_ms,
            )
        except Exception as exc:
            logger.error("Failed to read from Redis stream: %s", exc, exc_info=True)
            await asyncio.sleep(1)
            return 0

        if not entries:
            return 0
        return await self._process_entries(entries)

    async def _process_entries(
        self,
        entries: list[tuple[str, Sequence[tuple[str, dict[str, str]]]]],
    ) -> int:
        ack_ids: list[str] = []

        for _stream, messages in entries:
            for message_id, data in messages:
                ack_ids.append(message_id)
                payload = data.get("payload")
                if payload is None:
                    logger.warning("Missing payload for entry %s", message_id)
                    continue

                try:
                    await self.handle(payload)
                except Exception as exc:
                    logger.exception("Failed to process entry %s", message_id)
                    await self.dlq_manager.send_to_dlq(message_id, payload, exc)

        try:
            await self.redis_service.acknowledge_messages(ack_ids)
            await self.redis_service.delete_messages(ack_ids)
        except Exception as ack_exc:
            logger.error("Failed to ack/delete messages %s: %s", ack_ids, ack_exc)
        return len(ack_ids)

    def shutdown(self) -> None:
        """Signal the worker to shut down gracefully."""
        self._shutdown_event.set()

    def is_shutdown_requested(self) -> bool:
        return self._shutdown_event.is_set()

    @staticmethod
    def _build_consumer_name() -> str:
        hostname = socket.gethostname()
        pid = os.getpid()
        suffix = uuid.uuid4().hex[:6]
        return f"{hostname}:{pid}:{suffix}"
