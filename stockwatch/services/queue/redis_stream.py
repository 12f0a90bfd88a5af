"""Redis stream consumer-group access for the notification worker."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import redis.asyncio as redis
from redis.exceptions import ResponseError

from stockwatch.config import settings
from stockwatch.services.storage.product_store import get_store_client

logger = logging.getLogger(__name__)


class RedisStreamService:
    """Service for Redis stream operations."""

    def __init__(self, client: redis.Redis, stream_key: str, group_name: str):
        self.client = client
        self.stream_key = stream_key
        self.group_name = group_name

    async def ensure_consumer_group(self) -> None:
        """Ensure the consumer group exists."""
        try:
            await self.client.xgroup_create(
                name=self.stream_key,
                groupname=self.group_name,
                id="0",
                mkstream=True,
            )
            logger.info(
                "Created Redis consumer group", extra={"group": self.group_name}
            )
        except ResponseError as exc:
            if "BUSYGROUP" in str(exc):
                logger.debug(
                    "Consumer group already exists", extra={"group": self.group_name}
                )
                return
            logger.error("Failed to create consumer group: %s", exc, exc_info=True)
            raise

    async def read_batch(
        self,
        consumer_name: str,
        count: int = 10,
        block_ms: int = 5000,
    ) -> list[tuple[str, Sequence[tuple[str, dict[str, str]]]]]:
        """Read a batch of new messages for ``consumer_name``."""
        try:
            return await self._read(consumer_name, count, block_ms)
        except ResponseError as exc:
            if "NOGROUP" in str(exc):
                logger.warning("Consumer group missing, recreating: %s", exc)
                await self.ensure_consumer_group()
                return await self._read(consumer_name, count, block_ms)
            raise

    async def _read(self, consumer_name: str, count: int, block_ms: int):
        return await self.client.xreadgroup(
            groupname=self.group_name,
            consumername=consumer_name,
            streams={self.stream_key: ">"},
            count=count,
            block=block_ms,
        )

    async def acknowledge_messages(self, message_ids: list[str]) -> None:
        """Acknowledge processed messages."""
        if message_ids:
            await self.client.xack(self.stream_key, self.group_name, *message_ids)

    async def delete_messages(self, message_ids: list[str]) -> None:
        """Delete acknowledged messages from the stream."""
        if message_ids:
            await self.client.xdel(self.stream_key, *message_ids)

    async def add_to_stream(
        self, fields: dict[str, str], stream_key: str | None = None
    ) -> str:
        """Add a message to a stream."""
        key = stream_key or self.stream_key
        return await self.client.xadd(key, fields)


def create_redis_stream_service(
    client: redis.Redis | None = None,
    stream_key: str | None = None,
    group_name: str | None = None,
) -> RedisStreamService:
    """Factory function to create the notification stream service."""
    stream = stream_key or settings.NOTIFICATIONS_STREAM_KEY
    group = group_name or settings.NOTIFICATIONS_CONSUMER_GROUP
    return RedisStreamService(client or get_store_client(), stream, group)
