"""Per-user in-app notification inbox stored in Redis lists."""

from __future__ import annotations

import redis.asyncio as redis

from stockwatch.config import settings
from stockwatch.models.notification import InboxNotification


class NotificationInbox:
    """Newest-first list per user, trimmed to a fixed length."""

    def __init__(self, client: redis.Redis, *, limit: int | None = None):
        self._client = client
        self._limit = limit or settings.NOTIFICATION_INBOX_LIMIT

    @staticmethod
    def _key(user_id: str) -> str:
        return f"notifications:user:{user_id}"

    async def deliver(self, notification: InboxNotification) -> None:
        key = self._key(notification.user_id)
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.lpush(key, notification.model_dump_json())
            pipe.ltrim(key, 0, self._limit - 1)
            await pipe.execute()

    async def list(self, user_id: str, limit: int = 50) -> list[InboxNotification]:
        raws = await self._client.lrange(self._key(user_id), 0, limit - 1)
        return [InboxNotification.model_validate_json(raw) for raw in raws]
