"""Redis persistence for normalized stock alert records."""

from __future__ import annotations

from datetime import datetime

import redis.asyncio as redis
from redis.asyncio.client import Pipeline

from stockwatch.models.alert import StockAlert


class StockAlertStore:
    """Stores one hash per (product, user) plus a per-user index of products.

    Writes that must stay in step with the product's watcher set are exposed
    as ``stage_*`` helpers which queue commands into the caller's MULTI block.
    """

    def __init__(self, client: redis.Redis):
        self._client = client

    @staticmethod
    def _key(product_id: str, user_id: str) -> str:
        return f"stock-alert:{product_id}:{user_id}"

    @staticmethod
    def _user_index(user_id: str) -> str:
        return f"stock-alerts:user:{user_id}"

    def stage_pending(self, pipe: Pipeline, alert: StockAlert) -> None:
        key = self._key(alert.product_id, alert.user_id)
        pipe.delete(key)
        pipe.hset(key, mapping=self._encode(alert))
        pipe.sadd(self._user_index(alert.user_id), alert.product_id)

    def stage_notified(
        self,
        pipe: Pipeline,
        user_id: str,
        product_id: str,
        notified_at: datetime,
    ) -> None:
        pipe.hset(
            self._key(product_id, user_id),
            mapping={"status": "notified", "notified_at": notified_at.isoformat()},
        )

    async def get(self, user_id: str, product_id: str) -> StockAlert | None:
        data = await self._client.hgetall(self._key(product_id, user_id))
        return self._decode(data)

    async def list_for_user(self, user_id: str) -> list[StockAlert]:
        product_ids = await self._client.smembers(self._user_index(user_id))
        alerts = []
        for product_id in product_ids:
            alert = await self.get(user_id, product_id)
            if alert is not None:
                alerts.append(alert)
        alerts.sort(key=lambda a: a.created_at, reverse=True)
        return alerts

    async def find_by_id(self, user_id: str, alert_id: str) -> StockAlert | None:
        for alert in await self.list_for_user(user_id):
            if alert.id == alert_id:
                return alert
        return None

    async def delete(self, user_id: str, product_id: str) -> bool:
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.delete(self._key(product_id, user_id))
            pipe.srem(self._user_index(user_id), product_id)
            deleted, _ = await pipe.execute()
        return bool(deleted)

    @staticmethod
    def _encode(alert: StockAlert) -> dict[str, str]:
        data = alert.model_dump(mode="json", exclude_none=True)
        return {k: str(v) for k, v in data.items()}

    @staticmethod
    def _decode(data: dict[str, str]) -> StockAlert | None:
        if not data or "id" not in data:
            return None
        return StockAlert.model_validate(data)
