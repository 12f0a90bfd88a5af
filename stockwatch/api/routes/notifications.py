"""In-app notification inbox."""

from __future__ import annotations

from fastapi import APIRouter, Query

from stockwatch.api.dependencies import InboxDependency
from stockwatch.api.identity import CurrentUserId
from stockwatch.models.notification import InboxResponse

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=InboxResponse)
async def list_notifications(
    user_id: CurrentUserId,
    inbox: InboxDependency,
    limit: int = Query(50, ge=1, le=100),
) -> InboxResponse:
    """Most recent notifications first."""

    items = await inbox.list(user_id, limit=limit)
    return InboxResponse(count=len(items), items=items)
