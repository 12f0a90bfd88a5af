"""Caller identity forwarded by the API gateway."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from stockwatch.config import settings


def get_current_user_id(
    x_user_id: Annotated[str | None, Header()] = None,
) -> str:
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return x_user_id


def require_admin(
    x_user_role: Annotated[str | None, Header()] = None,
) -> None:
    """Reject non-admin callers when auth is enforced."""

    if settings.AUTH_REQUIRED and (x_user_role or "").lower() != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )


CurrentUserId = Annotated[str, Depends(get_current_user_id)]
AdminOnly = Depends(require_admin)
