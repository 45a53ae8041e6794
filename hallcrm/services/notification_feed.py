"""Notification feed operations behind the API."""
from __future__ import annotations

import logging

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..repositories import notifications as notifications_repo
from ..schemas import notifications as schemas

logger = logging.getLogger(__name__)


async def list_feed(
    session: AsyncSession,
    *,
    user: str,
    role: str | None,
    limit: int = 50,
) -> schemas.NotificationListResponse:
    rows = await notifications_repo.list_for_user(session, user=user, role=role, limit=limit)
    items = [schemas.NotificationRead.model_validate(row) for row in rows]
    return schemas.NotificationListResponse(items=items, unread=sum(1 for item in items if not item.read))


async def mark_read(session: AsyncSession, notification_id: str) -> schemas.NotificationRead:
    notification = await notifications_repo.get_by_id(session, notification_id)
    if notification is None:
        logger.info("Notification %s not found", notification_id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    notification.read = True
    session.add(notification)
    await session.commit()
    return schemas.NotificationRead.model_validate(notification)


async def mark_all_read(session: AsyncSession, *, user: str, role: str | None) -> schemas.MarkAllReadResponse:
    """Shared rows (role or ``all`` targets) are marked read for everyone."""

    updated = await notifications_repo.mark_all_read(session, user=user, role=role)
    await session.commit()
    return schemas.MarkAllReadResponse(updated=updated)


async def delete(session: AsyncSession, notification_id: str) -> None:
    deleted = await notifications_repo.delete_notification(session, notification_id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    await session.commit()
