"""Notification feed endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.session import get_session
from ..schemas import notifications as notifications_schema
from ..services import notification_feed

router = APIRouter()


@router.get("", response_model=notifications_schema.NotificationListResponse)
async def list_notifications(
    user: str = Query(min_length=1),
    role: str | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    session: AsyncSession = Depends(get_session),
) -> notifications_schema.NotificationListResponse:
    """Notifications for the user, their role and everyone, newest first."""

    return await notification_feed.list_feed(session, user=user, role=role, limit=limit)


@router.patch("/read-all", response_model=notifications_schema.MarkAllReadResponse)
async def mark_all_read(
    user: str = Query(min_length=1),
    role: str | None = None,
    session: AsyncSession = Depends(get_session),
) -> notifications_schema.MarkAllReadResponse:
    return await notification_feed.mark_all_read(session, user=user, role=role)


@router.patch("/{notification_id}/read", response_model=notifications_schema.NotificationRead)
async def mark_read(
    notification_id: str,
    session: AsyncSession = Depends(get_session),
) -> notifications_schema.NotificationRead:
    return await notification_feed.mark_read(session, notification_id)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(notification_id: str, session: AsyncSession = Depends(get_session)) -> Response:
    await notification_feed.delete(session, notification_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
