"""Notification persistence helpers."""
from __future__ import annotations

from typing import Any
from uuid import uuid4

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.notification import (
    TARGET_ALL,
    Notification,
    NotificationPriority,
    NotificationType,
)

FEED_WIDE_ROLES = {"Admin", "Owner"}


async def create_notification(
    session: AsyncSession,
    *,
    type: NotificationType,
    target: str,
    message: str,
    lead_id: str | None = None,
    lead_name: str | None = None,
    priority: NotificationPriority = NotificationPriority.NORMAL,
    extra: dict[str, Any] | None = None,
) -> Notification:
    notification = Notification(
        id=str(uuid4()),
        type=type,
        target=target,
        message=message,
        lead_id=lead_id,
        lead_name=lead_name,
        priority=priority,
        extra=extra,
        read=False,
    )
    session.add(notification)
    await session.flush()
    return notification


def _visibility_filter(user: str, role: str | None, *, include_feed_wide: bool):
    clauses = [Notification.target == user, Notification.target == TARGET_ALL]
    if role:
        clauses.append(Notification.target == role)
        if include_feed_wide and role in FEED_WIDE_ROLES:
            clauses.append(Notification.type == NotificationType.LEAD_ASSIGNED)
    return or_(*clauses)


async def list_for_user(
    session: AsyncSession,
    *,
    user: str,
    role: str | None,
    limit: int = 50,
) -> list[Notification]:
    """Notifications addressed to the user, their role, or everyone.

    Admins and owners also see every ``lead_assigned`` notification.
    """

    stmt = (
        select(Notification)
        .where(_visibility_filter(user, role, include_feed_wide=True))
        .order_by(Notification.created_at.desc())
        .limit(limit)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_by_id(session: AsyncSession, notification_id: str) -> Notification | None:
    return await session.get(Notification, notification_id)


async def mark_all_read(session: AsyncSession, *, user: str, role: str | None) -> int:
    """Mark every unread notification visible to the user as read.

    Rows targeted at a role or ``all`` are shared, so this marks them read for
    every recipient.
    """

    stmt = (
        update(Notification)
        .where(_visibility_filter(user, role, include_feed_wide=False), Notification.read.is_(False))
        .values(read=True)
    )
    result = await session.execute(stmt)
    return int(result.rowcount or 0)


async def delete_notification(session: AsyncSession, notification_id: str) -> int:
    result = await session.execute(delete(Notification).where(Notification.id == notification_id))
    return int(result.rowcount or 0)
