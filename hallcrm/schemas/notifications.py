"""Schemas for the notification feed."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from ..models.notification import NotificationPriority, NotificationType


class NotificationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: NotificationType
    target: str
    lead_id: str | None = None
    lead_name: str | None = None
    message: str
    priority: NotificationPriority
    read: bool
    extra: dict[str, Any] | None = None
    created_at: datetime | None = None


class NotificationListResponse(BaseModel):
    items: list[NotificationRead]
    unread: int


class MarkAllReadResponse(BaseModel):
    updated: int
