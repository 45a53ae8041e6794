"""In-app notification model."""
from __future__ import annotations

from datetime import datetime
import enum
from typing import Any

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, JSONType, enum_values, utcnow

TARGET_ALL = "all"


class NotificationType(str, enum.Enum):
    LEAD_ASSIGNED = "lead_assigned"
    STALE_LEAD_REMINDER = "stale_lead_reminder"
    STALE_LEAD_ESCALATION = "stale_lead_escalation"
    SITE_VISIT_REMINDER = "site_visit_reminder"
    QUOTE_FOLLOW_UP = "quote_follow_up"
    PAYMENT_OVERDUE = "payment_overdue"


class NotificationPriority(str, enum.Enum):
    NORMAL = "normal"
    HIGH = "high"


class Notification(Base):
    """Notification addressed to an employee name, a role, or ``all``."""

    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    type: Mapped[NotificationType] = mapped_column(
        Enum(NotificationType, name="notification_type", values_callable=enum_values), nullable=False
    )
    target: Mapped[str] = mapped_column(String, nullable=False, index=True)
    lead_id: Mapped[str | None] = mapped_column(ForeignKey("leads.id", ondelete="SET NULL"), index=True)
    lead_name: Mapped[str | None] = mapped_column(String)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[NotificationPriority] = mapped_column(
        Enum(NotificationPriority, name="notification_priority", values_callable=enum_values),
        default=NotificationPriority.NORMAL,
        nullable=False,
    )
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    extra: Mapped[dict[str, Any] | None] = mapped_column(JSONType)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
