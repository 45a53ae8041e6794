"""Lead model."""
from __future__ import annotations

from datetime import date, datetime
import enum
from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, Date, DateTime, Enum, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

if TYPE_CHECKING:
    from .message import Message

from .base import Base, JSONType, enum_values, utcnow


class LeadStage(str, enum.Enum):
    NEW = "New"
    CONTACTED = "Contacted"
    QUALIFIED = "Qualified"
    SITE_VISIT_SCHEDULED = "Site Visit Scheduled"
    QUOTED = "Quoted"
    NEGOTIATING = "Negotiating"
    BOOKED = "Booked"
    LOST = "Lost"


class Lead(Base):
    """Prospective client inquiry moving through the sales pipeline."""

    __tablename__ = "leads"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    client_name: Mapped[str] = mapped_column(String, nullable=False)
    phone: Mapped[str | None] = mapped_column(String, unique=True)
    email: Mapped[str | None] = mapped_column(String)
    source: Mapped[str | None] = mapped_column(String)
    notes: Mapped[str | None] = mapped_column(Text)
    stage: Mapped[LeadStage] = mapped_column(
        Enum(LeadStage, name="lead_stage", values_callable=enum_values),
        default=LeadStage.NEW,
        nullable=False,
        index=True,
    )

    assignee: Mapped[str | None] = mapped_column(String, index=True)
    assignment_method: Mapped[str | None] = mapped_column(String)
    assigned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    stage_updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    last_contacted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    first_response_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    response_time_minutes: Mapped[int | None] = mapped_column(Integer)
    auto_greeting_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    reminded: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    escalated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    quote_reminder_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    quote_reminder_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    site_visit_date: Mapped[date | None] = mapped_column(Date, index=True)
    site_visit_time: Mapped[str | None] = mapped_column(String)

    event_date: Mapped[str | None] = mapped_column(String)
    event_type: Mapped[str | None] = mapped_column(String)
    guests: Mapped[int | None] = mapped_column(Integer)
    budget_range: Mapped[str | None] = mapped_column(String)
    amount: Mapped[float | None] = mapped_column(Float)

    meta_lead_id: Mapped[str | None] = mapped_column(String, index=True)
    meta_form_id: Mapped[str | None] = mapped_column(String)
    meta: Mapped[dict[str, Any] | None] = mapped_column(JSONType)

    next_call_date: Mapped[date | None] = mapped_column(Date)
    ai_handling: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    ai_started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    last_message_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    last_message_preview: Mapped[str | None] = mapped_column(String)
    last_message_direction: Mapped[str | None] = mapped_column(String)
    has_unread_messages: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    invoicing_id: Mapped[str | None] = mapped_column(String)
    invoicing_status: Mapped[str | None] = mapped_column(String)
    invoicing_error: Mapped[str | None] = mapped_column(String)
    invoicing_pushed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    payment_status: Mapped[str | None] = mapped_column(String)
    total_paid: Mapped[float | None] = mapped_column(Float)
    total_due: Mapped[float | None] = mapped_column(Float)
    payments: Mapped[list[Any] | None] = mapped_column(JSONType)
    last_payment_sync: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    overdue_notified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    messages: Mapped[list["Message"]] = relationship(
        "Message", back_populates="lead", cascade="all, delete-orphan", order_by="Message.created_at"
    )
