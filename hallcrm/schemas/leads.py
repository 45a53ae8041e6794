"""Schemas for lead endpoints and realtime payloads."""
from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..models.lead import LeadStage
from ..models.message import MessageDirection


class LeadCreate(BaseModel):
    client_name: str = Field(min_length=1)
    phone: str | None = None
    email: str | None = None
    source: str | None = None
    notes: str | None = None
    assignee: str | None = None
    event_date: str | None = None
    event_type: str | None = None
    guests: int | None = Field(default=None, ge=0)
    budget_range: str | None = None
    amount: float | None = Field(default=None, ge=0)


class LeadStageUpdate(BaseModel):
    stage: LeadStage
    site_visit_date: date | None = None
    site_visit_time: str | None = None


class LeadRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    client_name: str
    phone: str | None = None
    email: str | None = None
    source: str | None = None
    notes: str | None = None
    stage: LeadStage
    assignee: str | None = None
    assignment_method: str | None = None
    assigned_at: datetime | None = None
    created_at: datetime | None = None
    stage_updated_at: datetime | None = None
    last_contacted_at: datetime | None = None
    first_response_at: datetime | None = None
    response_time_minutes: int | None = None
    auto_greeting_sent_at: datetime | None = None
    reminded: bool = False
    escalated: bool = False
    quote_reminder_sent: bool = False
    site_visit_date: date | None = None
    site_visit_time: str | None = None
    event_date: str | None = None
    event_type: str | None = None
    guests: int | None = None
    budget_range: str | None = None
    amount: float | None = None
    meta_lead_id: str | None = None
    meta: dict[str, Any] | None = None
    next_call_date: date | None = None
    ai_handling: bool = False
    last_message_at: datetime | None = None
    last_message_preview: str | None = None
    last_message_direction: str | None = None
    has_unread_messages: bool = False
    invoicing_id: str | None = None
    invoicing_status: str | None = None
    payment_status: str | None = None
    total_paid: float | None = None
    total_due: float | None = None


class LeadListResponse(BaseModel):
    items: list[LeadRead]
    total: int
    limit: int
    offset: int


class EffectRead(BaseModel):
    name: str
    ok: bool
    error: str | None = None


class LeadCreateResponse(BaseModel):
    lead: LeadRead
    effects: list[EffectRead] = Field(default_factory=list)


class MessageRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    direction: MessageDirection
    provider: str
    external_message_id: str | None = None
    phone: str | None = None
    text: str
    message_type: str
    media_url: str | None = None
    sender_name: str | None = None
    kind: str
    read: bool
    created_at: datetime | None = None
