"""Lead activity and stage transitions."""
from __future__ import annotations

from datetime import date, datetime, timezone
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ..models.lead import Lead, LeadStage
from ..schemas.settings import IntegrationSettings
from . import invoicing

logger = logging.getLogger(__name__)


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def mark_contacted(lead: Lead, at: datetime | None = None) -> None:
    """Record contact activity; the first contact also fixes the response time."""

    at = _aware(at or datetime.now(timezone.utc))
    lead.last_contacted_at = at
    if lead.first_response_at is None:
        lead.first_response_at = at
        if lead.created_at is not None:
            elapsed = at - _aware(lead.created_at)
            lead.response_time_minutes = max(0, round(elapsed.total_seconds() / 60))


async def change_stage(
    session: AsyncSession,
    lead: Lead,
    stage: LeadStage,
    integrations: IntegrationSettings,
    *,
    site_visit_date: date | None = None,
    site_visit_time: str | None = None,
) -> Lead:
    """Move a lead to ``stage``; entering Booked pushes the booking to invoicing."""

    previous = lead.stage
    lead.stage = stage
    lead.stage_updated_at = datetime.now(timezone.utc)
    if site_visit_date is not None:
        lead.site_visit_date = site_visit_date
    if site_visit_time is not None:
        lead.site_visit_time = site_visit_time
    session.add(lead)
    await session.commit()
    logger.info("Lead %s moved from %s to %s", lead.id, previous.value if previous else None, stage.value)

    if stage is LeadStage.BOOKED and previous is not LeadStage.BOOKED:
        await invoicing.push_booking(lead, integrations)
        session.add(lead)
        await session.commit()
    return lead
