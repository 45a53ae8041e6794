"""Lead repository helpers."""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any
from uuid import uuid4

from sqlalchemy import Select, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import utcnow
from ..models.lead import Lead, LeadStage


async def get_by_id(session: AsyncSession, lead_id: str) -> Lead | None:
    """Return a lead by identifier."""

    return await session.get(Lead, lead_id)


async def get_by_phone(session: AsyncSession, phone: str) -> Lead | None:
    """Exact match on the stored (local-form) phone."""

    stmt: Select[tuple[Lead]] = select(Lead).where(Lead.phone == phone).limit(1)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


_FLAG_DEFAULTS = (
    "reminded",
    "escalated",
    "quote_reminder_sent",
    "ai_handling",
    "has_unread_messages",
    "overdue_notified",
)


def build_lead(**fields: Any) -> Lead:
    """Instantiate a lead with its defaults populated before the first flush."""

    fields.setdefault("id", str(uuid4()))
    fields.setdefault("stage", LeadStage.NEW)
    fields.setdefault("created_at", utcnow())
    for flag in _FLAG_DEFAULTS:
        fields.setdefault(flag, False)
    return Lead(**fields)


async def add_lead(session: AsyncSession, lead: Lead) -> Lead:
    session.add(lead)
    await session.flush()
    return lead


async def get_or_create_by_phone(
    session: AsyncSession,
    phone: str,
    defaults: Mapping[str, Any],
) -> tuple[Lead, bool]:
    """Return ``(lead, created)`` for the phone, inserting under a savepoint.

    ``leads.phone`` is unique; when a concurrent delivery wins the insert the
    savepoint is rolled back and the winner is returned instead.
    """

    existing = await get_by_phone(session, phone)
    if existing is not None:
        return existing, False

    lead = build_lead(phone=phone, **defaults)
    try:
        async with session.begin_nested():
            session.add(lead)
    except IntegrityError:
        winner = await get_by_phone(session, phone)
        if winner is None:
            raise
        return winner, False
    return lead, True


async def list_leads(
    session: AsyncSession,
    *,
    stage: LeadStage | None = None,
    assignee: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Lead], int]:
    """Return a page of leads (newest first) and the total count for the filters."""

    filters = []
    if stage is not None:
        filters.append(Lead.stage == stage)
    if assignee:
        filters.append(Lead.assignee == assignee)

    stmt = select(Lead).where(*filters).order_by(Lead.created_at.desc()).offset(offset).limit(limit)
    count_stmt = select(func.count(Lead.id)).where(*filters)

    rows = await session.execute(stmt)
    total = await session.execute(count_stmt)
    return list(rows.scalars().all()), int(total.scalar_one())


async def list_in_stages(session: AsyncSession, stages: Iterable[LeadStage]) -> list[Lead]:
    stmt = select(Lead).where(Lead.stage.in_(list(stages))).order_by(Lead.created_at.asc())
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_site_visits_on(session: AsyncSession, day: date) -> list[Lead]:
    stmt = select(Lead).where(
        Lead.stage == LeadStage.SITE_VISIT_SCHEDULED,
        Lead.site_visit_date == day,
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_booked_with_invoicing(session: AsyncSession) -> list[Lead]:
    stmt = select(Lead).where(Lead.stage == LeadStage.BOOKED, Lead.invoicing_id.is_not(None))
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def count_new_by_assignee(session: AsyncSession, names: Iterable[str]) -> dict[str, int]:
    """Count leads in stage ``New`` per assignee, with zero for names holding none."""

    counts = {name: 0 for name in names}
    if not counts:
        return counts

    stmt = (
        select(Lead.assignee, func.count(Lead.id))
        .where(Lead.stage == LeadStage.NEW, Lead.assignee.in_(list(counts)))
        .group_by(Lead.assignee)
    )
    result = await session.execute(stmt)
    for assignee, count in result.all():
        counts[assignee] = int(count)
    return counts
