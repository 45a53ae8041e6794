"""Lead API operations."""
from __future__ import annotations

from datetime import datetime, timezone

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.lead import Lead, LeadStage
from ..repositories import leads as leads_repo
from ..repositories import messages as messages_repo
from ..schemas import leads as schemas
from . import intake, lifecycle, settings_store


async def create(session: AsyncSession, payload: schemas.LeadCreate) -> schemas.LeadCreateResponse:
    """Run the intake pipeline; a phone that is already on file is a conflict."""

    result = await intake.create_lead(session, payload.model_dump())
    if not result.created:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": "A lead with this phone already exists", "lead_id": result.lead.id},
        )
    return schemas.LeadCreateResponse(
        lead=schemas.LeadRead.model_validate(result.lead),
        effects=[schemas.EffectRead(name=e.name, ok=e.ok, error=e.error) for e in result.effects],
    )


async def list_page(
    session: AsyncSession,
    *,
    stage: LeadStage | None,
    assignee: str | None,
    limit: int,
    offset: int,
) -> schemas.LeadListResponse:
    rows, total = await leads_repo.list_leads(session, stage=stage, assignee=assignee, limit=limit, offset=offset)
    return schemas.LeadListResponse(
        items=[schemas.LeadRead.model_validate(row) for row in rows],
        total=total,
        limit=limit,
        offset=offset,
    )


async def get_or_404(session: AsyncSession, lead_id: str) -> Lead:
    lead = await leads_repo.get_by_id(session, lead_id)
    if lead is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lead not found")
    return lead


async def messages(session: AsyncSession, lead_id: str) -> list[schemas.MessageRead]:
    await get_or_404(session, lead_id)
    rows = await messages_repo.list_for_lead(session, lead_id)
    return [schemas.MessageRead.model_validate(row) for row in rows]


async def update_stage(session: AsyncSession, lead_id: str, payload: schemas.LeadStageUpdate) -> schemas.LeadRead:
    lead = await get_or_404(session, lead_id)
    integrations = await settings_store.load_integrations(session)
    await lifecycle.change_stage(
        session,
        lead,
        payload.stage,
        integrations,
        site_visit_date=payload.site_visit_date,
        site_visit_time=payload.site_visit_time,
    )
    return schemas.LeadRead.model_validate(lead)


async def record_contact(session: AsyncSession, lead_id: str) -> schemas.LeadRead:
    lead = await get_or_404(session, lead_id)
    lifecycle.mark_contacted(lead, datetime.now(timezone.utc))
    session.add(lead)
    await session.commit()
    return schemas.LeadRead.model_validate(lead)
