"""Lead endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.session import get_session
from ..models.lead import LeadStage
from ..schemas import leads as leads_schema
from ..services import leads as leads_service

router = APIRouter()


@router.post("", response_model=leads_schema.LeadCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_lead(
    payload: leads_schema.LeadCreate,
    session: AsyncSession = Depends(get_session),
) -> leads_schema.LeadCreateResponse:
    """Create a lead, assign it and run the follow-up automation."""

    return await leads_service.create(session, payload)


@router.get("", response_model=leads_schema.LeadListResponse)
async def list_leads(
    stage: LeadStage | None = None,
    assignee: str | None = None,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    session: AsyncSession = Depends(get_session),
) -> leads_schema.LeadListResponse:
    return await leads_service.list_page(session, stage=stage, assignee=assignee, limit=limit, offset=offset)


@router.get("/{lead_id}", response_model=leads_schema.LeadRead)
async def get_lead(lead_id: str, session: AsyncSession = Depends(get_session)) -> leads_schema.LeadRead:
    lead = await leads_service.get_or_404(session, lead_id)
    return leads_schema.LeadRead.model_validate(lead)


@router.get("/{lead_id}/messages", response_model=list[leads_schema.MessageRead])
async def list_messages(lead_id: str, session: AsyncSession = Depends(get_session)) -> list[leads_schema.MessageRead]:
    """Return the WhatsApp conversation, oldest first."""

    return await leads_service.messages(session, lead_id)


@router.patch("/{lead_id}/stage", response_model=leads_schema.LeadRead)
async def update_stage(
    lead_id: str,
    payload: leads_schema.LeadStageUpdate,
    session: AsyncSession = Depends(get_session),
) -> leads_schema.LeadRead:
    return await leads_service.update_stage(session, lead_id, payload)


@router.post("/{lead_id}/contacted", response_model=leads_schema.LeadRead)
async def record_contact(lead_id: str, session: AsyncSession = Depends(get_session)) -> leads_schema.LeadRead:
    return await leads_service.record_contact(session, lead_id)
