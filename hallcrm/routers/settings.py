"""Configuration document endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.session import get_session
from ..schemas.settings import SettingDocumentResponse, SettingDocumentUpdate
from ..services import app_settings as settings_service

router = APIRouter()


@router.get("/{key}", response_model=SettingDocumentResponse)
async def read_document(key: str, session: AsyncSession = Depends(get_session)) -> SettingDocumentResponse:
    return await settings_service.read(session, key)


@router.put("/{key}", response_model=SettingDocumentResponse)
async def write_document(
    key: str,
    payload: SettingDocumentUpdate,
    session: AsyncSession = Depends(get_session),
) -> SettingDocumentResponse:
    """Replace the document; known keys are validated first."""

    return await settings_service.write(session, key, payload.value)
