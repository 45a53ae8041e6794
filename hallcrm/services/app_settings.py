"""Configuration document read/write for the settings API."""
from __future__ import annotations

from typing import Any

from fastapi import HTTPException
from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from ..repositories import app_settings as settings_repo
from ..schemas.settings import (
    ASSIGNMENT_RULES_KEY,
    AUTOMATION_RULES_KEY,
    INTEGRATIONS_KEY,
    AssignmentRules,
    AutomationRules,
    IntegrationSettings,
    SettingDocumentResponse,
)

DOCUMENT_MODELS: dict[str, type[BaseModel]] = {
    INTEGRATIONS_KEY: IntegrationSettings,
    ASSIGNMENT_RULES_KEY: AssignmentRules,
}


def _validate(key: str, value: dict[str, Any]) -> dict[str, Any]:
    """Reject malformed known documents; stored as camelCase like the SPA writes them."""

    try:
        if key == AUTOMATION_RULES_KEY:
            rules = AutomationRules.from_document(value).rules
            return {name: rule.model_dump(by_alias=True) for name, rule in rules.items()}
        model = DOCUMENT_MODELS.get(key)
        if model is None:
            return value
        return model.model_validate(value).model_dump(mode="json", by_alias=True)
    except ValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail=exc.errors(include_url=False, include_context=False),
        ) from exc


async def read(session: AsyncSession, key: str) -> SettingDocumentResponse:
    return SettingDocumentResponse(key=key, value=await settings_repo.get_document(session, key))


async def write(session: AsyncSession, key: str, value: dict[str, Any]) -> SettingDocumentResponse:
    document = _validate(key, value)
    await settings_repo.put_document(session, key, document)
    await session.commit()
    return SettingDocumentResponse(key=key, value=document)
