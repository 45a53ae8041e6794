"""Load configuration documents into typed settings objects."""
from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ..repositories import app_settings as settings_repo
from ..schemas.settings import (
    ASSIGNMENT_RULES_KEY,
    AUTOMATION_RULES_KEY,
    INTEGRATIONS_KEY,
    AssignmentRules,
    AutomationRules,
    IntegrationSettings,
)

logger = logging.getLogger(__name__)


async def load_integrations(session: AsyncSession) -> IntegrationSettings:
    document = await settings_repo.get_document(session, INTEGRATIONS_KEY)
    if document is None:
        logger.debug("No integrations document stored; using defaults")
    return IntegrationSettings.model_validate(document or {})


async def load_assignment_rules(session: AsyncSession) -> AssignmentRules:
    document = await settings_repo.get_document(session, ASSIGNMENT_RULES_KEY)
    return AssignmentRules.model_validate(document or {})


async def load_automation_rules(session: AsyncSession) -> AutomationRules:
    document = await settings_repo.get_document(session, AUTOMATION_RULES_KEY)
    return AutomationRules.from_document(document)
