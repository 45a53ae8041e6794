"""Per-source automation applied to newly created leads."""
from __future__ import annotations

from datetime import datetime, timezone
import logging
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..models.lead import Lead
from ..schemas.settings import AutomationRule, IntegrationSettings, source_key
from . import sms as sms_service

logger = logging.getLogger(__name__)


def auto_response_text(lead: Lead) -> str:
    name = (lead.client_name or "").split()
    greeting = f"Hi {name[0]}" if name else "Hi"
    return f"{greeting}, thank you for contacting {settings.business_name}. Our team will call you shortly."


async def apply_automation(
    session: AsyncSession,
    lead: Lead,
    rule: AutomationRule,
    integrations: IntegrationSettings,
) -> list[str]:
    """Apply one automation rule to the lead and commit; returns the actions taken."""

    actions: list[str] = []
    logger.info("Applying automation for source %r (key %s)", lead.source, source_key(lead.source))

    if rule.add_to_call_list:
        lead.next_call_date = datetime.now(ZoneInfo(settings.business_timezone)).date()
        actions.append("add_to_call_list")

    if rule.ai_bot:
        lead.ai_handling = True
        lead.ai_started_at = datetime.now(timezone.utc)
        actions.append("ai_bot")

    if rule.email_response and lead.email:
        logger.info("Email auto-response requested for lead %s but no email channel is configured", lead.id)

    if actions:
        session.add(lead)
        await session.commit()

    if rule.text_auto_response and lead.phone:
        if await sms_service.send_sms(integrations, lead.phone, auto_response_text(lead)):
            actions.append("text_auto_response")

    return actions
