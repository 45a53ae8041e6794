"""Twilio SMS channel for employee alerts and lead auto-responses."""
from __future__ import annotations

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from ..models.notification import NotificationType
from ..repositories import employees as employees_repo
from ..schemas.settings import IntegrationSettings
from . import phones

logger = logging.getLogger(__name__)

SMS_TOGGLES: dict[NotificationType, str] = {
    NotificationType.LEAD_ASSIGNED: "sms_notify_on_assignment",
    NotificationType.STALE_LEAD_REMINDER: "sms_notify_on_reminder",
    NotificationType.STALE_LEAD_ESCALATION: "sms_notify_on_escalation",
    NotificationType.SITE_VISIT_REMINDER: "sms_notify_on_site_visit",
    NotificationType.QUOTE_FOLLOW_UP: "sms_notify_on_quote_follow_up",
    NotificationType.PAYMENT_OVERDUE: "sms_notify_on_payment_overdue",
}


def sms_allowed_for(integrations: IntegrationSettings, notification_type: NotificationType) -> bool:
    """Global switch plus the per-type toggle."""

    if not integrations.sms_enabled:
        return False
    toggle = SMS_TOGGLES.get(notification_type)
    return bool(toggle and getattr(integrations, toggle))


async def send_sms(integrations: IntegrationSettings, to: str, body: str) -> bool:
    """Send one SMS through Twilio. Returns ``False`` instead of raising."""

    if not integrations.sms_configured:
        logger.info("Twilio SMS not configured; skipping message to %s", to)
        return False

    recipient = phones.to_international(to)
    if not recipient:
        logger.info("No usable phone number for SMS")
        return False

    loop = asyncio.get_running_loop()

    def _create() -> str:
        client = Client(integrations.sms_twilio_sid, integrations.sms_twilio_token)
        message = client.messages.create(body=body, from_=integrations.sms_twilio_number, to=recipient)
        return message.sid

    try:
        sid = await loop.run_in_executor(None, _create)
    except (TwilioException, OSError) as exc:
        logger.error("Twilio SMS to %s failed: %s", recipient, exc)
        return False

    logger.info("SMS sent to %s: %s", recipient, sid)
    return True


async def send_employee_sms(
    session: AsyncSession,
    *,
    employee_name: str | None,
    body: str,
    notification_type: NotificationType,
    integrations: IntegrationSettings,
) -> bool:
    """SMS an employee about a notification when every precondition holds."""

    if not sms_allowed_for(integrations, notification_type):
        logger.info("SMS for %s disabled in settings", notification_type.value)
        return False
    if not integrations.sms_configured:
        logger.info("Twilio SMS not configured")
        return False
    if not employee_name:
        return False

    employee = await employees_repo.get_by_name(session, employee_name)
    if employee is None:
        logger.info("No employee named %s", employee_name)
        return False
    if not employee.phone:
        logger.info("No phone number for employee %s", employee_name)
        return False

    return await send_sms(integrations, employee.phone, body)
