"""Notification dispatch: persist in-app first, then try SMS."""
from __future__ import annotations

from typing import Any
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..models.lead import Lead
from ..models.notification import TARGET_ALL, Notification, NotificationPriority, NotificationType
from ..repositories import notifications as notifications_repo
from ..schemas.settings import IntegrationSettings
from . import sms as sms_service

logger = logging.getLogger(__name__)

SMS_PREFIX = "[Area 51 CRM]"


def target_for(lead: Lead) -> str:
    """The lead's assignee, or ``all`` for an unassigned lead."""

    return lead.assignee or TARGET_ALL


async def notify(
    session: AsyncSession,
    type: NotificationType,
    lead: Lead,
    target: str,
    message: str,
    *,
    integrations: IntegrationSettings,
    sms_text: str | None = None,
    priority: NotificationPriority = NotificationPriority.NORMAL,
    extra: dict[str, Any] | None = None,
) -> Notification:
    """Persist a notification and commit it, then attempt the SMS copy.

    The SMS outcome never affects the stored notification.
    """

    notification = await notifications_repo.create_notification(
        session,
        type=type,
        target=target,
        message=message,
        lead_id=lead.id,
        lead_name=lead.client_name,
        priority=priority,
        extra=extra,
    )
    await session.commit()
    logger.info("Notification %s (%s) created for %s", notification.id, type.value, target)

    if sms_text and target != TARGET_ALL:
        sent = await sms_service.send_employee_sms(
            session,
            employee_name=target,
            body=sms_text,
            notification_type=type,
            integrations=integrations,
        )
        if not sent:
            logger.debug("SMS for notification %s not sent", notification.id)

    return notification


# Message builders shared by the intake pipeline and the sweeps.


def assignment_messages(lead: Lead) -> tuple[str, str]:
    message = f"New lead assigned: {lead.client_name} ({lead.source or 'Unknown source'})"
    sms_text = (
        f"{SMS_PREFIX} New lead assigned to you:\n{lead.client_name}\n"
        f"Source: {lead.source or 'Unknown'}\nPhone: {lead.phone or 'N/A'}"
    )
    return message, sms_text


def reminder_messages(lead: Lead) -> tuple[str, str]:
    hours = settings.stale_reminder_hours
    message = f'Lead "{lead.client_name}" needs follow-up ({hours}h+ no contact)'
    sms_text = f'{SMS_PREFIX} Reminder:\nLead "{lead.client_name}" needs follow-up - {hours}h+ no contact.'
    return message, sms_text


def escalation_messages(lead: Lead) -> tuple[str, str]:
    hours = settings.stale_escalation_hours
    message = f'ESCALATION: Lead "{lead.client_name}" has had no contact for {hours}+ hours'
    sms_text = (
        f'{SMS_PREFIX} URGENT!\nLead "{lead.client_name}" needs attention - {hours}h+ no contact.\n'
        "Please follow up immediately."
    )
    return message, sms_text


def site_visit_messages(lead: Lead) -> tuple[str, str]:
    time = lead.site_visit_time or "TBD"
    message = f"Site visit tomorrow: {lead.client_name} at {time}"
    sms_text = (
        f"{SMS_PREFIX} Site Visit Tomorrow!\nClient: {lead.client_name}\n"
        f"Time: {time}\nPhone: {lead.phone or 'N/A'}"
    )
    return message, sms_text


def quote_messages(lead: Lead, days: int) -> tuple[str, str]:
    message = f'Quote follow-up needed: "{lead.client_name}" has been in Quoted stage for {days} days'
    sms_text = (
        f"{SMS_PREFIX} Quote Follow-up!\n{lead.client_name} received a quote {days} days ago.\n"
        f"Phone: {lead.phone or 'N/A'}\nPlease follow up to close the deal!"
    )
    return message, sms_text


def overdue_messages(lead: Lead, amount: float | None) -> tuple[str, str]:
    shown = f"{amount:,.0f}" if amount is not None else "N/A"
    message = f"Payment overdue for {lead.client_name} - PKR {shown}"
    sms_text = f"{SMS_PREFIX} Payment overdue!\n{lead.client_name} owes PKR {shown}.\nPhone: {lead.phone or 'N/A'}"
    return message, sms_text
