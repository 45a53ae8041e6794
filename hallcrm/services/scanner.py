"""Scheduled sweeps over open leads: staleness, site visits and quotes."""
from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from datetime import date, datetime, timedelta, timezone
import enum
import logging
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings, settings
from ..models.lead import Lead, LeadStage
from ..models.notification import NotificationPriority, NotificationType
from ..repositories import leads as leads_repo
from ..schemas.settings import IntegrationSettings
from ..schemas.sweeps import SweepReport
from . import notifications, settings_store

logger = logging.getLogger(__name__)

STALE_STAGES = (LeadStage.NEW, LeadStage.CONTACTED)


class StaleAction(str, enum.Enum):
    NONE = "none"
    REMIND = "remind"
    ESCALATE = "escalate"


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _now(now: datetime | None) -> datetime:
    return _aware(now) if now is not None else datetime.now(timezone.utc)


def stale_reference(lead: Lead) -> datetime | None:
    value = lead.last_contacted_at or lead.created_at
    return _aware(value) if value is not None else None


def classify_staleness(lead: Lead, now: datetime, config: Settings = settings) -> StaleAction:
    """Decide what the hourly sweep owes a lead.

    An escalated lead is never acted on again; a reminded lead only escalates.
    """

    if lead.stage not in STALE_STAGES or lead.escalated:
        return StaleAction.NONE
    reference = stale_reference(lead)
    if reference is None:
        return StaleAction.NONE

    age = _aware(now) - reference
    if age >= timedelta(hours=config.stale_escalation_hours):
        return StaleAction.ESCALATE
    if age >= timedelta(hours=config.stale_reminder_hours) and not lead.reminded:
        return StaleAction.REMIND
    return StaleAction.NONE


def quote_age_days(lead: Lead, now: datetime) -> int | None:
    """Whole days since the lead entered Quoted (or was created)."""

    reference = lead.stage_updated_at or lead.created_at
    if reference is None:
        return None
    return (_aware(now) - _aware(reference)) // timedelta(days=1)


def business_tomorrow(now: datetime, config: Settings = settings) -> date:
    local = _aware(now).astimezone(ZoneInfo(config.business_timezone))
    return local.date() + timedelta(days=1)


LeadHandler = Callable[[Lead], Awaitable[None]]


async def _process_each(
    session: AsyncSession,
    leads: Sequence[Lead],
    handler: LeadHandler,
    report: SweepReport,
) -> None:
    """Run ``handler`` per lead; a failure is rolled back and counted, not raised."""

    lead_ids = [lead.id for lead in leads]
    for lead_id in lead_ids:
        report.scanned += 1
        try:
            lead = await session.get(Lead, lead_id, populate_existing=True)
            if lead is None:
                report.skipped += 1
                continue
            await handler(lead)
        except Exception:  # noqa: BLE001
            logger.exception("Sweep %s failed for lead %s", report.sweep, lead_id)
            await session.rollback()
            report.failed += 1


async def run_stale_sweep(session: AsyncSession, now: datetime | None = None) -> SweepReport:
    """Hourly: remind at the reminder threshold, escalate at the escalation threshold."""

    now = _now(now)
    report = SweepReport(sweep="stale_leads")
    integrations = await settings_store.load_integrations(session)
    leads = await leads_repo.list_in_stages(session, STALE_STAGES)

    async def handle(lead: Lead) -> None:
        action = classify_staleness(lead, now)
        if action is StaleAction.ESCALATE:
            await _escalate(session, lead, integrations)
            report.escalated += 1
        elif action is StaleAction.REMIND:
            await _remind(session, lead, integrations)
            report.reminded += 1
        else:
            report.skipped += 1

    await _process_each(session, leads, handle, report)
    logger.info("Stale check complete: %s", report.model_dump())
    return report


async def _remind(session: AsyncSession, lead: Lead, integrations: IntegrationSettings) -> None:
    message, sms_text = notifications.reminder_messages(lead)
    lead.reminded = True
    session.add(lead)
    await notifications.notify(
        session,
        NotificationType.STALE_LEAD_REMINDER,
        lead,
        notifications.target_for(lead),
        message,
        integrations=integrations,
        sms_text=sms_text,
    )


async def _escalate(session: AsyncSession, lead: Lead, integrations: IntegrationSettings) -> None:
    message, sms_text = notifications.escalation_messages(lead)
    # escalation supersedes the reminder
    lead.escalated = True
    lead.reminded = True
    session.add(lead)
    await notifications.notify(
        session,
        NotificationType.STALE_LEAD_ESCALATION,
        lead,
        notifications.target_for(lead),
        message,
        integrations=integrations,
        sms_text=sms_text,
        priority=NotificationPriority.HIGH,
    )


async def run_site_visit_sweep(session: AsyncSession, now: datetime | None = None) -> SweepReport:
    """Daily: remind about site visits scheduled for tomorrow (business time)."""

    now = _now(now)
    report = SweepReport(sweep="site_visits")
    integrations = await settings_store.load_integrations(session)
    tomorrow = business_tomorrow(now)
    leads = await leads_repo.list_site_visits_on(session, tomorrow)

    async def handle(lead: Lead) -> None:
        message, sms_text = notifications.site_visit_messages(lead)
        await notifications.notify(
            session,
            NotificationType.SITE_VISIT_REMINDER,
            lead,
            notifications.target_for(lead),
            message,
            integrations=integrations,
            sms_text=sms_text,
        )
        report.notified += 1

    await _process_each(session, leads, handle, report)
    logger.info("Site visit reminders for %s: %s", tomorrow.isoformat(), report.model_dump())
    return report


async def run_quote_sweep(session: AsyncSession, now: datetime | None = None) -> SweepReport:
    """Daily: one follow-up per lead sitting in Quoted past the threshold."""

    now = _now(now)
    report = SweepReport(sweep="quotes")
    integrations = await settings_store.load_integrations(session)
    leads = await leads_repo.list_in_stages(session, (LeadStage.QUOTED,))

    async def handle(lead: Lead) -> None:
        days = quote_age_days(lead, now)
        if lead.quote_reminder_sent or days is None or days < settings.quote_follow_up_days:
            report.skipped += 1
            return
        message, sms_text = notifications.quote_messages(lead, days)
        lead.quote_reminder_sent = True
        lead.quote_reminder_sent_at = now
        session.add(lead)
        await notifications.notify(
            session,
            NotificationType.QUOTE_FOLLOW_UP,
            lead,
            notifications.target_for(lead),
            message,
            integrations=integrations,
            sms_text=sms_text,
            extra={"days_since_quote": days},
        )
        report.notified += 1

    await _process_each(session, leads, handle, report)
    logger.info("Quote reminders complete: %s", report.model_dump())
    return report
