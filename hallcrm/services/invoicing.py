"""Invoicing system integration: booking push and payment status sync."""
from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..models.lead import Lead
from ..models.notification import NotificationPriority, NotificationType
from ..repositories import leads as leads_repo
from ..schemas.settings import IntegrationSettings
from ..schemas.sweeps import SweepReport
from . import notifications, settings_store

logger = logging.getLogger(__name__)

STATUS_SYNCED = "synced"
STATUS_FAILED = "failed"
STATUS_ERROR = "error"
PAYMENT_OVERDUE = "overdue"


def _headers(integrations: IntegrationSettings) -> dict[str, str]:
    return {"Authorization": f"Bearer {integrations.invoicing_api_key}"}


def _endpoint(integrations: IntegrationSettings) -> str:
    return (integrations.invoicing_api_endpoint or "").rstrip("/")


def booking_payload(lead: Lead) -> dict[str, Any]:
    return {
        "clientName": lead.client_name,
        "phone": lead.phone,
        "email": lead.email or "",
        "eventDate": lead.event_date,
        "eventType": lead.event_type or "Wedding",
        "guestCount": lead.guests,
        "package": "Standard",
        "agreedAmount": lead.amount,
        "crmLeadId": lead.id,
        "createdAt": datetime.now(timezone.utc).isoformat(),
    }


async def push_booking(
    lead: Lead,
    integrations: IntegrationSettings,
    *,
    client: httpx.AsyncClient | None = None,
) -> str | None:
    """Create the booking upstream and record the outcome on the lead (not committed)."""

    if not integrations.invoicing_configured:
        logger.info("Invoicing not configured; skipping push for lead %s", lead.id)
        return None

    url = f"{_endpoint(integrations)}/api/bookings"
    try:
        if client is not None:
            response = await client.post(url, json=booking_payload(lead), headers=_headers(integrations))
        else:
            async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as http:
                response = await http.post(url, json=booking_payload(lead), headers=_headers(integrations))
        data = response.json() if response.content else {}
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("Invoicing push error for lead %s: %s", lead.id, exc)
        lead.invoicing_status = STATUS_ERROR
        lead.invoicing_error = str(exc)
        return None

    if not isinstance(data, dict):
        data = {}
    if response.is_success:
        lead.invoicing_id = str(data.get("id") or data.get("bookingId") or "") or None
        lead.invoicing_pushed_at = datetime.now(timezone.utc)
        lead.invoicing_status = STATUS_SYNCED
        lead.invoicing_error = None
        logger.info("Lead %s pushed to invoicing: %s", lead.id, lead.invoicing_id)
        return lead.invoicing_id

    logger.error("Invoicing push failed for lead %s: %s", lead.id, data)
    lead.invoicing_status = STATUS_FAILED
    lead.invoicing_error = str(data.get("message") or "Push failed")
    return None


async def _fetch_payments(
    lead: Lead,
    integrations: IntegrationSettings,
    client: httpx.AsyncClient,
) -> dict[str, Any] | None:
    url = f"{_endpoint(integrations)}/api/bookings/{lead.invoicing_id}/payments"
    response = await client.get(url, headers=_headers(integrations))
    if not response.is_success:
        logger.warning("Payment lookup for lead %s returned %s", lead.id, response.status_code)
        return None
    data = response.json()
    return data if isinstance(data, dict) else None


async def run_payment_sweep(
    session: AsyncSession,
    now: datetime | None = None,
    *,
    client: httpx.AsyncClient | None = None,
) -> SweepReport:
    """Pull payment status for booked leads and flag overdue ones once."""

    now = now or datetime.now(timezone.utc)
    report = SweepReport(sweep="payments")
    integrations = await settings_store.load_integrations(session)
    if not integrations.invoicing_configured:
        logger.info("Invoicing not configured; skipping payment sync")
        return report

    lead_ids = [lead.id for lead in await leads_repo.list_booked_with_invoicing(session)]
    owns_client = client is None
    http = client or httpx.AsyncClient(timeout=settings.http_timeout_seconds)
    try:
        for lead_id in lead_ids:
            report.scanned += 1
            try:
                lead = await session.get(Lead, lead_id, populate_existing=True)
                if lead is None:
                    report.skipped += 1
                    continue
                data = await _fetch_payments(lead, integrations, http)
                if data is None:
                    report.skipped += 1
                    continue
                await _apply_payment_status(session, lead, data, integrations, now, report)
            except Exception:  # noqa: BLE001
                logger.exception("Payment sync failed for lead %s", lead_id)
                await session.rollback()
                report.failed += 1
    finally:
        if owns_client:
            await http.aclose()

    logger.info("Payment sync complete: %s", report.model_dump())
    return report


async def _apply_payment_status(
    session: AsyncSession,
    lead: Lead,
    data: dict[str, Any],
    integrations: IntegrationSettings,
    now: datetime,
    report: SweepReport,
) -> None:
    status = data.get("status") or "pending"
    lead.payment_status = status
    lead.total_paid = float(data.get("totalPaid") or 0)
    total_due = data.get("totalDue")
    lead.total_due = float(total_due) if total_due is not None else lead.amount
    lead.payments = list(data.get("payments") or [])
    lead.last_payment_sync = now
    session.add(lead)
    await session.commit()
    report.updated += 1

    if status == PAYMENT_OVERDUE and not lead.overdue_notified:
        message, sms_text = notifications.overdue_messages(lead, lead.total_due)
        # committed together with the notification
        lead.overdue_notified = True
        session.add(lead)
        await notifications.notify(
            session,
            NotificationType.PAYMENT_OVERDUE,
            lead,
            notifications.target_for(lead),
            message,
            integrations=integrations,
            sms_text=sms_text,
            priority=NotificationPriority.HIGH,
        )
        report.notified += 1
