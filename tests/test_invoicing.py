"""Tests for booking push and payment sync."""
from __future__ import annotations

import json
from datetime import datetime, timezone

import httpx
import pytest

from hallcrm.models.lead import LeadStage
from hallcrm.models.notification import Notification, NotificationPriority, NotificationType
from hallcrm.repositories import leads as leads_repo
from hallcrm.schemas.settings import IntegrationSettings
from hallcrm.services import invoicing
from hallcrm.services import sms as sms_service

from conftest import DummySession

CONFIGURED = IntegrationSettings(invoicing_api_key="inv-key", invoicing_api_endpoint="https://books.example/")


def booked_lead(**fields):
    fields.setdefault("client_name", "Omar Farooq")
    fields.setdefault("phone", "03331234567")
    fields.setdefault("stage", LeadStage.BOOKED)
    fields.setdefault("amount", 500000.0)
    fields.setdefault("assignee", "Ali")
    return leads_repo.build_lead(**fields)


@pytest.mark.asyncio
async def test_push_booking_records_invoicing_id():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"id": "bk-77"})

    lead = booked_lead(event_type="Walima", guests=300)
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        booking_id = await invoicing.push_booking(lead, CONFIGURED, client=client)

    body = json.loads(seen[0].content)
    assert booking_id == "bk-77"
    assert str(seen[0].url) == "https://books.example/api/bookings"
    assert seen[0].headers["Authorization"] == "Bearer inv-key"
    assert body["crmLeadId"] == lead.id
    assert body["eventType"] == "Walima"
    assert lead.invoicing_status == "synced"
    assert lead.invoicing_pushed_at is not None


@pytest.mark.asyncio
async def test_push_booking_failure_and_transport_error():
    def rejected(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, json={"message": "eventDate required"})

    def unreachable(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    failed = booked_lead()
    errored = booked_lead()
    async with httpx.AsyncClient(transport=httpx.MockTransport(rejected)) as client:
        await invoicing.push_booking(failed, CONFIGURED, client=client)
    async with httpx.AsyncClient(transport=httpx.MockTransport(unreachable)) as client:
        await invoicing.push_booking(errored, CONFIGURED, client=client)

    assert (failed.invoicing_status, failed.invoicing_error) == ("failed", "eventDate required")
    assert errored.invoicing_status == "error"
    assert failed.invoicing_id is None


@pytest.mark.asyncio
async def test_push_booking_not_configured_is_noop():
    lead = booked_lead()
    assert await invoicing.push_booking(lead, IntegrationSettings()) is None
    assert lead.invoicing_status is None


@pytest.mark.asyncio
async def test_payment_sweep_flags_overdue_once(monkeypatch, documents):
    documents["integrations"] = CONFIGURED.model_dump(by_alias=True)
    lead = booked_lead(invoicing_id="bk-77")
    session = DummySession({lead.id: lead})

    async def list_booked(session_arg):
        return [lead]

    async def no_sms(*args, **kwargs):
        return False

    monkeypatch.setattr(leads_repo, "list_booked_with_invoicing", list_booked)
    monkeypatch.setattr(sms_service, "send_employee_sms", no_sms)

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/bookings/bk-77/payments"
        return httpx.Response(200, json={"status": "overdue", "totalPaid": 100000, "totalDue": 400000, "payments": [{"amount": 100000}]})

    now = datetime(2026, 5, 1, tzinfo=timezone.utc)
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        first = await invoicing.run_payment_sweep(session, now, client=client)
        second = await invoicing.run_payment_sweep(session, now, client=client)

    [notice] = session.added_of(Notification)
    assert notice.type is NotificationType.PAYMENT_OVERDUE
    assert notice.priority is NotificationPriority.HIGH
    assert notice.message == "Payment overdue for Omar Farooq - PKR 400,000"
    assert lead.overdue_notified is True
    assert (lead.payment_status, lead.total_paid, lead.total_due) == ("overdue", 100000.0, 400000.0)
    assert lead.last_payment_sync == now
    assert (first.updated, second.updated) == (1, 1)
    assert (first.notified, second.notified) == (1, 0)


@pytest.mark.asyncio
async def test_payment_sweep_skips_when_not_configured(monkeypatch, session, documents):
    async def list_booked(session_arg):
        raise AssertionError("should not query leads")

    monkeypatch.setattr(leads_repo, "list_booked_with_invoicing", list_booked)

    report = await invoicing.run_payment_sweep(session)

    assert report.scanned == 0
