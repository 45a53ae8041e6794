"""Tests for the scheduled sweeps."""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from hallcrm.models.lead import Lead, LeadStage
from hallcrm.models.notification import Notification, NotificationPriority, NotificationType
from hallcrm.repositories import leads as leads_repo
from hallcrm.services import notifications, scanner
from hallcrm.services import sms as sms_service
from hallcrm.services.scanner import StaleAction

from conftest import DummySession

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def make_lead(**fields) -> Lead:
    fields.setdefault("client_name", "Hina")
    fields.setdefault("assignee", "Ali")
    return leads_repo.build_lead(**fields)


def hours_ago(hours: float) -> datetime:
    return NOW - timedelta(hours=hours)


@pytest.fixture
def sms_calls(monkeypatch):
    calls: list[dict] = []

    async def fake_sms(session, **kwargs):
        calls.append(kwargs)
        return True

    monkeypatch.setattr(sms_service, "send_employee_sms", fake_sms)
    return calls


def sweep_session(monkeypatch, leads: list[Lead]) -> DummySession:
    """Session serving ``leads`` to every repository query the sweeps make."""

    session = DummySession({lead.id: lead for lead in leads})

    async def list_in_stages(session_arg, stages):
        wanted = set(stages)
        return [lead for lead in leads if lead.stage in wanted]

    async def list_site_visits_on(session_arg, day):
        return [
            lead for lead in leads if lead.stage is LeadStage.SITE_VISIT_SCHEDULED and lead.site_visit_date == day
        ]

    monkeypatch.setattr(leads_repo, "list_in_stages", list_in_stages)
    monkeypatch.setattr(leads_repo, "list_site_visits_on", list_site_visits_on)
    return session


def created(session: DummySession, type: NotificationType | None = None) -> list[Notification]:
    found = session.added_of(Notification)
    return [n for n in found if type is None or n.type is type]


@pytest.mark.parametrize(
    ("hours", "reminded", "expected"),
    [
        (23.9, False, StaleAction.NONE),
        (24, False, StaleAction.REMIND),
        (30, True, StaleAction.NONE),
        (47.9, False, StaleAction.REMIND),
        (48, False, StaleAction.ESCALATE),
        (72, True, StaleAction.ESCALATE),
    ],
)
def test_classify_staleness(hours, reminded, expected):
    lead = make_lead(created_at=hours_ago(hours), reminded=reminded)
    assert scanner.classify_staleness(lead, NOW) is expected


def test_escalated_and_closed_leads_are_ignored():
    escalated = make_lead(created_at=hours_ago(100), reminded=True, escalated=True)
    quoted = make_lead(created_at=hours_ago(100), stage=LeadStage.QUOTED)

    assert scanner.classify_staleness(escalated, NOW) is StaleAction.NONE
    assert scanner.classify_staleness(quoted, NOW) is StaleAction.NONE


def test_last_contact_resets_the_clock():
    lead = make_lead(created_at=hours_ago(100), last_contacted_at=hours_ago(2), stage=LeadStage.CONTACTED)
    assert scanner.classify_staleness(lead, NOW) is StaleAction.NONE


def test_staleness_is_monotonic_in_time():
    order = {StaleAction.NONE: 0, StaleAction.REMIND: 1, StaleAction.ESCALATE: 2}
    lead = make_lead(created_at=NOW)
    previous = StaleAction.NONE
    for hour in range(0, 96):
        action = scanner.classify_staleness(lead, NOW + timedelta(hours=hour))
        assert order[action] >= order[previous]
        previous = action


@pytest.mark.asyncio
async def test_stale_sweep_reminds_then_escalates_once(monkeypatch, documents, sms_calls):
    lead = make_lead(created_at=hours_ago(25))
    session = sweep_session(monkeypatch, [lead])

    first = await scanner.run_stale_sweep(session, NOW)
    again = await scanner.run_stale_sweep(session, NOW)

    assert (first.reminded, again.reminded) == (1, 0)
    assert lead.reminded is True and lead.escalated is False
    assert len(created(session, NotificationType.STALE_LEAD_REMINDER)) == 1

    later = NOW + timedelta(hours=24)
    escalation = await scanner.run_stale_sweep(session, later)
    repeat = await scanner.run_stale_sweep(session, later + timedelta(hours=1))

    assert (escalation.escalated, repeat.escalated) == (1, 0)
    [notice] = created(session, NotificationType.STALE_LEAD_ESCALATION)
    assert notice.priority is NotificationPriority.HIGH
    assert notice.target == "Ali"
    assert lead.escalated is True and lead.reminded is True
    assert len(created(session, NotificationType.STALE_LEAD_REMINDER)) == 1
    assert [call["notification_type"] for call in sms_calls] == [
        NotificationType.STALE_LEAD_REMINDER,
        NotificationType.STALE_LEAD_ESCALATION,
    ]


@pytest.mark.asyncio
async def test_unassigned_stale_lead_notifies_everyone_without_sms(monkeypatch, documents, sms_calls):
    lead = make_lead(created_at=hours_ago(50), assignee=None)
    session = sweep_session(monkeypatch, [lead])

    await scanner.run_stale_sweep(session, NOW)

    [notice] = created(session)
    assert notice.target == "all"
    assert sms_calls == []


@pytest.mark.asyncio
async def test_one_failing_lead_does_not_stop_the_sweep(monkeypatch, documents, sms_calls):
    broken = make_lead(client_name="Broken", created_at=hours_ago(30))
    healthy = make_lead(client_name="Healthy", created_at=hours_ago(30))
    session = sweep_session(monkeypatch, [broken, healthy])
    original = notifications.reminder_messages

    def reminder_messages(lead):
        if lead.client_name == "Broken":
            raise RuntimeError("bad data")
        return original(lead)

    monkeypatch.setattr(notifications, "reminder_messages", reminder_messages)

    report = await scanner.run_stale_sweep(session, NOW)

    assert report.failed == 1
    assert report.reminded == 1
    assert session.rollbacks == 1
    assert healthy.reminded is True
    assert [n.lead_name for n in created(session)] == ["Healthy"]


def test_business_tomorrow_uses_karachi_time():
    late_utc = datetime(2026, 1, 1, 20, 0, tzinfo=timezone.utc)  # 01:00 on Jan 2 in Karachi
    assert scanner.business_tomorrow(late_utc) == date(2026, 1, 3)


@pytest.mark.asyncio
async def test_site_visit_reminders_refire_each_run(monkeypatch, documents, sms_calls):
    tomorrow = scanner.business_tomorrow(NOW)
    visit = make_lead(stage=LeadStage.SITE_VISIT_SCHEDULED, site_visit_date=tomorrow, site_visit_time="4 PM")
    other_day = make_lead(stage=LeadStage.SITE_VISIT_SCHEDULED, site_visit_date=tomorrow + timedelta(days=1))
    session = sweep_session(monkeypatch, [visit, other_day])

    await scanner.run_site_visit_sweep(session, NOW)
    report = await scanner.run_site_visit_sweep(session, NOW)

    notices = created(session, NotificationType.SITE_VISIT_REMINDER)
    assert report.notified == 1
    assert len(notices) == 2
    assert notices[0].message == "Site visit tomorrow: Hina at 4 PM"


@pytest.mark.asyncio
async def test_quote_follow_up_fires_once(monkeypatch, documents, sms_calls):
    lead = make_lead(stage=LeadStage.QUOTED, created_at=NOW - timedelta(days=10), stage_updated_at=NOW - timedelta(days=4))
    fresh = make_lead(stage=LeadStage.QUOTED, stage_updated_at=NOW - timedelta(days=2))
    session = sweep_session(monkeypatch, [lead, fresh])

    first = await scanner.run_quote_sweep(session, NOW)
    second = await scanner.run_quote_sweep(session, NOW)

    [notice] = created(session, NotificationType.QUOTE_FOLLOW_UP)
    assert notice.extra == {"days_since_quote": 4}
    assert lead.quote_reminder_sent is True
    assert lead.quote_reminder_sent_at == NOW
    assert fresh.quote_reminder_sent is False
    assert (first.notified, second.notified) == (1, 0)


def test_quote_age_falls_back_to_creation():
    lead = make_lead(created_at=NOW - timedelta(days=3, hours=1))
    assert scanner.quote_age_days(lead, NOW) == 3
