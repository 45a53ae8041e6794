"""Lead creation pipeline shared by the API and the webhooks."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
from typing import Any, Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from ..models.lead import Lead
from ..models.notification import Notification, NotificationType
from ..repositories import leads as leads_repo
from ..schemas.leads import LeadRead
from ..schemas.notifications import NotificationRead
from . import assignment, automation, notifications, phones, settings_store, whatsapp
from .assignment import AssignmentDecision
from .effects import Effect, EffectResult, run_effects
from .realtime import EVENT_NEW_LEAD, RealtimeHub, hub as default_hub

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class IntakeResult:
    lead: Lead
    created: bool
    assignment: AssignmentDecision | None = None
    notification: Notification | None = None
    effects: list[EffectResult] = field(default_factory=list)


async def create_lead(
    session: AsyncSession,
    fields: dict[str, Any],
    *,
    hub: RealtimeHub | None = None,
    after_create: Callable[[Lead], Awaitable[None]] | None = None,
) -> IntakeResult:
    """Persist a lead, assign it, run the post-assignment effects and broadcast it.

    A phone that already belongs to a lead returns that lead with
    ``created=False`` and nothing else happens. ``after_create`` runs once the
    new lead is committed, before assignment and the effects.
    """

    fields = {key: value for key, value in fields.items() if value is not None}
    phone = phones.to_local(fields.pop("phone", None)) or None

    if fields.get("assignee"):
        fields.setdefault("assignment_method", assignment.AssignmentMethod.MANUAL.value)
        fields.setdefault("assigned_at", datetime.now(timezone.utc))

    if phone:
        lead, created = await leads_repo.get_or_create_by_phone(session, phone, fields)
        if not created:
            logger.info("Lead with phone %s already exists (%s)", phone, lead.id)
            return IntakeResult(lead=lead, created=False)
    else:
        lead = await leads_repo.add_lead(session, leads_repo.build_lead(**fields))
    await session.commit()
    logger.info("Lead %s created from %s", lead.id, lead.source or "unknown source")
    if after_create is not None:
        await after_create(lead)

    result = IntakeResult(lead=lead, created=True)
    was_unassigned = assignment.is_unassigned(lead)
    if was_unassigned:
        rules = await settings_store.load_assignment_rules(session)
        result.assignment = await assignment.assign_lead(session, lead, rules)
        await session.commit()

    integrations = await settings_store.load_integrations(session)
    automation_rules = await settings_store.load_automation_rules(session)
    rule = automation_rules.for_source(lead.source)

    async def notify_assignee() -> None:
        if not (was_unassigned and lead.assignee):
            return
        if not rule.send_notification:
            logger.info("Assignment notification suppressed for source %r", lead.source)
            return
        message, sms_text = notifications.assignment_messages(lead)
        result.notification = await notifications.notify(
            session,
            NotificationType.LEAD_ASSIGNED,
            lead,
            lead.assignee,
            message,
            integrations=integrations,
            sms_text=sms_text,
        )

    async def apply_rules() -> None:
        await automation.apply_automation(session, lead, rule, integrations)

    async def greet() -> None:
        await whatsapp.send_greeting(session, lead, integrations)

    async def recover() -> None:
        await session.rollback()
        await session.refresh(lead)

    result.effects = await run_effects(
        [
            Effect("notify_assignee", notify_assignee),
            Effect("automation_rules", apply_rules),
            Effect("whatsapp_greeting", greet),
        ],
        on_failure=recover,
    )

    await broadcast_new_lead(hub or default_hub, lead, result.notification)
    return result


async def broadcast_new_lead(hub: RealtimeHub, lead: Lead, notification: Notification | None) -> int:
    payload = {
        "lead": LeadRead.model_validate(lead).model_dump(mode="json"),
        "notification": (
            NotificationRead.model_validate(notification).model_dump(mode="json") if notification else None
        ),
    }
    return await hub.broadcast(EVENT_NEW_LEAD, payload)
