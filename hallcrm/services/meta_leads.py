"""Meta (Facebook/Instagram) lead-gen webhook intake."""
from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..schemas.settings import IntegrationSettings
from . import intake, settings_store
from .realtime import RealtimeHub

logger = logging.getLogger(__name__)

META_SOURCE = "Meta Lead Gen"
GRAPH_FIELDS = "id,created_time,field_data,campaign_name,adset_name,ad_name,form_name,platform"


def verify_subscription(
    mode: str | None,
    token: str | None,
    challenge: str | None,
    integrations: IntegrationSettings,
) -> str | None:
    """Return the challenge to echo when the subscription request is valid."""

    expected = integrations.meta_verify_token or settings.meta_verify_token_default
    if mode == "subscribe" and token == expected:
        logger.info("Meta webhook verified")
        return challenge or ""
    logger.warning("Meta webhook verification failed (mode=%s)", mode)
    return None


def field_key(name: str) -> str:
    return "_".join(name.split()).lower()


@dataclass(slots=True)
class MetaLead:
    name: str
    phone: str
    email: str
    meta: dict[str, Any] | None
    fields: dict[str, Any] = field(default_factory=dict)


def parse_lead(data: dict[str, Any]) -> MetaLead:
    """Extract contact details and campaign attribution from a Graph lead object."""

    fields: dict[str, Any] = {}
    for item in data.get("field_data") or []:
        values = item.get("values") or []
        if item.get("name") and values:
            fields[field_key(item["name"])] = values[0]

    def pick(*keys: str) -> Any:
        for key in keys:
            if fields.get(key):
                return fields[key]
        return None

    meta = {
        "campaign_name": data.get("campaign_name"),
        "adset_name": data.get("adset_name"),
        "ad_name": data.get("ad_name"),
        "form_name": data.get("form_name"),
        "platform": data.get("platform"),
        "created_time": data.get("created_time"),
        "budget_range": pick("budget_range", "budget"),
        "event_date": pick("event_date", "preferred_date"),
        "guest_count": pick("guest_count", "guests", "number_of_guests"),
        "event_type": pick("event_type", "function_type"),
        "city": pick("city"),
        "region": pick("state", "region"),
    }
    meta = {key: value for key, value in meta.items() if value is not None}

    return MetaLead(
        name=pick("full_name", "name") or "",
        phone=pick("phone_number", "phone") or "",
        email=pick("email") or "",
        meta=meta or None,
        fields=fields,
    )


def _guest_count(value: Any) -> int | None:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def lead_fields(parsed: MetaLead, *, leadgen_id: str | None, form_id: str | None) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "client_name": parsed.name or "Meta Lead",
        "phone": parsed.phone or None,
        "email": parsed.email or None,
        "source": META_SOURCE,
        "notes": "Auto-imported from Meta.",
        "meta_lead_id": leadgen_id,
        "meta_form_id": form_id,
        "meta": parsed.meta,
    }
    if parsed.meta:
        fields["event_date"] = parsed.meta.get("event_date")
        fields["guests"] = _guest_count(parsed.meta.get("guest_count"))
        fields["event_type"] = parsed.meta.get("event_type")
        fields["budget_range"] = parsed.meta.get("budget_range")
    return fields


async def fetch_lead(
    leadgen_id: str,
    access_token: str | None,
    *,
    client: httpx.AsyncClient | None = None,
) -> dict[str, Any] | None:
    """Fetch one lead from the Graph API; ``None`` when unavailable."""

    if not access_token:
        logger.error("Meta access token not configured")
        return None

    url = f"{settings.meta_graph_url.rstrip('/')}/{settings.meta_graph_version}/{leadgen_id}"
    params = {"fields": GRAPH_FIELDS, "access_token": access_token}
    try:
        if client is not None:
            response = await client.get(url, params=params)
        else:
            async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as http:
                response = await http.get(url, params=params)
        data = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("Error fetching Meta lead %s: %s", leadgen_id, exc)
        return None

    if not isinstance(data, dict):
        return None
    if data.get("error"):
        logger.error("Meta API error for lead %s: %s", leadgen_id, data["error"])
        return None
    return data


@dataclass(slots=True)
class MetaIntakeReport:
    created: list[str] = field(default_factory=list)
    duplicates: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def leadgen_changes(body: dict[str, Any]) -> list[dict[str, Any]]:
    if body.get("object") != "page":
        return []
    changes: list[dict[str, Any]] = []
    for entry in body.get("entry") or []:
        for change in entry.get("changes") or []:
            if change.get("field") == "leadgen" and isinstance(change.get("value"), dict):
                changes.append(change["value"])
    return changes


async def process_notification(
    session: AsyncSession,
    body: dict[str, Any],
    *,
    client: httpx.AsyncClient | None = None,
    hub: RealtimeHub | None = None,
) -> MetaIntakeReport:
    """Create leads for every ``leadgen`` change in a webhook delivery."""

    report = MetaIntakeReport()
    changes = leadgen_changes(body)
    if not changes:
        return report

    integrations = await settings_store.load_integrations(session)
    for value in changes:
        leadgen_id = str(value.get("leadgen_id") or "")
        data = await fetch_lead(leadgen_id, integrations.meta_access_token, client=client) if leadgen_id else None
        if data is None:
            report.skipped.append(leadgen_id)
            continue

        parsed = parse_lead(data)
        result = await intake.create_lead(
            session,
            lead_fields(parsed, leadgen_id=leadgen_id, form_id=value.get("form_id")),
            hub=hub,
        )
        if result.created:
            campaign = (parsed.meta or {}).get("campaign_name", "Unknown")
            logger.info("Meta lead created: %s (campaign: %s)", parsed.name, campaign)
            report.created.append(result.lead.id)
        else:
            report.duplicates.append(result.lead.id)
    return report
