"""Provider webhooks: WhatsApp messages and Meta lead-gen."""
from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.session import get_session
from ..services import inbound, meta_leads, settings_store
from ..services.realtime import RealtimeHub, get_hub

logger = logging.getLogger(__name__)

router = APIRouter()

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def _read_payload(request: Request) -> Any:
    """Twilio posts form-encoded bodies; Wati and Aisensy post JSON."""

    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        return {key: value for key, value in form.items() if isinstance(value, str)}
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning("Webhook body is not JSON")
        return None


@router.get("/whatsapp", response_class=PlainTextResponse)
async def whatsapp_status() -> str:
    return "Webhook active"


@router.post("/whatsapp", response_class=PlainTextResponse)
async def whatsapp_webhook(
    request: Request,
    session: AsyncSession = Depends(get_session),
    hub: RealtimeHub = Depends(get_hub),
) -> PlainTextResponse:
    """Record a provider message; ignorable events still answer 200."""

    payload = await _read_payload(request)
    logger.info("WhatsApp webhook received: %s", str(payload)[:500])

    normalized = inbound.normalize(payload)
    if isinstance(normalized, inbound.Unhandled):
        logger.info("Ignoring WhatsApp webhook: %s", normalized.reason)
        return PlainTextResponse(normalized.reason)
    if isinstance(normalized, inbound.StatusUpdate):
        logger.info("Message status update %s for %s", normalized.status, normalized.external_message_id)
        return PlainTextResponse("OK")

    try:
        await inbound.record_message(session, normalized, hub)
    except Exception:  # noqa: BLE001
        logger.exception("WhatsApp webhook failed")
        await session.rollback()
        return PlainTextResponse("Error", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return PlainTextResponse("OK")


@router.get("/meta", response_class=PlainTextResponse)
async def meta_verify(
    mode: str | None = Query(default=None, alias="hub.mode"),
    token: str | None = Query(default=None, alias="hub.verify_token"),
    challenge: str | None = Query(default=None, alias="hub.challenge"),
    session: AsyncSession = Depends(get_session),
) -> PlainTextResponse:
    integrations = await settings_store.load_integrations(session)
    echoed = meta_leads.verify_subscription(mode, token, challenge, integrations)
    if echoed is None:
        return PlainTextResponse("Verification failed", status_code=status.HTTP_403_FORBIDDEN)
    return PlainTextResponse(echoed)


@router.post("/meta", response_class=PlainTextResponse)
async def meta_webhook(
    request: Request,
    session: AsyncSession = Depends(get_session),
    hub: RealtimeHub = Depends(get_hub),
) -> PlainTextResponse:
    payload = await _read_payload(request)
    if not isinstance(payload, dict):
        return PlainTextResponse("OK")
    try:
        report = await meta_leads.process_notification(session, payload, hub=hub)
    except Exception:  # noqa: BLE001
        logger.exception("Meta webhook failed")
        await session.rollback()
        return PlainTextResponse("Error", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    logger.info(
        "Meta webhook processed: %d created, %d duplicates, %d skipped",
        len(report.created),
        len(report.duplicates),
        len(report.skipped),
    )
    return PlainTextResponse("OK")
