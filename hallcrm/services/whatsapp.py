"""Outbound WhatsApp adapters and the new-lead auto greeting."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
import logging
import re
from typing import Any, Protocol

import httpx
from sqlalchemy.ext.asyncio import AsyncSession
from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from ..core.config import settings
from ..models.lead import Lead
from ..models.message import MessageDirection
from ..repositories import messages as messages_repo
from ..schemas.settings import IntegrationSettings, WhatsAppProvider
from . import lifecycle, phones

logger = logging.getLogger(__name__)

GREETING_KIND = "auto_greeting"
AISENSY_CAMPAIGN = "auto_greeting"
_NAME_PLACEHOLDER = re.compile(r"\{\{name\}\}", re.IGNORECASE)


@dataclass(slots=True, frozen=True)
class SendResult:
    success: bool
    message_id: str | None = None
    error: str | None = None


class WhatsAppSender(Protocol):
    provider: str

    async def send(self, phone: str, text: str) -> SendResult:
        ...


class TwilioWhatsApp:
    """Twilio WhatsApp; account sid in ``wa_api_key``, token in ``wa_api_secret``."""

    provider = WhatsAppProvider.TWILIO.value

    def __init__(self, integrations: IntegrationSettings) -> None:
        self._integrations = integrations

    async def send(self, phone: str, text: str) -> SendResult:
        cfg = self._integrations
        loop = asyncio.get_running_loop()

        def _create() -> str:
            client = Client(cfg.wa_api_key, cfg.wa_api_secret)
            message = client.messages.create(
                from_=f"whatsapp:+{phones.digits(cfg.wa_business_number)}",
                to=f"whatsapp:+{phone}",
                body=text,
            )
            return message.sid

        try:
            sid = await loop.run_in_executor(None, _create)
        except (TwilioException, OSError) as exc:
            return SendResult(False, error=str(exc))
        return SendResult(True, message_id=sid)


class _HttpSender:
    def __init__(self, integrations: IntegrationSettings, client: httpx.AsyncClient | None = None) -> None:
        self._integrations = integrations
        self._client = client

    async def _post(self, url: str, *, json: dict[str, Any], headers: dict[str, str] | None = None) -> dict[str, Any]:
        if self._client is not None:
            response = await self._client.post(url, json=json, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
                response = await client.post(url, json=json, headers=headers)
        data = response.json()
        return data if isinstance(data, dict) else {}


class WatiWhatsApp(_HttpSender):
    provider = WhatsAppProvider.WATI.value

    async def send(self, phone: str, text: str) -> SendResult:
        cfg = self._integrations
        endpoint = (cfg.wa_api_endpoint or "").rstrip("/")
        if not endpoint:
            return SendResult(False, error="Wati endpoint not configured")
        try:
            data = await self._post(
                f"{endpoint}/api/v1/sendSessionMessage/{phone}",
                json={"messageText": text},
                headers={"Authorization": f"Bearer {cfg.wa_api_key}"},
            )
        except (httpx.HTTPError, ValueError) as exc:
            return SendResult(False, error=str(exc))
        if data.get("result"):
            info = data.get("info") if isinstance(data.get("info"), dict) else {}
            return SendResult(True, message_id=info.get("id"))
        return SendResult(False, error=str(data.get("info") or "Wati error"))


class AisensyWhatsApp(_HttpSender):
    provider = WhatsAppProvider.AISENSY.value

    async def send(self, phone: str, text: str) -> SendResult:
        payload = {
            "apiKey": self._integrations.wa_api_key,
            "campaignName": AISENSY_CAMPAIGN,
            "destination": phone,
            "userName": settings.business_name,
            "message": text,
        }
        try:
            data = await self._post(settings.aisensy_api_url, json=payload)
        except (httpx.HTTPError, ValueError) as exc:
            return SendResult(False, error=str(exc))
        if data.get("success"):
            return SendResult(True, message_id=data.get("messageId"))
        return SendResult(False, error=str(data.get("message") or "Aisensy error"))


def build_sender(integrations: IntegrationSettings, client: httpx.AsyncClient | None = None) -> WhatsAppSender | None:
    provider = (integrations.wa_provider or "").strip().lower()
    if provider == WhatsAppProvider.TWILIO.value:
        return TwilioWhatsApp(integrations)
    if provider == WhatsAppProvider.WATI.value:
        return WatiWhatsApp(integrations, client)
    if provider == WhatsAppProvider.AISENSY.value:
        return AisensyWhatsApp(integrations, client)
    return None


def first_name(client_name: str | None) -> str:
    parts = (client_name or "").split()
    return parts[0] if parts else "there"


def default_greeting(name: str) -> str:
    return (
        f"Hello {name}!\n\n"
        f"Thank you for your interest in {settings.business_name}. "
        "We're excited to help you plan your special event!\n\n"
        "One of our team members will contact you shortly. In the meantime, "
        "feel free to reply to this message if you have any questions.\n\n"
        "Best regards,\nArea 51 Team"
    )


def render_greeting(template: str | None, client_name: str | None) -> str:
    name = first_name(client_name)
    if not template:
        return default_greeting(name)
    return _NAME_PLACEHOLDER.sub(name, template)


async def send_greeting(
    session: AsyncSession,
    lead: Lead,
    integrations: IntegrationSettings,
    *,
    sender: WhatsAppSender | None = None,
) -> bool:
    """Greet a freshly created lead on WhatsApp when enabled and configured."""

    if not integrations.auto_greeting_enabled:
        logger.info("Auto greeting disabled in settings")
        return False
    if not integrations.wa_provider or not integrations.wa_api_key:
        logger.info("WhatsApp not configured for auto greeting")
        return False
    if not lead.phone:
        logger.info("Lead %s has no phone number for greeting", lead.id)
        return False

    sender = sender or build_sender(integrations)
    if sender is None:
        logger.info("Unknown WhatsApp provider: %s", integrations.wa_provider)
        return False

    phone = phones.to_whatsapp(lead.phone)
    text = render_greeting(integrations.auto_greeting_message, lead.client_name)
    result = await sender.send(phone, text)
    if not result.success:
        logger.error("Failed to send greeting to lead %s via %s: %s", lead.id, sender.provider, result.error)
        return False

    now = datetime.now(timezone.utc)
    await messages_repo.append_message(
        session,
        lead_id=lead.id,
        direction=MessageDirection.OUTBOUND,
        provider=sender.provider,
        text=text,
        phone=lead.phone,
        external_message_id=result.message_id,
        kind=GREETING_KIND,
    )
    lead.auto_greeting_sent_at = now
    lifecycle.mark_contacted(lead, now)
    session.add(lead)
    await session.commit()
    logger.info("Auto greeting sent to lead %s (%s)", lead.id, phone)
    return True
