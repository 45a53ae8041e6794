"""Normalize WhatsApp provider webhooks and record them on the lead."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from typing import Any, Callable, Literal, Union

from sqlalchemy.ext.asyncio import AsyncSession

from ..models.lead import Lead
from ..models.message import Message, MessageDirection
from ..repositories import leads as leads_repo
from ..repositories import messages as messages_repo
from ..schemas.settings import WhatsAppProvider
from . import intake, lifecycle, phones
from .realtime import RealtimeHub

logger = logging.getLogger(__name__)

INBOUND_SOURCE = "WhatsApp Inbound"
PREVIEW_LENGTH = 100
NOTES_LENGTH = 200

WATI_INBOUND_EVENTS = {"message", "message.received"}
WATI_OUTBOUND_EVENTS = {"message.sent", "sentMessage"}
WATI_STATUS_EVENTS = {"message.delivered", "message.read"}


@dataclass(slots=True, frozen=True)
class InboundMessage:
    provider: str
    direction: MessageDirection
    phone: str
    text: str = ""
    external_message_id: str | None = None
    sender_name: str | None = None
    message_type: str = "text"
    media_url: str | None = None
    kind: Literal["message"] = "message"


@dataclass(slots=True, frozen=True)
class StatusUpdate:
    provider: str
    status: str
    external_message_id: str | None = None
    kind: Literal["status"] = "status"


@dataclass(slots=True, frozen=True)
class Unhandled:
    reason: str
    provider: str | None = None
    kind: Literal["unhandled"] = "unhandled"


NormalizedPayload = Union[InboundMessage, StatusUpdate, Unhandled]


def _first(payload: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = payload.get(key)
        if value:
            return value
    return None


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _direction(value: Any, default: MessageDirection) -> MessageDirection:
    try:
        return MessageDirection(str(value).lower())
    except ValueError:
        return default


def _message(provider: str, direction: MessageDirection, phone: Any, **fields: Any) -> NormalizedPayload:
    phone_value = str(phone).strip() if phone else ""
    if not phones.digits(phone_value):
        return Unhandled("no phone", provider=provider)
    return InboundMessage(provider=provider, direction=direction, phone=phone_value, **fields)


def _is_wati(payload: dict[str, Any]) -> bool:
    return any(payload.get(key) for key in ("eventType", "waId", "whatsappMessageId"))


def _decode_wati(payload: dict[str, Any]) -> NormalizedPayload:
    provider = WhatsAppProvider.WATI.value
    event = payload.get("eventType")
    text = _text(_first(payload, "text", "message", "messageText"))
    message_id = _first(payload, "whatsappMessageId", "id", "messageId")

    if event:
        if event in WATI_INBOUND_EVENTS:
            media = payload.get("media") if isinstance(payload.get("media"), dict) else {}
            return _message(
                provider,
                MessageDirection.INBOUND,
                _first(payload, "waId", "from", "senderPhone"),
                text=text,
                external_message_id=message_id,
                sender_name=_first(payload, "senderName", "pushName"),
                message_type=_first(payload, "type", "messageType") or "text",
                media_url=payload.get("mediaUrl") or media.get("url"),
            )
        if event in WATI_OUTBOUND_EVENTS:
            return _message(
                provider,
                MessageDirection.OUTBOUND,
                _first(payload, "waId", "to", "recipientPhone"),
                text=text,
                external_message_id=message_id,
                sender_name=_first(payload, "operatorName", "sentBy") or "Employee",
                message_type=payload.get("type") or "text",
                media_url=payload.get("mediaUrl"),
            )
        if event in WATI_STATUS_EVENTS:
            return StatusUpdate(provider=provider, status=event, external_message_id=payload.get("whatsappMessageId"))
        return Unhandled(f"unhandled event {event}", provider=provider)

    # legacy shape without eventType
    default = MessageDirection.OUTBOUND if payload.get("owner") else MessageDirection.INBOUND
    return _message(
        provider,
        _direction(payload.get("direction") or default.value, default),
        _first(payload, "waId", "from", "to"),
        text=_text(_first(payload, "text", "message")),
        external_message_id=_first(payload, "id", "whatsappMessageId"),
        sender_name=_first(payload, "senderName", "operatorName"),
        message_type=payload.get("type") or "text",
    )


def _is_twilio(payload: dict[str, Any]) -> bool:
    sender = payload.get("From")
    return isinstance(sender, str) and "whatsapp" in sender


def _decode_twilio(payload: dict[str, Any]) -> NormalizedPayload:
    return _message(
        WhatsAppProvider.TWILIO.value,
        MessageDirection.INBOUND,
        payload["From"].replace("whatsapp:", ""),
        text=_text(payload.get("Body")),
        external_message_id=payload.get("MessageSid"),
        sender_name=payload.get("ProfileName"),
        message_type="media" if payload.get("MediaContentType0") else "text",
        media_url=payload.get("MediaUrl0"),
    )


def _is_aisensy(payload: dict[str, Any]) -> bool:
    return bool(payload.get("senderMobile"))


def _decode_aisensy(payload: dict[str, Any]) -> NormalizedPayload:
    return _message(
        WhatsAppProvider.AISENSY.value,
        _direction(payload.get("direction") or "inbound", MessageDirection.INBOUND),
        _first(payload, "senderMobile", "recipientMobile"),
        text=_text(_first(payload, "message", "text")),
        external_message_id=payload.get("messageId"),
    )


DECODERS: list[tuple[str, Callable[[dict[str, Any]], bool], Callable[[dict[str, Any]], NormalizedPayload]]] = [
    (WhatsAppProvider.WATI.value, _is_wati, _decode_wati),
    (WhatsAppProvider.TWILIO.value, _is_twilio, _decode_twilio),
    (WhatsAppProvider.AISENSY.value, _is_aisensy, _decode_aisensy),
]


def normalize(payload: Any) -> NormalizedPayload:
    """Decode a provider webhook body. Malformed payloads become ``Unhandled``."""

    if not isinstance(payload, dict):
        return Unhandled("unknown format")
    for provider, matches, decode in DECODERS:
        if not matches(payload):
            continue
        try:
            return decode(payload)
        except (KeyError, TypeError, AttributeError, ValueError) as exc:
            logger.warning("Malformed %s webhook payload: %s", provider, exc)
            return Unhandled("malformed payload", provider=provider)
    return Unhandled("unknown format")


@dataclass(slots=True)
class RecordOutcome:
    lead: Lead
    message: Message
    created_lead: bool


def preview(message: InboundMessage) -> str:
    if message.text:
        return message.text[:PREVIEW_LENGTH]
    return f"[{message.message_type}]"


async def _store(session: AsyncSession, lead: Lead, message: InboundMessage, phone: str) -> Message:
    stored = await messages_repo.append_message(
        session,
        lead_id=lead.id,
        direction=message.direction,
        provider=message.provider,
        text=message.text,
        phone=phone,
        external_message_id=message.external_message_id,
        message_type=message.message_type,
        media_url=message.media_url,
        sender_name=message.sender_name,
    )

    now = datetime.now(timezone.utc)
    lead.last_message_at = now
    lead.last_message_preview = preview(message)
    lead.last_message_direction = message.direction.value
    if message.direction is MessageDirection.INBOUND:
        lead.has_unread_messages = True
    elif lead.first_response_at is None:
        lifecycle.mark_contacted(lead, now)

    session.add(lead)
    await session.commit()
    return stored


async def record_message(
    session: AsyncSession,
    message: InboundMessage,
    hub: RealtimeHub | None = None,
) -> RecordOutcome | None:
    """Attach a normalized message to its lead, creating the lead for a new inbound number.

    A new lead gets the message stored before assignment and the greeting run,
    so the conversation log starts with the customer. Outbound messages to
    unknown numbers are ignored and return ``None``.
    """

    phone = phones.to_local(message.phone)
    lead = await leads_repo.get_by_phone(session, phone)
    if lead is None and message.direction is not MessageDirection.INBOUND:
        logger.info("Outbound to unknown number %s; skipping", phone)
        return None

    stored: list[Message] = []
    created = False
    if lead is None:

        async def store_first(new_lead: Lead) -> None:
            stored.append(await _store(session, new_lead, message, phone))

        first_text = message.text[:NOTES_LENGTH] if message.text else "Media message"
        result = await intake.create_lead(
            session,
            {
                "client_name": message.sender_name or f"WhatsApp {phone}",
                "phone": phone,
                "source": INBOUND_SOURCE,
                "notes": f"First message: {first_text}",
            },
            hub=hub,
            after_create=store_first,
        )
        lead, created = result.lead, result.created

    if not stored:
        stored.append(await _store(session, lead, message, phone))

    logger.info("WhatsApp %s message saved to lead %s", message.direction.value, lead.id)
    return RecordOutcome(lead=lead, message=stored[0], created_lead=created)
