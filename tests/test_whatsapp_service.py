"""Tests for WhatsApp adapters and the auto greeting."""
from __future__ import annotations

import json

import httpx
import pytest

from hallcrm.models.message import Message, MessageDirection
from hallcrm.repositories import leads as leads_repo
from hallcrm.schemas.settings import IntegrationSettings
from hallcrm.services import whatsapp
from hallcrm.services.whatsapp import AisensyWhatsApp, SendResult, WatiWhatsApp


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_wati_sends_session_message():
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"result": True, "info": {"id": "wamid-1"}})

    config = IntegrationSettings(wa_provider="wati", wa_api_key="key", wa_api_endpoint="https://live.wati.io/")
    async with mock_client(handler) as client:
        result = await WatiWhatsApp(config, client).send("923001234567", "Hello")

    assert result == SendResult(True, message_id="wamid-1")
    assert str(requests[0].url) == "https://live.wati.io/api/v1/sendSessionMessage/923001234567"
    assert requests[0].headers["Authorization"] == "Bearer key"
    assert json.loads(requests[0].content) == {"messageText": "Hello"}


@pytest.mark.asyncio
async def test_wati_failure_is_returned_not_raised():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"result": False, "info": "Invalid session"})

    config = IntegrationSettings(wa_provider="wati", wa_api_key="key", wa_api_endpoint="https://live.wati.io")
    async with mock_client(handler) as client:
        result = await WatiWhatsApp(config, client).send("923001234567", "Hello")

    assert result.success is False
    assert result.error == "Invalid session"


@pytest.mark.asyncio
async def test_transport_error_is_returned_not_raised():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    config = IntegrationSettings(wa_provider="aisensy", wa_api_key="key")
    async with mock_client(handler) as client:
        result = await AisensyWhatsApp(config, client).send("923001234567", "Hello")

    assert result.success is False
    assert "unreachable" in result.error


@pytest.mark.asyncio
async def test_aisensy_campaign_payload():
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"success": True, "messageId": "ais-9"})

    config = IntegrationSettings(wa_provider="aisensy", wa_api_key="key")
    async with mock_client(handler) as client:
        result = await AisensyWhatsApp(config, client).send("923001234567", "Hello")

    assert result.message_id == "ais-9"
    assert bodies[0]["campaignName"] == "auto_greeting"
    assert bodies[0]["destination"] == "923001234567"
    assert bodies[0]["apiKey"] == "key"


def test_render_greeting_replaces_name_case_insensitively():
    assert whatsapp.render_greeting("Hi {{Name}}, welcome {{name}}!", "Ayesha Khan") == "Hi Ayesha, welcome Ayesha!"
    assert whatsapp.render_greeting(None, "").startswith("Hello there!")


def test_build_sender_by_provider():
    assert isinstance(whatsapp.build_sender(IntegrationSettings(wa_provider="wati")), WatiWhatsApp)
    assert isinstance(whatsapp.build_sender(IntegrationSettings(wa_provider="twilio")), whatsapp.TwilioWhatsApp)
    assert whatsapp.build_sender(IntegrationSettings(wa_provider="pigeon")) is None


class RecordingSender:
    provider = "wati"

    def __init__(self, result: SendResult) -> None:
        self.result = result
        self.calls: list[tuple[str, str]] = []

    async def send(self, phone: str, text: str) -> SendResult:
        self.calls.append((phone, text))
        return self.result


ENABLED = IntegrationSettings(
    auto_greeting_enabled=True,
    auto_greeting_message="Salam {{name}}!",
    wa_provider="wati",
    wa_api_key="key",
)


@pytest.mark.asyncio
async def test_greeting_success_logs_message_and_marks_contacted(session):
    lead = leads_repo.build_lead(client_name="Ayesha Khan", phone="03001234567")
    sender = RecordingSender(SendResult(True, message_id="wamid-7"))

    sent = await whatsapp.send_greeting(session, lead, ENABLED, sender=sender)

    assert sent is True
    assert sender.calls == [("923001234567", "Salam Ayesha!")]
    [message] = session.added_of(Message)
    assert message.direction is MessageDirection.OUTBOUND
    assert message.kind == "auto_greeting"
    assert message.read is True
    assert message.external_message_id == "wamid-7"
    assert lead.auto_greeting_sent_at is not None
    assert lead.last_contacted_at == lead.auto_greeting_sent_at
    assert lead.first_response_at is not None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("config", "phone"),
    [
        (ENABLED.model_copy(update={"auto_greeting_enabled": False}), "03001234567"),
        (ENABLED.model_copy(update={"wa_api_key": None}), "03001234567"),
        (ENABLED, None),
    ],
)
async def test_greeting_gates(session, config, phone):
    lead = leads_repo.build_lead(client_name="Ayesha", phone=phone)
    sender = RecordingSender(SendResult(True))

    assert await whatsapp.send_greeting(session, lead, config, sender=sender) is False
    assert sender.calls == []
    assert session.added == []


@pytest.mark.asyncio
async def test_failed_greeting_changes_nothing(session):
    lead = leads_repo.build_lead(client_name="Ayesha", phone="03001234567")
    sender = RecordingSender(SendResult(False, error="rejected"))

    assert await whatsapp.send_greeting(session, lead, ENABLED, sender=sender) is False
    assert lead.auto_greeting_sent_at is None
    assert session.commits == 0
