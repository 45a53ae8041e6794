"""Configuration documents stored in ``app_settings``.

The SPA writes these documents with camelCase keys; the models accept either
spelling and always dump camelCase so round-trips through the API are stable.
"""
from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

INTEGRATIONS_KEY = "integrations"
ASSIGNMENT_RULES_KEY = "assignment_rules"
AUTOMATION_RULES_KEY = "automation_rules"


class _Document(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class WhatsAppProvider(str, enum.Enum):
    TWILIO = "twilio"
    WATI = "wati"
    AISENSY = "aisensy"


class IntegrationSettings(_Document):
    sms_enabled: bool = False
    sms_notify_on_assignment: bool = False
    sms_notify_on_reminder: bool = False
    sms_notify_on_escalation: bool = False
    sms_notify_on_site_visit: bool = False
    sms_notify_on_quote_follow_up: bool = False
    sms_notify_on_payment_overdue: bool = False
    sms_twilio_sid: str | None = None
    sms_twilio_token: str | None = None
    sms_twilio_number: str | None = None

    auto_greeting_enabled: bool = False
    auto_greeting_message: str | None = None
    wa_provider: str | None = None
    wa_api_key: str | None = None
    wa_api_secret: str | None = None
    wa_api_endpoint: str | None = None
    wa_business_number: str | None = None

    meta_verify_token: str | None = None
    meta_access_token: str | None = None

    invoicing_api_key: str | None = None
    invoicing_api_endpoint: str | None = None

    @property
    def sms_configured(self) -> bool:
        return bool(self.sms_twilio_sid and self.sms_twilio_token and self.sms_twilio_number)

    @property
    def invoicing_configured(self) -> bool:
        return bool(self.invoicing_api_key and self.invoicing_api_endpoint)


class AssignmentMode(str, enum.Enum):
    MANUAL = "manual"
    SINGLE_PERSON = "single_person"
    SOURCE_BASED = "source_based"
    ROUND_ROBIN = "round_robin"


FALLBACK_UNASSIGNED = "unassigned"
FALLBACK_ROUND_ROBIN = "round_robin"


class SourceRule(_Document):
    source: str | None = None
    assign_to: str | None = None


class AssignmentRules(_Document):
    mode: AssignmentMode = AssignmentMode.ROUND_ROBIN
    default_assignee: str | None = None
    source_rules: list[SourceRule] = Field(default_factory=list)
    fallback_assignee: str | None = None


class AutomationRule(_Document):
    add_to_call_list: bool = True
    send_notification: bool = True
    email_response: bool = False
    text_auto_response: bool = False
    ai_bot: bool = False


DEFAULT_AUTOMATION_KEY = "_default"


class AutomationRules(BaseModel):
    """Per-source automation keyed by normalized source name."""

    rules: dict[str, AutomationRule] = Field(default_factory=dict)

    @classmethod
    def from_document(cls, document: dict[str, Any] | None) -> "AutomationRules":
        rules = {
            str(key): AutomationRule.model_validate(value)
            for key, value in (document or {}).items()
            if isinstance(value, dict)
        }
        return cls(rules=rules)

    def for_source(self, source: str | None) -> AutomationRule:
        key = source_key(source)
        rule = self.rules.get(key) or self.rules.get(DEFAULT_AUTOMATION_KEY)
        return rule or AutomationRule()


def source_key(source: str | None) -> str:
    """``"Meta Lead Gen"`` -> ``"meta_lead_gen"``."""

    return "_".join((source or "").split()).lower()


class SettingDocumentResponse(BaseModel):
    key: str
    value: dict[str, Any] | None = None


class SettingDocumentUpdate(BaseModel):
    value: dict[str, Any]
