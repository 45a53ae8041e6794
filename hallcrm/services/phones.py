"""Pakistani phone number normalization."""
from __future__ import annotations

import re

from ..core.config import settings

_NON_DIGITS = re.compile(r"\D")


def digits(phone: str | None) -> str:
    return _NON_DIGITS.sub("", phone or "")


def to_international(phone: str | None, *, country_code: str | None = None) -> str:
    """``03001234567`` / ``923001234567`` / ``+923001234567`` -> ``+923001234567``."""

    code = country_code or settings.country_code
    value = digits(phone)
    if not value:
        return ""
    if value.startswith("0"):
        value = code + value[1:]
    return f"+{value}"


def to_local(phone: str | None, *, country_code: str | None = None) -> str:
    """Any accepted form -> ``03001234567``, the form leads are stored in."""

    code = country_code or settings.country_code
    value = digits(phone)
    if value.startswith(code):
        value = "0" + value[len(code):]
    return value


def to_whatsapp(phone: str | None, *, country_code: str | None = None) -> str:
    """International digits without ``+``, as WhatsApp providers expect."""

    return to_international(phone, country_code=country_code).lstrip("+")
