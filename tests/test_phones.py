"""Tests for phone normalization."""
from __future__ import annotations

import pytest

from hallcrm.services import phones

LOCAL = "03001234567"
INTERNATIONAL = "+923001234567"


@pytest.mark.parametrize("raw", ["03001234567", "+923001234567", "923001234567", "0300-123 4567", "+92 300 1234567"])
def test_all_forms_normalize_to_the_same_canonical_numbers(raw):
    assert phones.to_local(raw) == LOCAL
    assert phones.to_international(raw) == INTERNATIONAL


def test_local_and_international_are_inverse():
    assert phones.to_local(phones.to_international(LOCAL)) == LOCAL
    assert phones.to_international(phones.to_local(INTERNATIONAL)) == INTERNATIONAL


def test_whatsapp_form_has_no_plus():
    assert phones.to_whatsapp(LOCAL) == "923001234567"


def test_empty_values():
    assert phones.to_international(None) == ""
    assert phones.to_local("") == ""
    assert phones.digits("abc") == ""
