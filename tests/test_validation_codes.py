"""
Smoke Test: Validation Codes

Validates:
1. Codes are exactly six digits, zero padded
2. Verification is an exact string match
3. A missing or malformed code never verifies
"""

import uuid
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from briefmate.lib import validation_codes
from briefmate.models import Brief, ValidationRequest


def _brief(code):
    return Brief(public_uuid=uuid.uuid4(), owner_id="o1", title="t", validation_code=code)


def test_issue_returns_six_digits():
    for _ in range(200):
        code = validation_codes.issue()
        assert len(code) == 6
        assert code.isdigit()


def test_issue_zero_pads_small_values():
    with patch("briefmate.lib.validation_codes.secrets.randbelow", return_value=42):
        assert validation_codes.issue() == "000042"


def test_verify_exact_match():
    brief = _brief("012345")
    assert validation_codes.verify(brief, "012345")


def test_verify_rejects_wrong_or_reformatted_code():
    brief = _brief("012345")
    assert not validation_codes.verify(brief, "12345")
    assert not validation_codes.verify(brief, "012346")
    assert not validation_codes.verify(brief, " 012345")
    assert not validation_codes.verify(brief, "")


def test_missing_code_never_matches():
    assert not validation_codes.verify(_brief(None), "000000")
    assert not validation_codes.verify(_brief("123456"), None)


def test_malformed_codes_never_match():
    brief = _brief("012345")
    assert not validation_codes.verify(brief, "\ud800")
    assert not validation_codes.verify(brief, "٠١٢٣٤٥")
    assert not validation_codes.verify(brief, "0123456")
    assert not validation_codes.verify(brief, 12345)


def test_validation_request_requires_six_digits():
    assert ValidationRequest(code="012345").code == "012345"
    for code in ("12345", "abcdef", "\ud800", "0123456"):
        with pytest.raises(ValidationError):
            ValidationRequest(code=code)
