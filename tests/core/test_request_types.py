"""Tests for mfaserver.core.types."""

from __future__ import annotations

import pytest

from mfaserver.core.errors import RequestDecodeError, RequestFieldError
from mfaserver.core.types import (
    SECRET_FIELD,
    EnrolmentRequest,
    EnrolmentResponse,
    ValidationRequest,
    printable,
    secret_key,
)


class TestSecretKey:
    def test_joins_parts_verbatim(self):
        assert secret_key("ACME", "Example.com", "Alice") == "/ACME/Example.com/Alice"

    def test_no_trimming(self):
        assert secret_key(" a", "b ", "c") == "/ a/b /c"

    def test_request_key_matches(self):
        req = EnrolmentRequest("ACME", "example.com", "alice", "pw")
        assert req.key == "/ACME/example.com/alice"

    def test_secret_field_name(self):
        assert SECRET_FIELD == "mfa"


class TestEnrolmentRequest:
    def test_from_json(self):
        req = EnrolmentRequest.from_json(
            {"issuer": "ACME", "domain": "d", "username": "u", "password": "p"},
        )
        assert req == EnrolmentRequest("ACME", "d", "u", "p")

    def test_missing_and_null_fields_become_empty(self):
        req = EnrolmentRequest.from_json({"issuer": None, "domain": "d"})
        assert req.issuer == ""
        assert req.username == ""

    def test_unknown_fields_ignored(self):
        req = EnrolmentRequest.from_json(
            {"issuer": "i", "domain": "d", "username": "u", "password": "p", "extra": 1},
        )
        req.validate()

    def test_non_object_rejected(self):
        with pytest.raises(RequestDecodeError, match="JSON object"):
            EnrolmentRequest.from_json(["issuer"])

    def test_non_string_field_rejected(self):
        with pytest.raises(RequestDecodeError, match="'password'"):
            EnrolmentRequest.from_json({"password": 1234})

    def test_validate_lists_missing_fields(self):
        req = EnrolmentRequest("", "d", "", "p")
        with pytest.raises(RequestFieldError) as exc_info:
            req.validate()
        assert "username" in exc_info.value.detail
        assert "issuer" in exc_info.value.detail
        assert "domain" not in exc_info.value.detail


class TestValidationRequest:
    def test_otp_is_required(self):
        req = ValidationRequest("i", "d", "u", "p", "")
        with pytest.raises(RequestFieldError, match="otp"):
            req.validate()

    def test_password_not_checked_here(self):
        ValidationRequest("i", "d", "u", "", "123456").validate()


class TestPrintable:
    def test_plain_text_unchanged(self):
        assert printable("alice \u00e9") == "alice \u00e9"

    def test_control_characters_escaped(self):
        assert printable("a\nb\rc\x00") == "a\\nb\\rc\\x00"

    def test_label_escapes_both_parts(self):
        req = ValidationRequest("ACME", "ex\tample.com", "bob\n", "pw", "123456")
        assert req.label == "ex\\tample.com/bob\\n"
        assert req.key == "/ACME/ex\tample.com/bob\n"


class TestEnrolmentResponse:
    def test_to_dict(self):
        assert EnrolmentResponse("ABC").to_dict() == {"secret": "ABC"}
