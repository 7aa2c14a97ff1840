"""
Unit tests for API request/response models.

Tests Pydantic model validation for the auth, contact, download
tracking and admin subscription endpoints.
"""

import pytest
from pydantic import ValidationError

from ezclip.api.models import (
    ContactRequest,
    DownloadTrackRequest,
    ErrorResponse,
    SignupRequest,
    SignupResponse,
    SubscriptionEventRequest,
    SubscriptionUpdateRequest,
    VerifyRequest,
)
from ezclip.domain.users import SUBSCRIPTION_TIERS

VALID_SIGNUP = {
    "name": "Ada Lovelace",
    "email": "ada@example.com",
    "phone": "+1 (555) 123-4567",
    "password": "Str0ng!Pass",
}


class TestSignupRequest:
    """Tests for SignupRequest model."""

    def test_valid_signup_request(self) -> None:
        request = SignupRequest(**VALID_SIGNUP)
        assert request.email == "ada@example.com"
        assert request.phone == "+1 (555) 123-4567"

    def test_name_is_stripped(self) -> None:
        request = SignupRequest(**{**VALID_SIGNUP, "name": "  Ada  "})
        assert request.name == "Ada"

    def test_blank_name_rejected(self) -> None:
        with pytest.raises(ValidationError, match="Name is required"):
            SignupRequest(**{**VALID_SIGNUP, "name": "   "})

    def test_invalid_email_rejected(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            SignupRequest(**{**VALID_SIGNUP, "email": "not-an-email"})
        assert "email" in str(exc_info.value)

    @pytest.mark.parametrize("phone", ["12345", "+1-555-abc-4567", ""])
    def test_invalid_phone_rejected(self, phone: str) -> None:
        with pytest.raises(ValidationError):
            SignupRequest(**{**VALID_SIGNUP, "phone": phone})

    def test_password_minimum_length(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            SignupRequest(**{**VALID_SIGNUP, "password": "S0r!t"})
        assert "password" in str(exc_info.value)

    @pytest.mark.parametrize(
        "password,message",
        [
            ("str0ng!pass", "uppercase"),
            ("STR0NG!PASS", "lowercase"),
            ("Strong!Pass", "number"),
            ("Str0ngPass1", "special character"),
        ],
    )
    def test_password_complexity(self, password: str, message: str) -> None:
        with pytest.raises(ValidationError, match=message):
            SignupRequest(**{**VALID_SIGNUP, "password": password})

    def test_missing_phone_rejected(self) -> None:
        data = dict(VALID_SIGNUP)
        del data["phone"]
        with pytest.raises(ValidationError):
            SignupRequest(**data)


class TestSignupResponse:
    """Tests for SignupResponse model."""

    def test_dev_code_optional(self) -> None:
        response = SignupResponse(message="Verification code sent", email="a@x.com", expires_in_seconds=600)
        assert response.dev_code is None


class TestVerifyRequest:
    """Tests for VerifyRequest model."""

    def test_valid_6_digit_code(self) -> None:
        request = VerifyRequest(email="a@x.com", code="012345")
        assert request.code == "012345"

    @pytest.mark.parametrize("code", ["12345", "1234567", "12a456", ""])
    def test_malformed_code_rejected(self, code: str) -> None:
        with pytest.raises(ValidationError):
            VerifyRequest(email="a@x.com", code=code)


class TestContactRequest:
    """Tests for ContactRequest model."""

    def test_defaults_to_general(self) -> None:
        request = ContactRequest(name="Ann", email="ann@x.com", subject="Hi", message="Hello there, team!")
        assert request.type == "general"

    def test_short_message_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ContactRequest(name="Ann", email="ann@x.com", subject="Hi", message="short")


class TestDownloadTrackRequest:
    """Tests for DownloadTrackRequest model."""

    @pytest.mark.parametrize("platform", ["windows", "mac", "linux"])
    def test_supported_platforms(self, platform: str) -> None:
        assert DownloadTrackRequest(platform=platform).success is True

    def test_unknown_platform_rejected(self) -> None:
        with pytest.raises(ValidationError):
            DownloadTrackRequest(platform="android")


class TestSubscriptionEventRequest:
    """Tests for SubscriptionEventRequest model."""

    def test_details_default_empty(self) -> None:
        request = SubscriptionEventRequest(type="upgrade", plan="pro")
        assert request.details == {}

    def test_type_required(self) -> None:
        with pytest.raises(ValidationError):
            SubscriptionEventRequest(type="")


class TestSubscriptionUpdateRequest:
    """Tests for SubscriptionUpdateRequest model."""

    @pytest.mark.parametrize("tier", SUBSCRIPTION_TIERS)
    def test_known_tiers_accepted(self, tier: str) -> None:
        assert SubscriptionUpdateRequest(subscription=tier).subscription == tier

    @pytest.mark.parametrize("tier", ["platinum", "", "PRO"])
    def test_unknown_tier_rejected(self, tier: str) -> None:
        with pytest.raises(ValidationError):
            SubscriptionUpdateRequest(subscription=tier)


class TestErrorResponse:
    """Tests for ErrorResponse model."""

    def test_valid_error_response(self) -> None:
        assert ErrorResponse(detail="Invalid credentials").detail == "Invalid credentials"
