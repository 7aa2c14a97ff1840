"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

import re
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, EmailStr, Field, field_validator

PHONE_PATTERN = r"^\+?[0-9\s\-\(\)]{10,}$"
PASSWORD_RULES = [
    (r"[A-Z]", "Password must contain an uppercase letter"),
    (r"[a-z]", "Password must contain a lowercase letter"),
    (r"[0-9]", "Password must contain a number"),
    (r"[!@#$%^&*(),.?\":{}|<>]", "Password must contain a special character"),
]


class SignupRequest(BaseModel):
    """Request model for starting a signup."""

    name: str = Field(..., min_length=1, max_length=120)
    email: EmailStr
    phone: str = Field(..., pattern=PHONE_PATTERN, description="Phone number receiving the code")
    password: str = Field(..., min_length=8, description="User password (min 8 characters)")

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Name is required")
        return value.strip()

    @field_validator("password")
    @classmethod
    def password_complexity(cls, value: str) -> str:
        for pattern, message in PASSWORD_RULES:
            if not re.search(pattern, value):
                raise ValueError(message)
        return value


class SignupResponse(BaseModel):
    """Response model for an accepted signup."""

    message: str
    email: str
    expires_in_seconds: int
    dev_code: str | None = Field(None, description="Verification code (development only)")


class VerifyRequest(BaseModel):
    """Request model for confirming the phone code."""

    email: EmailStr
    code: str = Field(
        ...,
        min_length=6,
        max_length=6,
        pattern=r"^\d{6}$",
        description="6-digit verification code",
    )


class LoginRequest(BaseModel):
    """Request model for password login (users and admins)."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    """Public user fields."""

    id: str
    name: str
    email: str
    phone: str
    subscription: str
    verified: bool
    created_at: datetime


class AuthResponse(BaseModel):
    """Response model for signup completion and login."""

    message: str
    user: UserResponse
    token: str


class AdminLoginResponse(BaseModel):
    """Response model for admin login."""

    message: str
    token: str


class ContactRequest(BaseModel):
    """Request model for the contact form."""

    name: str = Field(..., min_length=1, max_length=120)
    email: EmailStr
    subject: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=10, max_length=5000)
    type: str = "general"


class DownloadTrackRequest(BaseModel):
    """Request model for download tracking."""

    platform: str = Field(..., pattern=r"^(windows|mac|linux)$")
    version: str | None = None
    success: bool = True


class SubscriptionEventRequest(BaseModel):
    """Request model for recording a subscription event."""

    type: str = Field(..., min_length=1, max_length=80)
    plan: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)


class SubscriptionUpdateRequest(BaseModel):
    """Request model for an admin change of subscription tier."""

    subscription: Literal["free", "pro", "enterprise", "lifetime"]


class UserDetailResponse(BaseModel):
    """Response model for one user with their download and subscription history."""

    user: dict[str, Any]
    downloads: list[dict[str, Any]]
    subscription_events: list[dict[str, Any]]


class SubscriptionUpdateResponse(BaseModel):
    """Response model for a subscription tier change."""

    message: str
    user: dict[str, Any]


class TrackedResponse(BaseModel):
    """Response model for any tracked event."""

    message: str
    id: str


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


class EventPage(BaseModel):
    """Page of stored events, newest first."""

    events: list[dict[str, Any]]
    pagination: Pagination


class StatsResponse(BaseModel):
    """Aggregate over a trailing window."""

    total: int
    unique: int
    by_day: dict[str, int]


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
