"""
Unit tests for API v1 routes.

Tests endpoint responses with mocked dependencies.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from ezclip.api.dependencies import (
    get_admin_authenticator,
    get_current_user,
    get_event_store,
    get_registration_service,
    require_admin,
)
from ezclip.api.v1 import router
from ezclip.domain.events import BoundedEventStore, EventStats, StoredEvent
from ezclip.domain.exceptions import (
    DeliveryFailed,
    EmailAlreadyRegistered,
    InvalidCredentials,
    InvalidToken,
)
from ezclip.domain.ports import EventKind, VerifyResult
from ezclip.domain.registration import (
    AdminAuthenticator,
    RegistrationService,
    SignupTicket,
    VerificationOutcome,
)
from ezclip.domain.users import User
from tests.fakes import FakeClock

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

USER = User(
    id="user-1",
    name="Ada Lovelace",
    email="ada@example.com",
    phone="+15551234567",
    password_hash="$2b$04$hash",
    created_at=NOW,
)

SIGNUP_BODY = {
    "name": "Ada Lovelace",
    "email": "ada@example.com",
    "phone": "+15551234567",
    "password": "Str0ng!Pass",
}


@pytest.fixture
def mock_service() -> MagicMock:
    service = MagicMock(spec=RegistrationService)
    service.registry = MagicMock()
    service.registry.ttl = timedelta(minutes=10)
    return service


@pytest.fixture
def app(mock_service: MagicMock) -> FastAPI:
    """Create test FastAPI application with the v1 router only."""
    test_app = FastAPI()
    test_app.include_router(router, prefix="/v1")
    test_app.dependency_overrides[get_registration_service] = lambda: mock_service
    return test_app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


class TestSignupEndpoint:
    """Tests for POST /v1/auth/signup endpoint."""

    def test_signup_success_returns_202(self, client: TestClient, mock_service: MagicMock) -> None:
        mock_service.signup = AsyncMock(
            return_value=SignupTicket(email="ada@example.com", expires_at=NOW, dev_code=None)
        )

        response = client.post("/v1/auth/signup", json=SIGNUP_BODY)

        assert response.status_code == 202
        assert response.json() == {
            "message": "Verification code sent",
            "email": "ada@example.com",
            "expires_in_seconds": 600,
            "dev_code": None,
        }
        mock_service.signup.assert_awaited_once_with(
            "Ada Lovelace", "ada@example.com", "+15551234567", "Str0ng!Pass"
        )

    def test_signup_returns_dev_code_when_exposed(self, client: TestClient, mock_service: MagicMock) -> None:
        mock_service.signup = AsyncMock(
            return_value=SignupTicket(email="ada@example.com", expires_at=NOW, dev_code="123456")
        )

        response = client.post("/v1/auth/signup", json=SIGNUP_BODY)

        assert response.json()["dev_code"] == "123456"

    def test_signup_existing_user_returns_409(self, client: TestClient, mock_service: MagicMock) -> None:
        mock_service.signup = AsyncMock(side_effect=EmailAlreadyRegistered("ada@example.com"))

        response = client.post("/v1/auth/signup", json=SIGNUP_BODY)

        assert response.status_code == 409
        assert response.json() == {"detail": "User already exists"}

    def test_signup_delivery_failure_returns_503(self, client: TestClient, mock_service: MagicMock) -> None:
        mock_service.signup = AsyncMock(side_effect=DeliveryFailed("twilio down"))

        response = client.post("/v1/auth/signup", json=SIGNUP_BODY)

        assert response.status_code == 503
        assert response.json() == {"detail": "Failed to send verification code"}

    def test_signup_validates_password(self, client: TestClient) -> None:
        response = client.post("/v1/auth/signup", json={**SIGNUP_BODY, "password": "weakpassword"})
        assert response.status_code == 422

    def test_signup_validates_phone(self, client: TestClient) -> None:
        response = client.post("/v1/auth/signup", json={**SIGNUP_BODY, "phone": "123"})
        assert response.status_code == 422


class TestVerifyEndpoint:
    """Tests for POST /v1/auth/verify endpoint."""

    def test_verify_success_returns_201(self, client: TestClient, mock_service: MagicMock) -> None:
        mock_service.verify.return_value = VerificationOutcome(VerifyResult.SUCCESS, user=USER, token="jwt")

        response = client.post("/v1/auth/verify", json={"email": "ada@example.com", "code": "123456"})

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "User created successfully"
        assert body["token"] == "jwt"
        assert body["user"]["id"] == "user-1"
        assert "password_hash" not in body["user"]
        mock_service.verify.assert_called_once_with("ada@example.com", "123456")

    @pytest.mark.parametrize(
        "result,detail",
        [
            (VerifyResult.MISMATCH, "Invalid verification code"),
            (VerifyResult.EXPIRED, "Verification code expired"),
            (VerifyResult.TOO_MANY_ATTEMPTS, "Too many attempts. Please request a new code."),
            (VerifyResult.NOT_FOUND, "No verification code found"),
        ],
    )
    def test_verify_failure_returns_400(
        self, client: TestClient, mock_service: MagicMock, result: VerifyResult, detail: str
    ) -> None:
        mock_service.verify.return_value = VerificationOutcome(result)

        response = client.post("/v1/auth/verify", json={"email": "ada@example.com", "code": "123456"})

        assert response.status_code == 400
        assert response.json() == {"detail": detail}

    def test_verify_email_taken_returns_409(self, client: TestClient, mock_service: MagicMock) -> None:
        mock_service.verify.side_effect = EmailAlreadyRegistered("ada@example.com")

        response = client.post("/v1/auth/verify", json={"email": "ada@example.com", "code": "123456"})

        assert response.status_code == 409

    def test_verify_validates_code_format(self, client: TestClient, mock_service: MagicMock) -> None:
        response = client.post("/v1/auth/verify", json={"email": "ada@example.com", "code": "12345"})

        assert response.status_code == 422
        mock_service.verify.assert_not_called()


class TestLoginEndpoint:
    """Tests for POST /v1/auth/login endpoint."""

    def test_login_success(self, client: TestClient, mock_service: MagicMock) -> None:
        mock_service.login.return_value = (USER, "jwt")

        response = client.post("/v1/auth/login", json={"email": "ada@example.com", "password": "Str0ng!Pass"})

        assert response.status_code == 200
        assert response.json()["message"] == "Login successful"
        assert response.json()["token"] == "jwt"

    def test_login_invalid_credentials_returns_401(self, client: TestClient, mock_service: MagicMock) -> None:
        mock_service.login.side_effect = InvalidCredentials("Invalid credentials")

        response = client.post("/v1/auth/login", json={"email": "ada@example.com", "password": "nope"})

        assert response.status_code == 401
        assert response.json() == {"detail": "Invalid credentials"}


class TestProfileEndpoint:
    """Tests for GET /v1/auth/profile endpoint."""

    def test_profile_without_token_returns_401(self, client: TestClient) -> None:
        response = client.get("/v1/auth/profile")

        assert response.status_code == 401
        assert response.json() == {"detail": "No token provided"}

    def test_profile_with_invalid_token_returns_401(self, client: TestClient, mock_service: MagicMock) -> None:
        mock_service.authenticate.side_effect = InvalidToken("bad")

        response = client.get("/v1/auth/profile", headers={"Authorization": "Bearer garbage"})

        assert response.status_code == 401
        assert response.json() == {"detail": "Invalid token"}

    def test_profile_returns_user(self, client: TestClient, mock_service: MagicMock) -> None:
        mock_service.authenticate.return_value = USER

        response = client.get("/v1/auth/profile", headers={"Authorization": "Bearer jwt"})

        assert response.status_code == 200
        assert response.json()["email"] == "ada@example.com"
        mock_service.authenticate.assert_called_once_with("jwt")


class TestTrackingEndpoints:
    """Tests for POST /v1/contact and POST /v1/downloads/track."""

    @pytest.fixture
    def events(self, app: FastAPI) -> BoundedEventStore:
        store = BoundedEventStore(clock=FakeClock())
        app.dependency_overrides[get_event_store] = lambda: store
        app.dependency_overrides[get_current_user] = lambda: USER
        return store

    def test_contact_stores_submission_as_new(self, client: TestClient, events: BoundedEventStore) -> None:
        response = client.post(
            "/v1/contact",
            json={"name": "Ann", "email": "ann@x.com", "subject": "Hi", "message": "Hello there, team!"},
        )

        assert response.status_code == 201
        assert response.json()["message"] == "Message sent successfully"
        stored = asyncio.run(events.query(EventKind.CONTACT_SUBMISSIONS))
        assert stored[0].id == response.json()["id"]
        assert stored[0].payload["status"] == "new"
        assert stored[0].payload["type"] == "general"

    def test_contact_validates_message_length(self, client: TestClient, events: BoundedEventStore) -> None:
        response = client.post(
            "/v1/contact",
            json={"name": "Ann", "email": "ann@x.com", "subject": "Hi", "message": "short"},
        )
        assert response.status_code == 422

    def test_download_tracked_with_user_id(self, client: TestClient, events: BoundedEventStore) -> None:
        response = client.post("/v1/downloads/track", json={"platform": "linux", "version": "1.2.0"})

        assert response.status_code == 201
        stored = asyncio.run(events.query(EventKind.DOWNLOADS))
        assert stored[0].payload == {"platform": "linux", "version": "1.2.0", "success": True, "userId": "user-1"}


class TestAdminEndpoints:
    """Tests for /v1/admin routes with mocked admin authentication."""

    @pytest.fixture
    def admin(self, app: FastAPI) -> MagicMock:
        admin = MagicMock(spec=AdminAuthenticator)
        app.dependency_overrides[get_admin_authenticator] = lambda: admin
        return admin

    @pytest.fixture
    def events(self, app: FastAPI) -> MagicMock:
        events = MagicMock(spec=BoundedEventStore)
        app.dependency_overrides[get_event_store] = lambda: events
        app.dependency_overrides[require_admin] = lambda: "admin@ezclippin.com"
        return events

    def test_admin_login(self, client: TestClient, admin: MagicMock) -> None:
        admin.login.return_value = "admin-jwt"

        response = client.post("/v1/admin/login", json={"email": "admin@ezclippin.com", "password": "pw"})

        assert response.status_code == 200
        assert response.json() == {"message": "Admin login successful", "token": "admin-jwt"}

    def test_admin_login_invalid(self, client: TestClient, admin: MagicMock) -> None:
        admin.login.side_effect = InvalidCredentials("Invalid credentials")

        response = client.post("/v1/admin/login", json={"email": "admin@ezclippin.com", "password": "pw"})

        assert response.status_code == 401

    def test_admin_route_rejects_user_token(self, client: TestClient, admin: MagicMock) -> None:
        admin.authorize.side_effect = InvalidToken("Admin access required")

        response = client.get("/v1/admin/contact-submissions", headers={"Authorization": "Bearer user-jwt"})

        assert response.status_code == 403
        assert response.json() == {"detail": "Admin access required"}

    def test_admin_route_without_token(self, client: TestClient, admin: MagicMock) -> None:
        response = client.get("/v1/admin/contact-submissions")
        assert response.status_code == 401

    def test_contact_submissions_filter_and_paginate(self, client: TestClient, events: MagicMock) -> None:
        stored = [
            StoredEvent(id=f"contact-{i}", kind=EventKind.CONTACT_SUBMISSIONS, timestamp=NOW, payload={"status": "new"})
            for i in range(5)
        ]
        events.query = AsyncMock(return_value=stored)

        response = client.get("/v1/admin/contact-submissions?status=new&page=2&limit=2")

        assert response.status_code == 200
        body = response.json()
        assert [e["id"] for e in body["events"]] == ["contact-2", "contact-3"]
        assert body["pagination"] == {"total": 5, "page": 2, "limit": 2, "pages": 3}
        kind, query = events.query.call_args[0]
        assert kind is EventKind.CONTACT_SUBMISSIONS
        assert query.fields == {"status": "new"}

    def test_visits_naive_dates_treated_as_utc(self, client: TestClient, events: MagicMock) -> None:
        events.query = AsyncMock(return_value=[])

        response = client.get("/v1/admin/analytics/visits?start=2026-03-01T00:00:00&path=/pricing")

        assert response.status_code == 200
        _, query = events.query.call_args[0]
        assert query.start == datetime(2026, 3, 1, tzinfo=timezone.utc)
        assert query.fields == {"path": "/pricing"}

    def test_stats_for_kind(self, client: TestClient, events: MagicMock) -> None:
        events.aggregate_stats = AsyncMock(return_value=EventStats(total=3, unique=2, by_day={"2026-03-01": 3}))

        response = client.get("/v1/admin/stats/downloads?days=30")

        assert response.status_code == 200
        assert response.json() == {"total": 3, "unique": 2, "by_day": {"2026-03-01": 3}}
        events.aggregate_stats.assert_awaited_once_with(EventKind.DOWNLOADS, 30)

    def test_stats_unknown_kind_returns_422(self, client: TestClient, events: MagicMock) -> None:
        response = client.get("/v1/admin/stats/pageviews")
        assert response.status_code == 422
