"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock for expiry and retention tests
- An SMS sender that records deliveries
- Fully wired services and a test client over the real application
"""

from collections.abc import Generator

import bcrypt
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from ezclip.api.dependencies import Services, build_services
from ezclip.api.main import create_app
from ezclip.config.settings import Settings
from tests.fakes import ADMIN_EMAIL, ADMIN_PASSWORD, FakeClock, RecordingSmsSender

TEST_JWT_SECRET = "test-secret-with-enough-length-for-hs256"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sms_sender() -> RecordingSmsSender:
    return RecordingSmsSender()


@pytest.fixture
def settings() -> Settings:
    """Development settings with a known admin account and a cheap bcrypt cost."""
    return Settings(
        _env_file=None,
        environment="development",
        database_url=None,
        twilio_account_sid=None,
        twilio_auth_token=None,
        twilio_phone_number=None,
        jwt_secret=TEST_JWT_SECRET,
        bcrypt_cost=4,
        admin_email=ADMIN_EMAIL,
        admin_password_hash=bcrypt.hashpw(ADMIN_PASSWORD.encode(), bcrypt.gensalt(4)).decode(),
        max_visits=3,
    )


@pytest.fixture
def services(settings: Settings, clock: FakeClock, sms_sender: RecordingSmsSender) -> Services:
    return build_services(settings, sms_sender=sms_sender, clock=clock)


@pytest.fixture
def app(settings: Settings, services: Services) -> FastAPI:
    return create_app(settings=settings, services=services)


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """Test client with the lifespan running (timers started, then cancelled)."""
    with TestClient(app) as test_client:
        yield test_client
