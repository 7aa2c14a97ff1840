"""
Shared fixtures for adversarial tests.

Provides common test infrastructure for race condition, brute force and
timing tests: a registry and a registration service over in-memory
adapters.
"""

import pytest

from ezclip.adapters.repository.memory import InMemoryUserRepository
from ezclip.adapters.tokens import JwtTokenIssuer
from ezclip.domain.registration import RegistrationService
from ezclip.domain.verification import VerificationRegistry
from tests.fakes import FakeClock, RecordingSmsSender

# Module-level marker for all adversarial tests
pytestmark = pytest.mark.adversarial


@pytest.fixture
def registry(clock: FakeClock, sms_sender: RecordingSmsSender) -> VerificationRegistry:
    return VerificationRegistry(sms_sender=sms_sender, clock=clock)


@pytest.fixture
def users() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def registration(
    registry: VerificationRegistry, users: InMemoryUserRepository, clock: FakeClock
) -> RegistrationService:
    tokens = JwtTokenIssuer("adversarial-secret-with-enough-length", clock)
    return RegistrationService(registry=registry, users=users, tokens=tokens, clock=clock, bcrypt_cost=4)
