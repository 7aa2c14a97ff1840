"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Protocol

from .users import User


class VerifyResult(str, Enum):
    """
    Result of a verification code check.

    Check order (first match wins):
    1. NOT_FOUND: no pending challenge for the identity key
    2. EXPIRED: challenge TTL elapsed (record removed)
    3. TOO_MANY_ATTEMPTS: attempt limit reached (record removed)
    4. MISMATCH: wrong code (attempt counter incremented, record kept)
    5. SUCCESS: code matches (record removed)
    """

    SUCCESS = "success"
    MISMATCH = "invalid_code"
    EXPIRED = "expired"
    TOO_MANY_ATTEMPTS = "too_many_attempts"
    NOT_FOUND = "not_found"

    @property
    def is_terminal(self) -> bool:
        """True when the pending challenge no longer exists after the check."""
        return self is not VerifyResult.MISMATCH


class EventKind(str, Enum):
    """Event collections held by the bounded event store."""

    VISITS = "visits"
    CONTACT_SUBMISSIONS = "contact_submissions"
    DOWNLOADS = "downloads"
    SUBSCRIPTION_EVENTS = "subscription_events"


class Clock(Protocol):
    """Port interface for the time source."""

    def now(self) -> datetime:
        """Return the current time as a timezone-aware UTC datetime."""
        ...


class SmsSender(Protocol):
    """Port interface for verification code delivery."""

    async def send(self, destination: str, text: str) -> None:
        """
        Deliver a text message.

        Args:
            destination: Phone number in E.164 format
            text: Message body

        Raises:
            DeliveryFailed: If the message could not be handed to the provider
        """
        ...


class DocumentStore(Protocol):
    """
    Port interface for the optional persistent document store.

    Adapters raise StoreUnavailable (or let their driver errors escape);
    the event store catches both at its boundary.
    """

    async def create(self, collection: str, record: dict[str, Any]) -> dict[str, Any]:
        """Persist a record and return it as stored."""
        ...

    async def list(
        self,
        collection: str,
        query: Any,
        order: str = "desc",
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """
        List records of a collection.

        Args:
            collection: Collection name (EventKind value)
            query: EventQuery with date range and payload equality filters
            order: "desc" (newest first) or "asc"
            limit: Maximum number of records, None for all
        """
        ...


class UserRepository(Protocol):
    """Port interface for user persistence."""

    def get_by_email(self, email: str) -> User | None: ...

    def get_by_id(self, user_id: str) -> User | None: ...

    def add(self, user: User) -> bool:
        """
        Store a new user.

        Returns:
            True if stored, False if the email is already taken
        """
        ...

    def update_subscription(self, user_id: str, subscription: str) -> User | None: ...

    def count(self) -> int: ...


class TokenIssuer(Protocol):
    """Port interface for signed, expiring credentials."""

    def issue(self, subject: str, role: str | None = None, expires_in: timedelta | None = None) -> str: ...

    def decode(self, token: str) -> dict[str, Any]:
        """
        Validate a token and return its claims.

        Raises:
            InvalidToken: On bad signature, expiry or malformed input
        """
        ...
