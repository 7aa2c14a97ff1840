"""
Domain layer - Pure business logic with zero framework imports.

This package contains the verification code lifecycle, the pending
signup workflow and the bounded event store. It defines its own port
interfaces for infrastructure abstraction, ensuring true hexagonal
architecture decoupling.
"""

from .events import BoundedEventStore, EventQuery, EventStats, StoredEvent
from .exceptions import (
    DeliveryFailed,
    DomainError,
    EmailAlreadyRegistered,
    InvalidCredentials,
    InvalidEvent,
    InvalidToken,
    RegistrationError,
    StoreUnavailable,
)
from .ports import Clock, DocumentStore, EventKind, SmsSender, TokenIssuer, UserRepository, VerifyResult
from .registration import AdminAuthenticator, RegistrationService
from .users import PendingSignup, User
from .verification import Challenge, PendingVerification, VerificationRegistry

__all__ = [
    "AdminAuthenticator",
    "BoundedEventStore",
    "Challenge",
    "Clock",
    "DeliveryFailed",
    "DocumentStore",
    "DomainError",
    "EmailAlreadyRegistered",
    "EventKind",
    "EventQuery",
    "EventStats",
    "InvalidCredentials",
    "InvalidEvent",
    "InvalidToken",
    "PendingSignup",
    "PendingVerification",
    "RegistrationError",
    "RegistrationService",
    "SmsSender",
    "StoreUnavailable",
    "StoredEvent",
    "TokenIssuer",
    "User",
    "UserRepository",
    "VerificationRegistry",
    "VerifyResult",
]
