"""
Domain exceptions - Semantic error types for signup and event tracking.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.

Verification failures are NOT exceptions: check_code() reports them
as VerifyResult values. Only delivery-channel failures are raised, so
callers can roll back provisional state.
"""


class DomainError(Exception):
    """Base class for all ezclip domain errors."""

    pass


class RegistrationError(DomainError):
    """Base class for registration domain errors."""

    pass


class EmailAlreadyRegistered(RegistrationError):
    """Email already belongs to an active user."""

    pass


class InvalidCredentials(RegistrationError):
    """Unknown email or password mismatch (deliberately indistinguishable)."""

    pass


class InvalidToken(RegistrationError):
    """Token signature, expiry or subject could not be validated."""

    pass


class DeliveryFailed(DomainError):
    """Verification code could not be dispatched to its destination."""

    pass


class StoreUnavailable(DomainError):
    """Persistent document store call failed."""

    pass


class InvalidEvent(DomainError):
    """Event payload is missing a field required for its kind."""

    pass
