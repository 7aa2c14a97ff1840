"""
Registration domain service - Pending signup workflow.

This module contains the core business logic for user signup, staging
credentials until control of the phone number has been proven.

Signup Flow
===========

    signup(name, email, phone, password)
        -> credentials hashed and staged (PendingSignup, keyed by email)
        -> verification challenge started, code sent by SMS
        -> DeliveryFailed: staged signup discarded, error propagated

    verify(email, code)
        -> SUCCESS: staged signup becomes a User, token issued
        -> MISMATCH: staged signup kept, user may retry
        -> NOT_FOUND / EXPIRED / TOO_MANY_ATTEMPTS: staged signup discarded

Staged signups never outlive their challenge: the periodic sweep removes
both together.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta

import bcrypt

from .exceptions import EmailAlreadyRegistered, InvalidCredentials, InvalidToken
from .ports import Clock, TokenIssuer, UserRepository, VerifyResult
from .users import PendingSignup, User
from .verification import VerificationRegistry

logger = logging.getLogger(__name__)

# Compared against when the email is unknown so login timing does not
# reveal whether an account exists.
_DUMMY_BCRYPT_HASH = bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(10)).decode()

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class SignupTicket:
    """Returned by signup(): where the code went and until when it is valid."""

    email: str
    expires_at: datetime
    dev_code: str | None = None


@dataclass(frozen=True)
class VerificationOutcome:
    """Result of verify(); user and token are set only on SUCCESS."""

    result: VerifyResult
    user: User | None = None
    token: str | None = None

    @property
    def success(self) -> bool:
        return self.result is VerifyResult.SUCCESS


def normalize_email(email: str) -> str:
    """
    Normalize email address for consistent storage and lookup.

    Applies: strip whitespace + lowercase
    """
    return email.strip().lower()


def check_password(password: str, password_hash: str | None) -> bool:
    """Constant-time bcrypt check; a missing hash still costs one bcrypt run."""
    stored = password_hash or _DUMMY_BCRYPT_HASH
    valid = bcrypt.checkpw(password.encode(), stored.encode())
    return valid and password_hash is not None


@dataclass
class RegistrationService:
    """
    Domain service for user signup and login.

    Orchestrates the signup flow: email normalization, password hashing,
    credential staging, phone verification and user creation.
    """

    registry: VerificationRegistry
    users: UserRepository
    tokens: TokenIssuer
    clock: Clock
    bcrypt_cost: int = 10
    _staged: dict[str, PendingSignup] = field(default_factory=dict, init=False, repr=False)

    async def signup(self, name: str, email: str, phone: str, password: str) -> SignupTicket:
        """
        Stage a signup and send a verification code to the phone.

        Args:
            name: Display name
            email: User's email address (will be normalized)
            phone: Phone number the code is sent to
            password: User's password (will be hashed)

        Returns:
            SignupTicket with the code expiry

        Raises:
            EmailAlreadyRegistered: If an active user owns the email
            DeliveryFailed: If the SMS could not be sent (nothing stays staged)
        """
        normalized_email = normalize_email(email)
        if self.users.get_by_email(normalized_email) is not None:
            raise EmailAlreadyRegistered(normalized_email)

        password_hash = await asyncio.to_thread(self._hash_password, password)
        staged = PendingSignup(
            name=name.strip(),
            email=normalized_email,
            phone=phone.strip(),
            password_hash=password_hash,
            staged_at=self.clock.now(),
        )
        self._staged[normalized_email] = staged

        try:
            challenge = await self.registry.start_challenge(normalized_email, staged.phone)
        except Exception:
            if self._staged.get(normalized_email) is staged:
                del self._staged[normalized_email]
            raise

        return SignupTicket(
            email=normalized_email,
            expires_at=challenge.expires_at,
            dev_code=challenge.dev_code,
        )

    def verify(self, email: str, code: str) -> VerificationOutcome:
        """
        Confirm the phone code and create the account.

        Args:
            email: User's email (will be normalized)
            code: 6-digit code received by SMS

        Returns:
            VerificationOutcome; user and token are set on SUCCESS

        Raises:
            EmailAlreadyRegistered: If the email was taken while pending
        """
        normalized_email = normalize_email(email)
        result = self.registry.check_code(normalized_email, code.strip())

        if result is VerifyResult.MISMATCH:
            return VerificationOutcome(result)

        staged = self._staged.pop(normalized_email, None)
        if result is not VerifyResult.SUCCESS:
            return VerificationOutcome(result)
        if staged is None:
            return VerificationOutcome(VerifyResult.NOT_FOUND)

        user = User(
            id=str(uuid.uuid4()),
            name=staged.name,
            email=staged.email,
            phone=staged.phone,
            password_hash=staged.password_hash,
            created_at=self.clock.now(),
        )
        if not self.users.add(user):
            raise EmailAlreadyRegistered(normalized_email)

        logger.info("User account created for %s", normalized_email)
        return VerificationOutcome(result, user=user, token=self.tokens.issue(user.id))

    def login(self, email: str, password: str) -> tuple[User, str]:
        """
        Authenticate with email and password.

        Raises:
            InvalidCredentials: Unknown email or wrong password
        """
        user = self.users.get_by_email(normalize_email(email))
        if not check_password(password, user.password_hash if user else None) or user is None:
            raise InvalidCredentials("Invalid credentials")
        return user, self.tokens.issue(user.id)

    def authenticate(self, token: str) -> User:
        """
        Resolve a bearer token to its user.

        Raises:
            InvalidToken: Token invalid or its user no longer exists
        """
        claims = self.tokens.decode(token)
        user = self.users.get_by_id(str(claims.get("sub")))
        if user is None:
            raise InvalidToken("Unknown subject")
        return user

    def sweep_expired(self) -> int:
        """Sweep expired challenges and drop their staged signups."""
        removed = self.registry.sweep_expired()
        for email in removed:
            self._staged.pop(email, None)
        return len(removed)

    def is_staged(self, email: str) -> bool:
        return normalize_email(email) in self._staged

    def _hash_password(self, password: str) -> str:
        """Hash password using bcrypt with the configured cost factor."""
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=self.bcrypt_cost)).decode()


@dataclass
class AdminAuthenticator:
    """Checks admin credentials against configured bcrypt hashes."""

    tokens: TokenIssuer
    accounts: dict[str, str] = field(default_factory=dict)
    token_lifetime: timedelta = timedelta(hours=24)

    def login(self, email: str, password: str) -> str:
        """
        Issue an admin token.

        Raises:
            InvalidCredentials: Unknown admin or wrong password
        """
        normalized_email = normalize_email(email)
        if not check_password(password, self.accounts.get(normalized_email)):
            raise InvalidCredentials("Invalid credentials")
        return self.tokens.issue(normalized_email, role=ADMIN_ROLE, expires_in=self.token_lifetime)

    def authorize(self, token: str) -> str:
        """
        Return the admin email for a valid admin token.

        Raises:
            InvalidToken: Token invalid or lacks the admin role
        """
        claims = self.tokens.decode(token)
        if claims.get("role") != ADMIN_ROLE or claims.get("sub") not in self.accounts:
            raise InvalidToken("Admin access required")
        return str(claims["sub"])
