"""
FastAPI dependencies - Service wiring and dependency injection factories.

build_services() creates the stateful components once at startup; the
lifespan stores the result in app.state.services. The Depends()
factories below hand those shared instances to routes.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ezclip.adapters.clock import SystemClock
from ezclip.adapters.repository.memory import InMemoryUserRepository
from ezclip.adapters.sms.console import ConsoleSmsSender
from ezclip.adapters.sms.twilio_sender import TwilioSmsSender
from ezclip.adapters.tokens import JwtTokenIssuer
from ezclip.config.settings import Settings
from ezclip.domain.events import BoundedEventStore
from ezclip.domain.exceptions import InvalidToken
from ezclip.domain.ports import Clock, DocumentStore, EventKind, SmsSender
from ezclip.domain.registration import AdminAuthenticator, RegistrationService, normalize_email
from ezclip.domain.users import User
from ezclip.domain.verification import VerificationRegistry

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Application-wide component instances."""

    settings: Settings
    clock: Clock
    users: InMemoryUserRepository
    registry: VerificationRegistry
    registration: RegistrationService
    admin: AdminAuthenticator
    events: BoundedEventStore


def build_sms_sender(settings: Settings) -> SmsSender:
    """Twilio when fully configured, console logging otherwise."""
    if settings.twilio_configured:
        return TwilioSmsSender.from_credentials(
            settings.twilio_account_sid,
            settings.twilio_auth_token,
            settings.twilio_phone_number,
        )
    if settings.is_production:
        logger.warning("Twilio is not configured; verification codes will only be logged")
    return ConsoleSmsSender()


def build_services(
    settings: Settings,
    document_store: DocumentStore | None = None,
    sms_sender: SmsSender | None = None,
    clock: Clock | None = None,
) -> Services:
    """
    Wire all components from settings.

    Args:
        settings: Application settings
        document_store: Primary tier for the event store, None for in-memory only
        sms_sender: Overrides the sender chosen from settings
        clock: Overrides the system clock
    """
    clock = clock or SystemClock()
    sms_sender = sms_sender or build_sms_sender(settings)
    tokens = JwtTokenIssuer(settings.jwt_secret, clock, timedelta(days=settings.jwt_expires_days))
    users = InMemoryUserRepository()

    registry = VerificationRegistry(
        sms_sender=sms_sender,
        clock=clock,
        ttl=timedelta(seconds=settings.verification_ttl_seconds),
        max_attempts=settings.verification_max_attempts,
        expose_codes=not settings.is_production and not settings.twilio_configured,
    )
    registration = RegistrationService(
        registry=registry,
        users=users,
        tokens=tokens,
        clock=clock,
        bcrypt_cost=settings.bcrypt_cost,
    )

    admin_accounts = {}
    if settings.admin_email and settings.admin_password_hash:
        admin_accounts[normalize_email(settings.admin_email)] = settings.admin_password_hash
    admin = AdminAuthenticator(
        tokens=tokens,
        accounts=admin_accounts,
        token_lifetime=timedelta(hours=settings.admin_token_hours),
    )

    events = BoundedEventStore(
        clock=clock,
        max_sizes={
            EventKind.VISITS: settings.max_visits,
            EventKind.CONTACT_SUBMISSIONS: settings.max_contact_submissions,
            EventKind.DOWNLOADS: settings.max_downloads,
            EventKind.SUBSCRIPTION_EVENTS: settings.max_subscription_events,
        },
        retention=timedelta(days=settings.event_retention_days),
        document_store=document_store,
    )

    return Services(
        settings=settings,
        clock=clock,
        users=users,
        registry=registry,
        registration=registration,
        admin=admin,
        events=events,
    )


def get_services(request: Request) -> Services:
    """
    Get component instances from app state.

    The services are created during app lifespan startup and stored in app.state.
    """
    return request.app.state.services


def get_registration_service(request: Request) -> RegistrationService:
    return get_services(request).registration


def get_event_store(request: Request) -> BoundedEventStore:
    return get_services(request).events


def get_admin_authenticator(request: Request) -> AdminAuthenticator:
    return get_services(request).admin


def get_user_repository(request: Request) -> InMemoryUserRepository:
    return get_services(request).users


# Bearer token security scheme for OpenAPI documentation
http_bearer = HTTPBearer(auto_error=False)


def _bearer_token(credentials: HTTPAuthorizationCredentials | None) -> str:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token provided",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    service: RegistrationService = Depends(get_registration_service),
) -> User:
    """Resolve the Bearer token to a user, 401 otherwise."""
    token = _bearer_token(credentials)
    try:
        return service.authenticate(token)
    except InvalidToken:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None


def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    admin: AdminAuthenticator = Depends(get_admin_authenticator),
) -> str:
    """Resolve the Bearer token to an admin email, 401/403 otherwise."""
    token = _bearer_token(credentials)
    try:
        return admin.authorize(token)
    except InvalidToken:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        ) from None
