"""
API v1 routes.

Defines the public REST endpoints:
- POST /v1/auth/signup - Stage signup and send the phone code
- POST /v1/auth/verify - Confirm the code and create the account
- POST /v1/auth/login - Password login
- GET /v1/auth/profile - Current user
- POST /v1/contact - Contact form submission
- POST /v1/downloads/track - Download analytics
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ezclip.api.dependencies import (
    get_current_user,
    get_event_store,
    get_registration_service,
)
from ezclip.api.models import (
    AuthResponse,
    ContactRequest,
    DownloadTrackRequest,
    ErrorResponse,
    LoginRequest,
    SignupRequest,
    SignupResponse,
    TrackedResponse,
    UserResponse,
    VerifyRequest,
)
from ezclip.domain.events import BoundedEventStore
from ezclip.domain.exceptions import DeliveryFailed, EmailAlreadyRegistered, InvalidCredentials
from ezclip.domain.ports import EventKind, VerifyResult
from ezclip.domain.registration import RegistrationService
from ezclip.domain.users import User

logger = logging.getLogger(__name__)

router = APIRouter(tags=["v1"])

# Client-facing reason per failed verification; attempt counts are never exposed
VERIFY_FAILURE_MESSAGES = {
    VerifyResult.NOT_FOUND: "No verification code found",
    VerifyResult.EXPIRED: "Verification code expired",
    VerifyResult.TOO_MANY_ATTEMPTS: "Too many attempts. Please request a new code.",
    VerifyResult.MISMATCH: "Invalid verification code",
}


@router.post(
    "/auth/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        409: {"model": ErrorResponse, "description": "Email already registered"},
        503: {"model": ErrorResponse, "description": "Verification code could not be sent"},
        422: {"description": "Validation error"},
    },
    summary="Start a signup",
    description="Submit name, email, phone and password. A 6-digit verification code "
    "is sent to the phone; the account is created once the code is confirmed.",
)
async def signup(
    request_data: SignupRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> SignupResponse:
    try:
        ticket = await service.signup(
            request_data.name,
            request_data.email,
            request_data.phone,
            request_data.password,
        )
    except EmailAlreadyRegistered:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User already exists",
        ) from None
    except DeliveryFailed:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to send verification code",
        ) from None

    return SignupResponse(
        message="Verification code sent",
        email=ticket.email,
        expires_in_seconds=int(service.registry.ttl.total_seconds()),
        dev_code=ticket.dev_code,
    )


@router.post(
    "/auth/verify",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Verification failed"},
        409: {"model": ErrorResponse, "description": "Email already registered"},
        422: {"description": "Validation error"},
    },
    summary="Confirm the phone code",
    description="Submit the 6-digit code received by SMS to create the account.",
)
async def verify(
    request_data: VerifyRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> AuthResponse:
    try:
        outcome = service.verify(request_data.email, request_data.code)
    except EmailAlreadyRegistered:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User already exists",
        ) from None

    if not outcome.success:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=VERIFY_FAILURE_MESSAGES[outcome.result],
        )

    return AuthResponse(
        message="User created successfully",
        user=UserResponse(**outcome.user.public_dict()),
        token=outcome.token,
    )


@router.post(
    "/auth/login",
    response_model=AuthResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid credentials"}},
    summary="Log in with email and password",
)
def login(
    request_data: LoginRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> AuthResponse:
    try:
        user, token = service.login(request_data.email, request_data.password)
    except InvalidCredentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        ) from None
    return AuthResponse(message="Login successful", user=UserResponse(**user.public_dict()), token=token)


@router.get(
    "/auth/profile",
    response_model=UserResponse,
    responses={401: {"model": ErrorResponse, "description": "Missing or invalid token"}},
    summary="Current user profile",
)
async def profile(user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse(**user.public_dict())


@router.post(
    "/contact",
    response_model=TrackedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit the contact form",
)
async def contact(
    request_data: ContactRequest,
    events: BoundedEventStore = Depends(get_event_store),
) -> TrackedResponse:
    event = await events.append(
        EventKind.CONTACT_SUBMISSIONS,
        {**request_data.model_dump(), "status": "new"},
    )
    logger.info("Contact form submission from %s (%s)", request_data.email, request_data.type)
    return TrackedResponse(message="Message sent successfully", id=event.id)


@router.post(
    "/downloads/track",
    response_model=TrackedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={401: {"model": ErrorResponse, "description": "Missing or invalid token"}},
    summary="Record a completed download",
)
async def track_download(
    request_data: DownloadTrackRequest,
    user: User = Depends(get_current_user),
    events: BoundedEventStore = Depends(get_event_store),
) -> TrackedResponse:
    event = await events.append(
        EventKind.DOWNLOADS,
        {**request_data.model_dump(), "userId": user.id},
    )
    return TrackedResponse(message="Download tracked successfully", id=event.id)
