"""
API v1 admin routes.

Read paths over the bounded event store and the user list, plus
subscription tier changes, which are logged as subscription events.
Every route except login requires an admin Bearer token.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ezclip.adapters.repository.memory import InMemoryUserRepository
from ezclip.api.dependencies import (
    get_admin_authenticator,
    get_event_store,
    get_user_repository,
    require_admin,
)
from ezclip.api.models import (
    AdminLoginResponse,
    ErrorResponse,
    EventPage,
    LoginRequest,
    Pagination,
    StatsResponse,
    SubscriptionEventRequest,
    SubscriptionUpdateRequest,
    SubscriptionUpdateResponse,
    TrackedResponse,
    UserDetailResponse,
)
from ezclip.domain.events import BoundedEventStore, EventQuery, StoredEvent
from ezclip.domain.exceptions import InvalidCredentials
from ezclip.domain.ports import EventKind
from ezclip.domain.registration import AdminAuthenticator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def paginate(items: list[Any], page: int, limit: int) -> tuple[list[Any], Pagination]:
    start = (page - 1) * limit
    pagination = Pagination(
        total=len(items),
        page=page,
        limit=limit,
        pages=math.ceil(len(items) / limit),
    )
    return items[start : start + limit], pagination


def event_page(events: list[StoredEvent], page: int, limit: int) -> EventPage:
    window, pagination = paginate(events, page, limit)
    return EventPage(events=[event.to_record() for event in window], pagination=pagination)


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive query datetimes as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def field_filters(**values: str | None) -> dict[str, str]:
    """Drop unset query parameters so they impose no constraint."""
    return {name: value for name, value in values.items() if value is not None}


@router.post(
    "/login",
    response_model=AdminLoginResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid credentials"}},
    summary="Admin login",
)
def admin_login(
    request_data: LoginRequest,
    admin: AdminAuthenticator = Depends(get_admin_authenticator),
) -> AdminLoginResponse:
    try:
        token = admin.login(request_data.email, request_data.password)
    except InvalidCredentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        ) from None
    return AdminLoginResponse(message="Admin login successful", token=token)


@router.get("/dashboard", summary="Dashboard overview")
async def dashboard(
    _: str = Depends(require_admin),
    events: BoundedEventStore = Depends(get_event_store),
    users: InMemoryUserRepository = Depends(get_user_repository),
) -> dict[str, Any]:
    overview = await events.overview()
    return {
        "overview": {
            "total_users": users.count(),
            "total_visits": overview.totals[EventKind.VISITS.value],
            "total_downloads": overview.totals[EventKind.DOWNLOADS.value],
            "total_contact_submissions": overview.totals[EventKind.CONTACT_SUBMISSIONS.value],
            "total_subscription_events": overview.totals[EventKind.SUBSCRIPTION_EVENTS.value],
        },
        "recent_visits": StatsResponse(
            total=overview.recent_visits.total,
            unique=overview.recent_visits.unique,
            by_day=overview.recent_visits.by_day,
        ),
        "recent_downloads": [event.to_record() for event in overview.recent_downloads],
    }


@router.get("/users", summary="List users")
async def list_users(
    _: str = Depends(require_admin),
    users: InMemoryUserRepository = Depends(get_user_repository),
    search: str = "",
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
) -> dict[str, Any]:
    window, pagination = paginate(users.search(search), page, limit)
    return {"users": [user.public_dict() for user in window], "pagination": pagination}


@router.get(
    "/users/{user_id}",
    response_model=UserDetailResponse,
    responses={404: {"model": ErrorResponse, "description": "User not found"}},
    summary="User details with download and subscription history",
)
async def user_detail(
    user_id: str,
    _: str = Depends(require_admin),
    events: BoundedEventStore = Depends(get_event_store),
    users: InMemoryUserRepository = Depends(get_user_repository),
) -> UserDetailResponse:
    user = users.get_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    by_user = EventQuery(fields={"userId": user_id})
    return UserDetailResponse(
        user=user.public_dict(),
        downloads=[event.to_record() for event in await events.query(EventKind.DOWNLOADS, by_user)],
        subscription_events=[
            event.to_record() for event in await events.query(EventKind.SUBSCRIPTION_EVENTS, by_user)
        ],
    )


@router.patch(
    "/users/{user_id}/subscription",
    response_model=SubscriptionUpdateResponse,
    responses={404: {"model": ErrorResponse, "description": "User not found"}},
    summary="Change a user's subscription tier",
)
async def update_subscription(
    user_id: str,
    request_data: SubscriptionUpdateRequest,
    admin_email: str = Depends(require_admin),
    events: BoundedEventStore = Depends(get_event_store),
    users: InMemoryUserRepository = Depends(get_user_repository),
) -> SubscriptionUpdateResponse:
    current = users.get_by_id(user_id)
    if current is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    updated = users.update_subscription(user_id, request_data.subscription)
    await events.append(
        EventKind.SUBSCRIPTION_EVENTS,
        {
            "userId": user_id,
            "type": "admin_update",
            "previousStatus": current.subscription,
            "newStatus": updated.subscription,
            "updatedBy": admin_email,
        },
    )
    logger.info("Subscription for %s changed to %s by %s", user_id, updated.subscription, admin_email)
    return SubscriptionUpdateResponse(message="Subscription updated successfully", user=updated.public_dict())


@router.get("/analytics/visits", response_model=EventPage, summary="Website visits")
async def visits(
    _: str = Depends(require_admin),
    events: BoundedEventStore = Depends(get_event_store),
    path: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
) -> EventPage:
    query = EventQuery(start=as_utc(start), end=as_utc(end), fields=field_filters(path=path))
    return event_page(await events.query(EventKind.VISITS, query), page, limit)


@router.get("/analytics/downloads", summary="Download statistics")
async def downloads(
    _: str = Depends(require_admin),
    events: BoundedEventStore = Depends(get_event_store),
    platform: str | None = None,
    user_id: str | None = None,
) -> dict[str, Any]:
    query = EventQuery(fields=field_filters(platform=platform, userId=user_id))
    matching = await events.query(EventKind.DOWNLOADS, query)
    return {
        "by_platform": await events.count_by(EventKind.DOWNLOADS, "platform", query),
        "total": len(matching),
        "downloads": [event.to_record() for event in matching[:100]],
    }


@router.get("/contact-submissions", response_model=EventPage, summary="Contact form submissions")
async def contact_submissions(
    _: str = Depends(require_admin),
    events: BoundedEventStore = Depends(get_event_store),
    status_filter: str | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=500),
) -> EventPage:
    query = EventQuery(fields=field_filters(status=status_filter))
    return event_page(await events.query(EventKind.CONTACT_SUBMISSIONS, query), page, limit)


@router.get("/subscription-events", response_model=EventPage, summary="Subscription event log")
async def subscription_events(
    _: str = Depends(require_admin),
    events: BoundedEventStore = Depends(get_event_store),
    user_id: str | None = None,
    type_filter: str | None = Query(None, alias="type"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
) -> EventPage:
    query = EventQuery(fields=field_filters(userId=user_id, type=type_filter))
    return event_page(await events.query(EventKind.SUBSCRIPTION_EVENTS, query), page, limit)


@router.post(
    "/users/{user_id}/subscription-events",
    response_model=TrackedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse, "description": "User not found"}},
    summary="Record a subscription event for a user",
)
async def record_subscription_event(
    user_id: str,
    request_data: SubscriptionEventRequest,
    admin_email: str = Depends(require_admin),
    events: BoundedEventStore = Depends(get_event_store),
    users: InMemoryUserRepository = Depends(get_user_repository),
) -> TrackedResponse:
    if users.get_by_id(user_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    event = await events.append(
        EventKind.SUBSCRIPTION_EVENTS,
        {**request_data.model_dump(), "userId": user_id, "recordedBy": admin_email},
    )
    return TrackedResponse(message="Subscription event recorded", id=event.id)


@router.get("/stats/{kind}", response_model=StatsResponse, summary="Aggregate statistics")
async def stats(
    kind: EventKind,
    _: str = Depends(require_admin),
    events: BoundedEventStore = Depends(get_event_store),
    days: int = Query(7, ge=1, le=365),
) -> StatsResponse:
    result = await events.aggregate_stats(kind, days)
    return StatsResponse(total=result.total, unique=result.unique, by_day=result.by_day)
