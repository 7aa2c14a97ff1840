"""
Bounded event store - Size-capped, age-capped analytics collections.

Two tiers:
- Primary: optional DocumentStore port (e.g. PostgreSQL). Every call is
  wrapped in a TierResult; a failed call is logged and answered by the
  in-memory tier instead.
- In-memory: one deque per EventKind, ordered by insertion. Always
  written, so a failing primary never loses an event. Process restarts
  lose it, which is accepted for this fallback/cache tier.

Eviction is strictly FIFO by insertion order. Age pruning runs before
size pruning on each cleanup pass. Pruning is idempotent, so the periodic
cleanup and the per-append capacity check may interleave freely.
"""

import logging
import uuid
from collections import Counter, deque
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from .exceptions import InvalidEvent
from .ports import Clock, DocumentStore, EventKind

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZES: dict[EventKind, int] = {
    EventKind.VISITS: 10000,
    EventKind.CONTACT_SUBMISSIONS: 1000,
    EventKind.DOWNLOADS: 5000,
    EventKind.SUBSCRIPTION_EVENTS: 5000,
}

REQUIRED_FIELDS: dict[EventKind, tuple[str, ...]] = {
    EventKind.VISITS: ("path",),
    EventKind.CONTACT_SUBMISSIONS: ("name", "email", "message"),
    EventKind.DOWNLOADS: ("platform",),
    EventKind.SUBSCRIPTION_EVENTS: ("type",),
}

# Payload field whose distinct values aggregate_stats() reports as "unique"
SOURCE_FIELDS: dict[EventKind, str] = {
    EventKind.VISITS: "ip",
    EventKind.CONTACT_SUBMISSIONS: "email",
    EventKind.DOWNLOADS: "userId",
    EventKind.SUBSCRIPTION_EVENTS: "userId",
}

ID_PREFIXES: dict[EventKind, str] = {
    EventKind.VISITS: "visit",
    EventKind.CONTACT_SUBMISSIONS: "contact",
    EventKind.DOWNLOADS: "download",
    EventKind.SUBSCRIPTION_EVENTS: "sub-event",
}

RESERVED_FIELDS = frozenset({"id", "timestamp"})


@dataclass(frozen=True)
class StoredEvent:
    """Append-only event record; id and timestamp are assigned by the store."""

    id: str
    kind: EventKind
    timestamp: datetime
    payload: dict[str, Any] = field(default_factory=dict)

    def to_record(self) -> dict[str, Any]:
        """Flatten into the document shape used by the primary tier and the API."""
        return {**self.payload, "id": self.id, "timestamp": self.timestamp}

    @classmethod
    def from_record(cls, kind: EventKind, record: Mapping[str, Any]) -> "StoredEvent":
        timestamp = record["timestamp"]
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)
        timestamp = timestamp.astimezone(timezone.utc)
        payload = {k: v for k, v in record.items() if k not in RESERVED_FIELDS}
        return cls(id=str(record["id"]), kind=kind, timestamp=timestamp, payload=payload)


@dataclass(frozen=True)
class EventQuery:
    """
    Conjunction of filters; None / empty means no constraint.

    start and end are inclusive bounds on the event timestamp.
    fields holds payload equality filters (e.g. {"platform": "windows"}).
    """

    start: datetime | None = None
    end: datetime | None = None
    fields: dict[str, Any] = field(default_factory=dict)

    def matches(self, event: StoredEvent) -> bool:
        if self.start is not None and event.timestamp < self.start:
            return False
        if self.end is not None and event.timestamp > self.end:
            return False
        return all(event.payload.get(name) == value for name, value in self.fields.items())


@dataclass(frozen=True)
class EventStats:
    """Aggregate over a trailing window."""

    total: int
    unique: int
    by_day: dict[str, int]


@dataclass(frozen=True)
class Overview:
    """Dashboard summary across all collections."""

    totals: dict[str, int]
    recent_visits: EventStats
    recent_downloads: list[StoredEvent]


@dataclass(frozen=True)
class TierResult:
    """Outcome of a primary-tier call: either a value or the error it raised."""

    value: Any = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def newest_first(events: list[StoredEvent]) -> list[StoredEvent]:
    """
    Sort events newest-first.

    Input is expected in insertion order; events sharing a timestamp
    keep reverse insertion order.
    """
    return sorted(reversed(events), key=lambda e: e.timestamp, reverse=True)


def group_by_day(events: list[StoredEvent]) -> dict[str, int]:
    """Histogram keyed by UTC calendar day (YYYY-MM-DD)."""
    counts: Counter[str] = Counter()
    for event in events:
        counts[event.timestamp.astimezone(timezone.utc).date().isoformat()] += 1
    return dict(counts)


def group_by(events: list[StoredEvent], name: str) -> dict[str, int]:
    """Histogram over a payload field; missing or empty values count as "unknown"."""
    counts: Counter[str] = Counter()
    for event in events:
        counts[str(event.payload.get(name) or "unknown")] += 1
    return dict(counts)


class InMemoryEventLog:
    """In-process tier: one insertion-ordered deque per kind, capped by size."""

    def __init__(self, max_sizes: Mapping[EventKind, int]) -> None:
        self._max_sizes = dict(max_sizes)
        self._collections: dict[EventKind, deque[StoredEvent]] = {kind: deque() for kind in EventKind}

    def add(self, event: StoredEvent) -> None:
        self._collections[event.kind].append(event)
        self.enforce_capacity(event.kind)

    def enforce_capacity(self, kind: EventKind) -> int:
        """Drop oldest-inserted events beyond the cap; returns how many were dropped."""
        collection = self._collections[kind]
        limit = self._max_sizes.get(kind, DEFAULT_MAX_SIZES[kind])
        removed = 0
        while len(collection) > limit:
            collection.popleft()
            removed += 1
        return removed

    def prune_older_than(self, kind: EventKind, cutoff: datetime) -> int:
        """Drop every event with timestamp before cutoff; returns how many were dropped."""
        collection = self._collections[kind]
        kept = [event for event in collection if event.timestamp >= cutoff]
        removed = len(collection) - len(kept)
        if removed:
            collection.clear()
            collection.extend(kept)
        return removed

    def select(self, kind: EventKind, query: EventQuery) -> list[StoredEvent]:
        return newest_first([event for event in self._collections[kind] if query.matches(event)])

    def ids(self, kind: EventKind) -> list[str]:
        """Event ids in insertion order."""
        return [event.id for event in self._collections[kind]]

    def __len__(self) -> int:
        return sum(len(collection) for collection in self._collections.values())


@dataclass
class BoundedEventStore:
    """
    Accepts event records from producers and answers admin read queries.

    Writes go to the in-memory tier and, when configured, through to the
    document store. Reads prefer the document store and fall back to the
    in-memory tier when it fails.
    """

    clock: Clock
    max_sizes: dict[EventKind, int] = field(default_factory=lambda: dict(DEFAULT_MAX_SIZES))
    retention: timedelta = timedelta(days=7)
    document_store: DocumentStore | None = None
    _memory: InMemoryEventLog = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._memory = InMemoryEventLog(self.max_sizes)

    @property
    def memory(self) -> InMemoryEventLog:
        return self._memory

    async def append(self, kind: EventKind | str, payload: Mapping[str, Any]) -> StoredEvent:
        """
        Record an event.

        Args:
            kind: Target collection
            payload: Caller data; "id" and "timestamp" keys are ignored

        Returns:
            The stored event with its assigned id and timestamp

        Raises:
            InvalidEvent: If a field required for the kind is missing
        """
        kind = EventKind(kind)
        missing = [name for name in REQUIRED_FIELDS[kind] if payload.get(name) in (None, "")]
        if missing:
            raise InvalidEvent(f"{kind.value} event missing field(s): {', '.join(missing)}")

        event = StoredEvent(
            id=f"{ID_PREFIXES[kind]}-{uuid.uuid4().hex}",
            kind=kind,
            timestamp=self.clock.now(),
            payload={k: v for k, v in payload.items() if k not in RESERVED_FIELDS},
        )
        self._memory.add(event)

        if self.document_store is not None:
            await self._attempt(self.document_store.create, kind.value, event.to_record())
        return event

    async def query(self, kind: EventKind | str, query: EventQuery | None = None) -> list[StoredEvent]:
        """Return events of a kind matching every filter, newest first."""
        kind = EventKind(kind)
        query = query or EventQuery()

        if self.document_store is not None:
            result = await self._attempt(self.document_store.list, kind.value, query, "desc", None)
            if result.ok:
                return [StoredEvent.from_record(kind, record) for record in result.value]

        return self._memory.select(kind, query)

    async def aggregate_stats(self, kind: EventKind | str, window_days: int = 7) -> EventStats:
        """
        Count, distinct sources and per-day histogram for the trailing window.

        The distinct source field depends on the kind (see SOURCE_FIELDS).
        """
        kind = EventKind(kind)
        cutoff = self.clock.now() - timedelta(days=window_days)
        events = await self.query(kind, EventQuery(start=cutoff))
        source = SOURCE_FIELDS[kind]
        sources = {event.payload.get(source) for event in events if event.payload.get(source) is not None}
        return EventStats(total=len(events), unique=len(sources), by_day=group_by_day(events))

    async def count_by(
        self, kind: EventKind | str, name: str, query: EventQuery | None = None
    ) -> dict[str, int]:
        """Histogram of a payload field across matching events."""
        return group_by(await self.query(kind, query), name)

    async def overview(self) -> Overview:
        totals = {kind.value: len(await self.query(kind)) for kind in EventKind}
        downloads = await self.query(EventKind.DOWNLOADS)
        return Overview(
            totals=totals,
            recent_visits=await self.aggregate_stats(EventKind.VISITS, 7),
            recent_downloads=downloads[:5],
        )

    def cleanup(self) -> int:
        """
        Age-prune then size-prune every in-memory collection.

        Returns:
            Number of events removed
        """
        cutoff = self.clock.now() - self.retention
        removed = 0
        for kind in EventKind:
            removed += self._memory.prune_older_than(kind, cutoff)
            removed += self._memory.enforce_capacity(kind)
        if removed:
            logger.info("Event cleanup removed %d record(s)", removed)
        return removed

    async def _attempt(self, operation: Callable[..., Awaitable[Any]], *args: Any) -> TierResult:
        """Run a primary-tier call, turning any failure into a TierResult."""
        try:
            return TierResult(value=await operation(*args))
        except Exception as exc:
            logger.warning("Document store call failed, using in-memory tier: %s", exc)
            return TierResult(error=exc)
