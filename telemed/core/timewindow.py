"""Slot boundaries and interval overlap helpers.

All instants handled here are timezone-aware UTC datetimes. A slot occupies
the half-open window ``[start, start + SLOT_DURATION)``.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from telemed.config import settings

SLOT_DURATION = timedelta(minutes=settings.slot_duration_minutes)
BOOKING_LEAD_TIME = timedelta(minutes=settings.booking_lead_time_minutes)
CONFLICT_PREFILTER = timedelta(minutes=settings.conflict_prefilter_minutes)


def utcnow() -> datetime:
    """Current instant in UTC."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """
    Normalise a datetime to aware UTC.

    Naive values come back from stores without timezone support and are
    always written as UTC, so they are tagged rather than converted.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_instant(value: str) -> datetime:
    """
    Parse an ISO-8601 string into an aware UTC datetime.

    Args:
        value: ISO-8601 timestamp with ``Z`` or an explicit UTC offset

    Returns:
        Parsed instant in UTC

    Raises:
        ValueError: If the string is malformed or carries no offset
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError("Timestamp must be a non-empty ISO-8601 string")

    raw = value.strip()
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"

    parsed = datetime.fromisoformat(raw)
    if parsed.tzinfo is None or parsed.utcoffset() is None:
        raise ValueError("Timestamp must include a timezone offset, e.g. 2024-01-15T14:30:00Z")

    return parsed.astimezone(UTC)


@dataclass(frozen=True)
class TimeWindow:
    """Half-open time interval ``[start, end)``."""

    start: datetime
    end: datetime

    @classmethod
    def slot(cls, start: datetime) -> "TimeWindow":
        """Window occupied by a slot starting at ``start``."""
        start = ensure_utc(start)
        return cls(start=start, end=start + SLOT_DURATION)

    def overlaps(self, other: "TimeWindow") -> bool:
        """Edge-touching windows do not overlap."""
        return self.start < other.end and self.end > other.start


def slots_overlap(first_start: datetime, second_start: datetime) -> bool:
    """Check whether two slots, given by their start instants, overlap."""
    return TimeWindow.slot(first_start).overlaps(TimeWindow.slot(second_start))


def prefilter_bounds(start: datetime) -> tuple[datetime, datetime]:
    """
    Inclusive ``scheduled_at`` range worth fetching when checking ``start``.

    Any slot overlapping the candidate starts inside this range; the exact
    decision is left to :func:`slots_overlap`. The lower margin is never
    narrower than one slot, whatever the configured prefilter.
    """
    window = TimeWindow.slot(start)
    margin = max(CONFLICT_PREFILTER, timedelta(0))
    return window.start - max(margin, SLOT_DURATION), window.end + margin


def has_sufficient_lead_time(start: datetime, now: datetime) -> bool:
    """Lead time boundary is inclusive."""
    return ensure_utc(start) >= ensure_utc(now) + BOOKING_LEAD_TIME
