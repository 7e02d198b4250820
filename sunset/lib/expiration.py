"""Expiration evaluation for content items.

Everything here is pure: callers pass the item and the current civil time
and get a decision back. Stored expirations are naive civil datetimes
interpreted in a fixed, operator-configured UTC offset, so ``now`` must be
produced with :func:`civil_now` using that same offset.

Usage:
    from sunset.lib.expiration import ContentItem, civil_now, is_expired, sweep

    now = civil_now(-3)
    item = ContentItem(id=1, status="published", expires_at=datetime(2024, 1, 1, 10))
    is_expired(item, now)
    ids = sweep(items, now, content_type="post")
"""

from collections.abc import Hashable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Protocol

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M:%S"
DISPLAY_FORMAT = "%d/%m/%Y %H:%M"

PUBLISHED = "published"
DRAFT = "draft"

_DAY = 86400
_HOUR = 3600


class ExpiringItem(Protocol):
    """Anything carrying the attributes the evaluator reads."""

    id: Hashable
    status: str
    type: str
    expires_at: datetime | None


@dataclass(frozen=True)
class ContentItem:
    """A content item reduced to what expiration decisions need."""

    id: Any
    status: str
    expires_at: datetime | None = None
    type: str = "post"


class ExpirationStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    NONE = "none"


class RemainingUnit(str, Enum):
    DAYS = "days"
    HOURS = "hours"
    NONE = "none"


@dataclass(frozen=True)
class Remaining:
    """Whole time left before an item expires."""

    unit: RemainingUnit
    amount: int = 0

    def __str__(self) -> str:
        if self.unit is RemainingUnit.DAYS:
            return f"{self.amount} day(s)"
        if self.unit is RemainingUnit.HOURS:
            return f"{self.amount} hour(s)"
        return "less than an hour"


@dataclass(frozen=True)
class ExpirationColumn:
    """Everything the admin listing shows for one item."""

    status: ExpirationStatus
    expires_at: datetime | None
    remaining: Remaining | None
    label: str

    @property
    def display(self) -> str:
        return format_civil(self.expires_at) if self.expires_at else ""


def civil_now(utc_offset: float, clock: datetime | None = None) -> datetime:
    """Current wall-clock time at a fixed UTC offset, as a naive datetime.

    Args:
        utc_offset: Hours from UTC (e.g. -3)
        clock: Aware instant to convert instead of the real current time
    """
    tz = timezone(timedelta(hours=utc_offset))
    instant = clock if clock is not None else datetime.now(timezone.utc)
    return instant.astimezone(tz).replace(tzinfo=None, microsecond=0)


def offset_label(utc_offset: float) -> str:
    """Render an offset the way editors see it, e.g. ``UTC-3`` or ``UTC+5:30``."""
    if utc_offset == 0:
        return "UTC"
    sign = "+" if utc_offset > 0 else "-"
    total_minutes = round(abs(utc_offset) * 60)
    hours, minutes = divmod(total_minutes, 60)
    if minutes:
        return f"UTC{sign}{hours}:{minutes:02d}"
    return f"UTC{sign}{hours}"


def format_civil(value: datetime) -> str:
    return value.strftime(DISPLAY_FORMAT)


def combine(date_value: str | None, time_value: str | None) -> datetime | None:
    """Build the expiration datetime from its two stored halves.

    Returns None unless both halves are present and parse. A lone date or
    time is treated exactly like no expiration at all.
    """
    if not date_value or not time_value:
        return None
    try:
        day = datetime.strptime(date_value.strip(), DATE_FORMAT).date()
    except ValueError:
        return None
    for fmt in (TIME_FORMAT, "%H:%M"):
        try:
            moment = datetime.strptime(time_value.strip(), fmt).time()
        except ValueError:
            continue
        return datetime.combine(day, moment)
    return None


def split(expires_at: datetime) -> tuple[str, str]:
    """Split an expiration datetime into the stored (date, time) strings."""
    return expires_at.strftime(DATE_FORMAT), expires_at.strftime(TIME_FORMAT)


def parse_submitted(value: str | None) -> datetime | None:
    """Parse a ``datetime-local`` form value.

    Empty, malformed and timezone-qualified values all yield None, which
    callers treat as "clear the expiration".
    """
    if not value or not value.strip():
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        return None
    return parsed.replace(microsecond=0)


def to_input_value(expires_at: datetime | None) -> str:
    """Format an expiration for the ``datetime-local`` input."""
    return expires_at.strftime("%Y-%m-%dT%H:%M") if expires_at else ""


def is_expired(item: ExpiringItem, now: datetime) -> bool:
    """True once the expiration has been reached; the boundary is inclusive."""
    if item.expires_at is None:
        return False
    return item.expires_at <= now


def status(item: ExpiringItem, now: datetime) -> ExpirationStatus:
    if item.expires_at is None:
        return ExpirationStatus.NONE
    if is_expired(item, now):
        return ExpirationStatus.EXPIRED
    return ExpirationStatus.ACTIVE


def remaining(item: ExpiringItem, now: datetime) -> Remaining:
    """Time left before expiry, floored to whole days or whole hours.

    Raises:
        ValueError: If the item has no expiration or is already expired.
    """
    if item.expires_at is None or is_expired(item, now):
        raise ValueError(f"Item {item.id!r} has no remaining time")

    seconds = int((item.expires_at - now).total_seconds())
    days = seconds // _DAY
    if days >= 1:
        return Remaining(RemainingUnit.DAYS, days)
    hours = seconds // _HOUR
    if hours >= 1:
        return Remaining(RemainingUnit.HOURS, hours)
    return Remaining(RemainingUnit.NONE)


def describe(item: ExpiringItem, now: datetime) -> ExpirationColumn:
    """Status, timestamp and remaining time for the admin listing column."""
    current = status(item, now)
    if current is ExpirationStatus.NONE:
        return ExpirationColumn(current, None, None, "never expires")
    if current is ExpirationStatus.EXPIRED:
        return ExpirationColumn(current, item.expires_at, None, "expired")
    left = remaining(item, now)
    return ExpirationColumn(current, item.expires_at, left, f"{left} remaining")


def select_expired(items: Iterable[ExpiringItem], now: datetime) -> set:
    """Ids of published items whose expiration has been reached."""
    return {item.id for item in items if item.status == PUBLISHED and is_expired(item, now)}


def sweep(items: Iterable[ExpiringItem], now: datetime, content_type: str = "post") -> set:
    """Ids the sweep must move to draft: expired, published, of the managed type."""
    return select_expired((item for item in items if item.type == content_type), now)


def sort_key(item: ExpiringItem) -> tuple[bool, datetime]:
    """Ascending by expiration, with no-expiration items last."""
    return (item.expires_at is None, item.expires_at or datetime.min)


def sort_by_expiration(items: Iterable[ExpiringItem], descending: bool = False) -> list:
    """Order items by expiration; items without one stay last in both directions."""
    items = list(items)
    dated = sorted(
        (item for item in items if item.expires_at is not None),
        key=sort_key,
        reverse=descending,
    )
    return dated + [item for item in items if item.expires_at is None]
