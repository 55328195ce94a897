"""Shared time and money utilities.

Day bucketing: every "is this part of today" decision compares calendar date
keys computed in the user's timezone. UTC ranges are only a coarse pre-filter.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

DECIMALS = 2

# Half-width of the UTC pre-filter window around a local day.
PREFILTER_SLACK = timedelta(days=1)


@dataclass(frozen=True)
class DayBounds:
    """One local calendar day expressed in UTC."""

    start_utc: datetime
    end_utc: datetime  # exclusive
    date_key: str

    def prefilter_range(self) -> tuple[datetime, datetime]:
        """Widened (start, end) UTC range for coarse ledger queries."""
        return self.start_utc - PREFILTER_SLACK, self.end_utc + PREFILTER_SLACK


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def date_key(instant: datetime, tz_name: str) -> str:
    """Calendar date (YYYY-MM-DD) of an instant as observed in tz_name."""
    return as_utc(instant).astimezone(ZoneInfo(tz_name)).date().isoformat()


def bounds_for_date_key(key: str, tz_name: str) -> DayBounds:
    """Day bounds for a YYYY-MM-DD key in tz_name.

    Raises:
        ValueError: If key is not an ISO calendar date.
    """
    day = date.fromisoformat(key)
    local_midnight = datetime.combine(day, time.min, tzinfo=ZoneInfo(tz_name))
    start_utc = local_midnight.astimezone(timezone.utc)
    return DayBounds(
        start_utc=start_utc,
        end_utc=start_utc + timedelta(hours=24),
        date_key=day.isoformat(),
    )


def day_bounds(instant: datetime, tz_name: str) -> DayBounds:
    """Bounds of the local day containing instant in tz_name."""
    return bounds_for_date_key(date_key(instant, tz_name), tz_name)


def transaction_date_key(value: datetime, is_date_only: bool, tz_name: str) -> str:
    """Authoritative date key for a ledger row.

    Date-only provider values are stored as UTC midnight of their calendar
    date and keep that date; timed values are converted into tz_name.
    """
    if is_date_only:
        return as_utc(value).date().isoformat()
    return date_key(value, tz_name)


def minutes_apart(a: time, b: time) -> int:
    """Distance in minutes between two times of day, wrapping at midnight."""
    diff = abs((a.hour * 60 + a.minute) - (b.hour * 60 + b.minute))
    return min(diff, 24 * 60 - diff)


def parse_hhmm(value: str) -> time:
    """Parse an HH:MM string into a time.

    Raises:
        ValueError: If value is not a valid 24-hour HH:MM string.
    """
    hours, _, minutes = value.partition(":")
    if len(hours) != 2 or len(minutes) != 2:
        raise ValueError(f"Expected HH:MM, got {value!r}")
    return time(int(hours), int(minutes))


def round2(x: float | None) -> float | None:
    """Round a value to 2 decimal places; preserve None."""
    if x is None:
        return None
    return round(float(x), DECIMALS)


def mask_token(token: str) -> str:
    """Shorten a secret for logging."""
    return token[:20] + "..." if len(token) > 20 else token
