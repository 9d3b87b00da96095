"""UTC calendar helpers: days, ISO weeks and weekly counters."""
from datetime import UTC, datetime, timedelta
from typing import Optional, Tuple


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return the datetime as timezone-aware UTC.

    SQLite hands back naive datetimes even for timezone-aware columns; those
    are stored in UTC, so tzinfo is attached rather than converted.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def start_of_day(value: datetime) -> datetime:
    """Midnight UTC of the day containing value."""
    value = as_utc(value)
    return datetime(value.year, value.month, value.day, tzinfo=UTC)


def today_utc(now: Optional[datetime] = None) -> datetime:
    """Get the current UTC date as midnight UTC."""
    return start_of_day(now or datetime.now(UTC))


def iso_week_start(value: datetime) -> datetime:
    """Get the start of the ISO week (Monday 00:00:00 UTC) for a given datetime."""
    day = start_of_day(value)
    return day - timedelta(days=day.weekday())


def is_same_iso_week(first: datetime, second: datetime) -> bool:
    """Check if two datetimes fall in the same ISO week."""
    return iso_week_start(first) == iso_week_start(second)


def format_iso_week(value: datetime) -> str:
    """Format a datetime as an ISO week string, e.g. "2024-W01"."""
    year, week, _ = as_utc(value).isocalendar()
    return f"{year}-W{week:02d}"


def effective_weekly_value(value: int, start_date: Optional[datetime], now: datetime) -> int:
    """Read a weekly counter, treating it as zero if it belongs to another week."""
    if start_date is None or not is_same_iso_week(start_date, now):
        return 0
    return value


def roll_weekly_counter(
    value: int,
    start_date: Optional[datetime],
    delta: int,
    now: datetime,
) -> Tuple[int, datetime]:
    """Add delta to a weekly counter, resetting it first if its week has passed.

    Returns the new value and the start date to store alongside it.
    """
    if start_date is None or not is_same_iso_week(start_date, now):
        return delta, iso_week_start(now)
    return value + delta, as_utc(start_date)
