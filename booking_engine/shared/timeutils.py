"""Canonical clock helpers. Every schedule lookup and overlap test runs on UTC."""

from datetime import date, datetime, time, timedelta, timezone


def utc_now() -> datetime:
    """Current instant as naive UTC, the storage representation."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    """
    Normalize a datetime to naive UTC.

    Aware values are converted; naive values are taken to already be UTC.
    """
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def as_utc(value: datetime) -> datetime:
    """Attach the UTC zone to a stored naive datetime for API output."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def day_of_week(day: date) -> int:
    """Day index with 0=Sunday .. 6=Saturday."""
    return day.isoweekday() % 7


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Naive UTC [start, end) of a calendar day."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def at_minute(day: date, minute_of_day: int) -> datetime:
    """Naive UTC instant `minute_of_day` minutes after the day's midnight (1440 is next midnight)."""
    return datetime.combine(day, time.min) + timedelta(minutes=minute_of_day)


def minute_of_day(value: datetime, day: date) -> int:
    """Minutes between the day's midnight and `value` (may exceed 1440 or be negative)."""
    delta = value - datetime.combine(day, time.min)
    return int(delta.total_seconds() // 60)
