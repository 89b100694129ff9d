"""UTC-normalized day arithmetic and time-of-day parsing."""

from __future__ import annotations

import re
from datetime import UTC, date, datetime, time, timedelta

TIME_OF_DAY_PATTERN = re.compile(r"(\d{1,2}):(\d{2})\s*(AM|PM)", re.IGNORECASE)


def as_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are read as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def utc_day(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return as_utc(value).date()
    return value


def day_key(value: date | datetime) -> str:
    """Format the UTC calendar day of ``value`` as YYYY-MM-DD."""
    return utc_day(value).isoformat()


def add_days(value: date | datetime, days: int) -> date:
    return utc_day(value) + timedelta(days=days)


def parse_timestamp(value: datetime | str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp, accepting a trailing ``Z``.

    Returns None for empty or unparseable input.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None


def parse_time_of_day(value: str | None) -> time | None:
    """Parse ``H:MM AM|PM`` into a 24-hour time, or None."""
    if not value:
        return None
    match = TIME_OF_DAY_PATTERN.search(value)
    if match is None:
        return None

    hours = int(match.group(1))
    minutes = int(match.group(2))
    period = match.group(3).upper()
    if period == "PM" and hours != 12:
        hours += 12
    if period == "AM" and hours == 12:
        hours = 0
    if hours > 23 or minutes > 59:
        return None
    return time(hours, minutes)


def on_same_day(reference: datetime, at: time) -> datetime:
    """Place ``at`` on the calendar day of ``reference`` in its own timezone."""
    return reference.replace(hour=at.hour, minute=at.minute, second=0, microsecond=0)
