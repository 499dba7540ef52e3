"""
Clock and calendar-day helpers.

Day deltas for follow-up alerting and human-relative date strings.
Pure business logic with no external dependencies.

Naive datetimes are read as UTC throughout.
"""

import math
from datetime import date, datetime, timedelta, timezone, tzinfo
from functools import lru_cache
from typing import Optional, Union
from zoneinfo import ZoneInfo


SECONDS_PER_DAY = 24 * 60 * 60


def now_utc() -> datetime:
    """Get the current UTC datetime."""
    return datetime.now(timezone.utc)


@lru_cache(maxsize=16)
def get_timezone(name: Optional[str]) -> Optional[tzinfo]:
    """
    Resolve an IANA zone name.

    Args:
        name: Zone name such as "Europe/Paris", or None for the host zone.

    Returns:
        The zone, or None meaning "host local time".
    """
    if not name:
        return None
    return ZoneInfo(name)


def ensure_aware(value: datetime) -> datetime:
    """Attach UTC to a naive datetime; aware values are returned unchanged."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_datetime(value: Union[str, int, float, datetime, None]) -> Optional[datetime]:
    """
    Parse a timestamp into an aware datetime.

    Args:
        value: ISO string (a trailing "Z" is accepted), epoch milliseconds,
            datetime or None.

    Returns:
        Aware datetime, or None when value is None or empty.

    Raises:
        ValueError: If the value is not a timestamp.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_aware(value)
    if isinstance(value, bool):
        raise ValueError(f"not a timestamp: {value!r}")
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError) as e:
            raise ValueError(f"epoch milliseconds out of range: {value}") from e
    if not isinstance(value, str):
        raise ValueError(f"not a timestamp: {value!r}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_aware(datetime.fromisoformat(text))


def to_local_date(value: datetime, tz: Optional[tzinfo] = None) -> date:
    """
    Calendar date of a timestamp in the local zone.

    Args:
        value: The timestamp.
        tz: Local zone; None uses the host zone.

    Returns:
        The date at local midnight granularity.
    """
    return ensure_aware(value).astimezone(tz).date()


def days_since(
    then: datetime,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> int:
    """
    Whole calendar days elapsed from `then` to `now`.

    Both timestamps are truncated to local midnight before subtracting,
    so 23:00 yesterday and 01:00 today are one day apart. Future
    timestamps give a negative count.
    """
    current = now or now_utc()
    return (to_local_date(current, tz) - to_local_date(then, tz)).days


def days_until(due: datetime, now: Optional[datetime] = None) -> int:
    """
    Days until a due timestamp, rounded up.

    Uses exact elapsed time: anything due later today is 0 or 1
    depending on the remaining hours, anything already past is
    negative or zero.
    """
    current = ensure_aware(now or now_utc())
    delta = ensure_aware(due) - current
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)


def add_days(value: datetime, days: int) -> datetime:
    """Offset a timestamp by calendar days, keeping the time of day."""
    return value + timedelta(days=days)


def format_relative_time(
    value: datetime,
    now: Optional[datetime] = None,
) -> str:
    """
    Format a past timestamp relative to now.

    Returns:
        "Today", "Yesterday", "N days ago", "N week(s) ago", or the
        ISO date for anything a month or older.
    """
    current = ensure_aware(now or now_utc())
    elapsed = current - ensure_aware(value)
    diff_days = math.floor(elapsed.total_seconds() / SECONDS_PER_DAY)

    if diff_days == 0:
        return "Today"
    if diff_days == 1:
        return "Yesterday"
    if 1 < diff_days < 7:
        return f"{diff_days} days ago"
    if 7 <= diff_days < 30:
        weeks = diff_days // 7
        return f"{weeks} {'week' if weeks == 1 else 'weeks'} ago"
    return ensure_aware(value).date().isoformat()
