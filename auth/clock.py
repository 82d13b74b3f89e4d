"""
auth/clock.py -- Time helpers shared by the codec, store and service.

All datetimes inside auth/ are timezone-aware UTC. Naive values coming from
callers or from older rows are assumed to already be UTC.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: str | int | float | datetime) -> datetime:
    """Parse an ISO 8601 string, epoch seconds or datetime into aware UTC.

    Raises ValueError (or TypeError for unsupported types) when the value
    cannot be read as a point in time. bool is rejected even though it is an
    int subclass -- True is a flag, not 1970-01-01T00:00:01.
    """
    if isinstance(value, bool):
        raise TypeError("bool is not a timestamp")
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        # fromisoformat() only accepts a "Z" suffix from Python 3.11.
        if text[-1:] in ("Z", "z"):
            text = text[:-1] + "+00:00"
        return to_utc(datetime.fromisoformat(text))
    raise TypeError(f"Unsupported timestamp type: {type(value).__name__}")
