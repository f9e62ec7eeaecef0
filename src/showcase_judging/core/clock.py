"""Time helpers.

All timestamps are naive UTC datetimes. The model columns declare a plain
``DateTime(timezone=False)`` so values read back from SQLite compare cleanly
with freshly generated ones.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(UTC).replace(tzinfo=None)


def as_utc_naive(value: datetime | None) -> datetime | None:
    """Normalize an aware or naive datetime to naive UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def timestamp_suffix(now: datetime, digits: int = 5) -> str:
    """Last ``digits`` digits of the millisecond epoch timestamp."""
    millis = int(now.replace(tzinfo=UTC).timestamp() * 1000)
    return str(millis)[-digits:]
