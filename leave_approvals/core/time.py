"""Time helpers shared by models and services."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def utcnow() -> datetime:
    """Return a naive UTC datetime without using deprecated datetime.utcnow()."""
    # Keep naive UTC values for compatibility with the DB schema/queries.
    return datetime.now(UTC).replace(tzinfo=None)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive values and convert aware values to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_naive_utc(value: datetime) -> datetime:
    return as_utc(value).replace(tzinfo=None)


def epoch_millis(value: datetime) -> int:
    """Exact integer milliseconds since the Unix epoch."""
    return (as_utc(value) - EPOCH) // timedelta(milliseconds=1)


def isoformat_millis(value: datetime) -> str:
    """Render a UTC instant as ISO-8601 with millisecond precision."""
    return as_utc(value).isoformat(timespec="milliseconds")
