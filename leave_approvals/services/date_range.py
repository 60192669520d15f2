"""Validation and normalization of a requested leave interval.

Rules are applied in a fixed order and the first failure wins:

1. both dates parse as calendar dates (``InvalidDateFormat``)
2. optional times match 24-hour ``HH:MM`` (``InvalidTimeFormat``)
3. bounds are built: ``fromTime`` or midnight, ``toTime`` or 23:59:59.999
4. ``from <= to`` (``RangeInverted``)
5. the start is not in the past (``PastDate``)

All instants are UTC with millisecond precision, so the same input always
yields byte-identical bounds for the request fingerprint.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta

from leave_approvals.core.errors import ErrorKind, LeaveError

_DATE_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
START_OF_DAY = time(0, 0, 0, 0)
END_OF_DAY = time(23, 59, 59, 999_000)


@dataclass(frozen=True)
class LeaveInterval:
    """Normalized leave bounds, both inclusive."""

    from_instant: datetime
    to_instant: datetime

    @property
    def duration_seconds(self) -> int:
        """Whole seconds between the bounds, never negative."""
        return max(0, int((self.to_instant - self.from_instant) // timedelta(seconds=1)))


def _parse_date(raw: str, field: str) -> date:
    value = raw.strip() if isinstance(raw, str) else ""
    if value:
        match = _DATE_PATTERN.match(value)
        if match is not None:
            try:
                return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
            except ValueError:
                pass
    raise LeaveError(
        ErrorKind.INVALID_DATE_FORMAT,
        f"Invalid date format for {field}: {raw!r}. Expected YYYY-MM-DD",
    )


def _parse_time(raw: str | None, field: str) -> time | None:
    if raw is None or raw == "":
        return None
    match = _TIME_PATTERN.match(raw.strip()) if isinstance(raw, str) else None
    if match is None:
        raise LeaveError(
            ErrorKind.INVALID_TIME_FORMAT,
            f"Invalid {field} format: {raw!r}. Expected HH:MM (24-hour)",
        )
    return time(int(match.group(1)), int(match.group(2)))


def _inverted_message(*, from_timed: bool, to_timed: bool) -> str:
    if from_timed and to_timed:
        return "from date and time cannot be later than to date and time"
    if from_timed:
        return "from date and time cannot be later than to date"
    if to_timed:
        return "from date cannot be later than to date and time"
    return "from date cannot be later than to date"


def validate_range(
    from_date: str,
    to_date: str,
    from_time: str | None = None,
    to_time: str | None = None,
    *,
    now: datetime | None = None,
) -> LeaveInterval:
    """Validate raw request fields and return the normalized interval."""
    start_day = _parse_date(from_date, "from")
    end_day = _parse_date(to_date, "to")
    start_time = _parse_time(from_time, "fromTime")
    end_time = _parse_time(to_time, "toTime")

    from_instant = datetime.combine(start_day, start_time or START_OF_DAY, tzinfo=UTC)
    to_instant = datetime.combine(end_day, end_time or END_OF_DAY, tzinfo=UTC)

    if from_instant > to_instant:
        raise LeaveError(
            ErrorKind.RANGE_INVERTED,
            _inverted_message(from_timed=start_time is not None, to_timed=end_time is not None),
        )

    current = now.astimezone(UTC) if now is not None else datetime.now(UTC)
    if from_instant < current:
        raise LeaveError(ErrorKind.PAST_DATE, "from date and time cannot be in the past")

    return LeaveInterval(from_instant=from_instant, to_instant=to_instant)
