from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into a naive local datetime.

    A trailing "Z" or explicit offset is converted to local time so every
    timestamp stored in the log shares one clock.
    """
    v = value.strip()
    if v.endswith("Z"):
        v = v[:-1] + "+00:00"
    parsed = datetime.fromisoformat(v)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    """Return [start, end) datetimes covering a calendar month."""
    first = date(year, month, 1)
    days = calendar.monthrange(year, month)[1]
    start = datetime.combine(first, time.min)
    return start, start + timedelta(days=days)


def to_storage_precision(value: datetime) -> datetime:
    """Truncate to milliseconds, the precision of every DATETIME(3) column.

    MySQL rounds extra digits on insert; truncating first keeps the value we
    hand back identical to the one that is stored.
    """
    return value.replace(microsecond=value.microsecond // 1000 * 1000)
