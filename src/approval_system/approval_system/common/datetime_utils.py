from __future__ import annotations

import calendar
from datetime import date, datetime


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO 8601 datetime (``Z`` suffix accepted)."""
    v = value.strip()
    if v.endswith("Z"):
        v = v[:-1] + "+00:00"
    return datetime.fromisoformat(v)


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def isoformat_or_none(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def subtract_months(value: datetime, months: int) -> datetime:
    """Same wall-clock time ``months`` earlier; the day is clamped to month end."""
    index = value.year * 12 + (value.month - 1) - months
    year, month = divmod(index, 12)
    day = min(value.day, calendar.monthrange(year, month + 1)[1])
    return value.replace(year=year, month=month + 1, day=day)
