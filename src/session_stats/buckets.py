"""Pure calendar helpers used to bucket completed sessions."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Union

SERIES_DAILY = "daily"
SERIES_MONTHLY = "monthly"
SERIES_YEARLY = "yearly"


def date_only(occurred_at: Union[datetime, date]) -> date:
    """Return the calendar day of a timestamp in its own timezone.

    Aware timestamps are not converted to the process timezone, so the caller's
    clock decides which local day a session belongs to.
    """
    if isinstance(occurred_at, datetime):
        return occurred_at.date()
    return occurred_at


def day_key(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}-{day.day:02d}"


def month_key(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def year_key(day: date) -> str:
    return f"{day.year:04d}"


_KEY_BUILDERS = {
    SERIES_DAILY: day_key,
    SERIES_MONTHLY: month_key,
    SERIES_YEARLY: year_key,
}


def bucket_key(series: str, day: date) -> str:
    """Build the bucket key for ``day`` within the named series."""
    try:
        builder = _KEY_BUILDERS[series]
    except KeyError as error:
        raise ValueError(f"Unknown series: {series}") from error
    return builder(day)


def parse_day(raw: object) -> Optional[date]:
    """Parse a stored ``YYYY-MM-DD`` day, returning None for anything else."""
    if not isinstance(raw, str):
        return None
    text = raw.strip()
    if len(text) < 10:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def elapsed_days(earlier: date, later: date) -> int:
    """Whole calendar days from ``earlier`` to ``later``, clamped at zero."""
    return max(0, (later - earlier).days)
