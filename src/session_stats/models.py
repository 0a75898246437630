"""Immutable statistics snapshots exposed to the runtime and persistence."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .buckets import SERIES_DAILY, SERIES_MONTHLY, SERIES_YEARLY

SERIES_CAPS: dict[str, int] = {
    SERIES_DAILY: 7,
    SERIES_MONTHLY: 12,
    SERIES_YEARLY: 5,
}
SERIES_NAMES: tuple[str, ...] = (SERIES_DAILY, SERIES_MONTHLY, SERIES_YEARLY)


@dataclass(frozen=True)
class StatBucketEntry:
    """Session count and focus time aggregated under one date-derived key."""
    bucket_key: str
    session_count: int
    total_duration_seconds: int


@dataclass(frozen=True)
class Stats:
    """Aggregate statistics; series are ordered by ascending bucket key."""
    sessions_completed: int = 0
    total_focus_seconds: int = 0
    current_streak_days: int = 0
    longest_streak_days: int = 0
    last_session_date: Optional[str] = None
    daily_series: tuple[StatBucketEntry, ...] = field(default_factory=tuple)
    monthly_series: tuple[StatBucketEntry, ...] = field(default_factory=tuple)
    yearly_series: tuple[StatBucketEntry, ...] = field(default_factory=tuple)

    @property
    def average_session_seconds(self) -> int:
        if self.sessions_completed <= 0:
            return 0
        return round(self.total_focus_seconds / self.sessions_completed)

    def series(self, name: str) -> tuple[StatBucketEntry, ...]:
        if name == SERIES_DAILY:
            return self.daily_series
        if name == SERIES_MONTHLY:
            return self.monthly_series
        if name == SERIES_YEARLY:
            return self.yearly_series
        raise ValueError(f"Unknown series: {name}")

    def bucket(self, name: str, key: str) -> Optional[StatBucketEntry]:
        for entry in self.series(name):
            if entry.bucket_key == key:
                return entry
        return None


EMPTY_STATS = Stats()
