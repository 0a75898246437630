"""Fold completed sessions into streaks, totals, and date-bucketed series."""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import Optional

from contracts.session_events import SessionCompleted

from .buckets import (
    SERIES_DAILY,
    SERIES_MONTHLY,
    SERIES_YEARLY,
    bucket_key,
    date_only,
    day_key,
    elapsed_days,
    parse_day,
)
from .models import EMPTY_STATS, SERIES_CAPS, SERIES_NAMES, StatBucketEntry, Stats


class StatsAggregator:
    """Thread-safe statistics accumulator driven by `SessionCompleted` events.

    The aggregator never reads the process clock: every date it derives comes
    from the event timestamp it is handed.
    """

    def __init__(
        self,
        stats: Optional[Stats] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ):
        self._logger = logger or logging.getLogger("stats")
        self._lock = threading.Lock()
        self._stats = EMPTY_STATS
        self._series: dict[str, dict[str, StatBucketEntry]] = {}
        self._load_locked(stats or EMPTY_STATS)

    def snapshot(self) -> Stats:
        with self._lock:
            return self._snapshot_locked()

    def restore(self, stats: Stats) -> Stats:
        with self._lock:
            self._load_locked(stats)
            return self._snapshot_locked()

    def reset(self) -> Stats:
        with self._lock:
            self._load_locked(EMPTY_STATS)
            self._logger.info("Statistics reset")
            return self._snapshot_locked()

    def record_completion(self, event: SessionCompleted) -> Stats:
        with self._lock:
            duration = event.duration_seconds
            if isinstance(duration, bool) or not isinstance(duration, int) or duration < 0:
                self._logger.warning(
                    "Ignoring completion with invalid duration: %r",
                    duration,
                )
                return self._snapshot_locked()

            today = date_only(event.occurred_at)
            stats = self._stats
            last_day = parse_day(stats.last_session_date)

            streak = stats.current_streak_days
            if last_day is None:
                streak = 1
            else:
                gap = elapsed_days(last_day, today)
                if gap == 1:
                    streak += 1
                elif gap > 1:
                    streak = 1
                else:
                    # Same day or a clock that moved backwards.
                    streak = max(streak, 1)

            if last_day is not None and last_day > today:
                last_session_date = day_key(last_day)
            else:
                last_session_date = day_key(today)

            self._stats = replace(
                stats,
                sessions_completed=stats.sessions_completed + 1,
                total_focus_seconds=stats.total_focus_seconds + duration,
                current_streak_days=streak,
                longest_streak_days=max(stats.longest_streak_days, streak),
                last_session_date=last_session_date,
            )

            for name in SERIES_NAMES:
                self._add_to_series_locked(name, bucket_key(name, today), duration)

            self._logger.info(
                "Session recorded: preset=%s duration=%ss streak=%s total=%s",
                event.preset_id,
                duration,
                streak,
                self._stats.sessions_completed,
            )
            return self._snapshot_locked()

    def _add_to_series_locked(self, name: str, key: str, duration: int) -> None:
        series = self._series[name]
        entry = series.get(key)
        if entry is not None:
            series[key] = replace(
                entry,
                session_count=entry.session_count + 1,
                total_duration_seconds=entry.total_duration_seconds + duration,
            )
            return

        series[key] = StatBucketEntry(
            bucket_key=key,
            session_count=1,
            total_duration_seconds=duration,
        )
        _trim_series(series, SERIES_CAPS[name])

    def _load_locked(self, stats: Stats) -> None:
        self._stats = replace(
            stats,
            daily_series=(),
            monthly_series=(),
            yearly_series=(),
        )
        self._series = {}
        for name in SERIES_NAMES:
            series = {entry.bucket_key: entry for entry in stats.series(name)}
            _trim_series(series, SERIES_CAPS[name])
            self._series[name] = series

    def _snapshot_locked(self) -> Stats:
        return replace(
            self._stats,
            daily_series=_ordered(self._series[SERIES_DAILY]),
            monthly_series=_ordered(self._series[SERIES_MONTHLY]),
            yearly_series=_ordered(self._series[SERIES_YEARLY]),
        )


def _trim_series(series: dict[str, StatBucketEntry], cap: int) -> None:
    # Zero-padded keys sort chronologically, so the smallest key is the oldest.
    while len(series) > cap:
        del series[min(series)]


def _ordered(series: dict[str, StatBucketEntry]) -> tuple[StatBucketEntry, ...]:
    return tuple(series[key] for key in sorted(series))
