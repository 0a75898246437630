from __future__ import annotations

from typing import Any, Optional, Protocol

from contracts.ui_protocol import (
    EVENT_ACHIEVEMENT_UNLOCKED,
    EVENT_SESSION_COMPLETED,
    EVENT_STATS,
    EVENT_TIMER,
)
from pomodoro import PomodoroSnapshot
from session_stats import Achievement, StatBucketEntry, Stats


class UIServerLike(Protocol):
    def publish(self, event_type: str, **payload: Any) -> None:
        ...

    def publish_state(
        self,
        state: str,
        *,
        message: Optional[str] = None,
        **payload: Any,
    ) -> None:
        ...


class RuntimeUIPublisher:
    def __init__(self, ui_server: Optional[UIServerLike]):
        self._ui_server = ui_server

    def publish(self, event_type: str, **payload: Any) -> None:
        if self._ui_server:
            self._ui_server.publish(event_type, **payload)

    def publish_state(
        self,
        state: str,
        *,
        message: Optional[str] = None,
        **payload: Any,
    ) -> None:
        if self._ui_server:
            self._ui_server.publish_state(state, message=message, **payload)

    def publish_timer_update(
        self,
        snapshot: PomodoroSnapshot,
        *,
        action: str,
        accepted: Optional[bool] = None,
        reason: str = "",
        message: Optional[str] = None,
    ) -> None:
        payload: dict[str, Any] = {
            "action": action,
            "phase": snapshot.phase,
            "is_running": snapshot.is_running,
            "is_complete": snapshot.is_complete,
            "preset_id": snapshot.active_preset.id,
            "countable": snapshot.active_preset.countable,
            "duration_seconds": snapshot.duration_seconds,
            "remaining_seconds": snapshot.remaining_seconds,
            "presets": {
                preset.id: {
                    "duration_seconds": preset.duration_seconds,
                    "countable": preset.countable,
                }
                for preset in snapshot.presets
            },
        }
        if accepted is not None:
            payload["accepted"] = accepted
        if reason:
            payload["reason"] = reason
        if message:
            payload["message"] = message
        self.publish(EVENT_TIMER, **payload)

    def publish_stats_update(
        self,
        stats: Stats,
        *,
        achievements: tuple[Achievement, ...] = (),
    ) -> None:
        self.publish(
            EVENT_STATS,
            sessions_completed=stats.sessions_completed,
            total_focus_seconds=stats.total_focus_seconds,
            average_session_seconds=stats.average_session_seconds,
            current_streak_days=stats.current_streak_days,
            longest_streak_days=stats.longest_streak_days,
            last_session_date=stats.last_session_date,
            daily_series=_series_payload(stats.daily_series),
            monthly_series=_series_payload(stats.monthly_series),
            yearly_series=_series_payload(stats.yearly_series),
            achievements=[
                {
                    "id": achievement.id,
                    "name": achievement.name,
                    "unlocked": achievement.unlocked,
                    "date": achievement.date,
                }
                for achievement in achievements
            ],
        )

    def publish_session_completed(
        self,
        *,
        preset_id: str,
        duration_seconds: int,
        occurred_at: str,
        message: Optional[str] = None,
    ) -> None:
        payload: dict[str, Any] = {
            "preset_id": preset_id,
            "duration_seconds": duration_seconds,
            "occurred_at": occurred_at,
        }
        if message:
            payload["message"] = message
        self.publish(EVENT_SESSION_COMPLETED, **payload)

    def publish_achievement_unlocked(self, achievement: Achievement, *, message: str) -> None:
        self.publish(
            EVENT_ACHIEVEMENT_UNLOCKED,
            id=achievement.id,
            name=achievement.name,
            date=achievement.date,
            message=message,
        )


def _series_payload(series: tuple[StatBucketEntry, ...]) -> list[dict[str, Any]]:
    return [
        {
            "bucket_key": entry.bucket_key,
            "session_count": entry.session_count,
            "total_duration_seconds": entry.total_duration_seconds,
        }
        for entry in series
    ]
