"""Single owner of the timer, statistics, achievements, and their persistence."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Union

from contracts.session_events import SessionCompleted
from pomodoro import PomodoroActionResult, PomodoroSnapshot, PomodoroTick, PomodoroTimer, Preset
from pomodoro.constants import (
    ACTION_COMPLETED,
    ACTION_SYNC,
    ACTION_TICK,
    PHASE_RUNNING,
    REASON_COMPLETED,
    REASON_TICK,
)
from session_stats import Achievement, AchievementBook, Stats, StatsAggregator, date_only
from storage import AppSnapshot, PersistedTimer, SnapshotWriter

from .ticker import Ticker

ACTION_RECORD_COMPLETION = "record_completion"
ACTION_RESET_STATISTICS = "reset_statistics"
ACTION_UPDATE_PREFERENCE = "update_preference"

REASON_RECORDED = "recorded"
REASON_INVALID_EVENT = "invalid_event"
REASON_STATISTICS_RESET = "statistics_reset"
REASON_PREFERENCE_UPDATED = "preference_updated"
REASON_INVALID_PREFERENCE = "invalid_preference"

_PREFERENCE_VALUE_TYPES = (str, bool, int, float, type(None))


@dataclass(frozen=True)
class ControllerUpdate:
    """Notification sent to subscribers after every command or tick."""
    action: str
    accepted: bool
    reason: str
    timer: PomodoroSnapshot
    stats: Stats


@dataclass(frozen=True)
class SessionCompletedNotice:
    """Completion notification carrying the post-update statistics."""
    event: SessionCompleted
    stats: Stats
    unlocked: tuple[Achievement, ...] = ()


UpdateListener = Callable[[ControllerUpdate], None]
CompletionListener = Callable[[SessionCompletedNotice], None]
TickerFactory = Callable[[Callable[[], object]], Ticker]


class TimerController:
    """Applies user commands and ticks, then notifies subscribers and persists.

    All collaborators are injected; nothing here reads global state. Persistence
    is handed to the writer without waiting, so a slow or failing disk never
    delays a command.
    """

    def __init__(
        self,
        *,
        timer: PomodoroTimer,
        aggregator: StatsAggregator,
        achievements: AchievementBook,
        preferences: Optional[Mapping[str, Any]] = None,
        writer: Optional[SnapshotWriter] = None,
        ticker_factory: Optional[TickerFactory] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._timer = timer
        self._aggregator = aggregator
        self._achievements = achievements
        self._preferences: dict[str, Any] = dict(preferences or {})
        self._writer = writer
        self._logger = logger or logging.getLogger("runtime")
        self._lock = threading.RLock()
        self._listeners: list[UpdateListener] = []
        self._completion_listeners: list[CompletionListener] = []
        factory = ticker_factory or (lambda callback: Ticker(callback, logger=self._logger))
        self._ticker = factory(self.tick)

    @classmethod
    def from_snapshot(
        cls,
        snapshot: AppSnapshot,
        *,
        writer: Optional[SnapshotWriter] = None,
        clock: Optional[Callable[[], float]] = None,
        wall_clock: Optional[Callable[[], datetime]] = None,
        ticker_factory: Optional[TickerFactory] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "TimerController":
        timer = PomodoroTimer(
            presets=snapshot.timer.presets,
            active_preset=snapshot.timer.active_preset,
            clock=clock,
            wall_clock=wall_clock,
            logger=logging.getLogger("pomodoro"),
        )
        return cls(
            timer=timer,
            aggregator=StatsAggregator(snapshot.stats, logger=logging.getLogger("stats")),
            achievements=AchievementBook(snapshot.achievements),
            preferences=snapshot.preferences,
            writer=writer,
            ticker_factory=ticker_factory,
            logger=logger,
        )

    # Read model

    def timer_snapshot(self) -> PomodoroSnapshot:
        return self._timer.snapshot()

    def stats_snapshot(self) -> Stats:
        return self._aggregator.snapshot()

    def achievements(self) -> tuple[Achievement, ...]:
        return self._achievements.snapshot()

    def preferences(self) -> dict[str, Any]:
        with self._lock:
            return dict(self._preferences)

    def persisted_snapshot(self) -> AppSnapshot:
        with self._lock:
            timer = self._timer.snapshot()
            return AppSnapshot(
                timer=PersistedTimer(active_preset=timer.active_preset, presets=timer.presets),
                stats=self._aggregator.snapshot(),
                achievements=self._achievements.snapshot(),
                preferences=dict(self._preferences),
            )

    @property
    def is_ticking(self) -> bool:
        return self._ticker.is_running

    # Subscriptions

    def subscribe(self, listener: UpdateListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)
        return lambda: self._unsubscribe(self._listeners, listener)

    def subscribe_completion(self, listener: CompletionListener) -> Callable[[], None]:
        with self._lock:
            self._completion_listeners.append(listener)
        return lambda: self._unsubscribe(self._completion_listeners, listener)

    # Commands

    def start(self) -> PomodoroActionResult:
        with self._lock:
            self._settle_locked()
            result = self._timer.start()
            if result.accepted:
                self._ticker.start()
            self._publish_result(result, persist=False)
            return result

    def pause(self) -> PomodoroActionResult:
        with self._lock:
            self._settle_locked()
            result = self._timer.pause()
            if result.accepted:
                self._ticker.stop()
            self._publish_result(result, persist=False)
            return result

    def reset(self) -> PomodoroActionResult:
        with self._lock:
            self._settle_locked()
            result = self._timer.reset()
            self._ticker.stop()
            self._publish_result(result, persist=False)
            return result

    def switch_preset(self, preset: Union[Preset, str]) -> PomodoroActionResult:
        with self._lock:
            self._settle_locked()
            result = self._timer.switch_preset(preset)
            if result.accepted:
                self._ticker.stop()
            self._publish_result(result, persist=result.accepted)
            return result

    def update_preset_duration(
        self,
        preset_id: str,
        duration_seconds: Optional[int],
    ) -> PomodoroActionResult:
        with self._lock:
            self._settle_locked()
            result = self._timer.update_preset_duration(preset_id, duration_seconds)
            if result.accepted and result.snapshot.phase != PHASE_RUNNING:
                self._ticker.stop()
            self._publish_result(result, persist=result.accepted)
            return result

    def record_completion_manually(self, event: SessionCompleted) -> Stats:
        with self._lock:
            before = self._aggregator.snapshot()
            stats = self._record_completion_locked(event)
            accepted = stats.sessions_completed != before.sessions_completed
            self._notify(
                ControllerUpdate(
                    action=ACTION_RECORD_COMPLETION,
                    accepted=accepted,
                    reason=REASON_RECORDED if accepted else REASON_INVALID_EVENT,
                    timer=self._timer.snapshot(),
                    stats=stats,
                )
            )
            if accepted:
                self._persist_locked()
            return stats

    def reset_statistics(self) -> Stats:
        with self._lock:
            stats = self._aggregator.reset()
            self._achievements.reset()
            self._notify(
                ControllerUpdate(
                    action=ACTION_RESET_STATISTICS,
                    accepted=True,
                    reason=REASON_STATISTICS_RESET,
                    timer=self._timer.snapshot(),
                    stats=stats,
                )
            )
            self._persist_locked()
            return stats

    def update_preference(self, name: str, value: Any) -> bool:
        with self._lock:
            accepted = (
                isinstance(name, str)
                and bool(name.strip())
                and isinstance(value, _PREFERENCE_VALUE_TYPES)
            )
            if accepted:
                self._preferences[name.strip()] = value
            else:
                self._logger.warning("Ignoring invalid preference update: %r=%r", name, value)
            self._notify(
                ControllerUpdate(
                    action=ACTION_UPDATE_PREFERENCE,
                    accepted=accepted,
                    reason=REASON_PREFERENCE_UPDATED if accepted else REASON_INVALID_PREFERENCE,
                    timer=self._timer.snapshot(),
                    stats=self._aggregator.snapshot(),
                )
            )
            if accepted:
                self._persist_locked()
            return accepted

    def sync(self, reason: str) -> ControllerUpdate:
        """Publish the current state without changing it."""
        with self._lock:
            update = ControllerUpdate(
                action=ACTION_SYNC,
                accepted=True,
                reason=reason,
                timer=self._timer.snapshot(),
                stats=self._aggregator.snapshot(),
            )
            self._notify(update)
            return update

    def tick(self) -> Optional[PomodoroTick]:
        with self._lock:
            tick = self._timer.tick()
            if tick is None:
                return None

            if not tick.completed:
                self._notify(
                    ControllerUpdate(
                        action=ACTION_TICK,
                        accepted=True,
                        reason=REASON_TICK,
                        timer=tick.snapshot,
                        stats=self._aggregator.snapshot(),
                    )
                )
                return tick

            self._ticker.stop()
            if tick.event is not None:
                stats = self._record_completion_locked(tick.event)
            else:
                stats = self._aggregator.snapshot()
            self._notify(
                ControllerUpdate(
                    action=ACTION_COMPLETED,
                    accepted=True,
                    reason=REASON_COMPLETED,
                    timer=tick.snapshot,
                    stats=stats,
                )
            )
            if tick.event is not None:
                self._persist_locked()
            return tick

    def shutdown(self) -> None:
        self._ticker.stop()
        if self._writer is not None:
            self._writer.submit(self.persisted_snapshot())
            self._writer.close()

    def _settle_locked(self) -> None:
        """Complete a countdown whose deadline passed before the ticker fired."""
        snapshot = self._timer.snapshot()
        if snapshot.phase == PHASE_RUNNING and snapshot.remaining_seconds == 0:
            self.tick()

    def _record_completion_locked(self, event: SessionCompleted) -> Stats:
        before = self._aggregator.snapshot()
        stats = self._aggregator.record_completion(event)
        if stats.sessions_completed == before.sessions_completed:
            return stats

        unlocked = tuple(self._achievements.evaluate(stats, date_only(event.occurred_at)))
        for achievement in unlocked:
            self._logger.info("Achievement unlocked: %s", achievement.name)

        notice = SessionCompletedNotice(event=event, stats=stats, unlocked=unlocked)
        for listener in tuple(self._completion_listeners):
            try:
                listener(notice)
            except Exception as error:
                self._logger.error("Completion listener failed: %s", error, exc_info=True)
        return stats

    def _publish_result(self, result: PomodoroActionResult, *, persist: bool) -> None:
        self._notify(
            ControllerUpdate(
                action=result.action,
                accepted=result.accepted,
                reason=result.reason,
                timer=result.snapshot,
                stats=self._aggregator.snapshot(),
            )
        )
        if persist:
            self._persist_locked()

    def _notify(self, update: ControllerUpdate) -> None:
        for listener in tuple(self._listeners):
            try:
                listener(update)
            except Exception as error:
                self._logger.error("Update listener failed: %s", error, exc_info=True)

    def _persist_locked(self) -> None:
        if self._writer is None:
            return
        self._writer.submit(self.persisted_snapshot())

    def _unsubscribe(self, listeners: list[Any], listener: Any) -> None:
        with self._lock:
            if listener in listeners:
                listeners.remove(listener)
