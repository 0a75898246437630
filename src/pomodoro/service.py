"""Thread-safe in-memory countdown state machine driven by one-second ticks."""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Iterable, Literal, Mapping, Optional, Union, cast

from contracts.session_events import SessionCompleted

from .constants import (
    ACTION_PAUSE,
    ACTION_RESET,
    ACTION_START,
    ACTION_SWITCH_PRESET,
    ACTION_UPDATE_PRESET_DURATION,
    ACTIVE_PHASES,
    DEFAULT_PRESET_ID,
    PHASE_COMPLETED,
    PHASE_IDLE,
    PHASE_PAUSED,
    PHASE_RUNNING,
    REASON_ALREADY_RUNNING,
    REASON_DEADLINE_REACHED,
    REASON_INVALID_DURATION,
    REASON_NOT_RUNNING,
    REASON_PAUSED,
    REASON_RESET,
    REASON_RESTARTED,
    REASON_RESUMED,
    REASON_STARTED,
    REASON_SWITCHED,
    REASON_UNKNOWN_PRESET,
    REASON_UNSUPPORTED_ACTION,
    REASON_UPDATED,
)
from .presets import Preset, default_preset_table, is_valid_duration, is_valid_preset

PomodoroPhase = Literal["idle", "running", "paused", "completed"]
PomodoroAction = Literal[
    "start",
    "pause",
    "reset",
    "switch_preset",
    "update_preset_duration",
]


@dataclass(frozen=True)
class PomodoroSnapshot:
    """Immutable timer snapshot exposed to runtime and UI publishers."""
    phase: PomodoroPhase
    active_preset: Preset
    remaining_seconds: int
    presets: tuple[Preset, ...] = ()

    @property
    def is_running(self) -> bool:
        return self.phase == PHASE_RUNNING

    @property
    def is_complete(self) -> bool:
        return self.phase == PHASE_COMPLETED

    @property
    def is_active(self) -> bool:
        return self.phase in ACTIVE_PHASES

    @property
    def duration_seconds(self) -> int:
        return self.active_preset.duration_seconds


@dataclass(frozen=True)
class PomodoroActionResult:
    """Result envelope returned after applying a timer command."""
    action: PomodoroAction
    accepted: bool
    reason: str
    snapshot: PomodoroSnapshot


@dataclass(frozen=True)
class PomodoroTick:
    """Tick payload; `event` is set only when a countable preset completes."""
    snapshot: PomodoroSnapshot
    completed: bool = False
    event: Optional[SessionCompleted] = None


def _local_now() -> datetime:
    return datetime.now().astimezone()


class PomodoroTimer:
    """In-memory countdown state machine with absolute monotonic deadlines.

    Remaining time is recomputed from the deadline captured at start/resume, so
    late or bursty ticks never make the countdown drift from wall time. No
    command raises: invalid input is reported through a rejected result and
    leaves the state untouched.
    """

    def __init__(
        self,
        *,
        presets: Optional[Union[Mapping[str, Preset], Iterable[Preset]]] = None,
        active_preset: Optional[Union[Preset, str]] = None,
        clock: Optional[Callable[[], float]] = None,
        wall_clock: Optional[Callable[[], datetime]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        table = _preset_table(presets)
        if not table:
            raise ValueError("at least one valid preset is required")

        if isinstance(active_preset, Preset):
            if not is_valid_preset(active_preset):
                raise ValueError(f"invalid active preset: {active_preset!r}")
            active = active_preset
        else:
            active_id = active_preset or DEFAULT_PRESET_ID
            if active_id not in table:
                raise ValueError(f"unknown active preset: {active_id}")
            active = table[active_id]

        self._presets = table
        self._clock = clock or time.monotonic
        self._wall_clock = wall_clock or _local_now
        self._logger = logger or logging.getLogger("pomodoro")
        self._lock = threading.Lock()

        self._phase: PomodoroPhase = PHASE_IDLE
        self._active = active
        self._remaining_seconds = active.duration_seconds
        self._deadline: Optional[float] = None

    def snapshot(self) -> PomodoroSnapshot:
        with self._lock:
            return self._snapshot_locked(self._clock())

    def preset(self, preset_id: str) -> Optional[Preset]:
        with self._lock:
            return self._presets.get(preset_id)

    def apply(
        self,
        action: str,
        *,
        preset: Optional[Union[Preset, str]] = None,
        preset_id: Optional[str] = None,
        duration_seconds: Optional[int] = None,
    ) -> PomodoroActionResult:
        if action == ACTION_START:
            return self.start()
        if action == ACTION_PAUSE:
            return self.pause()
        if action == ACTION_RESET:
            return self.reset()
        if action == ACTION_SWITCH_PRESET:
            return self.switch_preset(preset if preset is not None else preset_id or "")
        if action == ACTION_UPDATE_PRESET_DURATION:
            return self.update_preset_duration(preset_id or "", duration_seconds)

        with self._lock:
            return self._result_locked(
                action,  # type: ignore[arg-type]
                False,
                REASON_UNSUPPORTED_ACTION,
                self._clock(),
            )

    def start(self) -> PomodoroActionResult:
        with self._lock:
            now = self._clock()
            if self._phase == PHASE_RUNNING:
                return self._result_locked(ACTION_START, False, REASON_ALREADY_RUNNING, now)

            if self._phase == PHASE_COMPLETED:
                self._remaining_seconds = self._active.duration_seconds
                reason = REASON_RESTARTED
            elif self._phase == PHASE_PAUSED:
                reason = REASON_RESUMED
            else:
                reason = REASON_STARTED

            self._phase = PHASE_RUNNING
            self._deadline = now + self._remaining_seconds
            self._logger.info(
                "Pomodoro %s: preset=%s remaining=%ss",
                reason,
                self._active.id,
                self._remaining_seconds,
            )
            return self._result_locked(ACTION_START, True, reason, now)

    def pause(self) -> PomodoroActionResult:
        with self._lock:
            now = self._clock()
            if self._phase != PHASE_RUNNING:
                return self._result_locked(ACTION_PAUSE, False, REASON_NOT_RUNNING, now)

            remaining = self._running_remaining_locked(now)
            if remaining == 0:
                # A countdown at zero only completes through tick().
                return self._result_locked(ACTION_PAUSE, False, REASON_DEADLINE_REACHED, now)

            self._remaining_seconds = remaining
            self._deadline = None
            self._phase = PHASE_PAUSED
            self._logger.info(
                "Pomodoro paused: preset=%s remaining=%ss",
                self._active.id,
                self._remaining_seconds,
            )
            return self._result_locked(ACTION_PAUSE, True, REASON_PAUSED, now)

    def reset(self) -> PomodoroActionResult:
        with self._lock:
            now = self._clock()
            self._stop_locked(self._active)
            self._logger.info("Pomodoro reset: preset=%s", self._active.id)
            return self._result_locked(ACTION_RESET, True, REASON_RESET, now)

    def switch_preset(self, preset: Union[Preset, str]) -> PomodoroActionResult:
        with self._lock:
            now = self._clock()
            if isinstance(preset, Preset):
                if not is_valid_preset(preset):
                    return self._result_locked(
                        ACTION_SWITCH_PRESET, False, REASON_INVALID_DURATION, now
                    )
                target = preset
            else:
                found = self._presets.get(preset) if isinstance(preset, str) else None
                if found is None:
                    return self._result_locked(
                        ACTION_SWITCH_PRESET, False, REASON_UNKNOWN_PRESET, now
                    )
                target = found

            discarded = self._phase in ACTIVE_PHASES
            self._stop_locked(target)
            self._logger.info(
                "Pomodoro preset switched: preset=%s duration=%ss discarded_progress=%s",
                target.id,
                target.duration_seconds,
                discarded,
            )
            return self._result_locked(ACTION_SWITCH_PRESET, True, REASON_SWITCHED, now)

    def update_preset_duration(
        self,
        preset_id: str,
        duration_seconds: Optional[int],
    ) -> PomodoroActionResult:
        with self._lock:
            now = self._clock()
            if not is_valid_duration(duration_seconds):
                return self._result_locked(
                    ACTION_UPDATE_PRESET_DURATION, False, REASON_INVALID_DURATION, now
                )
            is_active = preset_id == self._active.id
            if preset_id not in self._presets and not is_active:
                return self._result_locked(
                    ACTION_UPDATE_PRESET_DURATION, False, REASON_UNKNOWN_PRESET, now
                )

            new_duration = cast(int, duration_seconds)
            stored = self._presets.get(preset_id)
            if stored is not None:
                self._presets[preset_id] = replace(stored, duration_seconds=new_duration)
            if is_active:
                self._stop_locked(replace(self._active, duration_seconds=new_duration))

            self._logger.info(
                "Preset duration updated: preset=%s duration=%ss active=%s",
                preset_id,
                new_duration,
                is_active,
            )
            return self._result_locked(
                ACTION_UPDATE_PRESET_DURATION, True, REASON_UPDATED, now
            )

    def tick(self) -> Optional[PomodoroTick]:
        """Advance a running countdown; returns None unless running."""
        with self._lock:
            if self._phase != PHASE_RUNNING:
                return None

            now = self._clock()
            self._remaining_seconds = self._running_remaining_locked(now)
            if self._remaining_seconds > 0:
                return PomodoroTick(snapshot=self._snapshot_locked(now))

            self._phase = PHASE_COMPLETED
            self._deadline = None
            event: Optional[SessionCompleted] = None
            if self._active.countable:
                event = SessionCompleted(
                    occurred_at=self._wall_clock(),
                    duration_seconds=self._active.duration_seconds,
                    preset_id=self._active.id,
                )
            self._logger.info(
                "Pomodoro completed: preset=%s countable=%s",
                self._active.id,
                self._active.countable,
            )
            return PomodoroTick(
                snapshot=self._snapshot_locked(now),
                completed=True,
                event=event,
            )

    def _stop_locked(self, preset: Preset) -> None:
        self._active = preset
        self._phase = PHASE_IDLE
        self._remaining_seconds = preset.duration_seconds
        self._deadline = None

    def _result_locked(
        self,
        action: PomodoroAction,
        accepted: bool,
        reason: str,
        now: float,
    ) -> PomodoroActionResult:
        return PomodoroActionResult(
            action=action,
            accepted=accepted,
            reason=reason,
            snapshot=self._snapshot_locked(now),
        )

    def _snapshot_locked(self, now: float) -> PomodoroSnapshot:
        if self._phase == PHASE_RUNNING:
            remaining = self._running_remaining_locked(now)
        else:
            remaining = self._remaining_seconds
        return PomodoroSnapshot(
            phase=self._phase,
            active_preset=self._active,
            remaining_seconds=remaining,
            presets=tuple(self._presets.values()),
        )

    def _running_remaining_locked(self, now: float) -> int:
        if self._deadline is None:
            return self._remaining_seconds
        remaining = int(math.ceil(self._deadline - now))
        # Never count back up, even if the monotonic source misbehaves.
        return max(0, min(self._remaining_seconds, remaining))


def _preset_table(
    presets: Optional[Union[Mapping[str, Preset], Iterable[Preset]]],
) -> dict[str, Preset]:
    if presets is None:
        return default_preset_table()
    values = presets.values() if isinstance(presets, Mapping) else presets
    return {preset.id: preset for preset in values if is_valid_preset(preset)}
