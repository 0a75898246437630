"""State, action, and reason constants used by the timer state machine."""

from __future__ import annotations

PRESET_FOCUS = "focus"
PRESET_SHORT_FOCUS = "shortFocus"
PRESET_BREAK = "break"
PRESET_SHORT_BREAK = "shortBreak"

DEFAULT_PRESET_ID = PRESET_FOCUS
DEFAULT_POMODORO_SECONDS = 25 * 60

PHASE_IDLE = "idle"
PHASE_RUNNING = "running"
PHASE_PAUSED = "paused"
PHASE_COMPLETED = "completed"

ACTIVE_PHASES: frozenset[str] = frozenset({PHASE_RUNNING, PHASE_PAUSED})

ACTION_START = "start"
ACTION_PAUSE = "pause"
ACTION_RESET = "reset"
ACTION_SWITCH_PRESET = "switch_preset"
ACTION_UPDATE_PRESET_DURATION = "update_preset_duration"

ACTION_SYNC = "sync"
ACTION_TICK = "tick"
ACTION_COMPLETED = "completed"

REASON_STARTED = "started"
REASON_RESTARTED = "restarted"
REASON_RESUMED = "resumed"
REASON_RESET = "reset"
REASON_PAUSED = "paused"
REASON_SWITCHED = "switched"
REASON_UPDATED = "updated"
REASON_ALREADY_RUNNING = "already_running"
REASON_NOT_RUNNING = "not_running"
REASON_UNKNOWN_PRESET = "unknown_preset"
REASON_INVALID_DURATION = "invalid_duration"
REASON_DEADLINE_REACHED = "deadline_reached"
REASON_UNSUPPORTED_ACTION = "unsupported_action"

REASON_TICK = "tick"
REASON_COMPLETED = "completed"
REASON_STARTUP = "startup"
