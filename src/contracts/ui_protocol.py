"""Web UI websocket event, command, and state constants."""

from __future__ import annotations

# Websocket event types
EVENT_HELLO = "hello"
EVENT_STATE_UPDATE = "state_update"
EVENT_TIMER = "timer"
EVENT_STATS = "stats"
EVENT_PREFERENCES = "preferences"
EVENT_SESSION_COMPLETED = "session_completed"
EVENT_ACHIEVEMENT_UNLOCKED = "achievement_unlocked"
EVENT_ERROR = "error"

# Inbound message types
MESSAGE_COMMAND = "command"

# Commands accepted from the UI
COMMAND_START = "start"
COMMAND_PAUSE = "pause"
COMMAND_RESET = "reset"
COMMAND_SWITCH_PRESET = "switch_preset"
COMMAND_UPDATE_PRESET_DURATION = "update_preset_duration"
COMMAND_UPDATE_PREFERENCE = "update_preference"
COMMAND_RESET_STATISTICS = "reset_statistics"
COMMAND_SYNC = "sync"

# UI runtime states
STATE_IDLE = "idle"
STATE_RUNNING = "running"
STATE_PAUSED = "paused"
STATE_COMPLETED = "completed"
STATE_ERROR = "error"

STICKY_EVENT_TYPES: frozenset[str] = frozenset(
    {
        EVENT_STATE_UPDATE,
        EVENT_TIMER,
        EVENT_STATS,
        EVENT_PREFERENCES,
        EVENT_ERROR,
    }
)

STICKY_EVENT_ORDER: tuple[str, ...] = (
    EVENT_TIMER,
    EVENT_STATS,
    EVENT_PREFERENCES,
    EVENT_ERROR,
    EVENT_STATE_UPDATE,
)
