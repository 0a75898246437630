"""Status, completion, and rejection text builders for timer flows."""

from __future__ import annotations

from pomodoro import PomodoroSnapshot
from pomodoro.constants import (
    ACTION_COMPLETED,
    ACTION_PAUSE,
    ACTION_RESET,
    ACTION_START,
    ACTION_SWITCH_PRESET,
    ACTION_UPDATE_PRESET_DURATION,
    PHASE_COMPLETED,
    PHASE_PAUSED,
    PHASE_RUNNING,
    REASON_ALREADY_RUNNING,
    REASON_DEADLINE_REACHED,
    REASON_INVALID_DURATION,
    REASON_NOT_RUNNING,
    REASON_UNKNOWN_PRESET,
)
from session_stats import Achievement, Stats


def format_duration(seconds: int) -> str:
    """Format a duration in seconds as `MM:SS`."""
    minutes, remainder = divmod(max(0, int(seconds)), 60)
    return f"{minutes:02d}:{remainder:02d}"


def format_focus_time(seconds: int) -> str:
    """Format accumulated focus time as `Xh Ym`, or `Ym` below one hour."""
    hours, remainder = divmod(max(0, int(seconds)), 3600)
    minutes = remainder // 60
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def timer_status_message(snapshot: PomodoroSnapshot) -> str:
    """Build status text for the current timer snapshot."""
    preset_id = snapshot.active_preset.id
    if snapshot.phase == PHASE_RUNNING:
        return f"{preset_id} running ({format_duration(snapshot.remaining_seconds)} left)"
    if snapshot.phase == PHASE_PAUSED:
        return f"{preset_id} paused ({format_duration(snapshot.remaining_seconds)} left)"
    if snapshot.phase == PHASE_COMPLETED:
        return f"{preset_id} complete"
    return f"{preset_id} ready ({format_duration(snapshot.remaining_seconds)})"


def default_timer_text(action: str, snapshot: PomodoroSnapshot) -> str:
    """Return text for accepted timer actions."""
    preset_id = snapshot.active_preset.id
    if action == ACTION_START:
        return f"Starting {preset_id} with {format_duration(snapshot.remaining_seconds)} left."
    if action == ACTION_PAUSE:
        return f"Paused {preset_id}."
    if action == ACTION_RESET:
        return f"Reset {preset_id} to {format_duration(snapshot.duration_seconds)}."
    if action == ACTION_SWITCH_PRESET:
        return f"Switched to {preset_id} ({format_duration(snapshot.duration_seconds)})."
    if action == ACTION_UPDATE_PRESET_DURATION:
        return "Preset duration updated."
    if action == ACTION_COMPLETED:
        if snapshot.active_preset.countable:
            return f"{preset_id} session complete. Nice work."
        return f"{preset_id} is over."
    return "Timer updated."


def timer_rejection_text(action: str, reason: str) -> str:
    """Return text explaining why a timer action was ignored."""
    if reason == REASON_ALREADY_RUNNING and action == ACTION_START:
        return "The timer is already running."
    if reason == REASON_NOT_RUNNING and action == ACTION_PAUSE:
        return "The timer is not running."
    if reason == REASON_DEADLINE_REACHED:
        return "The countdown has already finished."
    if reason == REASON_UNKNOWN_PRESET:
        return "That preset does not exist."
    if reason == REASON_INVALID_DURATION:
        return "Durations must be a positive number of seconds."
    return "That timer action is not possible right now."


def completion_summary(stats: Stats) -> str:
    """Summarize totals after a recorded session."""
    days = "day" if stats.current_streak_days == 1 else "days"
    return (
        f"{stats.sessions_completed} sessions, "
        f"{format_focus_time(stats.total_focus_seconds)} focused, "
        f"{stats.current_streak_days} {days} streak"
    )


def achievement_text(achievement: Achievement) -> str:
    return f"Achievement unlocked: {achievement.name}"
