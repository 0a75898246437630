from .constants import DEFAULT_POMODORO_SECONDS, DEFAULT_PRESET_ID
from .presets import DEFAULT_PRESETS, Preset, default_preset_table
from .service import (
    PomodoroAction,
    PomodoroActionResult,
    PomodoroPhase,
    PomodoroSnapshot,
    PomodoroTick,
    PomodoroTimer,
)

__all__ = [
    "DEFAULT_POMODORO_SECONDS",
    "DEFAULT_PRESETS",
    "DEFAULT_PRESET_ID",
    "PomodoroAction",
    "PomodoroActionResult",
    "PomodoroPhase",
    "PomodoroSnapshot",
    "PomodoroTick",
    "PomodoroTimer",
    "Preset",
    "default_preset_table",
]
