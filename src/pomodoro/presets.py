"""Countdown preset definitions and the default preset table."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .constants import (
    PRESET_BREAK,
    PRESET_FOCUS,
    PRESET_SHORT_BREAK,
    PRESET_SHORT_FOCUS,
)


@dataclass(frozen=True)
class Preset:
    """Named countdown configuration.

    `countable` presets record a completed session when they reach zero;
    the others (breaks) complete silently.
    """
    id: str
    duration_seconds: int
    countable: bool = False


DEFAULT_PRESETS: tuple[Preset, ...] = (
    Preset(PRESET_FOCUS, 25 * 60, countable=True),
    Preset(PRESET_SHORT_FOCUS, 15 * 60, countable=True),
    Preset(PRESET_BREAK, 5 * 60, countable=False),
    Preset(PRESET_SHORT_BREAK, 3 * 60, countable=False),
)


def default_preset_table() -> dict[str, Preset]:
    return {preset.id: preset for preset in DEFAULT_PRESETS}


def is_valid_duration(value: Any) -> bool:
    """Durations are positive integers; bools are rejected explicitly."""
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def is_valid_preset(preset: Any) -> bool:
    return (
        isinstance(preset, Preset)
        and isinstance(preset.id, str)
        and bool(preset.id.strip())
        and is_valid_duration(preset.duration_seconds)
    )


def preset_to_dict(preset: Preset) -> dict[str, Any]:
    return {
        "duration_seconds": preset.duration_seconds,
        "countable": preset.countable,
    }


def presets_to_dict(presets: Mapping[str, Preset]) -> dict[str, dict[str, Any]]:
    return {preset_id: preset_to_dict(preset) for preset_id, preset in presets.items()}
