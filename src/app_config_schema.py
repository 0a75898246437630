"""Dataclass schema objects used by runtime configuration loading."""

from __future__ import annotations

from dataclasses import dataclass, field

from pomodoro.constants import DEFAULT_PRESET_ID
from pomodoro.presets import DEFAULT_PRESETS
from storage.snapshot import DEFAULT_STORAGE_KEY

DEFAULT_CONFIG_FILE = "config.toml"
DEFAULT_STORAGE_DIRECTORY = "~/.local/share/autobot-timer"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class AppConfigurationError(Exception):
    """Raised when application configuration fails."""


@dataclass(frozen=True)
class PresetSettings:
    """One countdown preset from `[timer.presets.<id>]`."""
    id: str
    duration_seconds: int
    countable: bool = False


def _default_preset_settings() -> tuple[PresetSettings, ...]:
    return tuple(
        PresetSettings(
            id=preset.id,
            duration_seconds=preset.duration_seconds,
            countable=preset.countable,
        )
        for preset in DEFAULT_PRESETS
    )


@dataclass(frozen=True)
class TimerSettings:
    """Preset table and tick cadence from `[timer]`."""
    active_preset: str = DEFAULT_PRESET_ID
    presets: tuple[PresetSettings, ...] = field(default_factory=_default_preset_settings)
    tick_interval_seconds: float = 1.0


@dataclass(frozen=True)
class StorageSettings:
    """Snapshot persistence settings from `[storage]`.

    With `enabled = false` the snapshot lives in memory only and is lost on exit.
    """
    enabled: bool = True
    directory: str = DEFAULT_STORAGE_DIRECTORY
    key: str = DEFAULT_STORAGE_KEY


@dataclass(frozen=True)
class UIServerSettings:
    """Built-in UI server settings from `[ui_server]`."""
    enabled: bool = True
    host: str = "127.0.0.1"
    port: int = 8765
    index_file: str = ""


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class AppConfig:
    """Complete typed runtime configuration loaded from `config.toml`."""
    timer: TimerSettings = field(default_factory=TimerSettings)
    storage: StorageSettings = field(default_factory=StorageSettings)
    ui_server: UIServerSettings = field(default_factory=UIServerSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    source_file: str = ""
