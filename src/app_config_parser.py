"""Typed parser for config.toml sections into immutable app settings."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from app_config_schema import (
    DEFAULT_STORAGE_DIRECTORY,
    LOG_LEVELS,
    AppConfig,
    AppConfigurationError,
    LoggingSettings,
    PresetSettings,
    StorageSettings,
    TimerSettings,
    UIServerSettings,
)
from pomodoro.constants import DEFAULT_PRESET_ID
from pomodoro.presets import DEFAULT_PRESETS
from storage.backends import validate_storage_key
from storage.snapshot import DEFAULT_STORAGE_KEY


def parse_app_config(
    raw: Mapping[str, Any],
    *,
    base_dir: Path,
    source_file: str,
) -> AppConfig:
    """Parse raw TOML mappings into strongly typed application settings."""
    timer = _parse_timer_settings(_section(raw, "timer"))
    storage = _parse_storage_settings(_section(raw, "storage"), base_dir=base_dir)
    ui_server = _parse_ui_server_settings(_section(raw, "ui_server"), base_dir=base_dir)
    logging_settings = _parse_logging_settings(_section(raw, "logging"))

    return AppConfig(
        timer=timer,
        storage=storage,
        ui_server=ui_server,
        logging=logging_settings,
        source_file=source_file,
    )


def _parse_timer_settings(section: Mapping[str, Any]) -> TimerSettings:
    presets = _parse_presets(_section(section, "presets", parent="timer"))
    active_preset = _as_str(
        section.get("active_preset", DEFAULT_PRESET_ID),
        "timer.active_preset",
    )
    known = {preset.id for preset in presets}
    if active_preset not in known:
        allowed = ", ".join(sorted(known))
        raise AppConfigurationError(
            f"timer.active_preset must be one of: {allowed}."
        )

    tick_interval = _as_float(
        section.get("tick_interval_seconds", 1.0),
        "timer.tick_interval_seconds",
    )
    if tick_interval <= 0:
        raise AppConfigurationError("timer.tick_interval_seconds must be positive.")

    return TimerSettings(
        active_preset=active_preset,
        presets=presets,
        tick_interval_seconds=tick_interval,
    )


def _parse_presets(section: Mapping[str, Any]) -> tuple[PresetSettings, ...]:
    """Merge `[timer.presets.<id>]` tables over the built-in preset table.

    Built-in presets keep their position; new ids are appended in file order.
    """
    merged: dict[str, PresetSettings] = {
        preset.id: PresetSettings(
            id=preset.id,
            duration_seconds=preset.duration_seconds,
            countable=preset.countable,
        )
        for preset in DEFAULT_PRESETS
    }
    for preset_id, raw in section.items():
        field_prefix = f"timer.presets.{preset_id}"
        if not isinstance(raw, Mapping):
            raise AppConfigurationError(f"[{field_prefix}] must be a table.")
        if not str(preset_id).strip():
            raise AppConfigurationError("timer.presets ids cannot be empty.")

        base = merged.get(preset_id)
        if base is None and "duration_seconds" not in raw:
            raise AppConfigurationError(f"{field_prefix}.duration_seconds is required.")

        duration = _as_int(
            raw.get("duration_seconds", base.duration_seconds if base else 0),
            f"{field_prefix}.duration_seconds",
        )
        if duration <= 0:
            raise AppConfigurationError(
                f"{field_prefix}.duration_seconds must be a positive integer."
            )
        merged[preset_id] = PresetSettings(
            id=preset_id,
            duration_seconds=duration,
            countable=_as_bool(
                raw.get("countable", base.countable if base else False),
                f"{field_prefix}.countable",
            ),
        )
    return tuple(merged.values())


def _parse_storage_settings(
    section: Mapping[str, Any],
    *,
    base_dir: Path,
) -> StorageSettings:
    directory = _as_str(
        section.get("directory", DEFAULT_STORAGE_DIRECTORY),
        "storage.directory",
    ) or DEFAULT_STORAGE_DIRECTORY
    key = _as_str(section.get("key", DEFAULT_STORAGE_KEY), "storage.key") or DEFAULT_STORAGE_KEY
    try:
        key = validate_storage_key(key)
    except ValueError as error:
        raise AppConfigurationError(f"storage.key is invalid: {error}") from error
    return StorageSettings(
        enabled=_as_bool(section.get("enabled", True), "storage.enabled"),
        directory=_resolve_path(base_dir, directory),
        key=key,
    )


def _parse_ui_server_settings(
    section: Mapping[str, Any],
    *,
    base_dir: Path,
) -> UIServerSettings:
    index_file = _as_str(section.get("index_file", ""), "ui_server.index_file")
    return UIServerSettings(
        enabled=_as_bool(section.get("enabled", True), "ui_server.enabled"),
        host=_as_str(section.get("host", "127.0.0.1"), "ui_server.host"),
        port=_as_int(section.get("port", 8765), "ui_server.port"),
        index_file=_resolve_path(base_dir, index_file) if index_file else "",
    )


def _parse_logging_settings(section: Mapping[str, Any]) -> LoggingSettings:
    level = _as_str(section.get("level", "INFO"), "logging.level").upper() or "INFO"
    if level not in LOG_LEVELS:
        allowed = ", ".join(LOG_LEVELS)
        raise AppConfigurationError(f"logging.level must be one of: {allowed}.")
    return LoggingSettings(level=level)


def _section(
    root: Mapping[str, Any],
    name: str,
    *,
    parent: str = "",
) -> Mapping[str, Any]:
    raw = root.get(name, {})
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        label = f"{parent}.{name}" if parent else name
        raise AppConfigurationError(f"[{label}] must be a table.")
    return raw


def _as_str(value: Any, field: str) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    raise AppConfigurationError(f"{field} must be a string.")


def _as_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off"):
            return False
    raise AppConfigurationError(f"{field} must be a boolean.")


def _as_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise AppConfigurationError(f"{field} must be an integer.")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError as error:
            raise AppConfigurationError(f"{field} must be an integer.") from error
    raise AppConfigurationError(f"{field} must be an integer.")


def _as_float(value: Any, field: str) -> float:
    if isinstance(value, bool):
        raise AppConfigurationError(f"{field} must be a float.")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError as error:
            raise AppConfigurationError(f"{field} must be a float.") from error
    raise AppConfigurationError(f"{field} must be a float.")


def _resolve_path(base_dir: Path, raw: str) -> str:
    if not raw:
        return ""
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = (base_dir / path).resolve()
    return str(path)
