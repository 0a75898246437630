"""Persisted snapshot model, declarative defaults, and the JSON payload codec."""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Iterable, Mapping, Optional

from pomodoro import DEFAULT_PRESET_ID, Preset, default_preset_table
from pomodoro.presets import is_valid_duration, is_valid_preset, preset_to_dict
from session_stats import (
    EMPTY_STATS,
    SERIES_CAPS,
    SERIES_DAILY,
    SERIES_MONTHLY,
    SERIES_YEARLY,
    Achievement,
    StatBucketEntry,
    Stats,
    default_achievements,
)
from session_stats.buckets import day_key, parse_day

SCHEMA_VERSION = 1
DEFAULT_STORAGE_KEY = "timerState"

DEFAULT_PREFERENCES: dict[str, Any] = {
    "sound_enabled": True,
    "analytics_view": "bar",
    "faction": "autobots",
    "character": "optimus",
    "theme": "autobots",
    "youtube_url": "",
}

_SERIES_FIELDS: dict[str, str] = {
    SERIES_DAILY: "daily_series",
    SERIES_MONTHLY: "monthly_series",
    SERIES_YEARLY: "yearly_series",
}
_SERIES_KEY_PATTERNS: dict[str, re.Pattern[str]] = {
    SERIES_DAILY: re.compile(r"\d{4}-\d{2}-\d{2}"),
    SERIES_MONTHLY: re.compile(r"\d{4}-\d{2}"),
    SERIES_YEARLY: re.compile(r"\d{4}"),
}


class SnapshotError(Exception):
    """Raised when a persisted payload cannot be turned into a snapshot."""


@dataclass(frozen=True)
class PersistedTimer:
    """Persisted part of the timer: the active preset and the preset table."""
    active_preset: Preset
    presets: tuple[Preset, ...]


@dataclass(frozen=True)
class AppSnapshot:
    """Everything persisted under the storage key."""
    timer: PersistedTimer
    stats: Stats = EMPTY_STATS
    achievements: tuple[Achievement, ...] = field(default_factory=default_achievements)
    preferences: Mapping[str, Any] = field(default_factory=lambda: dict(DEFAULT_PREFERENCES))
    version: int = SCHEMA_VERSION


def default_snapshot(
    presets: Optional[Iterable[Preset]] = None,
    active_preset_id: str = DEFAULT_PRESET_ID,
) -> AppSnapshot:
    table = (
        {preset.id: preset for preset in presets}
        if presets is not None
        else default_preset_table()
    )
    if not table:
        table = default_preset_table()
    active = table.get(active_preset_id) or next(iter(table.values()))
    return AppSnapshot(
        timer=PersistedTimer(active_preset=active, presets=tuple(table.values())),
    )


def snapshot_to_payload(snapshot: AppSnapshot) -> dict[str, Any]:
    """Encode a snapshot into plain JSON-compatible data."""
    active = snapshot.timer.active_preset
    stats = snapshot.stats
    return {
        "version": snapshot.version,
        "timer": {
            "active_preset": {"id": active.id, **preset_to_dict(active)},
            "presets": {
                preset.id: preset_to_dict(preset) for preset in snapshot.timer.presets
            },
        },
        "preferences": copy.deepcopy(dict(snapshot.preferences)),
        "stats": {
            "sessions_completed": stats.sessions_completed,
            "total_focus_seconds": stats.total_focus_seconds,
            "current_streak_days": stats.current_streak_days,
            "longest_streak_days": stats.longest_streak_days,
            "last_session_date": stats.last_session_date,
            **{
                field_name: [_entry_to_dict(entry) for entry in stats.series(name)]
                for name, field_name in _SERIES_FIELDS.items()
            },
        },
        "achievements": [
            {
                "id": achievement.id,
                "name": achievement.name,
                "unlocked": achievement.unlocked,
                "date": achievement.date,
            }
            for achievement in snapshot.achievements
        ],
    }


def snapshot_from_payload(
    raw: Mapping[str, Any],
    defaults: AppSnapshot,
) -> AppSnapshot:
    """Decode a stored payload, filling anything missing or malformed from defaults."""
    if not isinstance(raw, Mapping):
        raise SnapshotError("Snapshot payload must be an object.")

    payload = _migrate(raw)
    merged = merge_over_defaults(payload, snapshot_to_payload(defaults))

    timer = _parse_timer(merged["timer"], defaults.timer)
    stats = _parse_stats(merged["stats"])
    achievements = _parse_achievements(merged["achievements"], defaults.achievements)
    preferences = merged["preferences"]
    return AppSnapshot(
        timer=timer,
        stats=stats,
        achievements=achievements,
        preferences=preferences,
        version=SCHEMA_VERSION,
    )


def merge_over_defaults(raw: Any, defaults: Any) -> Any:
    """Deep-merge ``raw`` onto ``defaults`` field by field.

    Mappings merge recursively and keep keys the defaults do not know about.
    A stored value replaces a default only when its JSON type matches; a
    default of None accepts any stored value.
    """
    if isinstance(defaults, Mapping):
        if not isinstance(raw, Mapping):
            return copy.deepcopy(dict(defaults))
        merged = {
            key: merge_over_defaults(raw[key], value) if key in raw else copy.deepcopy(value)
            for key, value in defaults.items()
        }
        for key, value in raw.items():
            if key not in merged:
                merged[key] = copy.deepcopy(value)
        return merged

    if defaults is None:
        return copy.deepcopy(raw)
    if _same_json_type(raw, defaults):
        return copy.deepcopy(raw)
    return copy.deepcopy(defaults)


def _same_json_type(raw: Any, default: Any) -> bool:
    if isinstance(default, bool) or isinstance(raw, bool):
        return isinstance(default, bool) and isinstance(raw, bool)
    if isinstance(default, (int, float)):
        return isinstance(raw, (int, float))
    if isinstance(default, str):
        return isinstance(raw, str)
    if isinstance(default, list):
        return isinstance(raw, list)
    return type(raw) is type(default)


def _parse_timer(raw: Mapping[str, Any], defaults: PersistedTimer) -> PersistedTimer:
    # Countability of configured presets always comes from configuration.
    configured = {preset.id: preset for preset in defaults.presets}
    presets: dict[str, Preset] = {}
    raw_presets = raw.get("presets")
    if isinstance(raw_presets, Mapping):
        for preset_id, value in raw_presets.items():
            preset = _parse_preset(preset_id, value) or configured.get(preset_id)
            if preset is not None:
                default = configured.get(preset.id)
                countable = default.countable if default is not None else preset.countable
                presets[preset.id] = replace(preset, countable=countable)
    if not presets:
        presets = {preset.id: preset for preset in defaults.presets}

    raw_active = raw.get("active_preset")
    active: Optional[Preset] = None
    if isinstance(raw_active, Mapping):
        active = _parse_preset(raw_active.get("id"), raw_active)
    if active is not None and active.id not in presets:
        active = None
    if active is not None:
        active = replace(active, countable=presets[active.id].countable)
    else:
        active = presets.get(defaults.active_preset.id) or next(iter(presets.values()))
    return PersistedTimer(active_preset=active, presets=tuple(presets.values()))


def _parse_preset(preset_id: Any, raw: Any) -> Optional[Preset]:
    if not isinstance(preset_id, str) or not isinstance(raw, Mapping):
        return None
    duration = raw.get("duration_seconds")
    countable = raw.get("countable", False)
    if not is_valid_duration(duration) or not isinstance(countable, bool):
        return None
    preset = Preset(id=preset_id, duration_seconds=duration, countable=countable)
    return preset if is_valid_preset(preset) else None


def _parse_stats(raw: Mapping[str, Any]) -> Stats:
    last_day = parse_day(raw.get("last_session_date"))
    series = {
        name: _parse_series(name, raw.get(field_name)) for name, field_name in _SERIES_FIELDS.items()
    }
    return Stats(
        sessions_completed=_non_negative_int(raw.get("sessions_completed")),
        total_focus_seconds=_non_negative_int(raw.get("total_focus_seconds")),
        current_streak_days=_non_negative_int(raw.get("current_streak_days")),
        longest_streak_days=_non_negative_int(raw.get("longest_streak_days")),
        last_session_date=day_key(last_day) if last_day is not None else None,
        daily_series=series[SERIES_DAILY],
        monthly_series=series[SERIES_MONTHLY],
        yearly_series=series[SERIES_YEARLY],
    )


def _parse_series(name: str, raw: Any) -> tuple[StatBucketEntry, ...]:
    if not isinstance(raw, list):
        return ()
    pattern = _SERIES_KEY_PATTERNS[name]
    entries: dict[str, StatBucketEntry] = {}
    for item in raw:
        if not isinstance(item, Mapping):
            continue
        key = item.get("bucket_key")
        count = item.get("session_count")
        total = item.get("total_duration_seconds")
        if not isinstance(key, str) or not pattern.fullmatch(key):
            continue
        if not is_valid_duration(count):
            continue
        if not isinstance(total, int) or isinstance(total, bool) or total < 0:
            continue
        entries[key] = StatBucketEntry(
            bucket_key=key,
            session_count=count,
            total_duration_seconds=total,
        )
    kept = sorted(entries)[-SERIES_CAPS[name]:]
    return tuple(entries[key] for key in kept)


def _parse_achievements(
    raw: Any,
    defaults: Iterable[Achievement],
) -> tuple[Achievement, ...]:
    stored: dict[str, Mapping[str, Any]] = {}
    if isinstance(raw, list):
        for item in raw:
            if isinstance(item, Mapping) and isinstance(item.get("id"), str):
                stored[item["id"]] = item

    achievements = []
    for default in defaults:
        item = stored.get(default.id, {})
        unlocked = item.get("unlocked") is True
        unlocked_day = parse_day(item.get("date")) if unlocked else None
        achievements.append(
            Achievement(
                id=default.id,
                name=default.name,
                unlocked=unlocked,
                date=day_key(unlocked_day) if unlocked_day is not None else None,
            )
        )
    return tuple(achievements)


def _non_negative_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return max(0, int(value))


def _entry_to_dict(entry: StatBucketEntry) -> dict[str, Any]:
    return {
        "bucket_key": entry.bucket_key,
        "session_count": entry.session_count,
        "total_duration_seconds": entry.total_duration_seconds,
    }


def _migrate(raw: Mapping[str, Any]) -> Mapping[str, Any]:
    version = raw.get("version", 0)
    if isinstance(version, bool) or not isinstance(version, int):
        version = 0
    payload = raw
    while version < SCHEMA_VERSION:
        migration = _MIGRATIONS.get(version)
        if migration is None:
            raise SnapshotError(f"Unsupported snapshot version: {version}")
        payload = migration(payload)
        version += 1
    return payload


def _migrate_unversioned(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Translate the flat camelCase layout written before schema versioning."""
    presets: dict[str, Any] = {}
    legacy_presets = raw.get("presets")
    if isinstance(legacy_presets, Mapping):
        countable_ids = {
            preset.id for preset in default_preset_table().values() if preset.countable
        }
        for preset_id, duration in legacy_presets.items():
            presets[preset_id] = {
                "duration_seconds": duration,
                "countable": preset_id in countable_ids,
            }

    timer: dict[str, Any] = {"presets": presets}
    legacy_active = raw.get("activePreset")
    if isinstance(legacy_active, Mapping):
        active_id = legacy_active.get("id")
        known = presets.get(active_id, {}) if isinstance(active_id, str) else {}
        timer["active_preset"] = {
            "id": active_id,
            "duration_seconds": legacy_active.get("duration"),
            "countable": known.get("countable", False),
        }

    payload: dict[str, Any] = {"version": 1, "timer": timer}

    legacy_stats = raw.get("stats")
    if isinstance(legacy_stats, Mapping):
        payload["stats"] = {
            "sessions_completed": legacy_stats.get("sessionsCompleted"),
            "total_focus_seconds": legacy_stats.get("totalFocusTime"),
            "current_streak_days": legacy_stats.get("currentStreak"),
            "longest_streak_days": legacy_stats.get("longestStreak"),
            "last_session_date": legacy_stats.get("lastSessionDate"),
            "daily_series": _migrate_legacy_series(legacy_stats.get("weeklyStats")),
            "monthly_series": _migrate_legacy_series(legacy_stats.get("monthlyStats")),
            "yearly_series": _migrate_legacy_series(legacy_stats.get("yearlyStats")),
        }

    legacy_preferences = raw.get("preferences")
    if isinstance(legacy_preferences, Mapping):
        payload["preferences"] = {
            _snake_case(key): value for key, value in legacy_preferences.items()
        }

    if isinstance(raw.get("achievements"), list):
        payload["achievements"] = raw["achievements"]
    return payload


def _migrate_legacy_series(raw: Any) -> list[dict[str, Any]]:
    if not isinstance(raw, list):
        return []
    return [
        {
            "bucket_key": item.get("date"),
            "session_count": item.get("sessions"),
            "total_duration_seconds": item.get("focusTime"),
        }
        for item in raw
        if isinstance(item, Mapping)
    ]


def _snake_case(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


_MIGRATIONS: dict[int, Callable[[Mapping[str, Any]], Mapping[str, Any]]] = {
    0: _migrate_unversioned,
}
