import json
import logging
import tempfile
import threading
import unittest
from pathlib import Path

from pomodoro import Preset
from session_stats import Achievement, StatBucketEntry, Stats
from storage import (
    DEFAULT_PREFERENCES,
    AppSnapshot,
    JsonFileBackend,
    MemoryBackend,
    PersistedTimer,
    SnapshotStore,
    SnapshotWriter,
    default_snapshot,
    merge_over_defaults,
    snapshot_from_payload,
    snapshot_to_payload,
)

_LOGGER = logging.getLogger("test.storage")


class _FailingBackend:
    def __init__(self):
        self.write_attempts = 0

    def read(self):
        raise OSError("disk unavailable")

    def write(self, blob: str) -> None:
        self.write_attempts += 1
        raise OSError("disk full")


class _BlockingBackend(MemoryBackend):
    """Holds the first write until released so later submits can pile up."""

    def __init__(self):
        super().__init__()
        self.release = threading.Event()
        self.entered = threading.Event()
        self.blobs: list[str] = []

    def write(self, blob: str) -> None:
        self.entered.set()
        self.release.wait(timeout=5.0)
        self.blobs.append(blob)
        super().write(blob)


def _busy_snapshot() -> AppSnapshot:
    focus = Preset("focus", 1200, countable=True)
    return AppSnapshot(
        timer=PersistedTimer(
            active_preset=focus,
            presets=(
                focus,
                Preset("shortFocus", 900, countable=True),
                Preset("break", 300),
                Preset("shortBreak", 180),
            ),
        ),
        stats=Stats(
            sessions_completed=3,
            total_focus_seconds=3600,
            current_streak_days=2,
            longest_streak_days=4,
            last_session_date="2024-06-02",
            daily_series=(
                StatBucketEntry("2024-06-01", 1, 1200),
                StatBucketEntry("2024-06-02", 2, 2400),
            ),
            monthly_series=(StatBucketEntry("2024-06", 3, 3600),),
            yearly_series=(StatBucketEntry("2024", 3, 3600),),
        ),
        achievements=(
            Achievement("first-session", "First Focus Session", True, "2024-06-01"),
            Achievement("three-day-streak", "3 Day Streak"),
            Achievement("seven-day-streak", "7 Day Streak"),
        ),
        preferences={**DEFAULT_PREFERENCES, "sound_enabled": False},
    )


class SnapshotCodecTests(unittest.TestCase):
    def test_payload_round_trip_reproduces_snapshot(self) -> None:
        snapshot = _busy_snapshot()
        blob = json.dumps(snapshot_to_payload(snapshot))

        restored = snapshot_from_payload(json.loads(blob), default_snapshot())

        self.assertEqual(snapshot, restored)
        self.assertEqual(snapshot_to_payload(snapshot), snapshot_to_payload(restored))

    def test_merge_fills_missing_fields_and_rejects_wrong_types(self) -> None:
        defaults = {"a": 1, "nested": {"b": True, "c": "x"}, "items": []}
        merged = merge_over_defaults(
            {"nested": {"b": "yes"}, "items": [1], "extra": 5},
            defaults,
        )
        self.assertEqual(
            {"a": 1, "nested": {"b": True, "c": "x"}, "items": [1], "extra": 5},
            merged,
        )

    def test_partial_payload_is_merged_over_defaults(self) -> None:
        restored = snapshot_from_payload(
            {"version": 1, "stats": {"sessions_completed": 7}},
            default_snapshot(),
        )

        self.assertEqual(7, restored.stats.sessions_completed)
        self.assertEqual(0, restored.stats.total_focus_seconds)
        self.assertIsNone(restored.stats.last_session_date)
        self.assertEqual("focus", restored.timer.active_preset.id)
        self.assertEqual(4, len(restored.timer.presets))
        self.assertEqual(dict(DEFAULT_PREFERENCES), dict(restored.preferences))
        self.assertEqual(3, len(restored.achievements))

    def test_malformed_fields_fall_back_per_field(self) -> None:
        payload = snapshot_to_payload(_busy_snapshot())
        payload["stats"]["sessions_completed"] = "many"
        payload["stats"]["daily_series"].append({"bucket_key": "June 3", "session_count": 1})
        payload["timer"]["presets"]["focus"]["duration_seconds"] = -10

        restored = snapshot_from_payload(payload, default_snapshot())

        self.assertEqual(0, restored.stats.sessions_completed)
        self.assertEqual(2, len(restored.stats.daily_series))
        self.assertEqual(1500, restored.timer.presets[0].duration_seconds)
        self.assertEqual(1200, restored.timer.active_preset.duration_seconds)
        self.assertEqual(3600, restored.stats.total_focus_seconds)

    def test_configured_countability_wins_over_stored_flag(self) -> None:
        payload = snapshot_to_payload(_busy_snapshot())
        defaults = default_snapshot(
            [Preset("focus", 1500, countable=False), Preset("break", 300, countable=True)],
        )

        restored = snapshot_from_payload(payload, defaults)
        table = {preset.id: preset for preset in restored.timer.presets}

        self.assertFalse(table["focus"].countable)
        self.assertFalse(restored.timer.active_preset.countable)
        self.assertTrue(table["break"].countable)
        self.assertFalse(table["shortBreak"].countable)

    def test_unknown_active_preset_falls_back_to_configured_active(self) -> None:
        payload = snapshot_to_payload(_busy_snapshot())
        payload["timer"]["active_preset"] = {"id": "ghost", "duration_seconds": 60, "countable": True}
        payload["timer"]["presets"] = {}

        restored = snapshot_from_payload(payload, default_snapshot())

        self.assertEqual(Preset("focus", 1500, countable=True), restored.timer.active_preset)
        self.assertNotIn("ghost", [preset.id for preset in restored.timer.presets])

    def test_unversioned_camel_case_payload_is_migrated(self) -> None:
        legacy = {
            "activePreset": {"id": "shortFocus", "duration": 900, "label": "Short"},
            "presets": {"focus": 1500, "shortFocus": 900, "break": 300, "shortBreak": 180},
            "stats": {
                "sessionsCompleted": 5,
                "totalFocusTime": 6600,
                "currentStreak": 2,
                "longestStreak": 3,
                "lastSessionDate": "2024-04-02",
                "weeklyStats": [
                    {"date": "2024-04-01", "sessions": 3, "focusTime": 4200},
                    {"date": "2024-04-02", "sessions": 2, "focusTime": 2400},
                ],
                "monthlyStats": [{"date": "2024-04", "sessions": 5, "focusTime": 6600}],
                "yearlyStats": [{"date": "2024", "sessions": 5, "focusTime": 6600}],
            },
            "preferences": {"soundEnabled": False, "youtubeUrl": "https://example.invalid"},
        }

        restored = snapshot_from_payload(legacy, default_snapshot())

        self.assertEqual("shortFocus", restored.timer.active_preset.id)
        self.assertTrue(restored.timer.active_preset.countable)
        self.assertEqual(5, restored.stats.sessions_completed)
        self.assertEqual(6600, restored.stats.total_focus_seconds)
        self.assertEqual(
            StatBucketEntry("2024-04-01", 3, 4200),
            restored.stats.bucket("daily", "2024-04-01"),
        )
        self.assertEqual(1, len(restored.stats.monthly_series))
        self.assertFalse(restored.preferences["sound_enabled"])
        self.assertEqual("https://example.invalid", restored.preferences["youtube_url"])
        self.assertEqual("bar", restored.preferences["analytics_view"])
        self.assertEqual(1, restored.version)


class SnapshotStoreTests(unittest.TestCase):
    def test_missing_blob_returns_defaults(self) -> None:
        store = SnapshotStore(MemoryBackend(), logger=_LOGGER)
        self.assertEqual(store.defaults, store.load())

    def test_corrupt_blob_returns_defaults(self) -> None:
        for blob in ("{not json", "[1, 2, 3]", "null", '"text"'):
            with self.subTest(blob=blob):
                store = SnapshotStore(MemoryBackend(blob), logger=_LOGGER)
                self.assertEqual(store.defaults, store.load())

    def test_unsupported_version_returns_defaults(self) -> None:
        for version in (-1, -7):
            with self.subTest(version=version):
                store = SnapshotStore(MemoryBackend(json.dumps({"version": version})), logger=_LOGGER)
                with self.assertLogs("test.storage", level="WARNING"):
                    self.assertEqual(store.defaults, store.load())

    def test_save_then_load_round_trips(self) -> None:
        backend = MemoryBackend()
        store = SnapshotStore(backend, logger=_LOGGER)
        snapshot = _busy_snapshot()

        self.assertTrue(store.save(snapshot))

        self.assertEqual(1, backend.writes)
        self.assertEqual(snapshot, store.load())

    def test_backend_failures_are_logged_and_swallowed(self) -> None:
        backend = _FailingBackend()
        store = SnapshotStore(backend, logger=_LOGGER)

        with self.assertLogs("test.storage", level="ERROR"):
            loaded = store.load()
        with self.assertLogs("test.storage", level="ERROR"):
            saved = store.save(_busy_snapshot())

        self.assertEqual(store.defaults, loaded)
        self.assertFalse(saved)
        self.assertEqual(1, backend.write_attempts)

    def test_json_file_backend_writes_keyed_file(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            backend = JsonFileBackend(Path(temp_dir) / "nested", "timerState")
            store = SnapshotStore(backend, logger=_LOGGER)

            self.assertIsNone(backend.read())
            store.save(_busy_snapshot())

            self.assertEqual(Path(temp_dir) / "nested" / "timerState.json", backend.path)
            self.assertTrue(backend.path.is_file())
            self.assertEqual([backend.path.name], [p.name for p in backend.path.parent.iterdir()])
            self.assertEqual(3, json.loads(backend.path.read_text())["stats"]["sessions_completed"])
            self.assertEqual(_busy_snapshot(), store.load())

    def test_json_file_backend_failed_write_keeps_previous_file(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            backend = JsonFileBackend(Path(temp_dir), "timerState")
            backend.write('{"version": 1}')

            with self.assertRaises(UnicodeEncodeError):
                backend.write("\ud800")

            self.assertEqual(["timerState.json"], [p.name for p in Path(temp_dir).iterdir()])
            self.assertEqual('{"version": 1}', backend.read())

    def test_json_file_backend_rejects_path_like_keys(self) -> None:
        for key in ("../escape", "", "a/b", ".."):
            with self.subTest(key=key):
                with self.assertRaises(ValueError):
                    JsonFileBackend(Path("/tmp"), key)


class SnapshotWriterTests(unittest.TestCase):
    def test_flush_waits_for_pending_write(self) -> None:
        backend = MemoryBackend()
        writer = SnapshotWriter(SnapshotStore(backend, logger=_LOGGER), logger=_LOGGER)
        try:
            writer.submit(_busy_snapshot())
            writer.flush()
            self.assertEqual(1, backend.writes)
        finally:
            writer.close()

    def test_submits_during_a_write_are_coalesced(self) -> None:
        backend = _BlockingBackend()
        writer = SnapshotWriter(SnapshotStore(backend, logger=_LOGGER), logger=_LOGGER)
        first = _busy_snapshot()
        latest = default_snapshot()
        try:
            writer.submit(first)
            self.assertTrue(backend.entered.wait(timeout=5.0))
            writer.submit(_busy_snapshot())
            writer.submit(latest)
            backend.release.set()
            writer.flush()
        finally:
            writer.close()

        self.assertEqual(2, len(backend.blobs))
        self.assertEqual(snapshot_to_payload(latest), json.loads(backend.blobs[-1]))

    def test_submit_after_close_is_dropped(self) -> None:
        backend = MemoryBackend()
        writer = SnapshotWriter(SnapshotStore(backend, logger=_LOGGER), logger=_LOGGER)
        writer.close()

        with self.assertLogs("test.storage", level="WARNING"):
            writer.submit(_busy_snapshot())

        self.assertEqual(0, backend.writes)


if __name__ == "__main__":
    unittest.main()
