import datetime as dt
import json
import logging
import unittest

from contracts.session_events import SessionCompleted
from pomodoro import Preset
from runtime.controller import ControllerUpdate, SessionCompletedNotice, TimerController
from storage import MemoryBackend, SnapshotStore, SnapshotWriter, default_snapshot

WALL_NOW = dt.datetime(2024, 1, 2, 10, 0, tzinfo=dt.timezone.utc)


class _FakeClock:
    def __init__(self):
        self.now = 50.0

    def __call__(self) -> float:
        return self.now


class _FakeTicker:
    def __init__(self, callback):
        self.callback = callback
        self.starts = 0
        self.stops = 0
        self.is_running = False

    def start(self) -> None:
        self.starts += 1
        self.is_running = True

    def stop(self) -> None:
        self.stops += 1
        self.is_running = False


class TimerControllerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = _FakeClock()
        self.backend = MemoryBackend()
        self.store = SnapshotStore(self.backend, logger=logging.getLogger("test.storage"))
        self.writer = SnapshotWriter(self.store, logger=logging.getLogger("test.storage"))
        self.tickers: list[_FakeTicker] = []
        self.controller = self._controller(default_snapshot(
            [Preset("sprint", 2, countable=True), Preset("rest", 1)],
            "sprint",
        ))
        self.updates: list[ControllerUpdate] = []
        self.notices: list[SessionCompletedNotice] = []
        self.controller.subscribe(self.updates.append)
        self.controller.subscribe_completion(self.notices.append)

    def tearDown(self) -> None:
        self.writer.close()

    def _controller(self, snapshot) -> TimerController:
        def factory(callback):
            ticker = _FakeTicker(callback)
            self.tickers.append(ticker)
            return ticker

        return TimerController.from_snapshot(
            snapshot,
            writer=self.writer,
            clock=self.clock,
            wall_clock=lambda: WALL_NOW,
            ticker_factory=factory,
            logger=logging.getLogger("test.runtime"),
        )

    def _stored_payload(self) -> dict:
        self.writer.flush()
        self.assertIsNotNone(self.backend.blob)
        return json.loads(self.backend.blob)

    def _run_to_completion(self) -> None:
        self.controller.start()
        for _ in range(2):
            self.clock.now += 1
            self.tickers[0].callback()

    def test_start_drives_ticker_and_notifies(self) -> None:
        result = self.controller.start()

        self.assertTrue(result.accepted)
        self.assertTrue(self.controller.is_ticking)
        self.assertEqual(1, self.tickers[0].starts)
        self.assertEqual("start", self.updates[-1].action)
        self.assertEqual("running", self.updates[-1].timer.phase)

    def test_rejected_start_does_not_restart_ticker(self) -> None:
        self.controller.start()
        result = self.controller.start()

        self.assertFalse(result.accepted)
        self.assertEqual(1, self.tickers[0].starts)
        self.assertFalse(self.updates[-1].accepted)

    def test_completion_records_stats_and_notifies_once(self) -> None:
        self._run_to_completion()
        self.assertIsNone(self.controller.tick())

        stats = self.controller.stats_snapshot()
        self.assertEqual(1, stats.sessions_completed)
        self.assertEqual(2, stats.total_focus_seconds)
        self.assertEqual("2024-01-02", stats.last_session_date)
        self.assertFalse(self.controller.is_ticking)
        self.assertEqual(1, len(self.notices))
        self.assertEqual("sprint", self.notices[0].event.preset_id)
        self.assertEqual(["first-session"], [item.id for item in self.notices[0].unlocked])
        self.assertEqual("completed", self.updates[-1].action)
        self.assertEqual(1, self.updates[-1].stats.sessions_completed)

        payload = self._stored_payload()
        self.assertEqual(1, payload["stats"]["sessions_completed"])
        self.assertTrue(payload["achievements"][0]["unlocked"])

    def test_non_countable_completion_leaves_stats_untouched(self) -> None:
        self.controller.switch_preset("rest")
        self.controller.start()
        self.clock.now += 1
        self.tickers[0].callback()

        self.assertTrue(self.controller.timer_snapshot().is_complete)
        self.assertEqual(0, self.controller.stats_snapshot().sessions_completed)
        self.assertEqual([], self.notices)

    def test_switch_preset_stops_ticker_and_persists(self) -> None:
        self.controller.start()
        result = self.controller.switch_preset("rest")

        self.assertTrue(result.accepted)
        self.assertFalse(self.controller.is_ticking)
        self.assertEqual("rest", self._stored_payload()["timer"]["active_preset"]["id"])

    def test_update_preset_duration_persists_new_duration(self) -> None:
        result = self.controller.update_preset_duration("rest", 45)
        rejected = self.controller.update_preset_duration("rest", 0)

        self.assertTrue(result.accepted)
        self.assertFalse(rejected.accepted)
        payload = self._stored_payload()
        self.assertEqual(45, payload["timer"]["presets"]["rest"]["duration_seconds"])

    def test_timer_only_commands_do_not_write(self) -> None:
        self.controller.start()
        self.controller.pause()
        self.controller.reset()
        self.writer.flush()

        self.assertEqual(0, self.backend.writes)

    def test_commands_after_missed_deadline_record_the_session(self) -> None:
        for command in ("pause", "reset", "switch_preset"):
            with self.subTest(command=command):
                self.controller.reset_statistics()
                self.controller.switch_preset("sprint")
                self.controller.start()
                self.clock.now += 5
                if command == "switch_preset":
                    self.controller.switch_preset("rest")
                else:
                    getattr(self.controller, command)()

                self.assertEqual(1, self.controller.stats_snapshot().sessions_completed)
                self.assertFalse(self.controller.is_ticking)
                self.assertIn("completed", [update.action for update in self.updates])

    def test_manual_completion_and_reset_statistics(self) -> None:
        event = SessionCompleted(occurred_at=WALL_NOW, duration_seconds=1500, preset_id="focus")
        stats = self.controller.record_completion_manually(event)
        self.assertEqual(1, stats.sessions_completed)
        self.assertEqual(1, len(self.notices))

        cleared = self.controller.reset_statistics()

        self.assertEqual(0, cleared.sessions_completed)
        self.assertEqual("reset_statistics", self.updates[-1].action)
        self.assertFalse(any(item.unlocked for item in self.controller.achievements()))
        self.assertEqual(0, self._stored_payload()["stats"]["sessions_completed"])

    def test_invalid_manual_completion_is_rejected(self) -> None:
        event = SessionCompleted(occurred_at=WALL_NOW, duration_seconds=-3, preset_id="focus")
        stats = self.controller.record_completion_manually(event)

        self.assertEqual(0, stats.sessions_completed)
        self.assertFalse(self.updates[-1].accepted)
        self.assertEqual([], self.notices)

    def test_update_preference_validates_values(self) -> None:
        self.assertTrue(self.controller.update_preference("theme", "decepticons"))
        self.assertFalse(self.controller.update_preference("theme", {"nested": True}))
        self.assertFalse(self.controller.update_preference("  ", "x"))

        self.assertEqual("decepticons", self.controller.preferences()["theme"])
        self.assertEqual("decepticons", self._stored_payload()["preferences"]["theme"])

    def test_failing_listener_does_not_break_commands(self) -> None:
        def broken(update: ControllerUpdate) -> None:
            raise RuntimeError("boom")

        self.controller.subscribe(broken)
        with self.assertLogs("test.runtime", level="ERROR"):
            result = self.controller.start()

        self.assertTrue(result.accepted)
        self.assertEqual("start", self.updates[-1].action)

    def test_unsubscribe_stops_notifications(self) -> None:
        seen: list[ControllerUpdate] = []
        unsubscribe = self.controller.subscribe(seen.append)
        self.controller.sync("client_sync")
        unsubscribe()
        self.controller.sync("client_sync")

        self.assertEqual(1, len(seen))
        self.assertEqual("client_sync", seen[0].reason)

    def test_state_survives_restart_through_store(self) -> None:
        self._run_to_completion()
        self.controller.update_preference("sound_enabled", False)
        self.controller.shutdown()

        restored = SnapshotStore(self.backend, defaults=default_snapshot(
            [Preset("sprint", 2, countable=True), Preset("rest", 1)],
            "sprint",
        )).load()
        self.writer = SnapshotWriter(self.store)
        controller = self._controller(restored)

        self.assertEqual(1, controller.stats_snapshot().sessions_completed)
        self.assertFalse(controller.preferences()["sound_enabled"])
        self.assertTrue(controller.achievements()[0].unlocked)
        self.assertEqual("idle", controller.timer_snapshot().phase)


if __name__ == "__main__":
    unittest.main()
