import unittest

from pomodoro import PomodoroTimer
from pomodoro.constants import (
    ACTION_PAUSE,
    ACTION_START,
    REASON_ALREADY_RUNNING,
    REASON_UNKNOWN_PRESET,
)
from runtime.messages import (
    completion_summary,
    default_timer_text,
    format_duration,
    format_focus_time,
    timer_rejection_text,
    timer_status_message,
)
from session_stats import Stats


class _FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class MessageFormattingTests(unittest.TestCase):
    def test_format_duration_pads_minutes_and_seconds(self) -> None:
        self.assertEqual("25:00", format_duration(1500))
        self.assertEqual("00:07", format_duration(7))
        self.assertEqual("00:00", format_duration(-3))

    def test_format_focus_time_switches_to_hours(self) -> None:
        self.assertEqual("0m", format_focus_time(59))
        self.assertEqual("25m", format_focus_time(1500))
        self.assertEqual("1h 0m", format_focus_time(3600))
        self.assertEqual("2h 5m", format_focus_time(7500))

    def test_status_follows_timer_phase(self) -> None:
        clock = _FakeClock()
        timer = PomodoroTimer(clock=clock)
        self.assertEqual("focus ready (25:00)", timer_status_message(timer.snapshot()))

        timer.start()
        clock.now += 60
        timer.tick()
        self.assertEqual("focus running (24:00 left)", timer_status_message(timer.snapshot()))

        result = timer.pause()
        self.assertEqual("focus paused (24:00 left)", timer_status_message(result.snapshot))
        self.assertEqual("Paused focus.", default_timer_text(ACTION_PAUSE, result.snapshot))

    def test_start_text_uses_remaining_time(self) -> None:
        result = PomodoroTimer(clock=_FakeClock(), active_preset="break").start()

        self.assertEqual("Starting break with 05:00 left.", default_timer_text(ACTION_START, result.snapshot))

    def test_rejection_text_names_the_problem(self) -> None:
        self.assertEqual(
            "The timer is already running.",
            timer_rejection_text(ACTION_START, REASON_ALREADY_RUNNING),
        )
        self.assertEqual(
            "That preset does not exist.",
            timer_rejection_text("switch_preset", REASON_UNKNOWN_PRESET),
        )

    def test_completion_summary(self) -> None:
        stats = Stats(sessions_completed=3, total_focus_seconds=4500, current_streak_days=1)

        self.assertEqual("3 sessions, 1h 15m focused, 1 day streak", completion_summary(stats))
        self.assertEqual(1500, stats.average_session_seconds)


if __name__ == "__main__":
    unittest.main()
