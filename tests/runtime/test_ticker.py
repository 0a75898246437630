import logging
import threading
import unittest

from runtime.ticker import Ticker


class TickerTests(unittest.TestCase):
    def test_ticks_until_stopped(self) -> None:
        calls = []
        reached = threading.Event()

        def callback() -> None:
            calls.append(1)
            if len(calls) >= 3:
                reached.set()

        ticker = Ticker(callback, interval_seconds=0.01)
        ticker.start()
        try:
            self.assertTrue(reached.wait(timeout=2.0))
            self.assertTrue(ticker.is_running)
        finally:
            ticker.stop()
        self.assertFalse(ticker.is_running)

    def test_restart_cancels_previous_run(self) -> None:
        ticker = Ticker(lambda: None, interval_seconds=0.01)
        ticker.start()
        first = ticker._thread
        ticker.start()
        second = ticker._thread
        try:
            first.join(timeout=2.0)
            self.assertFalse(first.is_alive())
            self.assertTrue(second.is_alive())
        finally:
            ticker.stop()
        second.join(timeout=2.0)
        self.assertFalse(second.is_alive())

    def test_stop_from_inside_callback_does_not_deadlock(self) -> None:
        done = threading.Event()
        ticker: Ticker

        def callback() -> None:
            ticker.stop()
            done.set()

        ticker = Ticker(callback, interval_seconds=0.01)
        ticker.start()
        self.assertTrue(done.wait(timeout=2.0))
        self.assertFalse(ticker.is_running)

    def test_callback_errors_are_logged_and_ticking_continues(self) -> None:
        calls = []
        reached = threading.Event()

        def callback() -> None:
            calls.append(1)
            if len(calls) >= 2:
                reached.set()
            raise RuntimeError("tick failed")

        ticker = Ticker(callback, interval_seconds=0.01, logger=logging.getLogger("test.ticker"))
        with self.assertLogs("test.ticker", level="ERROR"):
            ticker.start()
            try:
                self.assertTrue(reached.wait(timeout=2.0))
            finally:
                ticker.stop()

    def test_rejects_non_positive_interval(self) -> None:
        with self.assertRaises(ValueError):
            Ticker(lambda: None, interval_seconds=0)


if __name__ == "__main__":
    unittest.main()
