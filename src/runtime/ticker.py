"""Periodic tick source that keeps at most one live run per timer."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional


class Ticker:
    """Calls ``callback`` every ``interval_seconds`` on a daemon thread.

    Every `start()` cancels the previous run before spawning a new one, so two
    runs never decrement the same countdown. `stop()` never joins, which keeps
    it safe to call from inside the callback itself.
    """

    def __init__(
        self,
        callback: Callable[[], object],
        *,
        interval_seconds: float = 1.0,
        logger: Optional[logging.Logger] = None,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be greater than zero")
        self._callback = callback
        self._interval_seconds = float(interval_seconds)
        self._logger = logger or logging.getLogger("ticker")
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._cancel: Optional[threading.Event] = None
        self._generation = 0

    @property
    def is_running(self) -> bool:
        with self._lock:
            return (
                self._thread is not None
                and self._thread.is_alive()
                and self._cancel is not None
                and not self._cancel.is_set()
            )

    def start(self) -> None:
        with self._lock:
            if self._cancel is not None:
                self._cancel.set()
            self._generation += 1
            cancel = threading.Event()
            thread = threading.Thread(
                target=self._run,
                args=(cancel,),
                daemon=True,
                name=f"ticker-{self._generation}",
            )
            self._cancel = cancel
            self._thread = thread
            thread.start()

    def stop(self) -> None:
        with self._lock:
            if self._cancel is not None:
                self._cancel.set()
            self._cancel = None
            self._thread = None

    def _run(self, cancel: threading.Event) -> None:
        while not cancel.wait(self._interval_seconds):
            try:
                self._callback()
            except Exception as error:
                self._logger.error("Tick callback failed: %s", error, exc_info=True)
