"""Snapshot load/save with fallback to defaults and a background writer."""

from __future__ import annotations

import concurrent.futures
import json
import logging
import threading
from typing import Optional

from .backends import SnapshotBackend
from .snapshot import (
    AppSnapshot,
    SnapshotError,
    default_snapshot,
    snapshot_from_payload,
    snapshot_to_payload,
)


class SnapshotStore:
    """Loads and saves `AppSnapshot` values; neither direction ever raises."""

    def __init__(
        self,
        backend: SnapshotBackend,
        *,
        defaults: Optional[AppSnapshot] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._backend = backend
        self._defaults = defaults or default_snapshot()
        self._logger = logger or logging.getLogger("storage")

    @property
    def defaults(self) -> AppSnapshot:
        return self._defaults

    def load(self) -> AppSnapshot:
        try:
            blob = self._backend.read()
        except (OSError, ValueError) as error:
            self._logger.error("Failed to read snapshot, using defaults: %s", error)
            return self._defaults

        if blob is None:
            self._logger.info("No stored snapshot found, using defaults")
            return self._defaults

        try:
            raw = json.loads(blob)
        except ValueError as error:
            self._logger.warning("Stored snapshot is not valid JSON, using defaults: %s", error)
            return self._defaults

        try:
            snapshot = snapshot_from_payload(raw, self._defaults)
        except SnapshotError as error:
            self._logger.warning("Stored snapshot rejected, using defaults: %s", error)
            return self._defaults

        self._logger.info(
            "Loaded snapshot: preset=%s sessions=%s",
            snapshot.timer.active_preset.id,
            snapshot.stats.sessions_completed,
        )
        return snapshot

    def save(self, snapshot: AppSnapshot) -> bool:
        try:
            blob = json.dumps(snapshot_to_payload(snapshot), indent=2)
            self._backend.write(blob)
        except (OSError, TypeError, ValueError) as error:
            self._logger.error("Failed to save snapshot: %s", error)
            return False
        return True


class SnapshotWriter:
    """Fire-and-forget persistence on a single worker thread.

    Snapshots submitted while a write is in flight are coalesced: only the most
    recent one is written next.
    """

    def __init__(
        self,
        store: SnapshotStore,
        *,
        logger: Optional[logging.Logger] = None,
    ):
        self._store = store
        self._logger = logger or logging.getLogger("storage")
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix="snapshot",
        )
        self._lock = threading.Lock()
        self._pending: Optional[AppSnapshot] = None
        self._scheduled = False
        self._closed = False

    def submit(self, snapshot: AppSnapshot) -> None:
        with self._lock:
            if self._closed:
                self._logger.warning("Snapshot writer closed; dropping snapshot")
                return
            self._pending = snapshot
            if self._scheduled:
                return
            self._scheduled = True

        try:
            self._executor.submit(self._drain)
        except RuntimeError as error:
            self._logger.error("Failed to schedule snapshot write: %s", error)
            with self._lock:
                self._scheduled = False

    def flush(self, timeout_seconds: Optional[float] = 5.0) -> None:
        """Block until every snapshot submitted so far has been written."""
        try:
            future = self._executor.submit(lambda: None)
        except RuntimeError:
            return
        try:
            future.result(timeout=timeout_seconds)
        except concurrent.futures.TimeoutError:
            self._logger.warning(
                "Snapshot writer did not flush within %.1fs",
                timeout_seconds or 0.0,
            )

    def close(self, timeout_seconds: Optional[float] = 5.0) -> None:
        self.flush(timeout_seconds)
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=True)

    def _drain(self) -> None:
        while True:
            with self._lock:
                snapshot = self._pending
                self._pending = None
                if snapshot is None:
                    self._scheduled = False
                    return
            self._store.save(snapshot)
