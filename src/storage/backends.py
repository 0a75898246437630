"""Blob backends holding the serialized snapshot under one storage key."""

from __future__ import annotations

import contextlib
import os
import re
import tempfile
import threading
from pathlib import Path
from typing import Optional, Protocol

_STORAGE_KEY_PATTERN = re.compile(r"[A-Za-z0-9_.-]+")


class SnapshotBackend(Protocol):
    """Get/set pair for one serialized blob."""
    def read(self) -> Optional[str]:
        ...

    def write(self, blob: str) -> None:
        ...


def validate_storage_key(key: str) -> str:
    text = key.strip()
    if not _STORAGE_KEY_PATTERN.fullmatch(text) or text in (".", ".."):
        raise ValueError(f"Invalid storage key: {key!r}")
    return text


class JsonFileBackend:
    """Stores the blob in `<directory>/<key>.json`, replacing it atomically."""

    def __init__(self, directory: Path, key: str):
        self._path = Path(directory).expanduser() / f"{validate_storage_key(key)}.json"

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> Optional[str]:
        if not self._path.exists():
            return None
        return self._path.read_text(encoding="utf-8")

    def write(self, blob: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            prefix=f".{self._path.stem}_",
            suffix=".tmp",
            dir=self._path.parent,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(blob)
            os.replace(temp_path, self._path)
        except BaseException:
            with contextlib.suppress(OSError):
                os.unlink(temp_path)
            raise


class MemoryBackend:
    """In-process backend used by tests and ephemeral runs."""

    def __init__(self, blob: Optional[str] = None):
        self._blob = blob
        self._lock = threading.Lock()
        self.writes = 0

    @property
    def blob(self) -> Optional[str]:
        with self._lock:
            return self._blob

    def read(self) -> Optional[str]:
        with self._lock:
            return self._blob

    def write(self, blob: str) -> None:
        with self._lock:
            self._blob = blob
            self.writes += 1
