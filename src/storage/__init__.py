"""Local persistence of the timer settings, statistics, and preferences."""

from .backends import JsonFileBackend, MemoryBackend, SnapshotBackend, validate_storage_key
from .service import SnapshotStore, SnapshotWriter
from .snapshot import (
    DEFAULT_PREFERENCES,
    DEFAULT_STORAGE_KEY,
    SCHEMA_VERSION,
    AppSnapshot,
    PersistedTimer,
    SnapshotError,
    default_snapshot,
    merge_over_defaults,
    snapshot_from_payload,
    snapshot_to_payload,
)

__all__ = [
    "DEFAULT_PREFERENCES",
    "DEFAULT_STORAGE_KEY",
    "SCHEMA_VERSION",
    "AppSnapshot",
    "JsonFileBackend",
    "MemoryBackend",
    "PersistedTimer",
    "SnapshotBackend",
    "SnapshotError",
    "SnapshotStore",
    "SnapshotWriter",
    "default_snapshot",
    "merge_over_defaults",
    "snapshot_from_payload",
    "snapshot_to_payload",
    "validate_storage_key",
]
