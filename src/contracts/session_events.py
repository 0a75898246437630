"""Domain events shared between the timer state machine and its subscribers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class SessionCompleted:
    """Raised once when a countable preset counts down to zero."""
    occurred_at: datetime
    duration_seconds: int
    preset_id: str
