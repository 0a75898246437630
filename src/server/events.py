"""Serialization of outbound UI events, sticky-state replay, and inbound parsing."""

from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from contracts.ui_protocol import STICKY_EVENT_ORDER, STICKY_EVENT_TYPES

MAX_CLIENT_MESSAGE_BYTES = 16 * 1024


def make_event(
    event_type: str,
    *,
    now_fn: Callable[[], datetime] | None = None,
    **payload: Any,
) -> str:
    """Serialize an event payload with type and timestamp for websocket delivery."""
    now = now_fn() if now_fn is not None else datetime.now(timezone.utc)
    return json.dumps(
        {
            "type": event_type,
            "timestamp": now.isoformat(),
            **payload,
        }
    )


def parse_client_message(raw: str | bytes) -> Optional[dict[str, Any]]:
    """Decode a JSON object sent by a UI client; anything else yields None."""
    if len(raw) > MAX_CLIENT_MESSAGE_BYTES:
        return None
    try:
        decoded = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if not isinstance(decoded, dict):
        return None
    return decoded


class StickyEventStore:
    """Latest event per sticky type, replayed to clients as they connect."""
    def __init__(self):
        self._events: dict[str, str] = {}
        self._lock = threading.Lock()

    def remember(self, event_type: str, message: str) -> None:
        if event_type not in STICKY_EVENT_TYPES:
            return
        with self._lock:
            self._events[event_type] = message

    def snapshot(self) -> list[str]:
        with self._lock:
            return [self._events[key] for key in STICKY_EVENT_ORDER if key in self._events]
