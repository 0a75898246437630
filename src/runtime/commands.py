"""Dispatcher that executes UI command messages against the controller."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from contracts.ui_protocol import (
    COMMAND_PAUSE,
    COMMAND_RESET,
    COMMAND_RESET_STATISTICS,
    COMMAND_START,
    COMMAND_SWITCH_PRESET,
    COMMAND_SYNC,
    COMMAND_UPDATE_PREFERENCE,
    COMMAND_UPDATE_PRESET_DURATION,
    EVENT_ERROR,
    MESSAGE_COMMAND,
    STATE_ERROR,
)

from .controller import TimerController
from .ui import RuntimeUIPublisher

REASON_CLIENT_SYNC = "client_sync"

SUPPORTED_COMMANDS: frozenset[str] = frozenset(
    {
        COMMAND_START,
        COMMAND_PAUSE,
        COMMAND_RESET,
        COMMAND_SWITCH_PRESET,
        COMMAND_UPDATE_PRESET_DURATION,
        COMMAND_UPDATE_PREFERENCE,
        COMMAND_RESET_STATISTICS,
        COMMAND_SYNC,
    }
)


class CommandDispatcher:
    """Routes `{"type": "command", "action": ...}` messages to controller commands.

    Malformed messages are logged and answered with an error event; they never
    raise back into the websocket handler.
    """
    def __init__(
        self,
        *,
        controller: TimerController,
        ui: RuntimeUIPublisher,
        logger: Optional[logging.Logger] = None,
    ):
        self._controller = controller
        self._ui = ui
        self._logger = logger or logging.getLogger("runtime")

    def dispatch(self, message: Mapping[str, Any]) -> bool:
        if message.get("type") != MESSAGE_COMMAND:
            self._logger.debug("Ignoring non-command message: %s", message.get("type"))
            return False

        action = message.get("action")
        if not isinstance(action, str) or action not in SUPPORTED_COMMANDS:
            return self._reject(f"Unsupported command: {action!r}")

        if action == COMMAND_START:
            return self._controller.start().accepted
        if action == COMMAND_PAUSE:
            return self._controller.pause().accepted
        if action == COMMAND_RESET:
            return self._controller.reset().accepted
        if action == COMMAND_SWITCH_PRESET:
            preset_id = message.get("preset_id")
            if not isinstance(preset_id, str):
                return self._reject("switch_preset requires a string preset_id")
            return self._controller.switch_preset(preset_id).accepted
        if action == COMMAND_UPDATE_PRESET_DURATION:
            preset_id = message.get("preset_id")
            duration = _parse_duration_seconds(message.get("duration_seconds"))
            if not isinstance(preset_id, str):
                return self._reject("update_preset_duration requires a string preset_id")
            return self._controller.update_preset_duration(preset_id, duration).accepted
        if action == COMMAND_UPDATE_PREFERENCE:
            name = message.get("name")
            if not isinstance(name, str):
                return self._reject("update_preference requires a string name")
            return self._controller.update_preference(name, message.get("value"))
        if action == COMMAND_RESET_STATISTICS:
            self._controller.reset_statistics()
            return True

        self._controller.sync(REASON_CLIENT_SYNC)
        return True

    def _reject(self, text: str) -> bool:
        self._logger.warning("Rejected UI command: %s", text)
        self._ui.publish(EVENT_ERROR, state=STATE_ERROR, message=text)
        return False


def _parse_duration_seconds(raw: Any) -> Optional[int]:
    """Accept integer seconds or a numeric string; anything else is invalid."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    if isinstance(raw, str):
        try:
            return int(raw.strip())
        except ValueError:
            return None
    return None
