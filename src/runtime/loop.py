"""Runtime orchestration: wires the controller to the UI server and waits for shutdown."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from app_config import AppConfig
from pomodoro.constants import REASON_STARTUP
from server import UIServer

from .commands import CommandDispatcher
from .controller import TimerController
from .notifications import NotificationDependencies, NotificationProcessor
from .ui import RuntimeUIPublisher


@dataclass(frozen=True)
class RuntimeHooks:
    """Injectable lifecycle hooks used by runtime startup and shutdown flow."""
    setup_signal_handlers: Callable[[Callable[[], None]], None]


@dataclass(frozen=True)
class RuntimeBootstrap:
    """Dependency bundle required to construct the runtime engine."""
    logger: logging.Logger
    app_config: AppConfig
    controller: TimerController
    ui_server: Optional[UIServer]
    hooks: RuntimeHooks


class RuntimeEngine:
    """Main runtime loop that keeps the controller alive until a stop request."""
    def __init__(self, bootstrap: RuntimeBootstrap, *, poll_interval_seconds: float = 0.25):
        self._bootstrap = bootstrap
        self._logger = bootstrap.logger
        self._poll_interval_seconds = poll_interval_seconds
        self._stop_requested = threading.Event()

        controller = bootstrap.controller
        self._ui = RuntimeUIPublisher(bootstrap.ui_server)
        self._dispatcher = CommandDispatcher(
            controller=controller,
            ui=self._ui,
            logger=self._logger,
        )
        self._notifications = NotificationProcessor(
            NotificationDependencies(
                logger=self._logger,
                ui=self._ui,
                achievements=controller.achievements,
                preferences=controller.preferences,
            )
        )

    @property
    def dispatcher(self) -> CommandDispatcher:
        return self._dispatcher

    def request_stop(self) -> None:
        self._stop_requested.set()

    def run(self) -> int:
        controller = self._bootstrap.controller
        ui_server = self._bootstrap.ui_server
        unsubscribers = [
            controller.subscribe(self._notifications.handle_update),
            controller.subscribe_completion(self._notifications.handle_completion),
        ]
        if ui_server is not None:
            ui_server.set_command_handler(self._dispatcher.dispatch)

        try:
            self._bootstrap.hooks.setup_signal_handlers(self.request_stop)
            controller.sync(REASON_STARTUP)
            snapshot = controller.timer_snapshot()
            self._logger.info(
                "Ready: preset=%s duration=%ss",
                snapshot.active_preset.id,
                snapshot.duration_seconds,
            )

            while not self._stop_requested.wait(self._poll_interval_seconds):
                if ui_server is not None and not ui_server.is_running:
                    self._logger.error("UI server stopped unexpectedly")
                    return 1
            self._logger.info("Shutdown requested.")
            return 0
        except KeyboardInterrupt:
            self._logger.info("Shutdown requested by keyboard interrupt.")
            return 0
        except Exception as error:
            self._logger.error("Unexpected error: %s", error, exc_info=True)
            return 1
        finally:
            for unsubscribe in unsubscribers:
                unsubscribe()
            self._shutdown()

    def _shutdown(self) -> None:
        self._logger.info("Stopping timer and flushing snapshot...")
        try:
            self._bootstrap.controller.shutdown()
        except Exception as error:
            self._logger.error("Error stopping controller: %s", error, exc_info=True)

        ui_server = self._bootstrap.ui_server
        if ui_server is not None:
            self._logger.info("Stopping UI server...")
            try:
                ui_server.stop(timeout_seconds=5.0)
            except Exception as error:
                self._logger.error("Error stopping UI server: %s", error, exc_info=True)
