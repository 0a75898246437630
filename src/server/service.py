from __future__ import annotations

import asyncio
import http
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Mapping, Optional
from urllib.parse import urlsplit

import websockets
from websockets.asyncio.server import ServerConnection, broadcast
from websockets.http11 import Request, Response

from contracts.ui_protocol import EVENT_HELLO, EVENT_STATE_UPDATE

from .config import HEALTHZ_PATH, INDEX_PATH, ROOT_PATH, UIServerConfig
from .events import StickyEventStore, make_event, parse_client_message

CommandHandler = Callable[[Mapping[str, Any]], object]

_TEXT = "text/plain; charset=utf-8"
_HTML = "text/html; charset=utf-8"
_STATUS_PAGE = "focus timer: connect a websocket client to /ws\n"


class UIServer:
    """Websocket server on its own asyncio thread.

    Outbound events are broadcast to every open client and the latest sticky
    events are replayed to clients that connect later. Inbound `command`
    messages go to the handler registered with `set_command_handler`.
    """

    def __init__(
        self,
        config: UIServerConfig,
        logger: Optional[logging.Logger] = None,
    ):
        self._config = config
        self._logger = logger or logging.getLogger("ui_server")
        self._thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._shutdown: Optional[asyncio.Event] = None
        self._ready = threading.Event()
        self._failure: Optional[Exception] = None
        self._clients: set[ServerConnection] = set()
        self._sticky_events = StickyEventStore()
        self._command_handler: Optional[CommandHandler] = None

        index_page = (_STATUS_PAGE, _TEXT)
        if config.index_file:
            index_page = (Path(config.index_file).read_text(encoding="utf-8"), _HTML)
        self._pages: dict[str, tuple[str, str]] = {
            ROOT_PATH: index_page,
            INDEX_PATH: index_page,
            HEALTHZ_PATH: ("ok\n", _TEXT),
        }

    @property
    def host(self) -> str:
        return self._config.host

    @property
    def port(self) -> int:
        return self._config.port

    @property
    def websocket_path(self) -> str:
        return self._config.websocket_path

    @property
    def is_running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive() and self._failure is None

    def set_command_handler(self, handler: Optional[CommandHandler]) -> None:
        self._command_handler = handler

    def start(self, timeout_seconds: float = 5.0) -> None:
        if self.is_running:
            self._logger.warning("UI server is already running")
            return

        self._failure = None
        self._ready.clear()
        self._thread = threading.Thread(target=self._thread_main, daemon=True, name="ui-server")
        self._thread.start()

        if not self._ready.wait(timeout_seconds):
            raise RuntimeError(f"UI server did not start within {timeout_seconds:.1f}s")
        if self._failure is not None:
            raise RuntimeError(f"UI server startup failed: {self._failure}")

    def stop(self, timeout_seconds: float = 5.0) -> None:
        thread = self._thread
        if thread is None:
            return

        loop, shutdown = self._loop, self._shutdown
        if loop is not None and shutdown is not None:
            try:
                loop.call_soon_threadsafe(shutdown.set)
            except RuntimeError:
                pass  # loop already closed

        thread.join(timeout=timeout_seconds)
        if thread.is_alive():
            self._logger.error("UI server thread did not stop within %.1fs", timeout_seconds)
        self._thread = None

    def publish_state(self, state: str, *, message: Optional[str] = None, **payload) -> None:
        if message:
            payload["message"] = message
        self.publish(EVENT_STATE_UPDATE, state=state, **payload)

    def publish(self, event_type: str, **payload) -> None:
        """Serialize an event, remember it if sticky, and send it to open clients."""
        message = make_event(event_type, **payload)
        self._sticky_events.remember(event_type, message)

        loop = self._loop
        if loop is None or not self.is_running:
            return
        try:
            loop.call_soon_threadsafe(self._broadcast, message)
        except RuntimeError:
            return

    def _broadcast(self, message: str) -> None:
        # Slow or closed clients are skipped and logged by websockets itself.
        broadcast(self._clients, message)

    def _thread_main(self) -> None:
        try:
            asyncio.run(self._serve())
        except Exception as error:  # pragma: no cover - needs a bound socket
            self._failure = error
            self._logger.error("UI server failed: %s", error, exc_info=True)
        finally:
            self._loop = None
            self._shutdown = None
            self._ready.set()

    async def _serve(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._shutdown = asyncio.Event()
        async with websockets.serve(
            self._handle_connection,
            host=self._config.host,
            port=self._config.port,
            process_request=self._process_request,
            logger=self._logger,
        ):
            self._logger.info(
                "UI server running at http://%s:%d (websocket: %s)",
                self._config.host,
                self._config.port,
                self._config.websocket_path,
            )
            self._ready.set()
            await self._shutdown.wait()
        # Leaving `serve` closes every open connection with 1001.

    async def _handle_connection(self, websocket: ServerConnection) -> None:
        self._clients.add(websocket)
        self._logger.info("Client connected: %s", websocket.remote_address)
        try:
            await websocket.send(make_event(EVENT_HELLO, message="UI websocket connected"))
            for message in self._sticky_events.snapshot():
                await websocket.send(message)
            async for raw in websocket:
                self._handle_client_message(raw)
        except websockets.exceptions.ConnectionClosed:
            pass
        finally:
            self._clients.discard(websocket)
            self._logger.info("Client disconnected: %s", websocket.remote_address)

    def _handle_client_message(self, raw: str | bytes) -> None:
        message = parse_client_message(raw)
        if message is None:
            self._logger.warning("Ignoring malformed UI message")
            return

        handler = self._command_handler
        if handler is None:
            self._logger.debug("Received from UI without handler: %s", message)
            return

        try:
            handler(message)
        except Exception as error:
            self._logger.error("UI command handler failed: %s", error, exc_info=True)

    def _process_request(
        self,
        connection: ServerConnection,
        request: Request,
    ) -> Optional[Response]:
        """Let websocket upgrades on the websocket path through; answer plain HTTP."""
        path = urlsplit(request.path).path
        if path == self._config.websocket_path:
            return None

        page = self._pages.get(path)
        if page is None:
            return connection.respond(http.HTTPStatus.NOT_FOUND, "not found\n")

        body, content_type = page
        response = connection.respond(http.HTTPStatus.OK, body)
        # Headers is multi-valued: drop respond()'s text/plain before setting ours.
        del response.headers["Content-Type"]
        response.headers["Content-Type"] = content_type
        response.headers["Cache-Control"] = "no-store"
        return response
