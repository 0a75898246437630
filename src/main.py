import logging
import signal
import sys
from pathlib import Path
from typing import Callable, Optional

from app_config import (
    AppConfig,
    AppConfigurationError,
    load_app_config,
    resolve_config_path,
)
from pomodoro import Preset
from runtime import RuntimeBootstrap, RuntimeEngine, RuntimeHooks, Ticker, TimerController
from server import ServerConfigurationError, UIServer, UIServerConfig
from storage import (
    JsonFileBackend,
    MemoryBackend,
    SnapshotBackend,
    SnapshotStore,
    SnapshotWriter,
    default_snapshot,
)


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Configure logging for the application."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return logging.getLogger("focus_timer")


def setup_signal_handlers(request_stop: Callable[[], None]) -> None:
    """Set up graceful shutdown on SIGTERM and SIGINT."""

    def signal_handler(signum: int, frame) -> None:
        signal_name = signal.Signals(signum).name
        logging.getLogger("focus_timer").info("%s received, stopping...", signal_name)
        request_stop()

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)


def build_snapshot_store(app_config: AppConfig, logger: logging.Logger) -> SnapshotStore:
    timer_settings = app_config.timer
    presets = [
        Preset(
            id=preset.id,
            duration_seconds=preset.duration_seconds,
            countable=preset.countable,
        )
        for preset in timer_settings.presets
    ]
    defaults = default_snapshot(presets, timer_settings.active_preset)

    backend: SnapshotBackend
    if app_config.storage.enabled:
        backend = JsonFileBackend(Path(app_config.storage.directory), app_config.storage.key)
        logger.info("Snapshot file: %s", backend.path)
    else:
        backend = MemoryBackend()
        logger.warning("Storage disabled; statistics will not survive a restart.")

    return SnapshotStore(backend, defaults=defaults, logger=logging.getLogger("storage"))


def start_ui_server(app_config: AppConfig, logger: logging.Logger) -> Optional[UIServer]:
    try:
        ui_server_config = UIServerConfig.from_settings(app_config.ui_server)
    except ServerConfigurationError as error:
        logger.error(f"UI server configuration error: {error}")
        logger.warning("Continuing without UI server.")
        return None

    if not ui_server_config.enabled:
        return None

    ui_server = UIServer(config=ui_server_config, logger=logging.getLogger("ui_server"))
    try:
        logger.info("Starting UI server...")
        ui_server.start(timeout_seconds=5.0)
    except Exception as error:
        logger.error(f"UI server startup failed: {error}")
        logger.warning("Continuing without UI server.")
        return None

    logger.info(
        "UI server ready at ws://%s:%d%s",
        ui_server.host,
        ui_server.port,
        ui_server.websocket_path,
    )
    return ui_server


def main() -> int:
    """Run the focus timer until interrupted."""
    try:
        config_path = resolve_config_path()
        app_config = load_app_config()
    except AppConfigurationError as error:
        setup_logging().error(f"App configuration error: {error}")
        return 1

    logger = setup_logging(app_config.logging.level)
    if app_config.source_file:
        logger.info("Loaded runtime config: %s", app_config.source_file)
    else:
        logger.info("No config file at %s, using defaults", config_path)

    store = build_snapshot_store(app_config, logger)
    writer = SnapshotWriter(store, logger=logging.getLogger("storage"))
    interval = app_config.timer.tick_interval_seconds
    runtime_logger = logging.getLogger("runtime")
    controller = TimerController.from_snapshot(
        store.load(),
        writer=writer,
        ticker_factory=lambda callback: Ticker(
            callback,
            interval_seconds=interval,
            logger=logging.getLogger("ticker"),
        ),
        logger=runtime_logger,
    )

    ui_server = start_ui_server(app_config, logger)

    engine = RuntimeEngine(
        RuntimeBootstrap(
            logger=runtime_logger,
            app_config=app_config,
            controller=controller,
            ui_server=ui_server,
            hooks=RuntimeHooks(setup_signal_handlers=setup_signal_handlers),
        )
    )
    return engine.run()


if __name__ == "__main__":
    sys.exit(main())
