"""Runtime engine exports."""

from .commands import CommandDispatcher
from .controller import ControllerUpdate, SessionCompletedNotice, TimerController
from .loop import RuntimeBootstrap, RuntimeEngine, RuntimeHooks
from .ticker import Ticker

__all__ = [
    "CommandDispatcher",
    "ControllerUpdate",
    "RuntimeBootstrap",
    "RuntimeEngine",
    "RuntimeHooks",
    "SessionCompletedNotice",
    "Ticker",
    "TimerController",
]
