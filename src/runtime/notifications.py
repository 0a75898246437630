"""Subscribers that turn controller updates into UI events."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from contracts.ui_protocol import EVENT_PREFERENCES
from pomodoro.constants import ACTION_COMPLETED, ACTION_SYNC, ACTION_TICK
from session_stats import Achievement

from .controller import (
    ACTION_RECORD_COMPLETION,
    ACTION_RESET_STATISTICS,
    ACTION_UPDATE_PREFERENCE,
    ControllerUpdate,
    SessionCompletedNotice,
)
from .messages import (
    achievement_text,
    completion_summary,
    default_timer_text,
    timer_rejection_text,
    timer_status_message,
)
from .ui import RuntimeUIPublisher

_STATS_ACTIONS = frozenset(
    {
        ACTION_COMPLETED,
        ACTION_RECORD_COMPLETION,
        ACTION_RESET_STATISTICS,
        ACTION_SYNC,
    }
)
_NON_TIMER_ACTIONS = frozenset(
    {
        ACTION_RECORD_COMPLETION,
        ACTION_RESET_STATISTICS,
        ACTION_UPDATE_PREFERENCE,
    }
)


@dataclass(frozen=True)
class NotificationDependencies:
    """Dependencies required for publishing controller notifications."""
    logger: logging.Logger
    ui: RuntimeUIPublisher
    achievements: Callable[[], tuple[Achievement, ...]]
    preferences: Callable[[], dict[str, Any]]


class NotificationProcessor:
    """Publishes timer, stats, and completion events for the presentation layer."""
    def __init__(self, dependencies: NotificationDependencies):
        self._dependencies = dependencies

    def handle_update(self, update: ControllerUpdate) -> None:
        deps = self._dependencies
        if update.action == ACTION_TICK:
            deps.ui.publish_timer_update(
                update.timer,
                action=update.action,
                accepted=True,
                reason=update.reason,
            )
            return

        if update.action == ACTION_UPDATE_PREFERENCE:
            deps.ui.publish(EVENT_PREFERENCES, preferences=deps.preferences())
            return

        if update.action not in _NON_TIMER_ACTIONS:
            if update.accepted:
                message = default_timer_text(update.action, update.timer)
            else:
                message = timer_rejection_text(update.action, update.reason)
                deps.logger.info(
                    "Timer action rejected: action=%s reason=%s",
                    update.action,
                    update.reason,
                )
            deps.ui.publish_timer_update(
                update.timer,
                action=update.action,
                accepted=update.accepted,
                reason=update.reason,
                message=message,
            )
            deps.ui.publish_state(
                update.timer.phase,
                message=timer_status_message(update.timer),
            )

        if update.action in _STATS_ACTIONS:
            deps.ui.publish_stats_update(update.stats, achievements=deps.achievements())

    def handle_completion(self, notice: SessionCompletedNotice) -> None:
        deps = self._dependencies
        deps.ui.publish_session_completed(
            preset_id=notice.event.preset_id,
            duration_seconds=notice.event.duration_seconds,
            occurred_at=notice.event.occurred_at.isoformat(),
            message=completion_summary(notice.stats),
        )
        for achievement in notice.unlocked:
            deps.ui.publish_achievement_unlocked(
                achievement,
                message=achievement_text(achievement),
            )
