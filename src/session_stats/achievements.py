"""Unlockable achievements evaluated after each recorded session."""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import date
from typing import Callable, Iterable, Optional

from .buckets import day_key
from .models import Stats


@dataclass(frozen=True)
class Achievement:
    """Achievement state; `date` is the `YYYY-MM-DD` day it was unlocked."""
    id: str
    name: str
    unlocked: bool = False
    date: Optional[str] = None


@dataclass(frozen=True)
class AchievementRule:
    id: str
    name: str
    is_met: Callable[[Stats], bool]


DEFAULT_RULES: tuple[AchievementRule, ...] = (
    AchievementRule(
        id="first-session",
        name="First Focus Session",
        is_met=lambda stats: stats.sessions_completed >= 1,
    ),
    AchievementRule(
        id="three-day-streak",
        name="3 Day Streak",
        is_met=lambda stats: stats.current_streak_days >= 3,
    ),
    AchievementRule(
        id="seven-day-streak",
        name="7 Day Streak",
        is_met=lambda stats: stats.current_streak_days >= 7,
    ),
)


def default_achievements(
    rules: Iterable[AchievementRule] = DEFAULT_RULES,
) -> tuple[Achievement, ...]:
    return tuple(Achievement(id=rule.id, name=rule.name) for rule in rules)


class AchievementBook:
    """Tracks which achievements are unlocked; only `reset()` locks them again."""

    def __init__(
        self,
        achievements: Optional[Iterable[Achievement]] = None,
        *,
        rules: Iterable[AchievementRule] = DEFAULT_RULES,
    ):
        self._rules = tuple(rules)
        self._lock = threading.Lock()
        self._achievements: dict[str, Achievement] = {}
        self._load_locked(achievements or ())

    def snapshot(self) -> tuple[Achievement, ...]:
        with self._lock:
            return tuple(self._achievements[rule.id] for rule in self._rules)

    def restore(self, achievements: Iterable[Achievement]) -> None:
        with self._lock:
            self._load_locked(achievements)

    def reset(self) -> tuple[Achievement, ...]:
        with self._lock:
            self._achievements = {
                rule.id: Achievement(id=rule.id, name=rule.name) for rule in self._rules
            }
            return tuple(self._achievements[rule.id] for rule in self._rules)

    def evaluate(self, stats: Stats, unlocked_on: date) -> list[Achievement]:
        """Unlock achievements satisfied by ``stats`` and return the new ones."""
        unlocked: list[Achievement] = []
        with self._lock:
            for rule in self._rules:
                current = self._achievements[rule.id]
                if current.unlocked or not rule.is_met(stats):
                    continue
                updated = replace(current, unlocked=True, date=day_key(unlocked_on))
                self._achievements[rule.id] = updated
                unlocked.append(updated)
        return unlocked

    def _load_locked(self, achievements: Iterable[Achievement]) -> None:
        stored = {achievement.id: achievement for achievement in achievements}
        self._achievements = {}
        for rule in self._rules:
            previous = stored.get(rule.id)
            if previous is not None and previous.unlocked:
                self._achievements[rule.id] = Achievement(
                    id=rule.id,
                    name=rule.name,
                    unlocked=True,
                    date=previous.date,
                )
            else:
                self._achievements[rule.id] = Achievement(id=rule.id, name=rule.name)
