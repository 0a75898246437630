from .achievements import (
    DEFAULT_RULES,
    Achievement,
    AchievementBook,
    AchievementRule,
    default_achievements,
)
from .aggregator import StatsAggregator
from .buckets import (
    SERIES_DAILY,
    SERIES_MONTHLY,
    SERIES_YEARLY,
    bucket_key,
    date_only,
    day_key,
    month_key,
    year_key,
)
from .models import EMPTY_STATS, SERIES_CAPS, SERIES_NAMES, StatBucketEntry, Stats

__all__ = [
    "DEFAULT_RULES",
    "EMPTY_STATS",
    "SERIES_CAPS",
    "SERIES_DAILY",
    "SERIES_MONTHLY",
    "SERIES_NAMES",
    "SERIES_YEARLY",
    "Achievement",
    "AchievementBook",
    "AchievementRule",
    "StatBucketEntry",
    "Stats",
    "StatsAggregator",
    "bucket_key",
    "date_only",
    "day_key",
    "default_achievements",
    "month_key",
    "year_key",
]
