"""Engine modules for habitcore.

Contains specialized computation engines:
- schedule_engine: Recurrence evaluation (is this habit due on a date)
- streak_engine: Streak recomputation, freeze handling and status
- wager_engine: Wager status transitions
- chain_engine: Habit chains resolved into ordered routines
- gamification_engine: Achievements and quests
- statistics_engine: Read-only analytics
"""

# Use relative imports within package to avoid mypy module resolution issues
from .chain_engine import ChainEngine, InvalidChainLinkError
from .gamification_engine import GamificationEngine
from .schedule_engine import ScheduleEngine, UnknownScheduleTypeError
from .statistics_engine import StatisticsEngine
from .streak_engine import StreakEngine
from .wager_engine import WagerEngine

__all__ = [
    "ChainEngine",
    "GamificationEngine",
    "InvalidChainLinkError",
    "ScheduleEngine",
    "StatisticsEngine",
    "StreakEngine",
    "UnknownScheduleTypeError",
    "WagerEngine",
]
