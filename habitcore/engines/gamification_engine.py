"""Gamification Engine - Pure logic for achievement and quest evaluation.

This engine provides stateless, pure Python functions for:
- Achievement unlock state against a static milestone table
- "Next rung" selection per milestone ladder
- Achievement summary stats
- Quest (space-wide, date-windowed completion goal) progress

Achievements are never stored. They are recomputed from habits + completions
every time, so the only persistent input is the milestone table itself, which
is passed in explicitly (defaults to const.DEFAULT_MILESTONES).

Source metrics:
- streak: best_streak across all habits
- total_completions: lifetime completion count across the space (unfiltered)
- habit_count: habits that are not frozen
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from datetime import date
from typing import TYPE_CHECKING, Any

from .. import const
from ..utils.dt_utils import dt_parse_date, dt_today_local
from ..utils.math_utils import calculate_percentage, calculate_progress

if TYPE_CHECKING:
    from ..type_defs import (
        AchievementMetrics,
        AchievementStats,
        CompletionData,
        ComputedAchievement,
        HabitData,
        MilestoneTable,
        QuestData,
        QuestProgress,
    )

# Handler signature: metrics -> progress value for the milestone type
MetricHandler = Callable[["AchievementMetrics"], int]


class GamificationEngine:
    """Pure logic engine for achievements and quests.

    All methods are static/class methods - no instance state.
    """

    # =========================================================================
    # METRIC HANDLER REGISTRY
    # =========================================================================

    _METRIC_HANDLERS: dict[str, MetricHandler] = {
        const.MILESTONE_TYPE_STREAK: lambda m: m["streak"],
        const.MILESTONE_TYPE_TOTAL_COMPLETIONS: lambda m: m["total_completions"],
        const.MILESTONE_TYPE_HABIT_COUNT: lambda m: m["habit_count"],
    }

    @staticmethod
    def compute_metrics(
        habits: Iterable[HabitData | Mapping[str, Any]],
        completions: Iterable[CompletionData | Mapping[str, Any]],
    ) -> AchievementMetrics:
        """Return the three source metrics the ladders are measured against."""
        best_streak = 0
        active = 0
        for habit in habits:
            best_streak = max(best_streak, int(habit.get(const.DATA_HABIT_BEST_STREAK) or 0))
            if not habit.get(const.DATA_HABIT_IS_FROZEN, False):
                active += 1

        return {
            "streak": best_streak,
            "total_completions": sum(1 for _ in completions),
            "habit_count": active,
        }

    # =========================================================================
    # ACHIEVEMENTS
    # =========================================================================

    @classmethod
    def compute(
        cls,
        habits: Iterable[HabitData | Mapping[str, Any]],
        completions: Iterable[CompletionData | Mapping[str, Any]],
        milestones: MilestoneTable = const.DEFAULT_MILESTONES,
    ) -> list[ComputedAchievement]:
        """Compute progress and unlock state for every milestone, in table order.

        progress is the raw metric value; unlocked is progress >= threshold.
        No partial credit, no rounding. A milestone of an unknown type is
        logged and reported locked with zero progress.
        """
        metrics = cls.compute_metrics(habits, completions)
        achievements: list[ComputedAchievement] = []

        for milestone in milestones:
            milestone_type = milestone.get(const.DATA_MILESTONE_TYPE)
            handler = cls._METRIC_HANDLERS.get(milestone_type)

            if handler is None:
                const.LOGGER.warning(
                    "Unknown milestone type: %s for milestone %s",
                    milestone_type,
                    milestone.get(const.DATA_MILESTONE_ID),
                )
                achievements.append(
                    {"milestone": milestone, "progress": 0, "unlocked": False}
                )
                continue

            progress = handler(metrics)
            achievements.append(
                {
                    "milestone": milestone,
                    "progress": progress,
                    "unlocked": progress
                    >= int(milestone.get(const.DATA_MILESTONE_THRESHOLD, 0)),
                }
            )

        return achievements

    @classmethod
    def get_next_achievements(
        cls,
        habits: Iterable[HabitData | Mapping[str, Any]],
        completions: Iterable[CompletionData | Mapping[str, Any]],
        milestones: MilestoneTable = const.DEFAULT_MILESTONES,
    ) -> list[ComputedAchievement]:
        """Return the next locked rung of each ladder, at most one per type.

        The rung is the lowest-threshold locked milestone of its type; results
        follow the order in which each type first appears in the table.
        """
        next_by_type: dict[str, ComputedAchievement] = {}
        for achievement in cls.compute(habits, completions, milestones):
            if achievement["unlocked"]:
                continue
            milestone = achievement["milestone"]
            milestone_type = milestone.get(const.DATA_MILESTONE_TYPE)
            if milestone_type not in cls._METRIC_HANDLERS:
                continue
            current = next_by_type.get(milestone_type)
            if current is None or milestone.get(
                const.DATA_MILESTONE_THRESHOLD, 0
            ) < current["milestone"].get(const.DATA_MILESTONE_THRESHOLD, 0):
                next_by_type[milestone_type] = achievement
        return list(next_by_type.values())

    @classmethod
    def get_achievement_stats(
        cls,
        habits: Iterable[HabitData | Mapping[str, Any]],
        completions: Iterable[CompletionData | Mapping[str, Any]],
        milestones: MilestoneTable = const.DEFAULT_MILESTONES,
    ) -> AchievementStats:
        """Return total / unlocked / percentage / recent_unlock.

        recent_unlock is the LAST unlocked milestone in table order, not the
        chronologically most recent one (unlock times are never stored).
        """
        achievements = cls.compute(habits, completions, milestones)
        unlocked = [a for a in achievements if a["unlocked"]]
        return {
            "total": len(achievements),
            "unlocked": len(unlocked),
            "percentage": calculate_percentage(len(unlocked), len(achievements)),
            "recent_unlock": unlocked[-1]["milestone"] if unlocked else None,
        }

    # =========================================================================
    # QUESTS
    # =========================================================================

    @staticmethod
    def evaluate_quest(
        quest: QuestData | Mapping[str, Any],
        completions: Iterable[CompletionData | Mapping[str, Any]],
        reference_date: date | None = None,
    ) -> QuestProgress:
        """Evaluate a space-wide quest.

        Counts completions of the quest's space dated inside
        [start_date, end_date], one per (habit, date).

        Status:
        - completed: target reached (stays completed once stored as such)
        - expired: reference date is past end_date without reaching the target
        - active: otherwise
        """
        today = reference_date or dt_today_local()
        start = dt_parse_date(quest.get(const.DATA_QUEST_START_DATE))
        end = dt_parse_date(quest.get(const.DATA_QUEST_END_DATE))
        target = int(quest.get(const.DATA_QUEST_TARGET_TOTAL_COMPLETIONS) or 0)
        space_id = quest.get(const.DATA_QUEST_SPACE_ID)

        keys: set[tuple[str, date]] = set()
        for completion in completions:
            if space_id and completion.get(const.DATA_COMPLETION_SPACE_ID) != space_id:
                continue
            completion_date = dt_parse_date(completion.get(const.DATA_COMPLETION_DATE))
            if completion_date is None:
                continue
            if start is not None and completion_date < start:
                continue
            if end is not None and completion_date > end:
                continue
            keys.add((completion.get(const.DATA_COMPLETION_HABIT_ID), completion_date))

        count = len(keys)
        if quest.get(const.DATA_QUEST_STATUS) == const.QUEST_STATUS_COMPLETED or (
            target > 0 and count >= target
        ):
            status = const.QUEST_STATUS_COMPLETED
        elif end is not None and today > end:
            status = const.QUEST_STATUS_EXPIRED
        else:
            status = const.QUEST_STATUS_ACTIVE

        return {
            "quest_id": quest.get(const.DATA_QUEST_ID),
            "current_completions": count,
            "target_total_completions": target,
            "progress": calculate_progress(count, target),
            "status": status,
        }
