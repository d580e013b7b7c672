"""Statistics Engine - read-only analytics over a space's habits and completions.

This engine provides independent aggregation functions:
- 7-day consistency histogram (active habits only)
- Best day of week (all-time)
- Rolling completion rate per habit
- Team contribution leaderboard
- Week-over-week habit trends
- Per-member streak summary

Design Principles:
    - Stateless: operates on passed snapshots, returns view models
    - Indexed: habit lookups go through one id → habit map per call, never
      repeated scans of the habit list per completion
    - Deduplicated: a (habit, date) pair counts once; member attribution uses
      (habit, date, member)
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from datetime import date, timedelta
from typing import TYPE_CHECKING, Any

from .. import const
from ..utils.dt_utils import dt_parse_date, dt_start_of_week, dt_today_local, dt_weekday
from ..utils.math_utils import calculate_percentage, round_half_up
from .schedule_engine import ScheduleEngine

if TYPE_CHECKING:
    from ..type_defs import (
        CompletionData,
        DayStats,
        HabitData,
        HabitTrend,
        MemberContribution,
        MemberData,
        MemberStreak,
    )

# Sort rank for trends (improving first)
_TREND_ORDER = {const.TREND_UP: 0, const.TREND_STABLE: 1, const.TREND_DOWN: 2}


class StatisticsEngine:
    """Pure logic engine for space analytics.

    All methods are static/class methods - no instance state. Every function
    that needs "today" accepts ``reference_date`` (defaults to the current
    UTC date).
    """

    # ────────────────────────────────────────────────────────────────
    # Indexing / Deduplication
    # ────────────────────────────────────────────────────────────────

    @staticmethod
    def build_habit_index(
        habits: Iterable[HabitData | Mapping[str, Any]],
    ) -> dict[str, Mapping[str, Any]]:
        """Return habit id → habit, built once per aggregation call."""
        return {h.get(const.DATA_HABIT_ID): h for h in habits}

    @staticmethod
    def unique_completions(
        completions: Iterable[CompletionData | Mapping[str, Any]],
        *,
        per_member: bool = False,
    ) -> list[tuple[str, date, str | None]]:
        """Return deduplicated (habit_id, date, user_id) keys.

        With ``per_member`` False, user_id is dropped from the key (None) so
        that a (habit, date) pair counts once. Records with an invalid date
        are skipped.
        """
        keys: dict[tuple[str, date, str | None], None] = {}
        for completion in completions:
            completion_date = dt_parse_date(completion.get(const.DATA_COMPLETION_DATE))
            if completion_date is None:
                continue
            user_id = completion.get(const.DATA_COMPLETION_USER_ID) if per_member else None
            keys[
                (completion.get(const.DATA_COMPLETION_HABIT_ID), completion_date, user_id)
            ] = None
        return list(keys)

    # ────────────────────────────────────────────────────────────────
    # Consistency
    # ────────────────────────────────────────────────────────────────

    @classmethod
    def weekly_consistency(
        cls,
        habits: Iterable[HabitData | Mapping[str, Any]],
        completions: Iterable[CompletionData | Mapping[str, Any]],
        reference_date: date | None = None,
        days: int = const.DEFAULT_CONSISTENCY_DAYS,
    ) -> list[DayStats]:
        """Return one bucket per day for the last ``days`` days, oldest first.

        Today is the last bucket. Only completions of existing, non-frozen
        habits count.

        Example:
            [{"date": "2024-01-01", "label": "Mon", "count": 2}, ...]
        """
        today = reference_date or dt_today_local()
        index = cls.build_habit_index(habits)
        first_day = today - timedelta(days=days - 1)

        counts: Counter[date] = Counter()
        for habit_id, completion_date, _ in cls.unique_completions(completions):
            habit = index.get(habit_id)
            if habit is None or habit.get(const.DATA_HABIT_IS_FROZEN, False):
                continue
            if first_day <= completion_date <= today:
                counts[completion_date] += 1

        buckets: list[DayStats] = []
        for offset in range(days):
            day = first_day + timedelta(days=offset)
            buckets.append(
                {
                    "date": day.isoformat(),
                    "label": const.WEEKDAY_SHORT_LABELS[dt_weekday(day)],
                    "count": counts[day],
                }
            )
        return buckets

    @classmethod
    def best_day_of_week(
        cls,
        completions: Iterable[CompletionData | Mapping[str, Any]],
    ) -> int | None:
        """Return the Sunday-based weekday with the most completions (all-time).

        Ties resolve to the lowest weekday index. No completions → None.
        """
        histogram = [0] * 7
        for _, completion_date, _ in cls.unique_completions(completions):
            histogram[dt_weekday(completion_date)] += 1

        if not any(histogram):
            return None

        best = 0
        for weekday in range(1, 7):
            if histogram[weekday] > histogram[best]:
                best = weekday
        return best

    @classmethod
    def best_day_label(
        cls,
        completions: Iterable[CompletionData | Mapping[str, Any]],
    ) -> str | None:
        """Return the full name of best_day_of_week(), or None."""
        best = cls.best_day_of_week(completions)
        return None if best is None else const.WEEKDAY_LABELS[best]

    @classmethod
    def completion_rate(
        cls,
        habit: HabitData | Mapping[str, Any],
        completions: Iterable[CompletionData | Mapping[str, Any]],
        window_days: int = const.DEFAULT_COMPLETION_RATE_WINDOW_DAYS,
        reference_date: date | None = None,
    ) -> int:
        """Return round(completed days in window / window_days * 100).

        The window is the ``window_days`` days ending today (inclusive). This
        is a raw frequency: it is NOT weighted by how many of those days the
        habit was actually due, so a Mon/Wed/Fri habit done every time scores
        around 43, not 100.
        """
        if window_days <= 0:
            return 0
        today = reference_date or dt_today_local()
        window_start = today - timedelta(days=window_days - 1)
        dates = ScheduleEngine.completion_dates_for(
            habit.get(const.DATA_HABIT_ID), completions
        )
        count = sum(1 for d in dates if window_start <= d <= today)
        return calculate_percentage(count, window_days)

    # ────────────────────────────────────────────────────────────────
    # Team / Members
    # ────────────────────────────────────────────────────────────────

    @classmethod
    def team_contribution(
        cls,
        members: Iterable[MemberData | Mapping[str, Any]],
        completions: Iterable[CompletionData | Mapping[str, Any]],
        reference_date: date | None = None,
        week_start: int = const.DEFAULT_WEEK_START,
    ) -> list[MemberContribution]:
        """Return per-member lifetime and this-week completion counts.

        Sorted by weekly count descending; ties keep the input member order.
        """
        today = reference_date or dt_today_local()
        week_begin = dt_start_of_week(today, week_start)

        totals: Counter[str | None] = Counter()
        weekly: Counter[str | None] = Counter()
        for _, completion_date, user_id in cls.unique_completions(
            completions, per_member=True
        ):
            totals[user_id] += 1
            if week_begin <= completion_date <= today:
                weekly[user_id] += 1

        rows: list[MemberContribution] = [
            {
                "member_id": member.get(const.DATA_MEMBER_UID),
                "display_name": member.get(const.DATA_MEMBER_DISPLAY_NAME, ""),
                "total_completions": totals[member.get(const.DATA_MEMBER_UID)],
                "weekly_completions": weekly[member.get(const.DATA_MEMBER_UID)],
            }
            for member in members
        ]
        # list.sort is stable
        rows.sort(key=lambda row: row["weekly_completions"], reverse=True)
        return rows

    @classmethod
    def member_streaks(
        cls,
        members: Iterable[MemberData | Mapping[str, Any]],
        habits: Iterable[HabitData | Mapping[str, Any]],
        completions: Iterable[CompletionData | Mapping[str, Any]],
        reference_date: date | None = None,
        week_start: int = const.DEFAULT_WEEK_START,
    ) -> list[MemberStreak]:
        """Summarize streaks per member across the habits assigned to them.

        - longest_streak: max best_streak of assigned habits
        - current_streak: rounded mean of the positive current streaks
        - completed_today: every assigned habit due today has this member's
          completion today (False when nothing is due)
        - is_at_risk: a current streak without completed_today

        Sorted by current streak descending, ties keep member order.
        """
        today = reference_date or dt_today_local()
        habit_list = list(habits)
        log = list(completions)
        done_today = {
            (habit_id, user_id)
            for habit_id, completion_date, user_id in cls.unique_completions(
                log, per_member=True
            )
            if completion_date == today
        }

        rows: list[MemberStreak] = []
        for member in members:
            member_id = member.get(const.DATA_MEMBER_UID)
            assigned = [
                h
                for h in habit_list
                if member_id in (h.get(const.DATA_HABIT_ASSIGNEE_IDS) or [])
            ]

            longest = max(
                (int(h.get(const.DATA_HABIT_BEST_STREAK) or 0) for h in assigned),
                default=0,
            )
            active = [
                int(h.get(const.DATA_HABIT_CURRENT_STREAK) or 0)
                for h in assigned
                if int(h.get(const.DATA_HABIT_CURRENT_STREAK) or 0) > 0
            ]
            current = round_half_up(sum(active) / len(active)) if active else 0

            due_today = [
                h
                for h in assigned
                if ScheduleEngine.is_habit_due_today(h, log, today, week_start)
                or (h.get(const.DATA_HABIT_ID), member_id) in done_today
            ]
            completed_today = bool(due_today) and all(
                (h.get(const.DATA_HABIT_ID), member_id) in done_today for h in due_today
            )

            rows.append(
                {
                    "member_id": member_id,
                    "display_name": member.get(const.DATA_MEMBER_DISPLAY_NAME, ""),
                    "current_streak": current,
                    "longest_streak": longest,
                    "completed_today": completed_today,
                    "is_at_risk": current > 0 and not completed_today,
                }
            )

        rows.sort(key=lambda row: row["current_streak"], reverse=True)
        return rows

    # ────────────────────────────────────────────────────────────────
    # Trends
    # ────────────────────────────────────────────────────────────────

    @classmethod
    def habit_trends(
        cls,
        habits: Iterable[HabitData | Mapping[str, Any]],
        completions: Iterable[CompletionData | Mapping[str, Any]],
        reference_date: date | None = None,
        week_start: int = const.DEFAULT_WEEK_START,
    ) -> list[HabitTrend]:
        """Compare this week (so far) with last week for every active habit.

        trend is up / down when the change exceeds TREND_DEAD_BAND_PERCENT in
        either direction; a habit with nothing last week and something this
        week is up (+100). Sorted up → stable → down, stable within a group.
        """
        today = reference_date or dt_today_local()
        this_week_start = dt_start_of_week(today, week_start)
        last_week_start = this_week_start - timedelta(weeks=1)

        this_week: Counter[str] = Counter()
        last_week: Counter[str] = Counter()
        for habit_id, completion_date, _ in cls.unique_completions(completions):
            if this_week_start <= completion_date <= today:
                this_week[habit_id] += 1
            elif last_week_start <= completion_date < this_week_start:
                last_week[habit_id] += 1

        trends: list[HabitTrend] = []
        for habit in habits:
            if habit.get(const.DATA_HABIT_IS_FROZEN, False):
                continue
            habit_id = habit.get(const.DATA_HABIT_ID)
            current = this_week[habit_id]
            previous = last_week[habit_id]

            trend = const.TREND_STABLE
            percent_change = 0.0
            if previous > 0:
                percent_change = (current - previous) / previous * 100
                if percent_change > const.TREND_DEAD_BAND_PERCENT:
                    trend = const.TREND_UP
                elif percent_change < -const.TREND_DEAD_BAND_PERCENT:
                    trend = const.TREND_DOWN
            elif current > 0:
                trend = const.TREND_UP
                percent_change = 100.0

            trends.append(
                {
                    "habit_id": habit_id,
                    "habit_title": habit.get(const.DATA_HABIT_TITLE, ""),
                    "trend": trend,
                    "this_week_count": current,
                    "last_week_count": previous,
                    "percent_change": percent_change,
                }
            )

        trends.sort(key=lambda item: _TREND_ORDER[item["trend"]])
        return trends
