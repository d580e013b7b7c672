"""Streak Engine - derives streak state from a habit's completion log.

This engine provides stateless, pure Python functions for:
- Current/best streak recomputation (day-granular and week-granular)
- Freeze handling (frozen dates neither break nor extend a streak)
- Completion add/remove bookkeeping (streak fields + last_completed_at)
- Streak status, habit status and "at risk" danger levels

RECOMPUTE, NEVER INCREMENT: every call walks the full deduplicated log. The
result depends only on the final set of completion dates, never on the order
completions were added, so two collaborators recomputing from the same
eventually-consistent log always agree.

ARCHITECTURE: Depends on ScheduleEngine only. The caller persists the returned
HabitUpdate; this engine never mutates its inputs.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Mapping
from datetime import date, timedelta
from typing import TYPE_CHECKING, Any

from .. import const
from ..utils.dt_utils import dt_parse_date, dt_start_of_week, dt_today_local
from .schedule_engine import ScheduleEngine

if TYPE_CHECKING:
    from ..type_defs import (
        CompletionData,
        HabitAtRisk,
        HabitData,
        HabitUpdate,
        StreakResult,
    )

FrozenSpan = tuple[date, date]


class StreakEngine:
    """Pure logic engine for streak calculation.

    All methods are static/class methods - no instance state.

    Day-granular schedules (daily, specific_days, interval):
        Walk backward from the reference date down to the earliest completion.
        - Not due → skipped (neither breaks nor extends)
        - Frozen → skipped (neither breaks nor extends)
        - Due + completed → streak + 1
        - Due + not completed → streak ends, except on the reference date
          itself (the day is not over yet)

    Week-granular schedules (weekly):
        Same walk over weeks. A week counts when it met times_per_week; the
        current week never breaks the streak; a week that fell short is skipped
        when it touches a frozen date.
    """

    # =========================================================================
    # FREEZE SPANS
    # =========================================================================

    @staticmethod
    def get_frozen_spans(
        habit: HabitData | Mapping[str, Any],
        reference_date: date,
        last_activity: date | None = None,
        completed: Collection[date] | None = None,
    ) -> list[FrozenSpan]:
        """Return every frozen span of the habit as inclusive (start, end) dates.

        Closed spans come from frozen_periods. While the habit is frozen, the
        open span runs from streak_frozen_at through ``reference_date``. When
        streak_frozen_at is unknown the span starts the day after
        ``last_activity`` (or at the beginning of time without one).

        A span whose first day is in ``completed`` starts the day after: the
        completion was logged before the freeze, so that day stays live.
        """
        spans: list[FrozenSpan] = []
        for period in habit.get(const.DATA_HABIT_FROZEN_PERIODS) or []:
            start = dt_parse_date(period.get(const.DATA_FROZEN_PERIOD_START))
            end = dt_parse_date(period.get(const.DATA_FROZEN_PERIOD_END))
            if start is None or end is None or end < start:
                const.LOGGER.warning(
                    "Ignoring malformed frozen period on habit %s: %s",
                    habit.get(const.DATA_HABIT_ID),
                    period,
                )
                continue
            spans.append((start, end))

        if habit.get(const.DATA_HABIT_IS_FROZEN, False):
            frozen_at = dt_parse_date(habit.get(const.DATA_HABIT_STREAK_FROZEN_AT))
            if frozen_at is None and last_activity is not None:
                frozen_at = last_activity + timedelta(days=1)
            spans.append((frozen_at or date.min, reference_date))

        if completed:
            spans = [
                (start + timedelta(days=1), end)
                if start in completed
                else (start, end)
                for start, end in spans
            ]
            spans = [(start, end) for start, end in spans if start <= end]

        return spans

    @staticmethod
    def _is_frozen_on(spans: list[FrozenSpan], day: date) -> bool:
        return any(start <= day <= end for start, end in spans)

    @staticmethod
    def _overlaps_frozen(spans: list[FrozenSpan], start: date, end: date) -> bool:
        return any(s <= end and start <= e for s, e in spans)

    # =========================================================================
    # RECOMPUTE
    # =========================================================================

    @classmethod
    def recompute(
        cls,
        habit: HabitData | Mapping[str, Any],
        completions: Iterable[CompletionData | Mapping[str, Any]],
        reference_date: date | None = None,
        week_start: int = const.DEFAULT_WEEK_START,
    ) -> StreakResult:
        """Recompute current and best streak from the full completion log.

        Args:
            habit: Habit record (schedule, freeze state, previous best_streak).
            completions: Completion log; records for other habits are ignored
                and duplicates for the same date count once.
            reference_date: "Today". Defaults to the current UTC date.
            week_start: Sunday-based weekday weekly streaks are aligned to.

        Returns:
            StreakResult with current_streak and best_streak, where best_streak
            never drops below the habit's previously recorded best.

        Raises:
            UnknownScheduleTypeError: For an unknown schedule type.
        """
        today = reference_date or dt_today_local()
        current = cls.calculate_current_streak(habit, completions, today, week_start)
        previous_best = int(habit.get(const.DATA_HABIT_BEST_STREAK) or 0)
        best = max(previous_best, current)

        const.LOGGER.debug(
            "Recomputed streak for habit %s on %s: current=%s best=%s",
            habit.get(const.DATA_HABIT_ID),
            today,
            current,
            best,
        )
        return {"current_streak": current, "best_streak": best}

    @classmethod
    def calculate_current_streak(
        cls,
        habit: HabitData | Mapping[str, Any],
        completions: Iterable[CompletionData | Mapping[str, Any]],
        reference_date: date,
        week_start: int = const.DEFAULT_WEEK_START,
    ) -> int:
        """Return the current streak (days or weeks) as of ``reference_date``."""
        schedule = habit.get(const.DATA_HABIT_SCHEDULE) or {}
        dates = {
            d
            for d in ScheduleEngine.completion_dates_for(
                habit.get(const.DATA_HABIT_ID), completions
            )
            if d <= reference_date
        }
        if not dates:
            return 0

        spans = cls.get_frozen_spans(habit, reference_date, max(dates), dates)

        if ScheduleEngine.is_week_granular(schedule):
            return cls._week_streak(schedule, dates, spans, reference_date, week_start)
        return cls._day_streak(
            schedule,
            dates,
            spans,
            reference_date,
            habit.get(const.DATA_HABIT_CREATED_AT),
        )

    @classmethod
    def _day_streak(
        cls,
        schedule: Mapping[str, Any],
        dates: set[date],
        spans: list[FrozenSpan],
        today: date,
        created_at: str | None,
    ) -> int:
        descending = sorted(dates, reverse=True)
        earliest = descending[-1]
        prior_index = 0
        streak = 0
        day = today

        while day >= earliest:
            # Latest completion strictly before `day` (interval due-ness)
            while prior_index < len(descending) and descending[prior_index] >= day:
                prior_index += 1
            previous = (
                descending[prior_index] if prior_index < len(descending) else None
            )

            if not cls._is_frozen_on(spans, day) and ScheduleEngine.is_due(
                schedule, day, previous, created_at
            ):
                if day in dates:
                    streak += 1
                elif day != today:
                    break

            day -= timedelta(days=1)

        return streak

    @classmethod
    def _week_streak(
        cls,
        schedule: Mapping[str, Any],
        dates: set[date],
        spans: list[FrozenSpan],
        today: date,
        week_start: int,
    ) -> int:
        current_week = dt_start_of_week(today, week_start)
        earliest_week = dt_start_of_week(min(dates), week_start)
        streak = 0
        week = current_week

        while week >= earliest_week:
            week_end = min(week + timedelta(days=6), today)

            if ScheduleEngine.is_on_track_for_week(schedule, dates, week, week_start):
                streak += 1
            elif week != current_week and not cls._overlaps_frozen(
                spans, week, week_end
            ):
                break

            week -= timedelta(weeks=1)

        return streak

    @classmethod
    def recompute_space(
        cls,
        habits: Iterable[HabitData | Mapping[str, Any]],
        completions: Iterable[CompletionData | Mapping[str, Any]],
        reference_date: date | None = None,
        week_start: int = const.DEFAULT_WEEK_START,
    ) -> dict[str, HabitUpdate]:
        """Recompute derived fields for every habit of a space snapshot.

        Returns:
            Mapping of habit id → HabitUpdate, ready for re-persistence.
        """
        today = reference_date or dt_today_local()
        log = list(completions)
        updates: dict[str, HabitUpdate] = {}
        for habit in habits:
            habit_id = habit.get(const.DATA_HABIT_ID)
            result = cls.recompute(habit, log, today, week_start)
            updates[habit_id] = {
                "current_streak": result["current_streak"],
                "best_streak": result["best_streak"],
                "last_completed_at": cls.last_completed_at_from_log(habit_id, log),
            }
        return updates

    # =========================================================================
    # COMPLETION LIFECYCLE
    # =========================================================================

    @classmethod
    def apply_completion_added(
        cls,
        habit: HabitData | Mapping[str, Any],
        completions: Iterable[CompletionData | Mapping[str, Any]],
        completion: CompletionData | Mapping[str, Any],
        reference_date: date | None = None,
        week_start: int = const.DEFAULT_WEEK_START,
    ) -> HabitUpdate:
        """Return the habit's derived fields after ``completion`` was logged.

        ``completions`` may or may not already contain the new record; a
        duplicate for an already-logged date is a no-op for the streak.

        last_completed_at moves to the new completion only when its date is at
        or after the currently recorded one.
        """
        log = list(completions)
        if completion not in log:
            log.append(completion)

        result = cls.recompute(habit, log, reference_date, week_start)

        recorded = habit.get(const.DATA_HABIT_LAST_COMPLETED_AT)
        recorded_date = dt_parse_date(recorded)
        new_date = dt_parse_date(completion.get(const.DATA_COMPLETION_DATE))
        if new_date is not None and (recorded_date is None or new_date >= recorded_date):
            last_completed_at = completion.get(
                const.DATA_COMPLETION_COMPLETED_AT
            ) or completion.get(const.DATA_COMPLETION_DATE)
        else:
            last_completed_at = recorded

        return {
            "current_streak": result["current_streak"],
            "best_streak": result["best_streak"],
            "last_completed_at": last_completed_at,
        }

    @classmethod
    def apply_completion_removed(
        cls,
        habit: HabitData | Mapping[str, Any],
        remaining: Iterable[CompletionData | Mapping[str, Any]],
        reference_date: date | None = None,
        week_start: int = const.DEFAULT_WEEK_START,
    ) -> HabitUpdate:
        """Return the habit's derived fields after a completion was removed.

        Everything is recomputed from ``remaining`` (the log without the removed
        record), including last_completed_at, which is cleared when no
        completion for the habit is left.
        """
        log = list(remaining)
        result = cls.recompute(habit, log, reference_date, week_start)
        return {
            "current_streak": result["current_streak"],
            "best_streak": result["best_streak"],
            "last_completed_at": cls.last_completed_at_from_log(
                habit.get(const.DATA_HABIT_ID), log
            ),
        }

    @staticmethod
    def last_completed_at_from_log(
        habit_id: str | None,
        completions: Iterable[CompletionData | Mapping[str, Any]],
    ) -> str | None:
        """Return the timestamp of the habit's most recent completion, or None.

        Ordered by (date, completed_at) so the answer does not depend on the
        order of the log. Falls back to the ISO date when a record carries no
        completed_at.
        """
        latest: tuple[date, str] | None = None
        for completion in completions:
            if completion.get(const.DATA_COMPLETION_HABIT_ID) != habit_id:
                continue
            completion_date = dt_parse_date(completion.get(const.DATA_COMPLETION_DATE))
            if completion_date is None:
                continue
            stamp = completion.get(
                const.DATA_COMPLETION_COMPLETED_AT
            ) or completion_date.isoformat()
            candidate = (completion_date, stamp)
            if latest is None or candidate > latest:
                latest = candidate
        return latest[1] if latest else None

    # =========================================================================
    # STATUS
    # =========================================================================

    @classmethod
    def get_habit_status(
        cls,
        habit: HabitData | Mapping[str, Any],
        completions: Iterable[CompletionData | Mapping[str, Any]],
        reference_date: date | None = None,
        week_start: int = const.DEFAULT_WEEK_START,
    ) -> str:
        """Return completed / due / not_due / frozen for display."""
        if habit.get(const.DATA_HABIT_IS_FROZEN, False):
            return const.HABIT_STATUS_FROZEN

        today = reference_date or dt_today_local()
        log = list(completions)
        dates = ScheduleEngine.completion_dates_for(habit.get(const.DATA_HABIT_ID), log)
        if today in dates:
            return const.HABIT_STATUS_COMPLETED
        if ScheduleEngine.is_habit_due_today(habit, log, today, week_start):
            return const.HABIT_STATUS_DUE
        return const.HABIT_STATUS_NOT_DUE

    @classmethod
    def get_streak_status(
        cls,
        habit: HabitData | Mapping[str, Any],
        completions: Iterable[CompletionData | Mapping[str, Any]],
        reference_date: date | None = None,
        week_start: int = const.DEFAULT_WEEK_START,
    ) -> str:
        """Return alive / at_risk / broken.

        - broken: no current streak
        - at_risk: a live streak that ends unless the habit is done today (for
          weekly habits: unless this week's target is still met)
        - alive: anything else, including every frozen habit with a streak
        """
        today = reference_date or dt_today_local()
        log = list(completions)
        if cls.calculate_current_streak(habit, log, today, week_start) == 0:
            return const.STREAK_STATUS_BROKEN
        if cls.get_habit_status(habit, log, today, week_start) == const.HABIT_STATUS_DUE:
            return const.STREAK_STATUS_AT_RISK
        return const.STREAK_STATUS_ALIVE

    @classmethod
    def get_danger_level(
        cls,
        habit: HabitData | Mapping[str, Any],
        completions: Iterable[CompletionData | Mapping[str, Any]],
        reference_date: date | None = None,
        week_start: int = const.DEFAULT_WEEK_START,
    ) -> str | None:
        """Return critical / warning for an at-risk streak, None when safe.

        A streak of STREAK_CRITICAL_THRESHOLD or more is critical.
        """
        if habit.get(const.DATA_HABIT_IS_FROZEN, False):
            return None

        today = reference_date or dt_today_local()
        log = list(completions)
        streak = cls.calculate_current_streak(habit, log, today, week_start)
        if streak == 0:
            return None
        if cls.get_habit_status(habit, log, today, week_start) != const.HABIT_STATUS_DUE:
            return None
        if streak >= const.STREAK_CRITICAL_THRESHOLD:
            return const.DANGER_LEVEL_CRITICAL
        return const.DANGER_LEVEL_WARNING

    @classmethod
    def get_habits_at_risk(
        cls,
        habits: Iterable[HabitData | Mapping[str, Any]],
        completions: Iterable[CompletionData | Mapping[str, Any]],
        reference_date: date | None = None,
        week_start: int = const.DEFAULT_WEEK_START,
    ) -> list[HabitAtRisk]:
        """Return at-risk habits, critical first, then by streak descending."""
        today = reference_date or dt_today_local()
        log = list(completions)
        at_risk: list[HabitAtRisk] = []

        for habit in habits:
            level = cls.get_danger_level(habit, log, today, week_start)
            if level is None:
                continue
            at_risk.append(
                {
                    "habit_id": habit.get(const.DATA_HABIT_ID),
                    "danger_level": level,
                    "streak": cls.calculate_current_streak(
                        habit, log, today, week_start
                    ),
                }
            )

        at_risk.sort(
            key=lambda item: (
                item["danger_level"] != const.DANGER_LEVEL_CRITICAL,
                -item["streak"],
            )
        )
        return at_risk

    @classmethod
    def member_streak(
        cls,
        habit: HabitData | Mapping[str, Any],
        completions: Iterable[CompletionData | Mapping[str, Any]],
        member_id: str,
        reference_date: date | None = None,
        week_start: int = const.DEFAULT_WEEK_START,
    ) -> int:
        """Return the habit's current streak counting only one member's completions."""
        today = reference_date or dt_today_local()
        own = [
            c for c in completions if c.get(const.DATA_COMPLETION_USER_ID) == member_id
        ]
        return cls.calculate_current_streak(habit, own, today, week_start)
