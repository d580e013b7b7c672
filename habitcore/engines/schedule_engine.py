"""Schedule Engine - decides whether a habit is due on a calendar date.

Four recurrence rules are supported:
- daily: due every calendar day
- specific_days: due on a set of Sunday-based weekday indices
- interval: due every N whole calendar days after the last completion
- weekly: due "loosely", M times within a week; evaluated at week granularity

Enumerating due dates for fixed patterns uses `dateutil.rrule`. Interval and
weekly habits depend on completion history, so every day is a candidate.

ARCHITECTURE: Leaf engine. No dependency on the other engines, no side effects.
An invalid recurrence configuration resolves to a safe default (never due, or
interval of 1); an unknown schedule type is rejected.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from dateutil.rrule import DAILY, FR, MO, SA, SU, TH, TU, WE, WEEKLY, rrule

from .. import const
from ..utils.dt_utils import (
    dt_days_between,
    dt_end_of_week,
    dt_parse_date,
    dt_start_of_week,
    dt_weekday,
)

if TYPE_CHECKING:
    from ..type_defs import CompletionData, HabitData, ScheduleConfig

# rrule weekday objects indexed by Sunday-based weekday
_RRULE_WEEKDAYS = (SU, MO, TU, WE, TH, FR, SA)


class UnknownScheduleTypeError(ValueError):
    """Raised for a schedule type this engine does not know.

    Indicates a schema/version mismatch between the writer of the habit record
    and this reader. Not user-recoverable.

    Attributes:
        schedule_type: The offending type value
    """

    def __init__(self, schedule_type: Any) -> None:
        """Initialize UnknownScheduleTypeError.

        Args:
            schedule_type: The unrecognized value of schedule["type"]
        """
        self.schedule_type = schedule_type
        super().__init__(
            f"Unknown schedule type: {schedule_type!r} "
            f"(expected one of {', '.join(const.SCHEDULE_TYPES)})"
        )


class ScheduleEngine:
    """Pure logic engine for recurrence evaluation.

    All methods are static - no instance state.
    """

    # =========================================================================
    # SCHEDULE FIELD ACCESS (with safe coercion)
    # =========================================================================

    @staticmethod
    def get_type(schedule: Mapping[str, Any]) -> str:
        """Return the schedule type, raising if it is unknown.

        Raises:
            UnknownScheduleTypeError: If the type is not one of the four rules.
        """
        schedule_type = schedule.get(const.DATA_SCHEDULE_TYPE)
        if schedule_type not in const.SCHEDULE_TYPES:
            raise UnknownScheduleTypeError(schedule_type)
        return schedule_type

    @staticmethod
    def get_days_of_week(schedule: Mapping[str, Any]) -> frozenset[int]:
        """Return the valid weekday indices (entries outside 0-6 are dropped)."""
        raw_days = schedule.get(const.DATA_SCHEDULE_DAYS_OF_WEEK) or []
        return frozenset(
            day for day in raw_days if isinstance(day, int) and 0 <= day <= 6
        )

    @staticmethod
    def get_interval_days(schedule: Mapping[str, Any]) -> int:
        """Return interval_days, coercing missing or non-positive values to 1."""
        interval = schedule.get(const.DATA_SCHEDULE_INTERVAL_DAYS)
        if not isinstance(interval, int) or interval <= 0:
            return const.DEFAULT_INTERVAL_DAYS
        return interval

    @staticmethod
    def get_times_per_week(schedule: Mapping[str, Any]) -> int:
        """Return times_per_week, coercing missing or non-positive values to 1."""
        times = schedule.get(const.DATA_SCHEDULE_TIMES_PER_WEEK)
        if not isinstance(times, int) or times <= 0:
            return const.DEFAULT_TIMES_PER_WEEK
        return times

    @classmethod
    def is_week_granular(cls, schedule: Mapping[str, Any]) -> bool:
        """Return True if streaks for this schedule are counted in weeks."""
        return cls.get_type(schedule) == const.SCHEDULE_TYPE_WEEKLY

    # =========================================================================
    # DUE-NESS
    # =========================================================================

    @classmethod
    def is_due(
        cls,
        schedule: ScheduleConfig | Mapping[str, Any],
        day: date,
        last_completed_at: str | date | datetime | None,
        created_at: str | date | datetime | None = None,
    ) -> bool:
        """Decide whether a habit is due on ``day``.

        Args:
            schedule: The habit's recurrence rule.
            day: Calendar date being evaluated.
            last_completed_at: Most recent completion before ``day`` (or None).
            created_at: Habit creation; first due date of a never-completed
                interval habit. Unknown creation means due.

        Returns:
            True if the rule requires action on ``day``.

        Raises:
            UnknownScheduleTypeError: For an unknown schedule type.

        Examples:
            daily → always True
            specific_days [1, 3, 5], Tuesday → False
            interval 3, last=Jan 1, day=Jan 4 → True (3 days)
            interval 3, last=Jan 1, day=Jan 3 → False (too early)
        """
        schedule_type = cls.get_type(schedule)

        if schedule_type == const.SCHEDULE_TYPE_DAILY:
            return True

        if schedule_type == const.SCHEDULE_TYPE_SPECIFIC_DAYS:
            # Empty set → never due (and therefore never missed)
            return dt_weekday(day) in cls.get_days_of_week(schedule)

        if schedule_type == const.SCHEDULE_TYPE_INTERVAL:
            last = dt_parse_date(last_completed_at)
            if last is None:
                created = dt_parse_date(created_at)
                return created is None or day >= created
            return dt_days_between(day, last) >= cls.get_interval_days(schedule)

        # Weekly habits are loosely due on any day; continuity is judged per week
        return True

    @classmethod
    def is_on_track_for_week(
        cls,
        schedule: ScheduleConfig | Mapping[str, Any],
        completion_dates: Iterable[date],
        reference_date: date,
        week_start: int = const.DEFAULT_WEEK_START,
    ) -> bool:
        """Return True if the week containing ``reference_date`` met its target.

        Args:
            schedule: Weekly recurrence rule (times_per_week).
            completion_dates: Completion dates for the habit (duplicates ignored).
            reference_date: Any date inside the week to check.
            week_start: Sunday-based weekday the week starts on.
        """
        return cls.count_in_week(
            completion_dates, reference_date, week_start
        ) >= cls.get_times_per_week(schedule)

    @staticmethod
    def count_in_week(
        completion_dates: Iterable[date],
        reference_date: date,
        week_start: int = const.DEFAULT_WEEK_START,
    ) -> int:
        """Count distinct completion dates inside the week of ``reference_date``."""
        start = dt_start_of_week(reference_date, week_start)
        end = dt_end_of_week(reference_date, week_start)
        return len({d for d in completion_dates if start <= d <= end})

    @classmethod
    def is_habit_due_today(
        cls,
        habit: HabitData | Mapping[str, Any],
        completions: Iterable[CompletionData | Mapping[str, Any]],
        reference_date: date,
        week_start: int = const.DEFAULT_WEEK_START,
    ) -> bool:
        """Display rule: should this habit show up as "to do" on ``reference_date``.

        Differs from is_due() in two ways:
        - A frozen habit is never due.
        - A weekly habit is due only while this week's count is below target.

        Interval habits measure from the latest logged completion strictly
        before ``reference_date``, falling back to the stored last_completed_at.
        """
        if habit.get(const.DATA_HABIT_IS_FROZEN, False):
            return False

        schedule = habit.get(const.DATA_HABIT_SCHEDULE) or {}
        dates = cls.completion_dates_for(habit.get(const.DATA_HABIT_ID), completions)

        if cls.get_type(schedule) == const.SCHEDULE_TYPE_WEEKLY:
            return not cls.is_on_track_for_week(
                schedule, dates, reference_date, week_start
            )

        earlier = [d for d in dates if d < reference_date]
        last_completed: date | str | None = (
            max(earlier) if earlier else habit.get(const.DATA_HABIT_LAST_COMPLETED_AT)
        )
        last_date = dt_parse_date(last_completed)
        if last_date is not None and last_date >= reference_date:
            # Stored pointer is not "before" today; only the log can say more
            last_completed = None
        return cls.is_due(
            schedule,
            reference_date,
            last_completed,
            habit.get(const.DATA_HABIT_CREATED_AT),
        )

    # =========================================================================
    # ENUMERATION
    # =========================================================================

    @classmethod
    def get_scheduled_dates(
        cls,
        schedule: ScheduleConfig | Mapping[str, Any],
        start: date,
        end: date,
    ) -> list[date]:
        """Return the candidate due dates between ``start`` and ``end`` inclusive.

        daily and specific_days are exact. interval and weekly depend on
        completion history, so every day in the range is returned.
        """
        if end < start:
            return []

        schedule_type = cls.get_type(schedule)
        dtstart = datetime.combine(start, datetime.min.time())
        until = datetime.combine(end, datetime.min.time())

        if schedule_type == const.SCHEDULE_TYPE_SPECIFIC_DAYS:
            days = cls.get_days_of_week(schedule)
            if not days:
                return []
            rule = rrule(
                WEEKLY,
                dtstart=dtstart,
                until=until,
                byweekday=[_RRULE_WEEKDAYS[d] for d in sorted(days)],
            )
        else:
            rule = rrule(DAILY, dtstart=dtstart, until=until)

        return [occurrence.date() for occurrence in rule]

    # =========================================================================
    # COMPLETION LOG HELPERS
    # =========================================================================

    @staticmethod
    def completion_dates_for(
        habit_id: str | None,
        completions: Iterable[CompletionData | Mapping[str, Any]],
    ) -> set[date]:
        """Return the distinct completion dates logged for one habit.

        Duplicates for the same (habit, date) collapse into one; records with an
        unparseable date are ignored.
        """
        dates: set[date] = set()
        for completion in completions:
            if completion.get(const.DATA_COMPLETION_HABIT_ID) != habit_id:
                continue
            parsed = dt_parse_date(completion.get(const.DATA_COMPLETION_DATE))
            if parsed is None:
                const.LOGGER.warning(
                    "Ignoring completion %s with invalid date: %s",
                    completion.get(const.DATA_COMPLETION_ID),
                    completion.get(const.DATA_COMPLETION_DATE),
                )
                continue
            dates.add(parsed)
        return dates
