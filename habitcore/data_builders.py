"""Record lifecycle helpers.

This module is the SINGLE SOURCE OF TRUTH for:
- Record field defaults
- Editor-facing validation (schedules, wagers, engine configuration)
- Complete record structure building (habits, completions, wagers)
- The small mutations callers apply to records: reactions, freeze / unfreeze

## Key Concepts

### Build Functions
Each record type has a `build_<record>()` function that:
- Takes user_input with DATA_* keys
- Generates the id (UUID) for new records
- Sets timestamps (created_at / completed_at)
- Applies field defaults
- Returns a complete record dict ready for storage

### Validation Functions
`validate_<thing>()` functions return a dict of errors
({field: translation_key}, empty when valid) for editors to highlight.
`build_*()` raises EntityValidationError for the first failure instead.

### Mutations Return Copies
Reactions and freeze helpers never mutate their input. They return a new
record (reactions) or the field updates to persist (freeze / unfreeze).

See Also:
- type_defs.py: TypedDict definitions for type safety
- engines/: pure computations over the records built here
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import copy
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Any
import uuid

from . import const
from .utils.dt_utils import (
    dt_now_iso,
    dt_parse_date,
    dt_today_local,
    get_time_zone,
    is_valid_time_zone,
)

if TYPE_CHECKING:
    from .type_defs import (
        CompletionData,
        EngineConfig,
        HabitData,
        ScheduleConfig,
        WagerData,
    )

# ==============================================================================
# HELPER FUNCTIONS FOR FIELD NORMALIZATION
# ==============================================================================


def _normalize_list_field(value: Any) -> list[Any]:
    """Normalize a field that should be a list.

    Handles cases where the value might be:
    - Already a list → return a copy
    - None → return empty list
    - Other iterables → return as list

    This prevents bugs like list("abc") → ['a', 'b', 'c']
    """
    if value is None:
        return []
    if isinstance(value, list):
        return list(value)
    if isinstance(value, str):
        return [value] if value else []
    return list(value) if value else []


def _normalize_optional_str(value: Any) -> str | None:
    """Return a stripped string, or None for empty values."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


# ==============================================================================
# EXCEPTIONS
# ==============================================================================


class EntityValidationError(Exception):
    """Validation error with field-specific information for form highlighting.

    Raised when building a record fails business-rule validation. The field
    attribute lets the caller map the error back to the input that caused it.

    Attributes:
        field: The DATA_* / CONF_* key identifying the failing field
        translation_key: The TRANS_KEY_* constant for the error message
        placeholders: Optional dict for message placeholders

    Example:
        raise EntityValidationError(
            field=const.DATA_WAGER_TARGET_STREAK,
            translation_key=const.TRANS_KEY_INVALID_TARGET_STREAK,
            placeholders={"value": "0"},
        )
    """

    def __init__(
        self,
        field: str,
        translation_key: str,
        placeholders: dict[str, str] | None = None,
    ) -> None:
        """Initialize EntityValidationError.

        Args:
            field: The key of the field that failed validation
            translation_key: The TRANS_KEY_* constant for error message
            placeholders: Optional dict for message placeholders
        """
        self.field = field
        self.translation_key = translation_key
        self.placeholders = placeholders or {}
        super().__init__(translation_key)


def _raise_first(errors: dict[str, str], data: Mapping[str, Any]) -> None:
    """Raise EntityValidationError for the first entry of an errors dict."""
    if not errors:
        return
    field, translation_key = next(iter(errors.items()))
    raise EntityValidationError(
        field=field,
        translation_key=translation_key,
        placeholders={"value": str(data.get(field))},
    )


# ==============================================================================
# SCHEDULES
# ==============================================================================


def validate_schedule(schedule: Mapping[str, Any] | None) -> dict[str, str]:
    """Validate a recurrence rule - SINGLE SOURCE OF TRUTH for editors.

    The engines never reject a malformed rule (they fall back to safe
    defaults); this is where the editor learns what is wrong with it.

    Args:
        schedule: ScheduleConfig-shaped dict

    Returns:
        Dict of errors: {field: translation_key}. Empty means valid.

    Validation Rules:
        1. type is one of SCHEDULE_TYPES
        2. specific_days: at least one day, every day within 0-6
        3. interval: interval_days is a positive integer
        4. weekly: times_per_week is an integer within 1-7
    """
    errors: dict[str, str] = {}
    schedule = schedule or {}

    # === 1. Type ===
    schedule_type = schedule.get(const.DATA_SCHEDULE_TYPE)
    if schedule_type not in const.SCHEDULE_TYPES:
        errors[const.DATA_SCHEDULE_TYPE] = const.TRANS_KEY_INVALID_SCHEDULE_TYPE
        return errors

    # === 2. Specific days ===
    if schedule_type == const.SCHEDULE_TYPE_SPECIFIC_DAYS:
        days = _normalize_list_field(schedule.get(const.DATA_SCHEDULE_DAYS_OF_WEEK))
        if not days:
            errors[const.DATA_SCHEDULE_DAYS_OF_WEEK] = const.TRANS_KEY_NO_DAYS_SELECTED
        elif any(
            isinstance(day, bool) or not isinstance(day, int) or not 0 <= day <= 6
            for day in days
        ):
            errors[const.DATA_SCHEDULE_DAYS_OF_WEEK] = const.TRANS_KEY_INVALID_WEEKDAY

    # === 3. Interval ===
    elif schedule_type == const.SCHEDULE_TYPE_INTERVAL:
        interval = schedule.get(const.DATA_SCHEDULE_INTERVAL_DAYS)
        if isinstance(interval, bool) or not isinstance(interval, int) or interval <= 0:
            errors[const.DATA_SCHEDULE_INTERVAL_DAYS] = const.TRANS_KEY_INVALID_INTERVAL

    # === 4. Weekly ===
    elif schedule_type == const.SCHEDULE_TYPE_WEEKLY:
        times = schedule.get(const.DATA_SCHEDULE_TIMES_PER_WEEK)
        if isinstance(times, bool) or not isinstance(times, int) or not 1 <= times <= 7:
            errors[const.DATA_SCHEDULE_TIMES_PER_WEEK] = (
                const.TRANS_KEY_INVALID_TIMES_PER_WEEK
            )

    return errors


def build_schedule(user_input: Mapping[str, Any] | None) -> ScheduleConfig:
    """Build a clean ScheduleConfig, keeping only the fields its type uses.

    Raises:
        EntityValidationError: If validate_schedule() reports an error.
    """
    data = dict(user_input or {})
    data.setdefault(const.DATA_SCHEDULE_TYPE, const.SCHEDULE_TYPE_DAILY)
    _raise_first(validate_schedule(data), data)

    schedule_type = data[const.DATA_SCHEDULE_TYPE]
    schedule: dict[str, Any] = {const.DATA_SCHEDULE_TYPE: schedule_type}
    if schedule_type == const.SCHEDULE_TYPE_SPECIFIC_DAYS:
        schedule[const.DATA_SCHEDULE_DAYS_OF_WEEK] = sorted(
            set(data[const.DATA_SCHEDULE_DAYS_OF_WEEK])
        )
    elif schedule_type == const.SCHEDULE_TYPE_INTERVAL:
        schedule[const.DATA_SCHEDULE_INTERVAL_DAYS] = data[
            const.DATA_SCHEDULE_INTERVAL_DAYS
        ]
    elif schedule_type == const.SCHEDULE_TYPE_WEEKLY:
        schedule[const.DATA_SCHEDULE_TIMES_PER_WEEK] = data[
            const.DATA_SCHEDULE_TIMES_PER_WEEK
        ]
    return schedule  # type: ignore[return-value]


# ==============================================================================
# WAGERS
# ==============================================================================


def build_wager(
    user_input: Mapping[str, Any],
    existing: WagerData | Mapping[str, Any] | None = None,
) -> WagerData:
    """Build wager data for create or update operations.

    A new wager always starts pending. On update the stored status and
    winner are kept; only the definition fields change.

    Raises:
        EntityValidationError: If target_streak is not a positive integer or
            start_date is not a date.
    """

    def get_field(data_key: str, default: Any) -> Any:
        if data_key in user_input:
            return user_input[data_key]
        if existing is not None:
            return existing.get(data_key, default)
        return default

    target = get_field(const.DATA_WAGER_TARGET_STREAK, 0)
    if isinstance(target, bool) or not isinstance(target, int) or target <= 0:
        raise EntityValidationError(
            field=const.DATA_WAGER_TARGET_STREAK,
            translation_key=const.TRANS_KEY_INVALID_TARGET_STREAK,
            placeholders={"value": str(target)},
        )

    raw_start = get_field(const.DATA_WAGER_START_DATE, None)
    start = dt_parse_date(raw_start) if raw_start is not None else dt_today_local()
    if start is None:
        raise EntityValidationError(
            field=const.DATA_WAGER_START_DATE,
            translation_key=const.TRANS_KEY_INVALID_DATE,
            placeholders={"value": str(raw_start)},
        )

    wager: WagerData = {
        "is_active": bool(get_field(const.DATA_WAGER_IS_ACTIVE, True)),
        "description": str(get_field(const.DATA_WAGER_DESCRIPTION, "")).strip(),
        "target_streak": target,
        "start_date": start.isoformat(),
        "participants": _normalize_list_field(
            get_field(const.DATA_WAGER_PARTICIPANTS, [])
        ),
        "status": (
            existing.get(const.DATA_WAGER_STATUS, const.WAGER_STATUS_PENDING)
            if existing is not None
            else const.WAGER_STATUS_PENDING
        ),
        "winner_id": existing.get(const.DATA_WAGER_WINNER_ID) if existing else None,
    }
    return wager


# ==============================================================================
# HABITS
# ==============================================================================


def validate_habit_data(
    data: Mapping[str, Any],
    *,
    is_update: bool = False,
) -> dict[str, str]:
    """Validate habit business rules.

    Returns:
        Dict of errors: {field: translation_key}. Empty means valid.

    Validation Rules:
        1. title not empty (create) or not blank (update if provided)
        2. schedule valid (if provided; create defaults to daily)
        3. wager target_streak positive (if a wager is provided)
    """
    errors: dict[str, str] = {}

    # === 1. Title ===
    title = _normalize_optional_str(data.get(const.DATA_HABIT_TITLE))
    if (not is_update or const.DATA_HABIT_TITLE in data) and not title:
        errors[const.DATA_HABIT_TITLE] = const.TRANS_KEY_MISSING_FIELD
        return errors

    # === 2. Schedule ===
    if data.get(const.DATA_HABIT_SCHEDULE) is not None:
        schedule_errors = validate_schedule(data[const.DATA_HABIT_SCHEDULE])
        if schedule_errors:
            errors[const.DATA_HABIT_SCHEDULE] = next(iter(schedule_errors.values()))
            return errors

    # === 3. Wager ===
    wager = data.get(const.DATA_HABIT_WAGER)
    if wager:
        target = wager.get(const.DATA_WAGER_TARGET_STREAK)
        if isinstance(target, bool) or not isinstance(target, int) or target <= 0:
            errors[const.DATA_HABIT_WAGER] = const.TRANS_KEY_INVALID_TARGET_STREAK

    return errors


def build_habit(
    user_input: Mapping[str, Any],
    existing: HabitData | Mapping[str, Any] | None = None,
) -> HabitData:
    """Build habit data for create or update operations.

    One function handles both create (existing=None) and update.

    Derived fields (current_streak, best_streak, last_completed_at) and freeze
    state are never taken from user_input: they are preserved from ``existing``
    (or start at their defaults) and only change through the engines and the
    freeze helpers below.

    Raises:
        EntityValidationError: If title, schedule or wager are invalid.

    Examples:
        # CREATE mode - generates UUID, daily schedule by default
        habit = build_habit({"title": "Read", "space_id": "s1"})

        # UPDATE mode - preserves fields not in user_input
        habit = build_habit({"title": "Read 20 pages"}, existing=old_habit)
    """
    errors = validate_habit_data(user_input, is_update=existing is not None)
    _raise_first(errors, user_input)

    def get_field(data_key: str, default: Any) -> Any:
        """Get field value: user_input > existing > default."""
        if data_key in user_input:
            return user_input[data_key]
        if existing is not None:
            return existing.get(data_key, default)
        return default

    def get_derived(data_key: str, default: Any) -> Any:
        """Derived / runtime fields: existing > default."""
        if existing is not None:
            return existing.get(data_key, default)
        return default

    if existing is None:
        habit_id = str(uuid.uuid4())
        created_at = str(user_input.get(const.DATA_HABIT_CREATED_AT) or dt_now_iso())
    else:
        habit_id = existing.get(const.DATA_HABIT_ID)
        if not habit_id:
            raise EntityValidationError(
                field=const.DATA_HABIT_ID,
                translation_key=const.TRANS_KEY_MISSING_FIELD,
                placeholders={"field": const.DATA_HABIT_ID},
            )
        created_at = existing.get(const.DATA_HABIT_CREATED_AT) or dt_now_iso()

    if const.DATA_HABIT_SCHEDULE in user_input or existing is None:
        schedule = build_schedule(user_input.get(const.DATA_HABIT_SCHEDULE))
    else:
        schedule = copy.deepcopy(existing.get(const.DATA_HABIT_SCHEDULE)) or (
            build_schedule(None)
        )

    raw_wager = get_field(const.DATA_HABIT_WAGER, None)
    if const.DATA_HABIT_WAGER in user_input and raw_wager:
        previous_wager = existing.get(const.DATA_HABIT_WAGER) if existing else None
        wager = build_wager(raw_wager, previous_wager)
    else:
        wager = copy.deepcopy(raw_wager) if raw_wager else None

    return {
        "id": habit_id,
        "space_id": str(get_field(const.DATA_HABIT_SPACE_ID, "")),
        "title": str(get_field(const.DATA_HABIT_TITLE, "")).strip(),
        "schedule": schedule,
        "assignee_ids": _normalize_list_field(
            get_field(const.DATA_HABIT_ASSIGNEE_IDS, [])
        ),
        "target_value": get_field(const.DATA_HABIT_TARGET_VALUE, None),
        "target_unit": _normalize_optional_str(
            get_field(const.DATA_HABIT_TARGET_UNIT, None)
        ),
        "current_streak": int(get_derived(const.DATA_HABIT_CURRENT_STREAK, 0)),
        "best_streak": int(get_derived(const.DATA_HABIT_BEST_STREAK, 0)),
        "last_completed_at": get_derived(const.DATA_HABIT_LAST_COMPLETED_AT, None),
        "is_frozen": bool(get_derived(const.DATA_HABIT_IS_FROZEN, False)),
        "streak_frozen_at": get_derived(const.DATA_HABIT_STREAK_FROZEN_AT, None),
        "frozen_periods": copy.deepcopy(
            _normalize_list_field(get_derived(const.DATA_HABIT_FROZEN_PERIODS, []))
        ),
        "created_at": created_at,
        "created_by": get_field(const.DATA_HABIT_CREATED_BY, None),
        "wager": wager,
        "chained_to": get_derived(const.DATA_HABIT_CHAINED_TO, None),
        "chained_from": get_derived(const.DATA_HABIT_CHAINED_FROM, None),
        "chain_order": get_derived(const.DATA_HABIT_CHAIN_ORDER, None),
        "category": _normalize_optional_str(get_field(const.DATA_HABIT_CATEGORY, None)),
        "tags": _normalize_list_field(get_field(const.DATA_HABIT_TAGS, [])),
    }


# --- Freeze / Unfreeze ---


def freeze_habit(
    habit: HabitData | Mapping[str, Any],
    frozen_at: str | datetime | None = None,
) -> dict[str, Any]:
    """Return the updates that freeze a habit's streak.

    Raises:
        EntityValidationError: If the habit is already frozen.
    """
    if habit.get(const.DATA_HABIT_IS_FROZEN, False):
        raise EntityValidationError(
            field=const.DATA_HABIT_IS_FROZEN,
            translation_key=const.TRANS_KEY_ALREADY_FROZEN,
            placeholders={"habit": str(habit.get(const.DATA_HABIT_TITLE, ""))},
        )

    if isinstance(frozen_at, datetime):
        frozen_at = frozen_at.isoformat()

    const.LOGGER.debug("Freezing habit %s", habit.get(const.DATA_HABIT_ID))
    return {
        const.DATA_HABIT_IS_FROZEN: True,
        const.DATA_HABIT_STREAK_FROZEN_AT: frozen_at or dt_now_iso(),
    }


def unfreeze_habit(
    habit: HabitData | Mapping[str, Any],
    unfrozen_on: date | None = None,
    completions: Iterable[CompletionData | Mapping[str, Any]] | None = None,
) -> dict[str, Any]:
    """Return the updates that unfreeze a habit.

    The freeze span is closed into frozen_periods as [frozen date, day before
    ``unfrozen_on``] so that later recomputes keep exempting it. The unfreeze
    day itself is live again. A habit frozen and unfrozen on the same day
    records no period.

    When streak_frozen_at is missing the span starts the day after the
    habit's last logged completion (``completions``); with neither, no
    period can be recorded and a warning is logged. A freeze day that already
    has a completion is left out of the period.

    Raises:
        EntityValidationError: If the habit is not frozen.
    """
    if not habit.get(const.DATA_HABIT_IS_FROZEN, False):
        raise EntityValidationError(
            field=const.DATA_HABIT_IS_FROZEN,
            translation_key=const.TRANS_KEY_NOT_FROZEN,
            placeholders={"habit": str(habit.get(const.DATA_HABIT_TITLE, ""))},
        )

    habit_id = habit.get(const.DATA_HABIT_ID)
    today = unfrozen_on or dt_today_local()
    start = dt_parse_date(habit.get(const.DATA_HABIT_STREAK_FROZEN_AT))
    dates = {
        parsed
        for c in completions or []
        if c.get(const.DATA_COMPLETION_HABIT_ID) == habit_id
        and (parsed := dt_parse_date(c.get(const.DATA_COMPLETION_DATE))) is not None
        and parsed < today
    }
    if start is None and dates:
        start = max(dates) + timedelta(days=1)
    elif start is not None and start in dates:
        # Completed before the freeze on the same day
        start += timedelta(days=1)

    periods = copy.deepcopy(
        _normalize_list_field(habit.get(const.DATA_HABIT_FROZEN_PERIODS))
    )
    end = today - timedelta(days=1)
    if start is None:
        const.LOGGER.warning(
            "Unfreezing habit %s without a known freeze date; no period recorded",
            habit_id,
        )
    elif start <= end:
        periods.append(
            {
                const.DATA_FROZEN_PERIOD_START: start.isoformat(),
                const.DATA_FROZEN_PERIOD_END: end.isoformat(),
            }
        )

    return {
        const.DATA_HABIT_IS_FROZEN: False,
        const.DATA_HABIT_STREAK_FROZEN_AT: None,
        const.DATA_HABIT_FROZEN_PERIODS: periods,
    }


# ==============================================================================
# COMPLETIONS
# ==============================================================================


def build_completion(
    habit: HabitData | Mapping[str, Any],
    user_id: str,
    completion_date: str | date | None = None,
    *,
    completed_at: str | None = None,
    value: float | None = None,
    source: str = const.COMPLETION_SOURCE_MANUAL,
) -> CompletionData:
    """Build a completion record for ``habit`` logged by ``user_id``.

    ``completion_date`` defaults to today (UTC); completed_at to now.

    Raises:
        EntityValidationError: If the date cannot be parsed.
    """
    day = dt_parse_date(completion_date) if completion_date is not None else (
        dt_today_local()
    )
    if day is None:
        raise EntityValidationError(
            field=const.DATA_COMPLETION_DATE,
            translation_key=const.TRANS_KEY_INVALID_DATE,
            placeholders={"value": str(completion_date)},
        )

    completion: CompletionData = {
        "id": str(uuid.uuid4()),
        "habit_id": habit.get(const.DATA_HABIT_ID),
        "space_id": habit.get(const.DATA_HABIT_SPACE_ID),
        "user_id": user_id,
        "date": day.isoformat(),
        "completed_at": completed_at or dt_now_iso(),
        "reactions": [],
        "source": (
            source
            if source in (const.COMPLETION_SOURCE_MANUAL, const.COMPLETION_SOURCE_AUTO)
            else const.COMPLETION_SOURCE_MANUAL
        ),
    }
    if value is not None:
        completion["value"] = value
    return completion


def find_todays_completion(
    habit_id: str,
    completions: Iterable[CompletionData | Mapping[str, Any]],
    reference_date: date | None = None,
    user_id: str | None = None,
) -> CompletionData | Mapping[str, Any] | None:
    """Return the habit's completion dated ``reference_date``, or None.

    With ``user_id`` only that member's completion matches.
    """
    today = reference_date or dt_today_local()
    for completion in completions:
        if completion.get(const.DATA_COMPLETION_HABIT_ID) != habit_id:
            continue
        if user_id is not None and completion.get(const.DATA_COMPLETION_USER_ID) != user_id:
            continue
        if dt_parse_date(completion.get(const.DATA_COMPLETION_DATE)) == today:
            return completion
    return None


# --- Reactions ---


def add_reaction(
    completion: CompletionData | Mapping[str, Any],
    emoji: str,
    user_id: str,
    user_name: str,
    created_at: str | None = None,
) -> dict[str, Any]:
    """Return a copy of ``completion`` with the user's reaction set to ``emoji``.

    A user has at most one reaction per completion; reacting again replaces
    the previous one.

    Raises:
        EntityValidationError: If ``emoji`` is not one of REACTION_EMOJIS.
    """
    if emoji not in const.REACTION_EMOJIS:
        raise EntityValidationError(
            field=const.DATA_REACTION_EMOJI,
            translation_key=const.TRANS_KEY_INVALID_REACTION,
            placeholders={"value": emoji},
        )

    updated = copy.deepcopy(dict(completion))
    reactions = [
        r
        for r in _normalize_list_field(updated.get(const.DATA_COMPLETION_REACTIONS))
        if r.get(const.DATA_REACTION_USER_ID) != user_id
    ]
    reactions.append(
        {
            const.DATA_REACTION_EMOJI: emoji,
            const.DATA_REACTION_USER_ID: user_id,
            const.DATA_REACTION_USER_NAME: user_name,
            const.DATA_REACTION_CREATED_AT: created_at or dt_now_iso(),
        }
    )
    updated[const.DATA_COMPLETION_REACTIONS] = reactions
    return updated


def remove_reaction(
    completion: CompletionData | Mapping[str, Any],
    user_id: str,
) -> dict[str, Any]:
    """Return a copy of ``completion`` without the user's reaction."""
    updated = copy.deepcopy(dict(completion))
    updated[const.DATA_COMPLETION_REACTIONS] = [
        r
        for r in _normalize_list_field(updated.get(const.DATA_COMPLETION_REACTIONS))
        if r.get(const.DATA_REACTION_USER_ID) != user_id
    ]
    return updated


# ==============================================================================
# ENGINE CONFIGURATION
# ==============================================================================


def build_engine_config(user_input: Mapping[str, Any] | None = None) -> EngineConfig:
    """Build a complete EngineConfig, applying defaults for missing keys.

    Raises:
        EntityValidationError: For a week_start outside 0-6, an unknown time
            zone, or a milestone table that is not a sequence of mappings.
    """
    data = user_input or {}

    week_start = data.get(const.CONF_WEEK_START, const.DEFAULT_WEEK_START)
    if isinstance(week_start, bool) or not isinstance(week_start, int) or not (
        0 <= week_start <= 6
    ):
        raise EntityValidationError(
            field=const.CONF_WEEK_START,
            translation_key=const.TRANS_KEY_INVALID_WEEK_START,
            placeholders={"value": str(week_start)},
        )

    time_zone = data.get(const.CONF_TIME_ZONE) or const.DEFAULT_TIME_ZONE_NAME
    if not is_valid_time_zone(time_zone):
        raise EntityValidationError(
            field=const.CONF_TIME_ZONE,
            translation_key=const.TRANS_KEY_INVALID_TIME_ZONE,
            placeholders={"value": str(time_zone)},
        )

    milestones = data.get(const.CONF_MILESTONES, const.DEFAULT_MILESTONES)
    if not isinstance(milestones, (list, tuple)) or not all(
        isinstance(m, Mapping) for m in milestones
    ):
        raise EntityValidationError(
            field=const.CONF_MILESTONES,
            translation_key=const.TRANS_KEY_MISSING_FIELD,
        )

    return {
        "week_start": week_start,
        "milestones": tuple(milestones),
        "time_zone": time_zone,
    }


def config_today(config: EngineConfig | Mapping[str, Any] | None = None) -> date:
    """Return "today" in the configured time zone (reference_date default)."""
    name = (config or {}).get(const.CONF_TIME_ZONE)
    return dt_today_local(get_time_zone(name))
