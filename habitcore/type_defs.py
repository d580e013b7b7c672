"""Type definitions for habitcore data structures.

Records crossing the engine boundary are plain dicts. TypedDict describes the
fixed shapes for static analysis; it is not enforced at runtime, so engines
still read optional fields with ``.get()`` and a default.

Dates are ISO 8601 strings ("2024-01-05"); timestamps are ISO datetimes
("2024-01-05T08:30:00+00:00"). Weekday indices are Sunday-based (0=Sunday).

IMPORTANT: This file must NOT import from the engines. Only typing machinery.
"""

from collections.abc import Mapping
from typing import Any, Literal, NotRequired, TypedDict

# =============================================================================
# Type Aliases (for readability)
# =============================================================================

HabitId = str
MemberId = str
SpaceId = str
ISODatetime = str  # "2024-01-05T08:30:00+00:00"
ISODate = str  # "2024-01-05"

ScheduleType = Literal["daily", "specific_days", "interval", "weekly"]
WagerStatus = Literal["pending", "won", "lost"]
StreakStatus = Literal["alive", "at_risk", "broken"]
HabitStatus = Literal["completed", "due", "not_due", "frozen"]
DangerLevel = Literal["critical", "warning"]
Trend = Literal["up", "stable", "down"]

# Milestone tables are read-only mappings (see const.DEFAULT_MILESTONES)
MilestoneTable = tuple[Mapping[str, Any], ...]


# =============================================================================
# Schedule / Habit Types
# =============================================================================


class ScheduleConfig(TypedDict):
    """Recurrence rule for a habit."""

    type: ScheduleType
    days_of_week: NotRequired[list[int]]  # specific_days
    interval_days: NotRequired[int]  # interval
    times_per_week: NotRequired[int]  # weekly


class FrozenPeriod(TypedDict):
    """Closed freeze span, both ends inclusive."""

    start: ISODate
    end: ISODate


class WagerData(TypedDict):
    """Social bet tied to reaching a target streak."""

    is_active: bool
    description: str
    target_streak: int
    start_date: ISODate
    participants: list[MemberId]
    status: WagerStatus
    winner_id: NotRequired[MemberId | None]


class HabitData(TypedDict):
    """A recurring commitment in a space."""

    id: HabitId
    space_id: SpaceId
    title: str
    schedule: ScheduleConfig
    assignee_ids: list[MemberId]

    # Display-only target ("30 mins")
    target_value: NotRequired[float | None]
    target_unit: NotRequired[str | None]

    # Derived streak fields (persisted by the caller)
    current_streak: int
    best_streak: int
    last_completed_at: NotRequired[ISODatetime | None]

    # Freeze
    is_frozen: bool
    streak_frozen_at: NotRequired[ISODatetime | None]
    frozen_periods: NotRequired[list[FrozenPeriod]]

    created_at: ISODatetime
    created_by: NotRequired[MemberId | None]
    wager: NotRequired[WagerData | None]

    # Chaining
    chained_to: NotRequired[HabitId | None]
    chained_from: NotRequired[HabitId | None]
    chain_order: NotRequired[int | None]

    category: NotRequired[str | None]
    tags: NotRequired[list[str]]


class HabitUpdate(TypedDict):
    """Derived fields returned to the caller for re-persistence."""

    current_streak: int
    best_streak: int
    last_completed_at: ISODatetime | None


class StreakResult(TypedDict):
    """Output of StreakEngine.recompute()."""

    current_streak: int
    best_streak: int


# =============================================================================
# Completion / Member Types
# =============================================================================


class ReactionData(TypedDict):
    """Emoji reaction left on a completion."""

    emoji: str
    user_id: MemberId
    user_name: str
    created_at: ISODatetime


class CompletionData(TypedDict):
    """One record of a habit being done on a calendar date."""

    id: str
    habit_id: HabitId
    space_id: SpaceId
    user_id: MemberId
    date: ISODate
    completed_at: ISODatetime
    value: NotRequired[float | None]
    reactions: NotRequired[list[ReactionData]]
    source: NotRequired[Literal["manual", "auto"]]


class MemberData(TypedDict):
    """Member of a shared space."""

    uid: MemberId
    display_name: str
    role: NotRequired[str]
    joined_at: NotRequired[ISODatetime]


# =============================================================================
# Wager / Chain Types
# =============================================================================


class WagerResolution(TypedDict):
    """Output of WagerEngine.resolve()."""

    status: WagerStatus
    changed: bool
    current_streak: int
    target_streak: int
    progress: float  # 0.0-1.0
    winner_id: MemberId | None


class ChainIssue(TypedDict):
    """Data-integrity finding raised while resolving chains."""

    issue: str  # const.CHAIN_ISSUE_*
    habit_id: HabitId
    related_id: HabitId | None
    detail: str


class ChainResolution(TypedDict):
    """Output of ChainEngine.resolve_chain()."""

    routines: list[list[HabitId]]
    issues: list[ChainIssue]


# =============================================================================
# Achievement / Quest Types
# =============================================================================


class MilestoneData(TypedDict):
    """Static achievement definition."""

    id: str
    type: str
    threshold: int
    tier: str
    title: str
    description: str
    icon: str


class ComputedAchievement(TypedDict):
    """Achievement state derived on demand, never persisted."""

    milestone: Mapping[str, Any]
    progress: int
    unlocked: bool


class AchievementStats(TypedDict):
    """Summary counts for the achievement panel."""

    total: int
    unlocked: int
    percentage: int
    recent_unlock: Mapping[str, Any] | None


class AchievementMetrics(TypedDict):
    """Source metrics the milestone ladders are measured against."""

    streak: int
    total_completions: int
    habit_count: int


class QuestData(TypedDict):
    """Space-wide goal of total completions within a date window."""

    id: str
    space_id: SpaceId
    title: str
    target_total_completions: int
    start_date: ISODate
    end_date: ISODate
    status: NotRequired[Literal["active", "completed", "expired"]]


class QuestProgress(TypedDict):
    """Output of GamificationEngine.evaluate_quest()."""

    quest_id: str
    current_completions: int
    target_total_completions: int
    progress: float  # 0.0-1.0
    status: Literal["active", "completed", "expired"]


# =============================================================================
# Analytics Types
# =============================================================================


class DayStats(TypedDict):
    """One bucket of the 7-day consistency histogram."""

    date: ISODate
    label: str
    count: int


class MemberContribution(TypedDict):
    """Leaderboard row."""

    member_id: MemberId
    display_name: str
    total_completions: int
    weekly_completions: int


class HabitTrend(TypedDict):
    """This-week versus last-week comparison for one habit."""

    habit_id: HabitId
    habit_title: str
    trend: Trend
    this_week_count: int
    last_week_count: int
    percent_change: float


class MemberStreak(TypedDict):
    """Per-member streak summary across assigned habits."""

    member_id: MemberId
    display_name: str
    current_streak: int
    longest_streak: int
    completed_today: bool
    is_at_risk: bool


class HabitAtRisk(TypedDict):
    """Habit whose streak will break if not completed today."""

    habit_id: HabitId
    danger_level: DangerLevel
    streak: int


# =============================================================================
# Configuration
# =============================================================================


class EngineConfig(TypedDict, total=False):
    """Explicit per-call configuration (no module-level singletons)."""

    week_start: int  # Sunday-based weekday index
    milestones: MilestoneTable
    time_zone: str  # IANA name
