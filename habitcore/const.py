# File: const.py
"""Constants for the habitcore scheduling and streak engine.

This file centralizes record keys, schedule types, status values, defaults and
the static milestone table for consistency across the engines. Nothing here is
mutated at runtime; per-call overrides travel in an EngineConfig.
"""

import logging
from types import MappingProxyType
from typing import Final

# ------------------------------------------------------------------------------------------------
# General / Package Information
# ------------------------------------------------------------------------------------------------
HABITCORE_TITLE = "habitcore"

# Logger
LOGGER = logging.getLogger(__package__)

# ------------------------------------------------------------------------------------------------
# Habit Record Keys
# ------------------------------------------------------------------------------------------------
DATA_HABIT_ID = "id"
DATA_HABIT_SPACE_ID = "space_id"
DATA_HABIT_TITLE = "title"
DATA_HABIT_SCHEDULE = "schedule"
DATA_HABIT_ASSIGNEE_IDS = "assignee_ids"
DATA_HABIT_TARGET_VALUE = "target_value"
DATA_HABIT_TARGET_UNIT = "target_unit"
DATA_HABIT_CURRENT_STREAK = "current_streak"
DATA_HABIT_BEST_STREAK = "best_streak"
DATA_HABIT_LAST_COMPLETED_AT = "last_completed_at"
DATA_HABIT_IS_FROZEN = "is_frozen"
DATA_HABIT_STREAK_FROZEN_AT = "streak_frozen_at"
DATA_HABIT_FROZEN_PERIODS = "frozen_periods"
DATA_HABIT_CREATED_AT = "created_at"
DATA_HABIT_CREATED_BY = "created_by"
DATA_HABIT_WAGER = "wager"
DATA_HABIT_CHAINED_TO = "chained_to"
DATA_HABIT_CHAINED_FROM = "chained_from"
DATA_HABIT_CHAIN_ORDER = "chain_order"
DATA_HABIT_CATEGORY = "category"
DATA_HABIT_TAGS = "tags"

# Frozen period keys
DATA_FROZEN_PERIOD_START = "start"
DATA_FROZEN_PERIOD_END = "end"

# ------------------------------------------------------------------------------------------------
# Schedule Keys and Types
# ------------------------------------------------------------------------------------------------
DATA_SCHEDULE_TYPE = "type"
DATA_SCHEDULE_DAYS_OF_WEEK = "days_of_week"
DATA_SCHEDULE_INTERVAL_DAYS = "interval_days"
DATA_SCHEDULE_TIMES_PER_WEEK = "times_per_week"

SCHEDULE_TYPE_DAILY = "daily"
SCHEDULE_TYPE_SPECIFIC_DAYS = "specific_days"
SCHEDULE_TYPE_INTERVAL = "interval"
SCHEDULE_TYPE_WEEKLY = "weekly"

SCHEDULE_TYPES: Final = (
    SCHEDULE_TYPE_DAILY,
    SCHEDULE_TYPE_SPECIFIC_DAYS,
    SCHEDULE_TYPE_INTERVAL,
    SCHEDULE_TYPE_WEEKLY,
)

# Schedule defaults (invalid values are coerced to these)
DEFAULT_INTERVAL_DAYS = 1
DEFAULT_TIMES_PER_WEEK = 1

# ------------------------------------------------------------------------------------------------
# Weekdays (Sunday-based index, 0=Sunday..6=Saturday)
# ------------------------------------------------------------------------------------------------
WEEKDAY_SUNDAY = 0
WEEKDAY_MONDAY = 1
WEEKDAY_TUESDAY = 2
WEEKDAY_WEDNESDAY = 3
WEEKDAY_THURSDAY = 4
WEEKDAY_FRIDAY = 5
WEEKDAY_SATURDAY = 6

WEEKDAY_SHORT_LABELS: Final = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
WEEKDAY_LABELS: Final = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)

DEFAULT_WEEK_START = WEEKDAY_MONDAY

# ------------------------------------------------------------------------------------------------
# Completion Record Keys
# ------------------------------------------------------------------------------------------------
DATA_COMPLETION_ID = "id"
DATA_COMPLETION_HABIT_ID = "habit_id"
DATA_COMPLETION_SPACE_ID = "space_id"
DATA_COMPLETION_USER_ID = "user_id"
DATA_COMPLETION_DATE = "date"
DATA_COMPLETION_COMPLETED_AT = "completed_at"
DATA_COMPLETION_VALUE = "value"
DATA_COMPLETION_REACTIONS = "reactions"
DATA_COMPLETION_SOURCE = "source"

COMPLETION_SOURCE_MANUAL = "manual"
COMPLETION_SOURCE_AUTO = "auto"

# Reaction keys
DATA_REACTION_EMOJI = "emoji"
DATA_REACTION_USER_ID = "user_id"
DATA_REACTION_USER_NAME = "user_name"
DATA_REACTION_CREATED_AT = "created_at"

REACTION_EMOJIS: Final = ("🔥", "💪", "👏", "⭐", "❤️", "🎉")

# ------------------------------------------------------------------------------------------------
# Member Record Keys
# ------------------------------------------------------------------------------------------------
DATA_MEMBER_UID = "uid"
DATA_MEMBER_DISPLAY_NAME = "display_name"
DATA_MEMBER_ROLE = "role"
DATA_MEMBER_JOINED_AT = "joined_at"

# ------------------------------------------------------------------------------------------------
# Wager
# ------------------------------------------------------------------------------------------------
DATA_WAGER_IS_ACTIVE = "is_active"
DATA_WAGER_DESCRIPTION = "description"
DATA_WAGER_TARGET_STREAK = "target_streak"
DATA_WAGER_START_DATE = "start_date"
DATA_WAGER_PARTICIPANTS = "participants"
DATA_WAGER_STATUS = "status"
DATA_WAGER_WINNER_ID = "winner_id"

WAGER_STATUS_PENDING = "pending"
WAGER_STATUS_WON = "won"
WAGER_STATUS_LOST = "lost"

WAGER_TERMINAL_STATUSES: Final = frozenset({WAGER_STATUS_WON, WAGER_STATUS_LOST})

# ------------------------------------------------------------------------------------------------
# Streak / Habit Status
# ------------------------------------------------------------------------------------------------
STREAK_STATUS_ALIVE = "alive"
STREAK_STATUS_AT_RISK = "at_risk"
STREAK_STATUS_BROKEN = "broken"

HABIT_STATUS_COMPLETED = "completed"
HABIT_STATUS_DUE = "due"
HABIT_STATUS_NOT_DUE = "not_due"
HABIT_STATUS_FROZEN = "frozen"

DANGER_LEVEL_CRITICAL = "critical"
DANGER_LEVEL_WARNING = "warning"

# A due-but-undone habit with at least this streak is critical
STREAK_CRITICAL_THRESHOLD = 7

# ------------------------------------------------------------------------------------------------
# Chain Issues
# ------------------------------------------------------------------------------------------------
CHAIN_ISSUE_CYCLE = "cycle"
CHAIN_ISSUE_ASYMMETRIC_LINK = "asymmetric_link"
CHAIN_ISSUE_DANGLING_LINK = "dangling_link"
CHAIN_ISSUE_SHARED_SUCCESSOR = "shared_successor"

# ------------------------------------------------------------------------------------------------
# Milestones / Achievements
# ------------------------------------------------------------------------------------------------
DATA_MILESTONE_ID = "id"
DATA_MILESTONE_TYPE = "type"
DATA_MILESTONE_THRESHOLD = "threshold"
DATA_MILESTONE_TIER = "tier"
DATA_MILESTONE_TITLE = "title"
DATA_MILESTONE_DESCRIPTION = "description"
DATA_MILESTONE_ICON = "icon"

MILESTONE_TYPE_STREAK = "streak"
MILESTONE_TYPE_TOTAL_COMPLETIONS = "total_completions"
MILESTONE_TYPE_HABIT_COUNT = "habit_count"

MILESTONE_TIER_BRONZE = "bronze"
MILESTONE_TIER_SILVER = "silver"
MILESTONE_TIER_GOLD = "gold"
MILESTONE_TIER_PLATINUM = "platinum"
MILESTONE_TIER_DIAMOND = "diamond"

MILESTONE_TABLE_VERSION = 1


def _milestone(
    milestone_id: str,
    milestone_type: str,
    threshold: int,
    tier: str,
    title: str,
    description: str,
    icon: str,
) -> MappingProxyType:
    return MappingProxyType(
        {
            DATA_MILESTONE_ID: milestone_id,
            DATA_MILESTONE_TYPE: milestone_type,
            DATA_MILESTONE_THRESHOLD: threshold,
            DATA_MILESTONE_TIER: tier,
            DATA_MILESTONE_TITLE: title,
            DATA_MILESTONE_DESCRIPTION: description,
            DATA_MILESTONE_ICON: icon,
        }
    )


# Table order matters: "recent unlock" is the last unlocked entry in this order.
DEFAULT_MILESTONES: Final = (
    # Streak achievements
    _milestone("streak_7", MILESTONE_TYPE_STREAK, 7, MILESTONE_TIER_BRONZE,
               "7-Day Warrior", "Maintain a 7-day streak", "🔥"),
    _milestone("streak_14", MILESTONE_TYPE_STREAK, 14, MILESTONE_TIER_SILVER,
               "Two Week Champion", "Maintain a 14-day streak", "⚡"),
    _milestone("streak_30", MILESTONE_TYPE_STREAK, 30, MILESTONE_TIER_GOLD,
               "Monthly Master", "Maintain a 30-day streak", "🏆"),
    _milestone("streak_60", MILESTONE_TYPE_STREAK, 60, MILESTONE_TIER_PLATINUM,
               "Habit Hero", "Maintain a 60-day streak", "💎"),
    _milestone("streak_100", MILESTONE_TYPE_STREAK, 100, MILESTONE_TIER_DIAMOND,
               "Century Legend", "Maintain a 100-day streak", "👑"),
    # Total completions
    _milestone("total_10", MILESTONE_TYPE_TOTAL_COMPLETIONS, 10, MILESTONE_TIER_BRONZE,
               "Getting Started", "Complete 10 habits", "🌱"),
    _milestone("total_50", MILESTONE_TYPE_TOTAL_COMPLETIONS, 50, MILESTONE_TIER_SILVER,
               "Building Momentum", "Complete 50 habits", "🚀"),
    _milestone("total_100", MILESTONE_TYPE_TOTAL_COMPLETIONS, 100, MILESTONE_TIER_GOLD,
               "Century Club", "Complete 100 habits", "💯"),
    _milestone("total_500", MILESTONE_TYPE_TOTAL_COMPLETIONS, 500, MILESTONE_TIER_PLATINUM,
               "Habit Machine", "Complete 500 habits", "⭐"),
    _milestone("total_1000", MILESTONE_TYPE_TOTAL_COMPLETIONS, 1000, MILESTONE_TIER_DIAMOND,
               "Legendary", "Complete 1000 habits", "🌟"),
    # Active habits
    _milestone("habits_3", MILESTONE_TYPE_HABIT_COUNT, 3, MILESTONE_TIER_BRONZE,
               "Triple Threat", "Track 3 active habits", "🎯"),
    _milestone("habits_5", MILESTONE_TYPE_HABIT_COUNT, 5, MILESTONE_TIER_SILVER,
               "High Five", "Track 5 active habits", "🖐️"),
    _milestone("habits_10", MILESTONE_TYPE_HABIT_COUNT, 10, MILESTONE_TIER_GOLD,
               "Perfect Ten", "Track 10 active habits", "🔟"),
)

# ------------------------------------------------------------------------------------------------
# Quests
# ------------------------------------------------------------------------------------------------
DATA_QUEST_ID = "id"
DATA_QUEST_SPACE_ID = "space_id"
DATA_QUEST_TITLE = "title"
DATA_QUEST_TARGET_TOTAL_COMPLETIONS = "target_total_completions"
DATA_QUEST_START_DATE = "start_date"
DATA_QUEST_END_DATE = "end_date"
DATA_QUEST_STATUS = "status"

QUEST_STATUS_ACTIVE = "active"
QUEST_STATUS_COMPLETED = "completed"
QUEST_STATUS_EXPIRED = "expired"

# ------------------------------------------------------------------------------------------------
# Analytics
# ------------------------------------------------------------------------------------------------
DEFAULT_CONSISTENCY_DAYS = 7
DEFAULT_COMPLETION_RATE_WINDOW_DAYS = 30

TREND_UP = "up"
TREND_STABLE = "stable"
TREND_DOWN = "down"

# Percent change needed (either direction) before a trend leaves "stable"
TREND_DEAD_BAND_PERCENT = 10

# ------------------------------------------------------------------------------------------------
# Engine Configuration
# ------------------------------------------------------------------------------------------------
CONF_WEEK_START = "week_start"
CONF_MILESTONES = "milestones"
CONF_TIME_ZONE = "time_zone"

DEFAULT_TIME_ZONE_NAME = "UTC"

# ------------------------------------------------------------------------------------------------
# Validation Error Keys
# ------------------------------------------------------------------------------------------------
TRANS_KEY_INVALID_SCHEDULE_TYPE = "invalid_schedule_type"
TRANS_KEY_NO_DAYS_SELECTED = "no_days_selected"
TRANS_KEY_INVALID_WEEKDAY = "invalid_weekday"
TRANS_KEY_INVALID_INTERVAL = "invalid_interval"
TRANS_KEY_INVALID_TIMES_PER_WEEK = "invalid_times_per_week"
TRANS_KEY_INVALID_DATE = "invalid_date"
TRANS_KEY_MISSING_FIELD = "missing_field"
TRANS_KEY_INVALID_TARGET_STREAK = "invalid_target_streak"
TRANS_KEY_INVALID_WEEK_START = "invalid_week_start"
TRANS_KEY_INVALID_TIME_ZONE = "invalid_time_zone"
TRANS_KEY_INVALID_REACTION = "invalid_reaction"
TRANS_KEY_ALREADY_FROZEN = "already_frozen"
TRANS_KEY_NOT_FROZEN = "not_frozen"
TRANS_KEY_INVALID_CHAIN_LINK = "invalid_chain_link"
