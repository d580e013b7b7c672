"""Test helpers for habitcore tests.

This module re-exports the record builders for convenient imports:

    from tests.helpers import (
        make_habit, make_completion, make_completions, make_member,
        daily, specific_days, interval, weekly, d,
    )

See builders.py for full documentation.
"""

from tests.helpers.builders import (
    d,
    daily,
    interval,
    make_completion,
    make_completions,
    make_habit,
    make_member,
    make_quest,
    make_wager,
    specific_days,
    weekly,
)

__all__ = [
    "d",
    "daily",
    "interval",
    "make_completion",
    "make_completions",
    "make_habit",
    "make_member",
    "make_quest",
    "make_wager",
    "specific_days",
    "weekly",
]
