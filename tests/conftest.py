"""Shared fixtures for habitcore tests."""

from __future__ import annotations

from typing import Any

import pytest

from tests.helpers import make_completions, make_habit


@pytest.fixture
def daily_habit() -> dict[str, Any]:
    """Daily habit with no derived state yet."""
    return make_habit("habit-daily")


@pytest.fixture
def five_day_log() -> list[dict[str, Any]]:
    """Daily completions 2024-01-01 (Mon) through 2024-01-05 (Fri)."""
    return make_completions(
        "habit-daily",
        ["2024-01-01", "2024-01-02", "2024-01-03", "2024-01-04", "2024-01-05"],
    )
