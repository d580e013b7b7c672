"""Unit tests for GamificationEngine - pure Python logic tests.

Test Categories:
- Source metrics (best streak, raw completion count, active habits)
- Achievement computation against default and injected milestone tables
- Next-rung selection and summary stats
- Quest evaluation
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any

import pytest

from habitcore import const
from habitcore.engines.gamification_engine import GamificationEngine
from tests.helpers import d, make_completion, make_completions, make_habit, make_quest

# =============================================================================
# TEST FIXTURES - Minimal milestone tables
# =============================================================================


def milestone(milestone_id: str, milestone_type: str, threshold: int) -> dict[str, Any]:
    return {
        const.DATA_MILESTONE_ID: milestone_id,
        const.DATA_MILESTONE_TYPE: milestone_type,
        const.DATA_MILESTONE_THRESHOLD: threshold,
        const.DATA_MILESTONE_TIER: const.MILESTONE_TIER_BRONZE,
        const.DATA_MILESTONE_TITLE: milestone_id,
        const.DATA_MILESTONE_DESCRIPTION: "",
        const.DATA_MILESTONE_ICON: "",
    }


def by_id(achievements: list[dict[str, Any]]) -> dict[str, dict[str, Any]]:
    return {a["milestone"][const.DATA_MILESTONE_ID]: a for a in achievements}


@pytest.fixture
def ten_completions() -> list[dict[str, Any]]:
    """Ten lifetime completions spread over two habits."""
    return make_completions(
        "habit-1", [f"2024-01-0{i}" for i in range(1, 7)]
    ) + make_completions("habit-2", [f"2024-01-0{i}" for i in range(1, 5)])


class TestDefaultTable:
    """The shipped milestone table."""

    def test_table_is_immutable(self) -> None:
        assert isinstance(const.DEFAULT_MILESTONES, tuple)
        assert all(isinstance(m, MappingProxyType) for m in const.DEFAULT_MILESTONES)
        with pytest.raises(TypeError):
            const.DEFAULT_MILESTONES[0][const.DATA_MILESTONE_THRESHOLD] = 1  # type: ignore[index]

    def test_ladders(self) -> None:
        thresholds: dict[str, list[int]] = {}
        for m in const.DEFAULT_MILESTONES:
            thresholds.setdefault(m[const.DATA_MILESTONE_TYPE], []).append(
                m[const.DATA_MILESTONE_THRESHOLD]
            )

        assert thresholds == {
            const.MILESTONE_TYPE_STREAK: [7, 14, 30, 60, 100],
            const.MILESTONE_TYPE_TOTAL_COMPLETIONS: [10, 50, 100, 500, 1000],
            const.MILESTONE_TYPE_HABIT_COUNT: [3, 5, 10],
        }


class TestCompute:
    """Tests for compute() / compute_metrics()."""

    def test_total_completions_threshold_reached(
        self, ten_completions: list[dict[str, Any]]
    ) -> None:
        table = (milestone("total_10", const.MILESTONE_TYPE_TOTAL_COMPLETIONS, 10),)
        habits = [make_habit("habit-1"), make_habit("habit-2")]

        [achievement] = GamificationEngine.compute(habits, ten_completions, table)

        assert achievement["unlocked"] is True
        assert achievement["progress"] == 10

    def test_one_short_stays_locked(self, ten_completions: list[dict[str, Any]]) -> None:
        table = (milestone("total_10", const.MILESTONE_TYPE_TOTAL_COMPLETIONS, 10),)

        [achievement] = GamificationEngine.compute([], ten_completions[:-1], table)

        assert achievement == {
            "milestone": table[0],
            "progress": 9,
            "unlocked": False,
        }

    def test_metrics(self) -> None:
        habits = [
            make_habit("habit-1", best_streak=14),
            make_habit("habit-2", best_streak=3),
            make_habit("habit-3", best_streak=40, is_frozen=True),
        ]
        log = [make_completion("habit-1", "2024-01-01")] * 2

        assert GamificationEngine.compute_metrics(habits, log) == {
            "streak": 40,
            "total_completions": 2,
            "habit_count": 2,
        }

    def test_default_table_in_order(self) -> None:
        habits = [make_habit(f"habit-{i}", best_streak=14) for i in range(3)]

        achievements = by_id(GamificationEngine.compute(habits, []))

        assert [
            m[const.DATA_MILESTONE_ID] for m in const.DEFAULT_MILESTONES
        ] == list(achievements)
        assert achievements["streak_7"]["unlocked"] is True
        assert achievements["streak_14"]["unlocked"] is True
        assert achievements["streak_30"]["unlocked"] is False
        assert achievements["habits_3"]["unlocked"] is True
        assert achievements["habits_5"]["progress"] == 3

    def test_unknown_type_never_unlocked(self, caplog: pytest.LogCaptureFixture) -> None:
        table = (milestone("mystery", "perfect_weeks", 0),)

        [achievement] = GamificationEngine.compute([make_habit()], [], table)

        assert achievement["unlocked"] is False
        assert achievement["progress"] == 0
        assert "Unknown milestone type" in caplog.text


class TestNextAndStats:
    """Tests for get_next_achievements() / get_achievement_stats()."""

    def test_next_rung_per_type(self) -> None:
        habits = [make_habit(f"habit-{i}", best_streak=14) for i in range(3)]
        log = make_completions("habit-0", [f"2024-01-{i:02d}" for i in range(1, 13)])

        next_ids = [
            a["milestone"][const.DATA_MILESTONE_ID]
            for a in GamificationEngine.get_next_achievements(habits, log)
        ]

        assert next_ids == ["streak_30", "total_50", "habits_5"]

    def test_lowest_threshold_wins_regardless_of_table_order(self) -> None:
        table = (
            milestone("big", const.MILESTONE_TYPE_STREAK, 30),
            milestone("small", const.MILESTONE_TYPE_STREAK, 7),
        )

        [next_up] = GamificationEngine.get_next_achievements([], [], table)

        assert next_up["milestone"][const.DATA_MILESTONE_ID] == "small"

    def test_stats(self) -> None:
        habits = [make_habit(f"habit-{i}", best_streak=14) for i in range(3)]

        stats = GamificationEngine.get_achievement_stats(habits, [])

        assert stats["total"] == 13
        assert stats["unlocked"] == 3
        assert stats["percentage"] == 23  # 23.08
        # Last unlocked in table order, not chronological
        assert stats["recent_unlock"][const.DATA_MILESTONE_ID] == "habits_3"

    def test_stats_nothing_unlocked(self) -> None:
        stats = GamificationEngine.get_achievement_stats([], [])

        assert stats["unlocked"] == 0
        assert stats["percentage"] == 0
        assert stats["recent_unlock"] is None

    def test_empty_table(self) -> None:
        stats = GamificationEngine.get_achievement_stats([], [], ())

        assert stats == {"total": 0, "unlocked": 0, "percentage": 0, "recent_unlock": None}


class TestQuest:
    """Tests for evaluate_quest()."""

    def test_active_progress(self) -> None:
        log = [
            make_completion("habit-1", "2024-01-02"),
            make_completion("habit-1", "2024-01-03"),
            make_completion("habit-1", "2024-01-03", user_id="member-b"),
            make_completion("habit-2", "2024-01-10"),
            make_completion("habit-2", "2024-01-04", space_id="space-2"),
        ]

        progress = GamificationEngine.evaluate_quest(make_quest(target=3), log, d("2024-01-05"))

        assert progress["current_completions"] == 2
        assert progress["progress"] == pytest.approx(2 / 3)
        assert progress["status"] == const.QUEST_STATUS_ACTIVE

    def test_expired(self) -> None:
        log = make_completions("habit-1", ["2024-01-02"])

        progress = GamificationEngine.evaluate_quest(make_quest(target=3), log, d("2024-01-08"))

        assert progress["status"] == const.QUEST_STATUS_EXPIRED

    def test_completed_even_after_end(self) -> None:
        log = make_completions("habit-1", ["2024-01-02", "2024-01-03", "2024-01-04"])

        progress = GamificationEngine.evaluate_quest(make_quest(target=3), log, d("2024-02-01"))

        assert progress["status"] == const.QUEST_STATUS_COMPLETED
        assert progress["progress"] == 1.0

    def test_stored_completed_stays_completed(self) -> None:
        quest = make_quest(target=3, status=const.QUEST_STATUS_COMPLETED)

        progress = GamificationEngine.evaluate_quest(quest, [], d("2024-01-03"))

        assert progress["status"] == const.QUEST_STATUS_COMPLETED
