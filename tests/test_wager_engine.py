"""Tests for WagerEngine.

Tests cover:
- pending → won transition and its preconditions
- won / lost being terminal
- Explicit loss via mark_lost()
- Two-participant winner selection
"""

from __future__ import annotations

import pytest

from habitcore import const
from habitcore.engines.wager_engine import WagerEngine
from tests.helpers import make_wager


class TestResolve:
    """Tests for WagerEngine.resolve()."""

    def test_reaching_target_wins(self) -> None:
        result = WagerEngine.resolve(make_wager(target_streak=7), current_streak=7)

        assert result["status"] == const.WAGER_STATUS_WON
        assert result["changed"] is True
        assert result["progress"] == 1.0

    def test_won_stays_won_after_streak_drops(self) -> None:
        wager = WagerEngine.apply(make_wager(target_streak=7), current_streak=7)

        result = WagerEngine.resolve(wager, current_streak=0)

        assert wager[const.DATA_WAGER_STATUS] == const.WAGER_STATUS_WON
        assert result["status"] == const.WAGER_STATUS_WON
        assert result["changed"] is False

    def test_below_target_stays_pending(self) -> None:
        result = WagerEngine.resolve(make_wager(target_streak=7), current_streak=3)

        assert result["status"] == const.WAGER_STATUS_PENDING
        assert result["changed"] is False
        assert result["progress"] == pytest.approx(3 / 7)

    def test_broken_streak_never_loses(self) -> None:
        result = WagerEngine.resolve(make_wager(target_streak=7), current_streak=0)

        assert result["status"] == const.WAGER_STATUS_PENDING

    def test_inactive_wager_never_transitions(self) -> None:
        result = WagerEngine.resolve(
            make_wager(target_streak=3, is_active=False), current_streak=10
        )

        assert result["status"] == const.WAGER_STATUS_PENDING

    def test_missing_active_flag_counts_as_active(self) -> None:
        wager = make_wager(target_streak=3)
        del wager[const.DATA_WAGER_IS_ACTIVE]

        result = WagerEngine.resolve(wager, current_streak=3)

        assert result["status"] == const.WAGER_STATUS_WON

    def test_zero_target_never_wins(self) -> None:
        result = WagerEngine.resolve(make_wager(target_streak=0), current_streak=5)

        assert result["status"] == const.WAGER_STATUS_PENDING
        assert result["progress"] == 0.0

    def test_lost_is_terminal(self) -> None:
        wager = make_wager(target_streak=3, status=const.WAGER_STATUS_LOST)

        result = WagerEngine.resolve(wager, current_streak=10)

        assert result["status"] == const.WAGER_STATUS_LOST
        assert result["changed"] is False


class TestWinner:
    """Winner selection for two-participant wagers."""

    def test_sole_satisfying_participant_wins(self) -> None:
        wager = make_wager(target_streak=5, participants=["member-a", "member-b"])

        result = WagerEngine.resolve(
            wager, current_streak=5, participant_streaks={"member-a": 5, "member-b": 2}
        )

        assert result["winner_id"] == "member-a"

    def test_both_satisfying_is_cooperative(self) -> None:
        wager = make_wager(target_streak=5, participants=["member-a", "member-b"])

        result = WagerEngine.resolve(
            wager, current_streak=5, participant_streaks={"member-a": 6, "member-b": 5}
        )

        assert result["status"] == const.WAGER_STATUS_WON
        assert result["winner_id"] is None

    def test_more_than_two_participants_has_no_single_winner(self) -> None:
        wager = make_wager(
            target_streak=5, participants=["member-a", "member-b", "member-c"]
        )

        result = WagerEngine.resolve(
            wager,
            current_streak=5,
            participant_streaks={"member-a": 5, "member-b": 0, "member-c": 0},
        )

        assert result["winner_id"] is None

    def test_existing_winner_kept(self) -> None:
        wager = make_wager(
            target_streak=5, status=const.WAGER_STATUS_WON, winner_id="member-b"
        )

        assert WagerEngine.resolve(wager, current_streak=0)["winner_id"] == "member-b"


class TestMarkLost:
    """Tests for the explicit loss action."""

    def test_pending_becomes_lost(self) -> None:
        wager = make_wager()

        updated = WagerEngine.mark_lost(wager)

        assert updated[const.DATA_WAGER_STATUS] == const.WAGER_STATUS_LOST
        assert wager[const.DATA_WAGER_STATUS] == const.WAGER_STATUS_PENDING

    def test_won_unchanged(self) -> None:
        wager = make_wager(status=const.WAGER_STATUS_WON, winner_id="member-a")

        assert WagerEngine.mark_lost(wager) == wager

    def test_apply_returns_copy(self) -> None:
        wager = make_wager(target_streak=2, participants=["member-a", "member-b"])

        updated = WagerEngine.apply(
            wager, current_streak=2, participant_streaks={"member-a": 0, "member-b": 2}
        )

        assert updated[const.DATA_WAGER_WINNER_ID] == "member-b"
        assert wager[const.DATA_WAGER_STATUS] == const.WAGER_STATUS_PENDING
