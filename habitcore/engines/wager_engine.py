"""Wager Engine - Pure logic for social bets tied to streak length.

A wager is won once the habit's current streak reaches the target. Winning is
one-way: a won wager represents a completed bet, not a live gauge, so a later
broken streak leaves it won.

A wager is never lost by streak math alone. A broken streak before the target
is ambiguous (gave up, or today simply is not over yet), so "lost" is only
reached through the explicit mark_lost() action taken by the caller.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from .. import const
from ..utils.math_utils import calculate_progress

if TYPE_CHECKING:
    from ..type_defs import WagerData, WagerResolution


class WagerEngine:
    """Pure logic engine for wager status transitions.

    Transitions:
        pending → won   (active wager and current_streak >= target_streak)
        pending → lost  (explicit mark_lost() only)
        won / lost      terminal
    """

    @staticmethod
    def resolve(
        wager: WagerData | Mapping[str, Any],
        current_streak: int,
        participant_streaks: Mapping[str, int] | None = None,
    ) -> WagerResolution:
        """Resolve a wager against the habit's current streak.

        Args:
            wager: Wager definition attached to the habit.
            current_streak: Habit's current streak (StreakEngine output).
            participant_streaks: Optional member id → personal streak. Used to
                name a sole winner of a two-person wager.

        Returns:
            WagerResolution. ``changed`` is True only on the pending → won
            transition.

        Winner rule:
            With exactly two participants and exactly one of them at or above
            the target, that participant is the winner. Otherwise nobody is
            singled out (a cooperative win), and an existing winner_id is kept.
        """
        status = wager.get(const.DATA_WAGER_STATUS, const.WAGER_STATUS_PENDING)
        target = int(wager.get(const.DATA_WAGER_TARGET_STREAK) or 0)
        winner_id = wager.get(const.DATA_WAGER_WINNER_ID)
        changed = False

        if (
            status == const.WAGER_STATUS_PENDING
            and wager.get(const.DATA_WAGER_IS_ACTIVE, True)
            and target > 0
            and current_streak >= target
        ):
            status = const.WAGER_STATUS_WON
            changed = True
            winner_id = WagerEngine._pick_winner(wager, target, participant_streaks)
            const.LOGGER.debug(
                "Wager '%s' won: streak %s >= target %s (winner=%s)",
                wager.get(const.DATA_WAGER_DESCRIPTION, ""),
                current_streak,
                target,
                winner_id,
            )

        return {
            "status": status,
            "changed": changed,
            "current_streak": current_streak,
            "target_streak": target,
            "progress": calculate_progress(current_streak, target),
            "winner_id": winner_id,
        }

    @staticmethod
    def _pick_winner(
        wager: Mapping[str, Any],
        target: int,
        participant_streaks: Mapping[str, int] | None,
    ) -> str | None:
        participants = list(wager.get(const.DATA_WAGER_PARTICIPANTS) or [])
        if participant_streaks is None or len(participants) != 2:
            return None

        satisfying = [
            member_id
            for member_id in participants
            if participant_streaks.get(member_id, 0) >= target
        ]
        if len(satisfying) == 1:
            return satisfying[0]
        return None

    @staticmethod
    def mark_lost(wager: WagerData | Mapping[str, Any]) -> dict[str, Any]:
        """Return the wager with status lost, if it is still pending.

        This is the caller's explicit decision (user action or a product
        deadline); terminal wagers are returned unchanged.
        """
        updated = dict(wager)
        if updated.get(const.DATA_WAGER_STATUS, const.WAGER_STATUS_PENDING) == (
            const.WAGER_STATUS_PENDING
        ):
            updated[const.DATA_WAGER_STATUS] = const.WAGER_STATUS_LOST
            updated[const.DATA_WAGER_WINNER_ID] = None
        return updated

    @classmethod
    def apply(
        cls,
        wager: WagerData | Mapping[str, Any],
        current_streak: int,
        participant_streaks: Mapping[str, int] | None = None,
    ) -> dict[str, Any]:
        """Return a copy of ``wager`` with the resolved status and winner applied."""
        resolution = cls.resolve(wager, current_streak, participant_streaks)
        updated = dict(wager)
        updated[const.DATA_WAGER_STATUS] = resolution["status"]
        if resolution["changed"]:
            updated[const.DATA_WAGER_WINNER_ID] = resolution["winner_id"]
        return updated
