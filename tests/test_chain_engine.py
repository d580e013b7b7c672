"""Tests for ChainEngine.

Tests cover:
- Resolving well-formed chains into routines
- Malformed chains: cycles, dangling and asymmetric pointers, shared successors
- Editor operations: validate_link / can_chain / link / unlink
"""

from __future__ import annotations

from typing import Any

import pytest

from habitcore import const
from habitcore.engines.chain_engine import ChainEngine, InvalidChainLinkError
from tests.helpers import make_habit


def chain(*ids: str) -> list[dict[str, Any]]:
    """Build a symmetric linear chain ids[0] → ids[1] → ..."""
    habits = []
    for position, habit_id in enumerate(ids):
        habits.append(
            make_habit(
                habit_id,
                chained_to=ids[position + 1] if position + 1 < len(ids) else None,
                chained_from=ids[position - 1] if position > 0 else None,
            )
        )
    return habits


def issue_types(resolution: dict[str, Any]) -> list[str]:
    return [issue["issue"] for issue in resolution["issues"]]


class TestResolveChain:
    """Tests for ChainEngine.resolve_chain()."""

    def test_linear_chain(self) -> None:
        resolution = ChainEngine.resolve_chain(chain("wake", "stretch", "meditate"))

        assert resolution["routines"] == [["wake", "stretch", "meditate"]]
        assert resolution["issues"] == []

    def test_input_order_does_not_change_routine(self) -> None:
        habits = chain("wake", "stretch", "meditate")[::-1]

        assert ChainEngine.resolve_chain(habits)["routines"] == [
            ["wake", "stretch", "meditate"]
        ]

    def test_isolated_habit_is_routine_of_one(self) -> None:
        habits = chain("a", "b") + [make_habit("solo")]

        assert ChainEngine.resolve_chain(habits)["routines"] == [["a", "b"], ["solo"]]

    def test_headless_cycle_flagged_and_excluded(self) -> None:
        habits = [
            make_habit("a", chained_to="b", chained_from="b"),
            make_habit("b", chained_to="a", chained_from="a"),
            make_habit("solo"),
        ]

        resolution = ChainEngine.resolve_chain(habits)

        assert resolution["routines"] == [["solo"]]
        assert issue_types(resolution) == [const.CHAIN_ISSUE_CYCLE]

    def test_self_loop_terminates(self) -> None:
        resolution = ChainEngine.resolve_chain(
            [make_habit("a", chained_to="a", chained_from="a")]
        )

        assert resolution["routines"] == []
        assert const.CHAIN_ISSUE_CYCLE in issue_types(resolution)

    def test_cycle_behind_a_head_excluded(self) -> None:
        habits = [
            make_habit("head", chained_to="a"),
            make_habit("a", chained_to="b", chained_from="head"),
            make_habit("b", chained_to="a", chained_from="a"),
            make_habit("other"),
        ]

        resolution = ChainEngine.resolve_chain(habits)

        assert resolution["routines"] == [["other"]]
        assert const.CHAIN_ISSUE_CYCLE in issue_types(resolution)

    def test_dangling_link_ends_routine(self) -> None:
        habits = [make_habit("a", chained_to="ghost")]

        resolution = ChainEngine.resolve_chain(habits)

        assert resolution["routines"] == [["a"]]
        assert issue_types(resolution) == [const.CHAIN_ISSUE_DANGLING_LINK]

    def test_asymmetric_link_flagged_but_kept(self) -> None:
        habits = [make_habit("a", chained_to="b"), make_habit("b")]

        resolution = ChainEngine.resolve_chain(habits)

        assert resolution["routines"] == [["a", "b"]]
        assert issue_types(resolution) == [const.CHAIN_ISSUE_ASYMMETRIC_LINK]
        assert resolution["issues"][0]["habit_id"] == "a"
        assert resolution["issues"][0]["related_id"] == "b"

    def test_shared_successor_truncated(self) -> None:
        habits = [
            make_habit("a", chained_to="c"),
            make_habit("b", chained_to="c"),
            make_habit("c", chained_from="a"),
        ]

        resolution = ChainEngine.resolve_chain(habits)

        assert resolution["routines"] == [["a", "c"], ["b"]]
        assert const.CHAIN_ISSUE_SHARED_SUCCESSOR in issue_types(resolution)

    def test_issues_are_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        ChainEngine.resolve_chain([make_habit("a", chained_to="ghost")])

        assert "dangling_link" in caplog.text

    def test_chain_orders(self) -> None:
        resolution = ChainEngine.resolve_chain(chain("a", "b", "c") + [make_habit("d")])

        assert ChainEngine.get_chain_orders(resolution) == {"a": 0, "b": 1, "c": 2, "d": 0}


class TestEditorOperations:
    """Tests for validate_link / link / unlink."""

    def test_valid_link(self) -> None:
        habits = [make_habit("a"), make_habit("b")]

        assert ChainEngine.validate_link(habits, "a", "b") is None
        assert ChainEngine.can_chain(habits, "a", "b") is True

    def test_self_link_rejected(self) -> None:
        assert ChainEngine.can_chain([make_habit("a")], "a", "a") is False

    def test_unknown_habit_rejected(self) -> None:
        assert ChainEngine.validate_link([make_habit("a")], "a", "ghost") == "unknown habit"

    def test_target_already_followed(self) -> None:
        habits = chain("a", "b") + [make_habit("c")]

        assert ChainEngine.can_chain(habits, "c", "b") is False

    def test_cycle_rejected(self) -> None:
        habits = chain("a", "b", "c")

        assert ChainEngine.validate_link(habits, "c", "a") == "link would create a cycle"

    def test_link_returns_symmetric_updates(self) -> None:
        habits = [make_habit("a"), make_habit("b")]

        assert ChainEngine.link(habits, "a", "b") == {
            "a": {const.DATA_HABIT_CHAINED_TO: "b"},
            "b": {const.DATA_HABIT_CHAINED_FROM: "a"},
        }

    def test_link_releases_previous_successor(self) -> None:
        habits = chain("a", "b") + [make_habit("c")]

        updates = ChainEngine.link(habits, "a", "c")

        assert updates == {
            "b": {const.DATA_HABIT_CHAINED_FROM: None},
            "a": {const.DATA_HABIT_CHAINED_TO: "c"},
            "c": {const.DATA_HABIT_CHAINED_FROM: "a"},
        }

    def test_invalid_link_raises(self) -> None:
        with pytest.raises(InvalidChainLinkError) as err:
            ChainEngine.link(chain("a", "b"), "b", "a")

        assert err.value.source_id == "b"
        assert err.value.target_id == "a"

    def test_unlink(self) -> None:
        assert ChainEngine.unlink(chain("a", "b"), "a") == {
            "a": {const.DATA_HABIT_CHAINED_TO: None},
            "b": {const.DATA_HABIT_CHAINED_FROM: None},
        }

    def test_unlink_unknown_is_empty(self) -> None:
        assert ChainEngine.unlink([make_habit("a")], "ghost") == {}
