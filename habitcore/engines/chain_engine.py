"""Chain Engine - resolves habit-to-habit links into ordered routines.

Each habit may point at its successor (chained_to) and its predecessor
(chained_from). The two pointers are written by separate editor updates and can
transiently disagree, so nothing here trusts them blindly:

- The routine graph is built from chained_to edges only.
- chained_from is checked against it and disagreements are reported.
- Walks keep a visited set; a revisit is a cycle and that chain is dropped.

Malformed chains never fail the whole computation. They are excluded from the
routine view (cycles) or truncated (dangling / shared links) and reported as
ChainIssue records for the caller to surface.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from .. import const

if TYPE_CHECKING:
    from ..type_defs import ChainIssue, ChainResolution, HabitData


class InvalidChainLinkError(ValueError):
    """Raised when an editor asks for a link that would corrupt a chain."""

    def __init__(self, source_id: str, target_id: str, reason: str) -> None:
        """Initialize InvalidChainLinkError.

        Args:
            source_id: Habit that would point at the target
            target_id: Habit that would follow the source
            reason: Human-readable explanation
        """
        self.source_id = source_id
        self.target_id = target_id
        self.reason = reason
        super().__init__(f"Cannot chain {source_id} → {target_id}: {reason}")


class ChainEngine:
    """Pure logic engine for habit chains (routines)."""

    @staticmethod
    def _issue(
        issue: str, habit_id: str, related_id: str | None, detail: str
    ) -> ChainIssue:
        const.LOGGER.warning("Chain %s at habit %s: %s", issue, habit_id, detail)
        return {
            "issue": issue,
            "habit_id": habit_id,
            "related_id": related_id,
            "detail": detail,
        }

    @classmethod
    def resolve_chain(
        cls,
        habits: Iterable[HabitData | Mapping[str, Any]],
    ) -> ChainResolution:
        """Resolve habits into ordered routines.

        Args:
            habits: Every habit of the space. Input order decides routine order.

        Returns:
            ChainResolution with:
            - routines: lists of habit ids, head first. An unlinked habit is a
              routine of length 1.
            - issues: cycle / asymmetric_link / dangling_link /
              shared_successor findings.
        """
        habit_list = list(habits)
        index: dict[str, Mapping[str, Any]] = {
            h.get(const.DATA_HABIT_ID): h for h in habit_list
        }
        issues: list[ChainIssue] = cls._check_links(habit_list, index)

        # In-degree over resolvable chained_to edges
        has_predecessor: set[str] = {
            h[const.DATA_HABIT_CHAINED_TO]
            for h in habit_list
            if h.get(const.DATA_HABIT_CHAINED_TO) in index
        }

        routines: list[list[str]] = []
        placed: set[str] = set()

        for habit in habit_list:
            head_id = habit.get(const.DATA_HABIT_ID)
            if head_id in has_predecessor or head_id in placed:
                continue

            walk = [head_id]
            seen = {head_id}
            malformed = False
            current = habit

            while True:
                next_id = current.get(const.DATA_HABIT_CHAINED_TO)
                if not next_id or next_id not in index:
                    break
                if next_id in seen:
                    issues.append(
                        cls._issue(
                            const.CHAIN_ISSUE_CYCLE,
                            current.get(const.DATA_HABIT_ID),
                            next_id,
                            f"routine starting at {head_id} loops back to {next_id}",
                        )
                    )
                    malformed = True
                    break
                if next_id in placed:
                    issues.append(
                        cls._issue(
                            const.CHAIN_ISSUE_SHARED_SUCCESSOR,
                            current.get(const.DATA_HABIT_ID),
                            next_id,
                            f"{next_id} already follows another habit",
                        )
                    )
                    break
                walk.append(next_id)
                seen.add(next_id)
                current = index[next_id]

            placed |= seen
            if not malformed:
                routines.append(walk)

        # Whatever is left sits on a cycle with no head
        for habit in habit_list:
            start_id = habit.get(const.DATA_HABIT_ID)
            if start_id in placed:
                continue
            members: list[str] = []
            current_id: str | None = start_id
            while current_id in index and current_id not in members:
                members.append(current_id)
                current_id = index[current_id].get(const.DATA_HABIT_CHAINED_TO)
            placed.update(members)
            issues.append(
                cls._issue(
                    const.CHAIN_ISSUE_CYCLE,
                    start_id,
                    current_id,
                    f"headless cycle through {', '.join(members)}",
                )
            )

        return {"routines": routines, "issues": issues}

    @classmethod
    def _check_links(
        cls,
        habits: list[Mapping[str, Any]],
        index: Mapping[str, Mapping[str, Any]],
    ) -> list[ChainIssue]:
        """Report dangling pointers and chained_to/chained_from disagreements."""
        issues: list[ChainIssue] = []
        for habit in habits:
            habit_id = habit.get(const.DATA_HABIT_ID)
            chained_to = habit.get(const.DATA_HABIT_CHAINED_TO)
            chained_from = habit.get(const.DATA_HABIT_CHAINED_FROM)

            if chained_to:
                successor = index.get(chained_to)
                if successor is None:
                    issues.append(
                        cls._issue(
                            const.CHAIN_ISSUE_DANGLING_LINK,
                            habit_id,
                            chained_to,
                            f"chained_to points at missing habit {chained_to}",
                        )
                    )
                elif successor.get(const.DATA_HABIT_CHAINED_FROM) != habit_id:
                    issues.append(
                        cls._issue(
                            const.CHAIN_ISSUE_ASYMMETRIC_LINK,
                            habit_id,
                            chained_to,
                            f"{chained_to}.chained_from is "
                            f"{successor.get(const.DATA_HABIT_CHAINED_FROM)!r}",
                        )
                    )

            if chained_from:
                predecessor = index.get(chained_from)
                if predecessor is None:
                    issues.append(
                        cls._issue(
                            const.CHAIN_ISSUE_DANGLING_LINK,
                            habit_id,
                            chained_from,
                            f"chained_from points at missing habit {chained_from}",
                        )
                    )
                elif predecessor.get(const.DATA_HABIT_CHAINED_TO) != habit_id:
                    issues.append(
                        cls._issue(
                            const.CHAIN_ISSUE_ASYMMETRIC_LINK,
                            habit_id,
                            chained_from,
                            f"{chained_from}.chained_to is "
                            f"{predecessor.get(const.DATA_HABIT_CHAINED_TO)!r}",
                        )
                    )
        return issues

    @staticmethod
    def get_chain_orders(resolution: ChainResolution) -> dict[str, int]:
        """Return habit id → position in its routine (0 = head)."""
        return {
            habit_id: position
            for routine in resolution["routines"]
            for position, habit_id in enumerate(routine)
        }

    # =========================================================================
    # EDITOR OPERATIONS
    # =========================================================================

    @classmethod
    def validate_link(
        cls,
        habits: Iterable[HabitData | Mapping[str, Any]],
        source_id: str,
        target_id: str,
    ) -> str | None:
        """Return why ``source → target`` is not allowed, or None if it is.

        Rules:
        - both habits exist and differ
        - target does not already follow another habit
        - the link does not close a cycle
        """
        index = {h.get(const.DATA_HABIT_ID): h for h in habits}
        if source_id == target_id:
            return "a habit cannot follow itself"
        if source_id not in index or target_id not in index:
            return "unknown habit"

        chained_from = index[target_id].get(const.DATA_HABIT_CHAINED_FROM)
        if chained_from and chained_from != source_id:
            return f"{target_id} already follows {chained_from}"

        # Walking forward from the target must never reach the source
        current_id: str | None = target_id
        visited: set[str] = set()
        while current_id and current_id in index and current_id not in visited:
            if current_id == source_id:
                return "link would create a cycle"
            visited.add(current_id)
            current_id = index[current_id].get(const.DATA_HABIT_CHAINED_TO)
        return None

    @classmethod
    def can_chain(
        cls,
        habits: Iterable[HabitData | Mapping[str, Any]],
        source_id: str,
        target_id: str,
    ) -> bool:
        """Return True if ``target`` may be chained after ``source``."""
        return cls.validate_link(habits, source_id, target_id) is None

    @classmethod
    def link(
        cls,
        habits: Iterable[HabitData | Mapping[str, Any]],
        source_id: str,
        target_id: str,
    ) -> dict[str, dict[str, Any]]:
        """Return the symmetric pointer updates for ``source → target``.

        A previous successor of the source is released (its chained_from is
        cleared).

        Raises:
            InvalidChainLinkError: If validate_link() rejects the link.
        """
        habit_list = list(habits)
        reason = cls.validate_link(habit_list, source_id, target_id)
        if reason is not None:
            raise InvalidChainLinkError(source_id, target_id, reason)

        index = {h.get(const.DATA_HABIT_ID): h for h in habit_list}
        updates: dict[str, dict[str, Any]] = {}

        previous = index[source_id].get(const.DATA_HABIT_CHAINED_TO)
        if previous and previous != target_id and previous in index:
            updates[previous] = {const.DATA_HABIT_CHAINED_FROM: None}

        updates[source_id] = {const.DATA_HABIT_CHAINED_TO: target_id}
        updates[target_id] = {const.DATA_HABIT_CHAINED_FROM: source_id}
        return updates

    @staticmethod
    def unlink(
        habits: Iterable[HabitData | Mapping[str, Any]],
        source_id: str,
    ) -> dict[str, dict[str, Any]]:
        """Return the pointer updates that detach the source from its successor."""
        index = {h.get(const.DATA_HABIT_ID): h for h in habits}
        source = index.get(source_id)
        if source is None:
            return {}

        updates: dict[str, dict[str, Any]] = {
            source_id: {const.DATA_HABIT_CHAINED_TO: None}
        }
        successor_id = source.get(const.DATA_HABIT_CHAINED_TO)
        successor = index.get(successor_id) if successor_id else None
        if successor is not None and (
            successor.get(const.DATA_HABIT_CHAINED_FROM) == source_id
        ):
            updates[successor_id] = {const.DATA_HABIT_CHAINED_FROM: None}
        return updates
