from __future__ import annotations

from dataclasses import dataclass

from .model import AppState, Goal, Tactic, is_tactic_week


@dataclass(frozen=True)
class TacticRef:
    """The dragged tactic."""

    goal_id: str
    week: int
    tactic_id: str


@dataclass(frozen=True)
class DropTarget:
    """Where the tactic was dropped.

    `tactic_id` set means "dropped on that tactic" (insert before it); None
    means "dropped on the week container" (insert after the week's last
    tactic).
    """

    goal_id: str
    week: int
    tactic_id: str | None = None


def move_tactic(state: AppState, source: TacticRef, target: DropTarget) -> bool:
    """Move a tactic within or across goals. Returns False when nothing moved.

    Each goal keeps every week's tactics in one flat list, so positions are
    resolved against that list after the removal: source and target may be the
    same list object.
    """

    if not is_tactic_week(target.week):
        raise ValueError(f"target week must be 1-12, got {target.week!r}")

    source_goal = state.get_goal(source.goal_id)
    if source_goal is None:
        return False
    source_index = _index_of(source_goal.tactics, source.tactic_id)
    if source_index < 0:
        return False
    target_goal = state.get_goal(target.goal_id)
    if target_goal is None:
        return False

    tactic = source_goal.tactics.pop(source_index)
    tactic.week = target.week

    if target.tactic_id:
        _insert_before(target_goal, tactic, target.tactic_id)
    else:
        _insert_at_end_of_week(target_goal, tactic, target.week)
    return True


def _index_of(tactics: list[Tactic], tactic_id: str) -> int:
    for idx, tactic in enumerate(tactics):
        if tactic.id == tactic_id:
            return idx
    return -1


def _insert_before(goal: Goal, tactic: Tactic, anchor_id: str) -> None:
    anchor_index = _index_of(goal.tactics, anchor_id)
    if anchor_index < 0:
        goal.tactics.append(tactic)
        return
    goal.tactics.insert(anchor_index, tactic)


def _insert_at_end_of_week(goal: Goal, tactic: Tactic, week: int) -> None:
    last_index = -1
    for idx, existing in enumerate(goal.tactics):
        if existing.resolved_week == week:
            last_index = idx
    if last_index < 0:
        goal.tactics.append(tactic)
        return
    goal.tactics.insert(last_index + 1, tactic)
