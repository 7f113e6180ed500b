from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal


PendingKind = Literal["remove_goal", "add_tactic", "complete_week", "reset_data"]


@dataclass(frozen=True)
class PendingAction:
    """A mutation waiting on a confirmation or text-input round trip.

    Outer surfaces show `title`/`message`, then either hand the action back to
    `StateStore.commit` (with the entered text when `needs_input`) or drop it.
    """

    kind: PendingKind
    title: str
    message: str
    confirm_label: str = "OK"
    needs_input: bool = False
    placeholder: str = ""
    payload: dict[str, Any] = field(default_factory=dict)


def remove_goal_action(goal_id: str, goal_title: str) -> PendingAction:
    label = goal_title.strip() or "this goal"
    return PendingAction(
        kind="remove_goal",
        title="Delete Goal?",
        message=f"Are you sure you want to delete {label} and all its tactics?",
        confirm_label="Delete",
        payload={"goal_id": goal_id},
    )


def add_tactic_action(goal_id: str, week: int | None, recurring: bool) -> PendingAction:
    if recurring:
        return PendingAction(
            kind="add_tactic",
            title="Add Recurring Tactic",
            message="This tactic will be added to every week (1-12).",
            confirm_label="Add Tactic",
            needs_input=True,
            placeholder="e.g. Read 10 pages",
            payload={"goal_id": goal_id, "week": week, "recurring": True},
        )
    return PendingAction(
        kind="add_tactic",
        title="Add Tactic",
        message=f"New tactic for week {week or 1}.",
        confirm_label="Add Tactic",
        needs_input=True,
        placeholder="Enter tactic...",
        payload={"goal_id": goal_id, "week": week, "recurring": False},
    )


def complete_week_action(week: int) -> PendingAction:
    return PendingAction(
        kind="complete_week",
        title="Complete Week?",
        message=f"Finish Week {week}? This will lock current stats for this week.",
        confirm_label="Complete",
        payload={"week": week},
    )


def reset_data_action() -> PendingAction:
    return PendingAction(
        kind="reset_data",
        title="Start Over?",
        message="DANGER: This will delete ALL your goals, vision, and history. Are you sure?",
        confirm_label="Reset Everything",
    )
