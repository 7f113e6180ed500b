from __future__ import annotations

import unittest

from sprintpulse.model import AppState, Goal, Tactic
from sprintpulse.reorder import DropTarget, TacticRef, move_tactic

from tests.helpers import state_with_tactics


def _ids(state: AppState, goal_id: str = "g1") -> list[str]:
    goal = state.get_goal(goal_id)
    assert goal is not None
    return [tactic.id for tactic in goal.tactics]


class TestReorder(unittest.TestCase):
    def test_drop_on_tactic_inserts_before_it(self) -> None:
        state = state_with_tactics(("a", 1, False), ("b", 1, False), ("c", 1, False))
        moved = move_tactic(state, TacticRef("g1", 1, "c"), DropTarget("g1", 1, "a"))
        self.assertTrue(moved)
        self.assertEqual(["c", "a", "b"], _ids(state))

    def test_drop_later_in_same_list(self) -> None:
        state = state_with_tactics(("a", 1, False), ("b", 1, False), ("c", 1, False))
        move_tactic(state, TacticRef("g1", 1, "a"), DropTarget("g1", 1, "c"))
        self.assertEqual(["b", "a", "c"], _ids(state))

    def test_drop_on_week_lands_after_its_last_tactic(self) -> None:
        state = state_with_tactics(("a", 1, False), ("b", 2, False), ("c", 2, False), ("d", 3, False))
        move_tactic(state, TacticRef("g1", 1, "a"), DropTarget("g1", 2))
        self.assertEqual(["b", "c", "a", "d"], _ids(state))
        self.assertEqual(2, state.goals[0].find_tactic("a").week)

    def test_drop_on_empty_week_appends(self) -> None:
        state = state_with_tactics(("a", 1, False), ("b", 1, False))
        move_tactic(state, TacticRef("g1", 1, "a"), DropTarget("g1", 7))
        self.assertEqual(["b", "a"], _ids(state))
        self.assertEqual(7, state.goals[0].find_tactic("a").week)

    def test_move_across_goals_keeps_completion(self) -> None:
        state = AppState(
            goals=[
                Goal(id="g1", title="A", tactics=[Tactic(id="a", title="a", completed=True, week=1)]),
                Goal(id="g2", title="B", tactics=[Tactic(id="x", title="x", week=4)]),
            ]
        )
        move_tactic(state, TacticRef("g1", 1, "a"), DropTarget("g2", 4, "x"))
        self.assertEqual([], _ids(state, "g1"))
        self.assertEqual(["a", "x"], _ids(state, "g2"))
        self.assertTrue(state.get_goal("g2").find_tactic("a").completed)

    def test_move_between_weeks_of_different_goals_keeps_total(self) -> None:
        state = AppState(
            goals=[
                Goal(id="A", tactics=[Tactic(id="m", title="m", week=3), Tactic(id="n", title="n", week=3)]),
                Goal(id="B", tactics=[Tactic(id="s", title="s", week=5), Tactic(id="T", title="T", week=5)]),
            ]
        )
        move_tactic(state, TacticRef("A", 3, "m"), DropTarget("B", 5, "T"))
        self.assertEqual(["n"], _ids(state, "A"))
        self.assertEqual(["s", "m", "T"], _ids(state, "B"))
        self.assertEqual(5, state.get_goal("B").find_tactic("m").week)
        self.assertEqual(4, len(state.all_tactics()))

    def test_missing_target_goal_leaves_tactic_in_place(self) -> None:
        state = state_with_tactics(("a", 1, False), ("b", 1, False))
        moved = move_tactic(state, TacticRef("g1", 1, "a"), DropTarget("gone", 2))
        self.assertFalse(moved)
        self.assertEqual(["a", "b"], _ids(state))
        self.assertEqual(1, state.goals[0].find_tactic("a").week)

    def test_missing_source_is_a_no_op(self) -> None:
        state = state_with_tactics(("a", 1, False))
        self.assertFalse(move_tactic(state, TacticRef("g1", 1, "zzz"), DropTarget("g1", 2)))
        self.assertFalse(move_tactic(state, TacticRef("nope", 1, "a"), DropTarget("g1", 2)))
        self.assertEqual(["a"], _ids(state))

    def test_unknown_anchor_appends(self) -> None:
        state = state_with_tactics(("a", 1, False), ("b", 1, False))
        move_tactic(state, TacticRef("g1", 1, "a"), DropTarget("g1", 1, "missing"))
        self.assertEqual(["b", "a"], _ids(state))

    def test_target_week_outside_sprint_is_rejected(self) -> None:
        state = state_with_tactics(("a", 1, False))
        with self.assertRaises(ValueError):
            move_tactic(state, TacticRef("g1", 1, "a"), DropTarget("g1", 13))
        self.assertEqual(1, state.goals[0].find_tactic("a").week)


if __name__ == "__main__":
    unittest.main()
