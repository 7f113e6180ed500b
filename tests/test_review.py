from __future__ import annotations

import unittest

from sprintpulse.config import PlannerConfig
from sprintpulse.model import AppState, DueDate, HealthLog, WeekSnapshot, default_state
from sprintpulse.review import (
    build_dashboard,
    build_plan_view,
    build_planner_grid,
    build_review,
    build_week_view,
    week_label,
)

from tests.helpers import state_with_tactics


class TestReview(unittest.TestCase):
    def test_week_label_switches_when_sprint_is_done(self) -> None:
        self.assertEqual("Week 3 of 12", week_label(AppState(current_week=3)))
        self.assertEqual("Sprint complete (12 of 12 weeks)", week_label(AppState(current_week=13)))

    def test_dashboard_shows_score_tier_and_due_dates(self) -> None:
        state = default_state()
        state.due_dates.append(DueDate(id="ddl_1", title="Taxes", type="admin", duration="1 day"))
        text = build_dashboard(state)
        self.assertIn("Execution score: 50% [bad]", text)
        self.assertIn("Lagging behind. Reclaim your calendar.", text)
        self.assertIn("Emotional phase: Peaceful (Select your emotional state.)", text)
        self.assertIn("- ddl_1: Taxes [admin] (1 day)", text)

    def test_week_view_lists_checkboxes(self) -> None:
        text = build_week_view(default_state())
        lines = text.splitlines()
        self.assertEqual("Week 1 tactics (1/2 done)", lines[0])
        self.assertIn("- [ ] Draft PRFAQ (t1)", lines)
        self.assertIn("- [x] Set up Repo (t2)", lines)
        self.assertIn("- No tactics for this week.", build_week_view(default_state(), 5))

    def test_plan_view_expands_open_weeks_only(self) -> None:
        state = state_with_tactics(("a", 2, False), ("b", 3, True))
        state.open_weeks = {"g1": {2: True}}
        lines = build_plan_view(state).splitlines()
        self.assertIn("  v Week 2: 1 tactics", lines)
        self.assertIn("      [ ] task a (a)", lines)
        self.assertIn("  > Week 3: 1 tactics", lines)
        self.assertNotIn("      [x] task b (b)", lines)

    def test_planner_grid_marks_tags(self) -> None:
        state = AppState(model_week={(0, 0): "action", (1, 1): "plan", (2, 0): "strategic"})
        lines = build_planner_grid(state, PlannerConfig(days=3, hours=2, start_hour=9)).splitlines()
        self.assertEqual("      Mon Tue Wed", lines[0])
        self.assertEqual(" 9:00   A   .   ~", lines[1])
        self.assertEqual("10:00   .   P   .", lines[2])
        self.assertEqual("Strategic hours: 1", lines[-1])

    def test_review_lists_history_and_notes(self) -> None:
        state = AppState(current_week=3)
        state.metrics.wes_history.append(WeekSnapshot(week=1, score=80, strategic_hours=5, lag="2 deals"))
        state.health_logs.append(HealthLog(id="h1", date="2026-03-02", week=3, note="slept well"))
        state.emotional_history[3] = "Amazed"
        text = build_review(state)
        self.assertIn("- W1: 80%; 5 hours in Week 1 used strategically (lag: 2 deals)", text)
        self.assertIn("- trend: W1=80", text)
        self.assertIn("  [*] Amazed", text)
        self.assertIn("- 2026-03-02: slept well (h1)", text)

    def test_review_without_history(self) -> None:
        text = build_review(AppState())
        self.assertIn("- No history yet.", text)
        self.assertIn("- No notes for this week.", text)
        self.assertIn("  [*] Peaceful", text)


if __name__ == "__main__":
    unittest.main()
