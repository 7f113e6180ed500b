from __future__ import annotations

import unittest

from sprintpulse.metrics import (
    DEFAULT_EMOTIONAL_MESSAGE,
    build_week_snapshot,
    calculate_strategic_hours,
    calculate_wes,
    evaluate_emotional_phase,
    upsert_snapshot,
    wes_message,
    wes_series,
    wes_tier,
)
from sprintpulse.model import AppState, WeekSnapshot

from tests.helpers import state_with_tactics


class TestMetrics(unittest.TestCase):
    def test_wes_is_zero_without_tactics(self) -> None:
        self.assertEqual(0, calculate_wes(AppState()))

    def test_wes_rounds_half_up(self) -> None:
        specs = [("t0", 1, True)] + [(f"t{i}", 1, False) for i in range(1, 8)]
        self.assertEqual(13, calculate_wes(state_with_tactics(*specs)))

        state = state_with_tactics(("a", 1, True), ("b", 1, True), ("c", 1, False))
        self.assertEqual(67, calculate_wes(state))

    def test_wes_only_counts_current_week(self) -> None:
        state = state_with_tactics(("a", 1, True), ("b", None, False), ("c", 2, False), ("d", 2, False))
        self.assertEqual(50, calculate_wes(state))
        state.current_week = 2
        self.assertEqual(0, calculate_wes(state))

    def test_wes_tiers(self) -> None:
        self.assertEqual("good", wes_tier(85))
        self.assertEqual("warn", wes_tier(84))
        self.assertEqual("warn", wes_tier(65))
        self.assertEqual("bad", wes_tier(64))
        self.assertTrue(wes_message(100).startswith("Excellent!"))
        self.assertTrue(wes_message(0).startswith("Lagging behind."))

    def test_emotional_phase_defaults_until_recorded(self) -> None:
        state = AppState()
        reading = evaluate_emotional_phase(state)
        self.assertEqual("Peaceful", reading.phase)
        self.assertEqual(DEFAULT_EMOTIONAL_MESSAGE, reading.message)

        state.emotional_history[1] = "Frustrated"
        reading = evaluate_emotional_phase(state)
        self.assertEqual("Frustrated", reading.phase)
        self.assertEqual("", reading.message)

    def test_strategic_hours_count_action_blocks_only(self) -> None:
        state = AppState(model_week={(0, 0): "action", (0, 1): "action", (1, 0): "plan", (2, 0): "strategic"})
        self.assertEqual(2, calculate_strategic_hours(state))

    def test_week_snapshot_captures_indicators(self) -> None:
        state = state_with_tactics(("a", 3, True), ("b", 3, False))
        state.current_week = 3
        state.model_week[(4, 4)] = "action"
        state.metrics.values[(3, "lag")] = "10 users"
        snapshot = build_week_snapshot(state)
        self.assertEqual(WeekSnapshot(week=3, score=50, strategic_hours=1, lag="10 users", lead=None), snapshot)

    def test_upsert_replaces_existing_week(self) -> None:
        history = [WeekSnapshot(week=1, score=40, strategic_hours=2)]
        upsert_snapshot(history, WeekSnapshot(week=2, score=70, strategic_hours=3))
        upsert_snapshot(history, WeekSnapshot(week=1, score=90, strategic_hours=5))
        self.assertEqual([1, 2], [snapshot.week for snapshot in history])
        self.assertEqual(90, history[0].score)

        state = AppState()
        state.metrics.wes_history.extend(history)
        self.assertEqual([("W1", 90), ("W2", 70)], wes_series(state))


if __name__ == "__main__":
    unittest.main()
