from __future__ import annotations

from dataclasses import dataclass

from .model import AppState, WeekSnapshot


DEFAULT_EMOTIONAL_PHASE = "Peaceful"
DEFAULT_EMOTIONAL_MESSAGE = "Select your emotional state."

WES_GOOD_THRESHOLD = 85
WES_WARN_THRESHOLD = 65
_WES_MESSAGES = {
    "good": "Excellent! Statistically likely to hit goals.",
    "warn": "Keep pushing. Focus on high-impact tactics.",
    "bad": "Lagging behind. Reclaim your calendar.",
}


@dataclass(frozen=True)
class EmotionalReading:
    phase: str
    message: str


def _round_percent(part: int, whole: int) -> int:
    # half-up, so 12.5 -> 13 instead of banker's rounding
    return (200 * part + whole) // (2 * whole)


def week_progress(state: AppState, week: int) -> tuple[int, int]:
    total = 0
    completed = 0
    for tactic in state.all_tactics():
        if tactic.resolved_week != week:
            continue
        total += 1
        if tactic.completed:
            completed += 1
    return completed, total


def calculate_wes(state: AppState) -> int:
    """Weekly execution score: percent of current-week tactics completed.

    Defined as 0 when the current week has no tactics.
    """

    completed, total = week_progress(state, state.current_week)
    if total == 0:
        return 0
    return _round_percent(completed, total)


def wes_tier(score: int) -> str:
    if score >= WES_GOOD_THRESHOLD:
        return "good"
    if score >= WES_WARN_THRESHOLD:
        return "warn"
    return "bad"


def wes_message(score: int) -> str:
    return _WES_MESSAGES[wes_tier(score)]


def evaluate_emotional_phase(state: AppState) -> EmotionalReading:
    stored = state.emotional_history.get(state.current_week)
    if stored:
        return EmotionalReading(phase=stored, message="")
    return EmotionalReading(phase=DEFAULT_EMOTIONAL_PHASE, message=DEFAULT_EMOTIONAL_MESSAGE)


def calculate_strategic_hours(state: AppState) -> int:
    return sum(1 for tag in state.model_week.values() if tag == "action")


def build_week_snapshot(state: AppState) -> WeekSnapshot:
    week = state.current_week
    return WeekSnapshot(
        week=week,
        score=calculate_wes(state),
        strategic_hours=calculate_strategic_hours(state),
        lag=state.metric(week, "lag"),
        lead=state.metric(week, "lead"),
    )


def upsert_snapshot(history: list[WeekSnapshot], snapshot: WeekSnapshot) -> None:
    for idx, existing in enumerate(history):
        if existing.week == snapshot.week:
            history[idx] = snapshot
            return
    history.append(snapshot)


def wes_series(state: AppState) -> list[tuple[str, int]]:
    return [(f"W{snapshot.week}", snapshot.score) for snapshot in state.metrics.wes_history]
