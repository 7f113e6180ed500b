from __future__ import annotations

from .config import PlannerConfig
from .metrics import (
    calculate_strategic_hours,
    calculate_wes,
    evaluate_emotional_phase,
    week_progress,
    wes_message,
    wes_series,
    wes_tier,
)
from .model import EMOTIONAL_PHASES, SPRINT_WEEKS, AppState


DAY_LABELS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_BLOCK_LETTERS = {"plan": "P", "action": "A", "breakout": "B", "strategic": "~", "buffer": "~"}


def week_label(state: AppState) -> str:
    if state.sprint_complete:
        return f"Sprint complete ({SPRINT_WEEKS} of {SPRINT_WEEKS} weeks)"
    return f"Week {state.current_week} of {SPRINT_WEEKS}"


def build_dashboard(state: AppState) -> str:
    score = calculate_wes(state)
    reading = evaluate_emotional_phase(state)
    lines: list[str] = []
    lines.append(week_label(state))
    lines.append("")
    lines.append("Vision:")
    lines.append(f"- {state.vision or '(empty)'}")
    lines.append("")
    lines.append(f"Execution score: {score}% [{wes_tier(score)}]")
    lines.append(f"- {wes_message(score)}")
    lines.append("")
    phase_line = f"Emotional phase: {reading.phase}"
    if reading.message:
        phase_line += f" ({reading.message})"
    lines.append(phase_line)
    lines.append(f"Strategic hours planned: {calculate_strategic_hours(state)}")
    lines.append("")
    lines.append("Due dates:")
    if state.due_dates:
        for item in state.due_dates:
            kind = f" [{item.type}]" if item.type else ""
            duration = f" ({item.duration})" if item.duration else ""
            lines.append(f"- {item.id}: {item.title or '(untitled)'}{kind}{duration}")
    else:
        lines.append("- No due dates added.")
    return "\n".join(lines).rstrip()


def build_week_view(state: AppState, week: int | None = None) -> str:
    """Tactics of one week grouped by goal, the execution checklist."""

    wanted = state.current_week if week is None else week
    completed, total = week_progress(state, wanted)
    lines = [f"Week {wanted} tactics ({completed}/{total} done)"]
    if not state.goals:
        lines.append("- No goals set.")
        return "\n".join(lines)
    any_rows = False
    for goal in state.goals:
        tactics = goal.tactics_for_week(wanted)
        if not tactics:
            continue
        any_rows = True
        lines.append("")
        lines.append(f"{goal.title or '(untitled goal)'} ({goal.id})")
        for tactic in tactics:
            box = "x" if tactic.completed else " "
            lines.append(f"- [{box}] {tactic.title} ({tactic.id})")
    if not any_rows:
        lines.append("- No tactics for this week.")
    return "\n".join(lines)


def build_plan_view(state: AppState) -> str:
    lines = ["Plan", ""]
    lines.append(f"Vision: {state.vision}")
    if not state.goals:
        lines.append("")
        lines.append("- No goals set.")
        return "\n".join(lines)
    for goal in state.goals:
        lines.append("")
        lines.append(f"{goal.title or '(untitled goal)'} ({goal.id})")
        for week in range(1, SPRINT_WEEKS + 1):
            tactics = goal.tactics_for_week(week)
            is_open = state.is_week_open(goal.id, week)
            marker = "v" if is_open else ">"
            lines.append(f"  {marker} Week {week}: {len(tactics)} tactics")
            if not is_open:
                continue
            for tactic in tactics:
                box = "x" if tactic.completed else " "
                lines.append(f"      [{box}] {tactic.title} ({tactic.id})")
    return "\n".join(lines)


def build_planner_grid(state: AppState, planner: PlannerConfig | None = None) -> str:
    planner = planner or PlannerConfig()
    days = DAY_LABELS[: planner.days]
    header = "      " + " ".join(f"{day:>3}" for day in days)
    lines = [header]
    for hour in range(planner.hours):
        label = f"{(planner.start_hour + hour) % 24:>2}:00"
        cells = []
        for day in range(planner.days):
            tag = state.block_tag((day, hour))
            cells.append(f"{_BLOCK_LETTERS.get(tag, '.'):>3}")
        lines.append(f"{label} " + " ".join(cells))
    lines.append("")
    lines.append("P = plan, A = action, B = breakout, ~ = old tag (toggle to reset)")
    lines.append(f"Strategic hours: {calculate_strategic_hours(state)}")
    return "\n".join(lines)


def build_review(state: AppState) -> str:
    reading = evaluate_emotional_phase(state)
    lines: list[str] = []
    lines.append(f"Review ({week_label(state)})")
    lines.append("")

    lines.append("Score history:")
    history = state.metrics.wes_history
    if history:
        for snapshot in history:
            extras = []
            if snapshot.lag:
                extras.append(f"lag: {snapshot.lag}")
            if snapshot.lead:
                extras.append(f"lead: {snapshot.lead}")
            suffix = f" ({', '.join(extras)})" if extras else ""
            lines.append(
                f"- W{snapshot.week}: {snapshot.score}%; {snapshot.strategic_hours} hours in Week {snapshot.week} used strategically{suffix}"
            )
        lines.append("- trend: " + " ".join(f"{label}={score}" for label, score in wes_series(state)))
    else:
        lines.append("- No history yet.")
    lines.append("")

    lines.append("Emotional phase:")
    for phase in EMOTIONAL_PHASES:
        mark = "*" if phase == reading.phase else " "
        lines.append(f"  [{mark}] {phase}")
    lines.append("")

    lines.append("Health notes this week:")
    logs = [log for log in state.health_logs if log.week == state.current_week]
    if logs:
        for log in logs:
            lines.append(f"- {log.date}: {log.note} ({log.id})")
    else:
        lines.append("- No notes for this week.")
    return "\n".join(lines).rstrip()
