from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from . import metrics
from .config import PlannerConfig
from .events import EventBus
from .ids import IdGenerator
from .model import (
    BLOCK_CYCLE,
    DUE_DATE_FIELDS,
    METRIC_KINDS,
    SPRINT_COMPLETE_WEEK,
    SPRINT_WEEKS,
    AppState,
    DueDate,
    Goal,
    HealthLog,
    Slot,
    Tactic,
    WeekSnapshot,
    default_state,
    is_tactic_week,
)
from .pending import PendingAction, add_tactic_action, complete_week_action, remove_goal_action, reset_data_action
from .persistence import PersistenceAdapter, export_data
from .reorder import DropTarget, TacticRef, move_tactic


class StoreInitError(RuntimeError):
    pass


def _check_week(week: object) -> int:
    if not is_tactic_week(week):
        raise ValueError(f"week must be an integer 1-{SPRINT_WEEKS}, got {week!r}")
    return int(week)  # type: ignore[arg-type]


class StateStore:
    """Sole owner of the application state tree.

    Every mutation runs to completion, publishes a `store.*` event and saves
    the whole tree. Ids that no longer resolve (a goal deleted under a stale
    view, say) make the operation a silent no-op.
    """

    def __init__(
        self,
        state: AppState,
        persistence: PersistenceAdapter,
        *,
        events: EventBus | None = None,
        planner: PlannerConfig | None = None,
        ids: IdGenerator | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.state = state
        self.persistence = persistence
        self.events = events or persistence.events
        self.planner = planner or PlannerConfig()
        self.ids = ids or IdGenerator()
        self._clock = clock or datetime.now

    @classmethod
    def open(
        cls,
        persistence: PersistenceAdapter,
        *,
        events: EventBus | None = None,
        planner: PlannerConfig | None = None,
        ids: IdGenerator | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> "StateStore":
        try:
            state = persistence.load()
        except Exception as exc:  # noqa: BLE001
            raise StoreInitError(f"could not initialize state: {exc}") from exc
        store = cls(state, persistence, events=events, planner=planner, ids=ids, clock=clock)
        store.events.publish_event(
            "store.opened",
            f"state ready at week {state.current_week}",
            metadata={"goals": len(state.goals), "onboarding_complete": state.onboarding_complete},
        )
        return store

    # --- persistence ---

    def save(self) -> bool:
        return self.persistence.save(self.state)

    def flush(self) -> bool:
        """Opportunistic save, e.g. when the app is hidden or closing."""

        return self.save()

    def export_data(self, directory: Path) -> Path:
        path = export_data(self.state, directory)
        self.events.publish_event("store.exported", f"exported {path.name}", metadata={"path": str(path)})
        return path

    def _changed(self, event_type: str, message: str, **metadata: Any) -> bool:
        self.events.publish_event(f"store.{event_type}", message, metadata=metadata)
        return self.save()

    # --- queries ---

    def get_goal(self, goal_id: str) -> Goal | None:
        return self.state.get_goal(goal_id)

    def find_tactic(self, goal_id: str, tactic_id: str) -> Tactic | None:
        goal = self.get_goal(goal_id)
        if goal is None:
            return None
        return goal.find_tactic(tactic_id)

    def tactics_for_week(self, goal_id: str, week: int) -> list[Tactic]:
        goal = self.get_goal(goal_id)
        if goal is None:
            return []
        return goal.tactics_for_week(week)

    def health_logs_for_week(self, week: int | None = None) -> list[HealthLog]:
        wanted = self.state.current_week if week is None else week
        return [log for log in self.state.health_logs if log.week == wanted]

    def wes(self) -> int:
        return metrics.calculate_wes(self.state)

    def strategic_hours(self) -> int:
        return metrics.calculate_strategic_hours(self.state)

    def emotional_phase(self) -> metrics.EmotionalReading:
        return metrics.evaluate_emotional_phase(self.state)

    # --- goals ---

    def add_goal(self) -> Goal:
        goal = Goal(id=self.ids.new_id("g"))
        self.state.goals.append(goal)
        self._changed("goal_added", "goal added", goal_id=goal.id)
        return goal

    def update_goal_title(self, goal_id: str, text: str) -> Goal | None:
        goal = self.get_goal(goal_id)
        if goal is None:
            return None
        goal.title = text
        self._changed("goal_renamed", "goal title updated", goal_id=goal_id)
        return goal

    def remove_goal(self, goal_id: str) -> PendingAction | None:
        goal = self.get_goal(goal_id)
        if goal is None:
            return None
        return remove_goal_action(goal.id, goal.title)

    def _remove_goal(self, goal_id: str) -> bool:
        kept = [goal for goal in self.state.goals if goal.id != goal_id]
        if len(kept) == len(self.state.goals):
            return False
        self.state.goals = kept
        self._changed("goal_removed", "goal and its tactics removed", goal_id=goal_id)
        return True

    # --- tactics ---

    def add_tactic(
        self,
        goal_id: str,
        week: int | None = None,
        recurring: bool = False,
        title: str | None = None,
    ) -> list[Tactic] | PendingAction:
        """Create one tactic, or one per sprint week when `recurring`.

        Without a title nothing is created yet: the returned PendingAction asks
        for one, and `commit(action, text)` finishes the job.
        """

        if not recurring and week is not None:
            week = _check_week(week)
        goal = self.get_goal(goal_id)
        if goal is None:
            return []
        clean = (title or "").strip()
        if not clean:
            return add_tactic_action(goal.id, week, recurring)
        return self._create_tactics(goal, week, recurring, clean)

    def _create_tactics(self, goal: Goal, week: int | None, recurring: bool, title: str) -> list[Tactic]:
        created: list[Tactic] = []
        if recurring:
            for recurring_week in range(1, SPRINT_WEEKS + 1):
                tactic_id = f"{self.ids.new_id('t')}_w{recurring_week}"
                created.append(Tactic(id=tactic_id, title=title, completed=False, week=recurring_week))
        else:
            created.append(Tactic(id=self.ids.new_id("t"), title=title, completed=False, week=week))
        goal.tactics.extend(created)

        if week and not recurring:
            self.state.open_weeks.setdefault(goal.id, {})[week] = True

        self._changed(
            "tactic_added",
            f"{len(created)} tactic(s) added",
            goal_id=goal.id,
            week=week,
            recurring=recurring,
            tactic_ids=[tactic.id for tactic in created],
        )
        return created

    def update_tactic_title(self, goal_id: str, tactic_id: str, text: str) -> Tactic | None:
        tactic = self.find_tactic(goal_id, tactic_id)
        if tactic is None:
            return None
        tactic.title = text
        self._changed("tactic_renamed", "tactic title updated", goal_id=goal_id, tactic_id=tactic_id)
        return tactic

    def toggle_tactic(self, goal_id: str, tactic_id: str) -> Tactic | None:
        tactic = self.find_tactic(goal_id, tactic_id)
        if tactic is None:
            return None
        tactic.completed = not tactic.completed
        self._changed(
            "tactic_toggled",
            "tactic completed" if tactic.completed else "tactic reopened",
            goal_id=goal_id,
            tactic_id=tactic_id,
            completed=tactic.completed,
        )
        return tactic

    def remove_tactic(self, goal_id: str, tactic_id: str) -> bool:
        goal = self.get_goal(goal_id)
        if goal is None:
            return False
        kept = [tactic for tactic in goal.tactics if tactic.id != tactic_id]
        if len(kept) == len(goal.tactics):
            return False
        goal.tactics = kept
        self._changed("tactic_removed", "tactic removed", goal_id=goal_id, tactic_id=tactic_id)
        return True

    def move_tactic(self, source: TacticRef, target: DropTarget) -> bool:
        moved = move_tactic(self.state, source, target)
        if not moved:
            return False
        self._changed(
            "tactic_moved",
            f"tactic moved to week {target.week}",
            tactic_id=source.tactic_id,
            from_goal=source.goal_id,
            to_goal=target.goal_id,
            week=target.week,
            before=target.tactic_id,
        )
        return True

    def toggle_week_accordion(self, goal_id: str, week: int) -> bool:
        weeks = self.state.open_weeks.setdefault(goal_id, {})
        weeks[week] = not weeks.get(week, False)
        self._changed("week_toggled", f"week {week} {'opened' if weeks[week] else 'closed'}", goal_id=goal_id, week=week)
        return weeks[week]

    # --- due dates ---

    def add_due_date(self) -> DueDate:
        item = DueDate(id=self.ids.new_id("ddl_"))
        self.state.due_dates.append(item)
        self._changed("due_date_added", "due date added", due_date_id=item.id)
        return item

    def update_due_date(self, item_id: str, field: str, value: str) -> DueDate | None:
        if field not in DUE_DATE_FIELDS:
            raise ValueError(f"due date field must be one of {', '.join(DUE_DATE_FIELDS)}, got {field!r}")
        for item in self.state.due_dates:
            if item.id == item_id:
                setattr(item, field, value)
                self._changed("due_date_updated", f"due date {field} updated", due_date_id=item_id, field=field)
                return item
        return None

    def remove_due_date(self, item_id: str) -> bool:
        kept = [item for item in self.state.due_dates if item.id != item_id]
        if len(kept) == len(self.state.due_dates):
            return False
        self.state.due_dates = kept
        self._changed("due_date_removed", "due date removed", due_date_id=item_id)
        return True

    # --- vision, metrics, reflection ---

    def update_vision(self, text: str) -> None:
        self.state.vision = text
        self._changed("vision_updated", "vision updated")

    def update_metric(self, kind: str, value: str) -> None:
        if kind not in METRIC_KINDS:
            raise ValueError(f"metric kind must be 'lag' or 'lead', got {kind!r}")
        week = self.state.current_week
        self.state.metrics.values[(week, kind)] = value
        self._changed("metric_updated", f"week {week} {kind} indicator updated", week=week, kind=kind)

    def set_emotional_phase(self, phase: str) -> None:
        clean = phase.strip()
        if not clean:
            raise ValueError("emotional phase is empty")
        week = self.state.current_week
        self.state.emotional_history[week] = clean
        self._changed("phase_set", f"week {week} phase: {clean}", week=week, phase=clean)

    def add_health_log(self, note: str) -> HealthLog | None:
        if not note.strip():
            return None
        log = HealthLog(
            id=self.ids.new_id("h"),
            date=self._clock().strftime("%Y-%m-%d"),
            week=self.state.current_week,
            note=note,
        )
        self.state.health_logs.insert(0, log)
        self._changed("health_logged", "health note added", health_log_id=log.id, week=log.week)
        return log

    def remove_health_log(self, log_id: str) -> bool:
        kept = [log for log in self.state.health_logs if log.id != log_id]
        if len(kept) == len(self.state.health_logs):
            return False
        self.state.health_logs = kept
        self._changed("health_removed", "health note removed", health_log_id=log_id)
        return True

    # --- model week ---

    def toggle_time_block(self, slot: Slot) -> str:
        day, hour = slot
        if not self.planner.contains(day, hour):
            raise ValueError(f"slot {slot!r} is outside the {self.planner.days}x{self.planner.hours} planner grid")
        current = self.state.block_tag(slot)
        # legacy tags (strategic, buffer) restart the cycle
        idx = BLOCK_CYCLE.index(current) if current in BLOCK_CYCLE else 0
        tag = BLOCK_CYCLE[(idx + 1) % len(BLOCK_CYCLE)]
        if tag == "empty":
            self.state.model_week.pop(slot, None)
        else:
            self.state.model_week[slot] = tag
        self._changed("block_toggled", f"slot d{day}-h{hour} -> {tag}", day=day, hour=hour, tag=tag)
        return tag

    # --- sprint lifecycle ---

    def complete_week(self) -> PendingAction | None:
        if self.state.sprint_complete:
            return None
        return complete_week_action(self.state.current_week)

    def _complete_week(self) -> WeekSnapshot:
        snapshot = metrics.build_week_snapshot(self.state)
        metrics.upsert_snapshot(self.state.metrics.wes_history, snapshot)
        self.state.current_week = min(SPRINT_COMPLETE_WEEK, self.state.current_week + 1)
        self._changed(
            "week_completed",
            f"week {snapshot.week} archived at {snapshot.score}%",
            week=snapshot.week,
            score=snapshot.score,
            strategic_hours=snapshot.strategic_hours,
            current_week=self.state.current_week,
        )
        return snapshot

    def complete_onboarding(self, vision: str, first_goal_title: str) -> None:
        if vision.strip():
            self.state.vision = vision
        title = first_goal_title.strip()
        if title:
            self.state.goals = [Goal(id=self.ids.new_id("g"), title=title)]
        else:
            self.state.goals = []
        self.state.onboarding_complete = True
        self._changed("onboarding_completed", "onboarding complete", goals=len(self.state.goals))

    def reset_data(self) -> PendingAction:
        return reset_data_action()

    def _reset_data(self) -> bool:
        if not self.persistence.clear():
            return False
        self.state = default_state()
        self.events.publish_event("store.reset", "all data deleted; defaults restored", severity="warning")
        return True

    # --- two-phase commit ---

    def commit(self, action: PendingAction, value: str | bool = True) -> Any:
        """Run the mutation a confirmed PendingAction describes.

        Cancelling is simply never calling this. Falsy `value` means the
        dialog was dismissed; for input prompts `value` is the entered text.
        """

        if value is False or value is None:
            return None
        payload = action.payload
        if action.kind == "remove_goal":
            return self._remove_goal(str(payload.get("goal_id") or ""))
        if action.kind == "add_tactic":
            text = value.strip() if isinstance(value, str) else ""
            if not text:
                return []
            goal = self.get_goal(str(payload.get("goal_id") or ""))
            if goal is None:
                return []
            return self._create_tactics(goal, payload.get("week"), bool(payload.get("recurring")), text)
        if action.kind == "complete_week":
            if payload.get("week") != self.state.current_week or self.state.sprint_complete:
                return None
            return self._complete_week()
        if action.kind == "reset_data":
            return self._reset_data()
        raise ValueError(f"unknown pending action: {action.kind!r}")
