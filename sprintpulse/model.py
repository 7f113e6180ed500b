from __future__ import annotations

from dataclasses import dataclass, field
import re
from typing import Any, Literal


STATE_VERSION = 1
SPRINT_WEEKS = 12
SPRINT_COMPLETE_WEEK = SPRINT_WEEKS + 1
DEFAULT_VISION = "Define your 12-week vision here..."

BLOCK_CYCLE: tuple[str, ...] = ("empty", "plan", "action", "breakout")
LEGACY_BLOCK_TAGS: tuple[str, ...] = ("strategic", "buffer")
EMOTIONAL_PHASES: tuple[str, ...] = ("Amazed", "Peaceful", "Passionate", "Frustrated", "Purposeless", "Depressed")
DUE_DATE_FIELDS: tuple[str, ...] = ("title", "type", "duration")

MetricKind = Literal["lag", "lead"]
METRIC_KINDS: tuple[str, ...] = ("lag", "lead")

Slot = tuple[int, int]
MetricKey = tuple[int, str]

_METRIC_KEY_RE = re.compile(r"^week(?P<week>\d+)_(?P<kind>lag|lead)$")
_SLOT_KEY_RE = re.compile(r"^d(?P<day>\d+)-h(?P<hour>\d+)$")
_INT_RE = re.compile(r"^-?[0-9]+$")


def is_tactic_week(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 1 <= value <= SPRINT_WEEKS


def slot_key(slot: Slot) -> str:
    day, hour = slot
    return f"d{day}-h{hour}"


def parse_slot_key(value: str) -> Slot | None:
    match = _SLOT_KEY_RE.match(value.strip())
    if not match:
        return None
    return int(match.group("day")), int(match.group("hour"))


def metric_key(key: MetricKey) -> str:
    week, kind = key
    return f"week{week}_{kind}"


def parse_metric_key(value: str) -> MetricKey | None:
    match = _METRIC_KEY_RE.match(value.strip())
    if not match:
        return None
    return int(match.group("week")), match.group("kind")


@dataclass
class Tactic:
    id: str
    title: str
    completed: bool = False
    week: int | None = None

    @property
    def resolved_week(self) -> int:
        return self.week if self.week is not None else 1

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id, "title": self.title, "completed": self.completed}
        if self.week is not None:
            out["week"] = self.week
        return out

    @staticmethod
    def from_mapping(value: object) -> "Tactic | None":
        if not isinstance(value, dict):
            return None
        tactic_id = str(value.get("id") or "").strip()
        if not tactic_id:
            return None
        week = _as_week(value.get("week"))
        return Tactic(
            id=tactic_id,
            title=str(value.get("title") or ""),
            completed=bool(value.get("completed")),
            week=week,
        )


@dataclass
class Goal:
    id: str
    title: str = ""
    tactics: list[Tactic] = field(default_factory=list)

    def find_tactic(self, tactic_id: str) -> Tactic | None:
        for tactic in self.tactics:
            if tactic.id == tactic_id:
                return tactic
        return None

    def tactics_for_week(self, week: int) -> list[Tactic]:
        return [tactic for tactic in self.tactics if tactic.resolved_week == week]

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "title": self.title, "tactics": [tactic.to_dict() for tactic in self.tactics]}

    @staticmethod
    def from_mapping(value: object) -> "Goal | None":
        if not isinstance(value, dict):
            return None
        goal_id = str(value.get("id") or "").strip()
        if not goal_id:
            return None
        raw_tactics = value.get("tactics")
        tactics: list[Tactic] = []
        if isinstance(raw_tactics, list):
            for item in raw_tactics:
                tactic = Tactic.from_mapping(item)
                if tactic is not None:
                    tactics.append(tactic)
        return Goal(id=goal_id, title=str(value.get("title") or ""), tactics=tactics)


@dataclass(frozen=True)
class WeekSnapshot:
    week: int
    score: int
    strategic_hours: int
    lag: str | None = None
    lead: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"week": self.week, "score": self.score, "strategicHours": self.strategic_hours}
        if self.lag is not None:
            out["lag"] = self.lag
        if self.lead is not None:
            out["lead"] = self.lead
        return out

    @staticmethod
    def from_mapping(value: object) -> "WeekSnapshot | None":
        if not isinstance(value, dict):
            return None
        week = _as_int(value.get("week"))
        if week is None:
            return None
        score = _as_int(value.get("score")) or 0
        hours = _as_int(value.get("strategicHours")) or 0
        return WeekSnapshot(
            week=week,
            score=min(100, max(0, score)),
            strategic_hours=max(0, hours),
            lag=_as_optional_text(value.get("lag")),
            lead=_as_optional_text(value.get("lead")),
        )


@dataclass
class HealthLog:
    id: str
    date: str
    week: int
    note: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "date": self.date, "week": self.week, "note": self.note}

    @staticmethod
    def from_mapping(value: object) -> "HealthLog | None":
        if not isinstance(value, dict):
            return None
        log_id = str(value.get("id") or "").strip()
        week = _as_int(value.get("week"))
        if not log_id or week is None:
            return None
        return HealthLog(id=log_id, date=str(value.get("date") or ""), week=week, note=str(value.get("note") or ""))


@dataclass
class DueDate:
    id: str
    title: str = ""
    type: str = ""
    duration: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "title": self.title, "type": self.type, "duration": self.duration}

    @staticmethod
    def from_mapping(value: object) -> "DueDate | None":
        if not isinstance(value, dict):
            return None
        item_id = str(value.get("id") or "").strip()
        if not item_id:
            return None
        return DueDate(
            id=item_id,
            title=str(value.get("title") or ""),
            type=str(value.get("type") or ""),
            duration=str(value.get("duration") or ""),
        )


@dataclass
class Metrics:
    wes_history: list[WeekSnapshot] = field(default_factory=list)
    values: dict[MetricKey, str] = field(default_factory=dict)
    extras: dict[str, Any] = field(default_factory=dict)

    def snapshot_for(self, week: int) -> WeekSnapshot | None:
        for snapshot in self.wes_history:
            if snapshot.week == week:
                return snapshot
        return None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = dict(self.extras)
        out["wesHistory"] = [snapshot.to_dict() for snapshot in self.wes_history]
        for key in sorted(self.values):
            out[metric_key(key)] = self.values[key]
        return out

    @staticmethod
    def from_mapping(value: object) -> "Metrics":
        if not isinstance(value, dict):
            return Metrics()
        history: list[WeekSnapshot] = []
        raw_history = value.get("wesHistory")
        if isinstance(raw_history, list):
            for item in raw_history:
                snapshot = WeekSnapshot.from_mapping(item)
                if snapshot is not None:
                    history.append(snapshot)
        values: dict[MetricKey, str] = {}
        extras: dict[str, Any] = {}
        for raw_key, raw_value in value.items():
            if raw_key == "wesHistory":
                continue
            parsed = parse_metric_key(str(raw_key))
            if parsed is None:
                extras[str(raw_key)] = raw_value
                continue
            if raw_value is None:
                continue
            values[parsed] = str(raw_value)
        return Metrics(wes_history=history, values=values, extras=extras)


@dataclass
class AppState:
    version: int = STATE_VERSION
    onboarding_complete: bool = False
    current_week: int = 1
    vision: str = DEFAULT_VISION
    goals: list[Goal] = field(default_factory=list)
    metrics: Metrics = field(default_factory=Metrics)
    emotional_history: dict[int, str] = field(default_factory=dict)
    health_logs: list[HealthLog] = field(default_factory=list)
    open_weeks: dict[str, dict[int, bool]] = field(default_factory=dict)
    due_dates: list[DueDate] = field(default_factory=list)
    model_week: dict[Slot, str] = field(default_factory=dict)
    extras: dict[str, Any] = field(default_factory=dict)

    @property
    def sprint_complete(self) -> bool:
        return self.current_week >= SPRINT_COMPLETE_WEEK

    def get_goal(self, goal_id: str) -> Goal | None:
        for goal in self.goals:
            if goal.id == goal_id:
                return goal
        return None

    def all_tactics(self) -> list[Tactic]:
        return [tactic for goal in self.goals for tactic in goal.tactics]

    def block_tag(self, slot: Slot) -> str:
        return self.model_week.get(slot) or "empty"

    def metric(self, week: int, kind: str) -> str | None:
        return self.metrics.values.get((week, kind))

    def is_week_open(self, goal_id: str, week: int) -> bool:
        return bool(self.open_weeks.get(goal_id, {}).get(week, False))

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = dict(self.extras)
        out.update(
            {
                "version": self.version,
                "onboardingComplete": self.onboarding_complete,
                "currentWeek": self.current_week,
                "vision": self.vision,
                "goals": [goal.to_dict() for goal in self.goals],
                "metrics": self.metrics.to_dict(),
                "emotionalHistory": {str(week): phase for week, phase in sorted(self.emotional_history.items())},
                "healthLogs": [log.to_dict() for log in self.health_logs],
                "openWeeks": {
                    goal_id: {str(week): flag for week, flag in sorted(weeks.items())}
                    for goal_id, weeks in self.open_weeks.items()
                },
                "dueDates": [item.to_dict() for item in self.due_dates],
                "modelWeek": {slot_key(slot): tag for slot, tag in sorted(self.model_week.items())},
            }
        )
        return out

    @staticmethod
    def from_mapping(value: dict[str, Any]) -> "AppState":
        known = {
            "version",
            "onboardingComplete",
            "currentWeek",
            "vision",
            "goals",
            "metrics",
            "emotionalHistory",
            "healthLogs",
            "openWeeks",
            "dueDates",
            "modelWeek",
        }
        current_week = _as_int(value.get("currentWeek"))
        if current_week is None:
            current_week = 1
        state = AppState(
            version=_as_int(value.get("version")) or STATE_VERSION,
            onboarding_complete=bool(value.get("onboardingComplete")),
            current_week=min(SPRINT_COMPLETE_WEEK, max(1, current_week)),
            vision=str(value.get("vision") if value.get("vision") is not None else DEFAULT_VISION),
            goals=_parse_list(value.get("goals"), Goal.from_mapping),
            metrics=Metrics.from_mapping(value.get("metrics")),
            emotional_history=_parse_week_map(value.get("emotionalHistory"), str),
            health_logs=_parse_list(value.get("healthLogs"), HealthLog.from_mapping),
            open_weeks=_parse_open_weeks(value.get("openWeeks")),
            due_dates=_parse_list(value.get("dueDates"), DueDate.from_mapping),
            model_week=_parse_model_week(value.get("modelWeek")),
            extras={key: item for key, item in value.items() if key not in known},
        )
        return state


def default_state() -> AppState:
    """State a brand-new user starts from, including the example goal."""

    return AppState(
        goals=[
            Goal(
                id="g1",
                title="Launch MVP Website",
                tactics=[
                    Tactic(id="t1", title="Draft PRFAQ", completed=False),
                    Tactic(id="t2", title="Set up Repo", completed=True),
                ],
            )
        ],
    )


def _as_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and _INT_RE.match(value.strip()):
        return int(value.strip())
    return None


def _as_week(value: object) -> int | None:
    week = _as_int(value)
    if week is None or not is_tactic_week(week):
        return None
    return week


def _as_optional_text(value: object) -> str | None:
    if value is None:
        return None
    return str(value)


def _parse_list(value: object, parse) -> list:
    if not isinstance(value, list):
        return []
    out = []
    for item in value:
        parsed = parse(item)
        if parsed is not None:
            out.append(parsed)
    return out


def _parse_week_map(value: object, cast) -> dict[int, Any]:
    if not isinstance(value, dict):
        return {}
    out: dict[int, Any] = {}
    for raw_key, raw_value in value.items():
        week = _as_int(raw_key)
        if week is None or raw_value is None:
            continue
        out[week] = cast(raw_value)
    return out


def _parse_open_weeks(value: object) -> dict[str, dict[int, bool]]:
    if not isinstance(value, dict):
        return {}
    return {str(goal_id): _parse_week_map(weeks, bool) for goal_id, weeks in value.items()}


def _parse_model_week(value: object) -> dict[Slot, str]:
    if not isinstance(value, dict):
        return {}
    out: dict[Slot, str] = {}
    for raw_key, raw_value in value.items():
        slot = parse_slot_key(str(raw_key))
        if slot is None or not isinstance(raw_value, str):
            continue
        out[slot] = raw_value
    return out
