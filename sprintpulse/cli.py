from __future__ import annotations

import argparse
from dataclasses import dataclass
from pathlib import Path
import sys
from typing import Any

from . import __version__
from .config import SprintConfig, explain_config, load_config, write_default_config
from .events import EventBus
from .model import EMOTIONAL_PHASES, METRIC_KINDS, DUE_DATE_FIELDS
from .paths import RuntimePaths, ensure_runtime_dirs, runtime_paths
from .pending import PendingAction
from .persistence import FileBlobStore, PersistenceAdapter
from .reorder import DropTarget, TacticRef
from .review import DAY_LABELS, build_dashboard, build_plan_view, build_planner_grid, build_review, build_week_view
from .store import StateStore, StoreInitError


@dataclass(frozen=True)
class Session:
    store: StateStore
    config: SprintConfig
    paths: RuntimePaths


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sprintpulse",
        description="SprintPulse: plan, execute and review a 12-week year.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--workspace", type=Path, help="Workspace directory (default: nearest sprintpulse.toml)")

    sub = parser.add_subparsers(dest="cmd", required=False)

    init = sub.add_parser("init", help="Write a default sprintpulse.toml here.")
    init.add_argument("--name", default="SprintPulse", help="Workspace display name")

    sub.add_parser("app", help="Start the interactive terminal app.")
    sub.add_parser("status", help="Show the dashboard.")
    week = sub.add_parser("week", help="Show the tactics checklist for a week.")
    week.add_argument("--week", type=int, help="Week number (default: current)")
    sub.add_parser("plan", help="Show goals with their weekly accordions.")
    sub.add_parser("review", help="Show score history, phase and health notes.")
    sub.add_parser("planner", help="Show the model-week time grid.")
    sub.add_parser("config", help="Explain sprintpulse.toml settings.")

    vision = sub.add_parser("vision", help="Set the 12-week vision.")
    vision.add_argument("text")

    onboard = sub.add_parser("onboard", help="Set vision and first goal, finishing onboarding.")
    onboard.add_argument("--vision", default="")
    onboard.add_argument("--goal", default="", help="First goal title (empty clears the example goals)")

    goal = sub.add_parser("goal", help="Add, rename or remove goals.")
    goal_sub = goal.add_subparsers(dest="action", required=True)
    goal_add = goal_sub.add_parser("add")
    goal_add.add_argument("--title", default="")
    goal_rename = goal_sub.add_parser("rename")
    goal_rename.add_argument("goal_id")
    goal_rename.add_argument("text")
    goal_rm = goal_sub.add_parser("rm")
    goal_rm.add_argument("goal_id")
    goal_rm.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")

    tactic = sub.add_parser("tactic", help="Add, edit, toggle, move or remove tactics.")
    tactic_sub = tactic.add_subparsers(dest="action", required=True)
    tactic_add = tactic_sub.add_parser("add")
    tactic_add.add_argument("goal_id")
    tactic_add.add_argument("--week", type=int, help="Week 1-12 (ignored with --recurring)")
    tactic_add.add_argument("--recurring", action="store_true", help="Add to every week 1-12")
    tactic_add.add_argument("--title", default="")
    tactic_rename = tactic_sub.add_parser("rename")
    tactic_rename.add_argument("goal_id")
    tactic_rename.add_argument("tactic_id")
    tactic_rename.add_argument("text")
    tactic_toggle = tactic_sub.add_parser("toggle")
    tactic_toggle.add_argument("goal_id")
    tactic_toggle.add_argument("tactic_id")
    tactic_rm = tactic_sub.add_parser("rm")
    tactic_rm.add_argument("goal_id")
    tactic_rm.add_argument("tactic_id")
    tactic_move = tactic_sub.add_parser("move")
    tactic_move.add_argument("goal_id")
    tactic_move.add_argument("tactic_id")
    tactic_move.add_argument("--to-goal", help="Target goal (default: same goal)")
    tactic_move.add_argument("--to-week", type=int, required=True)
    tactic_move.add_argument("--before", help="Insert before this tactic id")

    accordion = sub.add_parser("accordion", help="Open or close a goal's week in the plan view.")
    accordion.add_argument("goal_id")
    accordion.add_argument("week", type=int)

    due = sub.add_parser("due", help="Track due dates.")
    due_sub = due.add_subparsers(dest="action", required=True)
    due_add = due_sub.add_parser("add")
    due_add.add_argument("--title", default="")
    due_add.add_argument("--type", default="")
    due_add.add_argument("--duration", default="")
    due_set = due_sub.add_parser("set")
    due_set.add_argument("due_id")
    due_set.add_argument("field", choices=DUE_DATE_FIELDS)
    due_set.add_argument("value")
    due_rm = due_sub.add_parser("rm")
    due_rm.add_argument("due_id")

    metric = sub.add_parser("metric", help="Record this week's lag or lead indicator.")
    metric.add_argument("kind", choices=METRIC_KINDS)
    metric.add_argument("value")

    phase = sub.add_parser("phase", help="Record this week's emotional phase.")
    phase.add_argument("phase", choices=EMOTIONAL_PHASES)

    health = sub.add_parser("health", help="Add or remove health notes.")
    health_sub = health.add_subparsers(dest="action", required=True)
    health_add = health_sub.add_parser("add")
    health_add.add_argument("note")
    health_rm = health_sub.add_parser("rm")
    health_rm.add_argument("log_id")

    block = sub.add_parser("block", help="Cycle a model-week slot: empty, plan, action, breakout.")
    block.add_argument("day", help="Day index 0-6 or name (mon..sun)")
    block.add_argument("hour", type=int, help="Row index in the planner grid")

    complete = sub.add_parser("complete-week", help="Archive this week's stats and advance.")
    complete.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")

    export = sub.add_parser("export", help="Write sprintpulse_week<N>.json.")
    export.add_argument("--dir", type=Path, help="Output directory (default: .sprintpulse/exports)")

    reset = sub.add_parser("reset", help="Delete all data and start over.")
    reset.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")

    return parser


def _print_notice(event: dict[str, Any]) -> None:
    if event.get("severity") not in {"warning", "error"}:
        return
    print(f"{event.get('severity')}: {event.get('message')}", file=sys.stderr)


def open_session(workspace: Path | None = None) -> Session:
    paths = ensure_runtime_dirs(runtime_paths(workspace))
    config, warn = load_config(paths.config_toml)
    if warn:
        print(f"warning: {warn}", file=sys.stderr)
    events = EventBus()
    if config.logging.events:
        events.set_log_path(paths.events_log)
    events.subscribe(_print_notice)
    blobs = FileBlobStore(paths.state_dir, max_bytes=config.storage.max_bytes)
    persistence = PersistenceAdapter(blobs, key=config.storage.key, events=events)
    store = StateStore.open(persistence, events=events, planner=config.planner)
    return Session(store=store, config=config, paths=paths)


def _parse_day(value: str) -> int:
    raw = value.strip().lower()
    if raw.isdecimal():
        return int(raw)
    for idx, label in enumerate(DAY_LABELS):
        if raw[:3] == label.lower():
            return idx
    raise ValueError(f"unknown day: {value!r}")


def _stdin_is_interactive() -> bool:
    return sys.stdin is not None and sys.stdin.isatty()


def _resolve_pending(action: PendingAction, *, assume_yes: bool = False) -> str | bool | None:
    """Stand-in for the confirmation dialog. None means cancelled."""

    if not action.needs_input and assume_yes:
        return True
    if not _stdin_is_interactive():
        if action.needs_input:
            print(f"{action.title}: a title is required (pass --title).", file=sys.stderr)
        else:
            print(f"{action.title} {action.message} Re-run with --yes to confirm.", file=sys.stderr)
        return None
    print(action.title)
    print(action.message)
    if action.needs_input:
        text = input(f"{action.placeholder or 'value'}> ").strip()
        return text or None
    answer = input(f"{action.confirm_label}? [y/N] ").strip().lower()
    return True if answer in {"y", "yes"} else None


def cmd_init(args: argparse.Namespace) -> int:
    paths = runtime_paths(args.workspace or Path.cwd())
    ok, summary = write_default_config(paths.config_toml, name=args.name)
    print(summary, file=sys.stdout if ok else sys.stderr)
    if ok:
        ensure_runtime_dirs(paths)
    return 0 if ok else 1


def cmd_app(args: argparse.Namespace) -> int:
    try:
        from .app import run_terminal_app
    except ModuleNotFoundError as exc:
        if exc.name == "textual":
            print("Interactive app requires `textual`. Install it (pip install textual) and retry.", file=sys.stderr)
            return 1
        raise
    return run_terminal_app(workspace=args.workspace)


def cmd_config(args: argparse.Namespace) -> int:
    paths = runtime_paths(args.workspace)
    config, warn = load_config(paths.config_toml)
    if warn:
        print(f"warning: {warn}", file=sys.stderr)
    print(explain_config(config, path=paths.config_toml))
    return 0


def run_store_command(session: Session, args: argparse.Namespace) -> int:
    store = session.store
    cmd = args.cmd

    if cmd == "status":
        print(build_dashboard(store.state))
        return 0
    if cmd == "week":
        print(build_week_view(store.state, args.week))
        return 0
    if cmd == "plan":
        print(build_plan_view(store.state))
        return 0
    if cmd == "review":
        print(build_review(store.state))
        return 0
    if cmd == "planner":
        print(build_planner_grid(store.state, session.config.planner))
        return 0
    if cmd == "vision":
        store.update_vision(args.text)
        print("vision updated")
        return 0
    if cmd == "onboard":
        store.complete_onboarding(args.vision, args.goal)
        print(f"onboarding complete ({len(store.state.goals)} goal(s))")
        return 0
    if cmd == "goal":
        return _goal_command(store, args)
    if cmd == "tactic":
        return _tactic_command(store, args)
    if cmd == "accordion":
        opened = store.toggle_week_accordion(args.goal_id, args.week)
        print(f"week {args.week} {'opened' if opened else 'closed'}")
        return 0
    if cmd == "due":
        return _due_command(store, args)
    if cmd == "metric":
        store.update_metric(args.kind, args.value)
        print(f"week {store.state.current_week} {args.kind}: {args.value}")
        return 0
    if cmd == "phase":
        store.set_emotional_phase(args.phase)
        print(f"week {store.state.current_week} phase: {args.phase}")
        return 0
    if cmd == "health":
        return _health_command(store, args)
    if cmd == "block":
        tag = store.toggle_time_block((_parse_day(args.day), args.hour))
        print(f"slot -> {tag} (strategic hours: {store.strategic_hours()})")
        return 0
    if cmd == "complete-week":
        action = store.complete_week()
        if action is None:
            print("sprint already complete; nothing to archive.")
            return 0
        value = _resolve_pending(action, assume_yes=args.yes)
        if value is None:
            return 1
        snapshot = store.commit(action, value)
        if snapshot is None:
            return 1
        print(f"week {snapshot.week} archived at {snapshot.score}%; now {store.state.current_week}")
        return 0
    if cmd == "export":
        path = store.export_data(args.dir or session.paths.exports_dir)
        print(f"exported: {path}")
        return 0
    if cmd == "reset":
        action = store.reset_data()
        value = _resolve_pending(action, assume_yes=args.yes)
        if value is None:
            return 1
        if not store.commit(action, value):
            return 1
        print("all data deleted; defaults restored.")
        return 0

    print(f"unknown command: {cmd}", file=sys.stderr)
    return 2


def _goal_command(store: StateStore, args: argparse.Namespace) -> int:
    if args.action == "add":
        goal = store.add_goal()
        if args.title:
            store.update_goal_title(goal.id, args.title)
        print(f"goal added: {goal.id}")
        return 0
    if args.action == "rename":
        if store.update_goal_title(args.goal_id, args.text) is None:
            print(f"goal not found: {args.goal_id}", file=sys.stderr)
            return 1
        print("goal renamed")
        return 0
    action = store.remove_goal(args.goal_id)
    if action is None:
        print(f"goal not found: {args.goal_id}", file=sys.stderr)
        return 1
    value = _resolve_pending(action, assume_yes=args.yes)
    if value is None:
        return 1
    store.commit(action, value)
    print(f"goal removed: {args.goal_id}")
    return 0


def _tactic_command(store: StateStore, args: argparse.Namespace) -> int:
    if args.action == "add":
        result = store.add_tactic(args.goal_id, args.week, args.recurring, args.title)
        if isinstance(result, PendingAction):
            value = _resolve_pending(result)
            if value is None:
                return 1
            result = store.commit(result, value)
        if not result:
            print(f"goal not found: {args.goal_id}", file=sys.stderr)
            return 1
        for tactic in result:
            print(f"tactic added: {tactic.id} (week {tactic.resolved_week})")
        return 0
    if args.action == "rename":
        found = store.update_tactic_title(args.goal_id, args.tactic_id, args.text) is not None
    elif args.action == "toggle":
        tactic = store.toggle_tactic(args.goal_id, args.tactic_id)
        found = tactic is not None
        if tactic is not None:
            print(f"{'done' if tactic.completed else 'open'}: {tactic.title} (WES {store.wes()}%)")
            return 0
    elif args.action == "rm":
        found = store.remove_tactic(args.goal_id, args.tactic_id)
    else:
        tactic = store.find_tactic(args.goal_id, args.tactic_id)
        source = TacticRef(
            goal_id=args.goal_id,
            week=tactic.resolved_week if tactic is not None else args.to_week,
            tactic_id=args.tactic_id,
        )
        target = DropTarget(goal_id=args.to_goal or args.goal_id, week=args.to_week, tactic_id=args.before)
        found = store.move_tactic(source, target)
    if not found:
        print("tactic or goal not found", file=sys.stderr)
        return 1
    print(f"tactic {args.action}: ok")
    return 0


def _due_command(store: StateStore, args: argparse.Namespace) -> int:
    if args.action == "add":
        item = store.add_due_date()
        for field in DUE_DATE_FIELDS:
            value = getattr(args, field)
            if value:
                store.update_due_date(item.id, field, value)
        print(f"due date added: {item.id}")
        return 0
    if args.action == "set":
        if store.update_due_date(args.due_id, args.field, args.value) is None:
            print(f"due date not found: {args.due_id}", file=sys.stderr)
            return 1
        print("due date updated")
        return 0
    if not store.remove_due_date(args.due_id):
        print(f"due date not found: {args.due_id}", file=sys.stderr)
        return 1
    print("due date removed")
    return 0


def _health_command(store: StateStore, args: argparse.Namespace) -> int:
    if args.action == "add":
        log = store.add_health_log(args.note)
        if log is None:
            print("note is empty", file=sys.stderr)
            return 1
        print(f"health note added: {log.id} (week {log.week})")
        return 0
    if not store.remove_health_log(args.log_id):
        print(f"health note not found: {args.log_id}", file=sys.stderr)
        return 1
    print("health note removed")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    argv = list(argv) if argv is not None else list(sys.argv[1:])
    if not argv:
        argv = ["status"]
    args = parser.parse_args(argv)

    if args.cmd == "init":
        return cmd_init(args)
    if args.cmd == "app":
        return cmd_app(args)
    if args.cmd == "config":
        return cmd_config(args)

    try:
        session = open_session(args.workspace)
    except StoreInitError as exc:
        print(f"App Error: {exc}", file=sys.stderr)
        return 1

    try:
        return run_store_command(session, args)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
