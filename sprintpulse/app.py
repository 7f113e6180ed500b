from __future__ import annotations

import contextlib
from datetime import datetime
from pathlib import Path
from typing import Any

from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Footer, Input, Static, TextArea

from . import __version__
from .model import DUE_DATE_FIELDS, EMOTIONAL_PHASES
from .pending import PendingAction
from .reorder import DropTarget, TacticRef
from .review import (
    build_dashboard,
    build_plan_view,
    build_planner_grid,
    build_review,
    build_week_view,
    week_label,
)
from .store import StateStore, StoreInitError


TRANSCRIPT_MAX_LINES = 400

HELP_LINES = (
    "Commands (leading slash optional):",
    "  status | week [N] | plan | review | planner",
    "  vision <text>",
    "  onboard <vision> | <first goal>",
    "  goal add [title] | goal rename <goal> <text> | goal rm <goal>",
    "  tactic add <goal> [<week>|all] [title]",
    "  tactic toggle|rm <goal> <tactic> | tactic rename <goal> <tactic> <text>",
    "  tactic move <goal> <tactic> <week> [<to-goal>] [<before-tactic>]",
    "  open <goal> <week>",
    "  due add [title] | due set <id> <title|type|duration> <value> | due rm <id>",
    "  lag <value> | lead <value> | phase <name>",
    "  health <note> | health rm <id>",
    "  block <day> <hour>",
    "  complete | export | reset",
    "  confirm [text] | cancel | quit",
)


def _parse_command(text: str) -> tuple[str, str]:
    value = text.strip()
    if value.lower().startswith("sprintpulse "):
        value = value[len("sprintpulse ") :].lstrip()
    if value.startswith("/"):
        value = value[1:].lstrip()
    if not value:
        return "", ""
    parts = value.split(maxsplit=1)
    cmd = parts[0].lower()
    rest = parts[1] if len(parts) > 1 else ""
    return cmd, rest


def _split(rest: str, count: int) -> list[str]:
    """Split off `count` leading tokens; the remainder stays one string."""

    parts = rest.split(maxsplit=count)
    return parts + [""] * (count + 1 - len(parts))


def _parse_week_token(token: str) -> int | None:
    raw = token.strip().lower()
    if raw.startswith("w"):
        raw = raw[1:]
    if not raw.isdecimal():
        return None
    return int(raw)


def _parse_day_token(token: str) -> int | None:
    raw = token.strip().lower()
    if raw.isdecimal():
        return int(raw)
    names = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")
    return names.index(raw[:3]) if raw[:3] in names else None


class CommandSession:
    """Slash-command front end over a StateStore.

    Holds at most one PendingAction. Confirmation-gated commands park their
    action here; `confirm` commits it and `cancel` drops it.
    """

    def __init__(self, store: StateStore) -> None:
        self.store = store
        self.pending: PendingAction | None = None

    def run(self, text: str) -> list[str]:
        cmd, rest = _parse_command(text)
        if self.pending is not None and self.pending.needs_input and not text.strip().startswith("/"):
            if cmd not in {"cancel", "confirm"}:
                return self._confirm(text.strip())
        if not cmd:
            return []
        try:
            return self._dispatch(cmd, rest)
        except ValueError as exc:
            return [f"error: {exc}"]

    def _dispatch(self, cmd: str, rest: str) -> list[str]:
        store = self.store
        if cmd in {"help", "h", "?"}:
            return list(HELP_LINES)
        if cmd in {"status", "dash", "dashboard"}:
            return build_dashboard(store.state).splitlines()
        if cmd == "week":
            week = _parse_week_token(rest) if rest.strip() else None
            return build_week_view(store.state, week).splitlines()
        if cmd == "plan":
            return build_plan_view(store.state).splitlines()
        if cmd == "review":
            return build_review(store.state).splitlines()
        if cmd == "planner":
            return build_planner_grid(store.state, store.planner).splitlines()
        if cmd == "confirm":
            needs_text = self.pending is not None and self.pending.needs_input
            return self._confirm(rest if needs_text else True)
        if cmd == "cancel":
            if self.pending is None:
                return ["nothing to cancel."]
            self.pending = None
            return ["cancelled."]
        if cmd == "vision":
            store.update_vision(rest)
            return ["vision updated."]
        if cmd == "onboard":
            vision, _, goal = rest.partition("|")
            store.complete_onboarding(vision.strip(), goal.strip())
            return [f"onboarding complete: {len(store.state.goals)} goal(s)."]
        if cmd == "goal":
            return self._goal(rest)
        if cmd == "tactic":
            return self._tactic(rest)
        if cmd == "open":
            goal_id, week_token, _ = _split(rest, 2)
            week = _parse_week_token(week_token)
            if not goal_id or week is None:
                return ["usage: open <goal> <week>"]
            opened = store.toggle_week_accordion(goal_id, week)
            return [f"week {week} {'opened' if opened else 'closed'}."]
        if cmd == "due":
            return self._due(rest)
        if cmd in {"lag", "lead"}:
            store.update_metric(cmd, rest.strip())
            return [f"week {store.state.current_week} {cmd}: {rest.strip()}"]
        if cmd == "phase":
            wanted = rest.strip().lower()
            matches = [phase for phase in EMOTIONAL_PHASES if phase.lower().startswith(wanted)] if wanted else []
            if len(matches) != 1:
                return [f"phase must be one of: {', '.join(EMOTIONAL_PHASES)}"]
            store.set_emotional_phase(matches[0])
            return [f"phase set: {matches[0]}"]
        if cmd == "health":
            return self._health(rest)
        if cmd == "block":
            day_token, hour_token, _ = _split(rest, 2)
            day = _parse_day_token(day_token)
            if day is None or not hour_token.isdecimal():
                return ["usage: block <day> <hour>"]
            tag = store.toggle_time_block((day, int(hour_token)))
            return [f"slot -> {tag}; strategic hours: {store.strategic_hours()}"]
        if cmd in {"complete", "complete-week"}:
            action = store.complete_week()
            if action is None:
                return ["sprint complete; no week left to archive."]
            return self._park(action)
        if cmd == "export":
            path = store.export_data(store_exports_dir(store))
            return [f"exported: {path}"]
        if cmd == "reset":
            return self._park(store.reset_data())
        return [f"unknown command: {cmd} (try `help`)"]

    def _park(self, action: PendingAction) -> list[str]:
        self.pending = action
        hint = "type the text, or `cancel`" if action.needs_input else f"`confirm` to {action.confirm_label.lower()}, `cancel` to keep"
        return [action.title, action.message, hint]

    def _confirm(self, value: str | bool) -> list[str]:
        action = self.pending
        if action is None:
            return ["nothing to confirm."]
        if action.needs_input and (not isinstance(value, str) or not value.strip()):
            return ["a value is required; type it or `cancel`."]
        self.pending = None
        result = self.store.commit(action, value)
        if action.kind == "remove_goal":
            return ["goal removed." if result else "goal already gone."]
        if action.kind == "add_tactic":
            return [f"added {len(result)} tactic(s)."] if result else ["goal already gone."]
        if action.kind == "complete_week":
            if result is None:
                return ["week already archived."]
            return [f"week {result.week} archived at {result.score}%. Now: {week_label(self.store.state)}"]
        return ["all data deleted." if result else "reset failed; data kept."]

    def _goal(self, rest: str) -> list[str]:
        action, tail = _split(rest, 1)
        if action == "add":
            goal = self.store.add_goal()
            if tail.strip():
                self.store.update_goal_title(goal.id, tail.strip())
            return [f"goal added: {goal.id}"]
        if action == "rename":
            goal_id, text = _split(tail, 1)
            if self.store.update_goal_title(goal_id, text) is None:
                return [f"goal not found: {goal_id}"]
            return ["goal renamed."]
        if action == "rm":
            pending = self.store.remove_goal(tail.strip())
            if pending is None:
                return [f"goal not found: {tail.strip()}"]
            return self._park(pending)
        return ["usage: goal add|rename|rm"]

    def _tactic(self, rest: str) -> list[str]:
        action, tail = _split(rest, 1)
        store = self.store
        if action == "add":
            goal_id, week_token, title = _split(tail, 2)
            recurring = week_token.lower() == "all"
            week = None if recurring else _parse_week_token(week_token)
            if week_token and not recurring and week is None:
                title = f"{week_token} {title}".strip()
            result = store.add_tactic(goal_id, week, recurring, title)
            if isinstance(result, PendingAction):
                return self._park(result)
            if not result:
                return [f"goal not found: {goal_id}"]
            return [f"added {len(result)} tactic(s)."]
        if action in {"toggle", "rm"}:
            goal_id, tactic_id, _ = _split(tail, 2)
            if action == "toggle":
                tactic = store.toggle_tactic(goal_id, tactic_id)
                if tactic is None:
                    return ["tactic not found."]
                return [f"{'done' if tactic.completed else 'open'}: {tactic.title}; WES {store.wes()}%"]
            return ["tactic removed."] if store.remove_tactic(goal_id, tactic_id) else ["tactic not found."]
        if action == "rename":
            goal_id, tactic_id, text = _split(tail, 2)
            if store.update_tactic_title(goal_id, tactic_id, text) is None:
                return ["tactic not found."]
            return ["tactic renamed."]
        if action == "move":
            goal_id, tactic_id, week_token, to_goal, before = _split(tail, 4)
            week = _parse_week_token(week_token)
            tactic = store.find_tactic(goal_id, tactic_id)
            if week is None or tactic is None:
                return ["usage: tactic move <goal> <tactic> <week> [<to-goal>] [<before-tactic>]"]
            source = TacticRef(goal_id=goal_id, week=tactic.resolved_week, tactic_id=tactic_id)
            target = DropTarget(goal_id=to_goal or goal_id, week=week, tactic_id=before.strip() or None)
            if not store.move_tactic(source, target):
                return ["move ignored: target goal not found."]
            return [f"tactic moved to week {week}."]
        return ["usage: tactic add|toggle|rename|rm|move"]

    def _due(self, rest: str) -> list[str]:
        action, tail = _split(rest, 1)
        store = self.store
        if action == "add":
            item = store.add_due_date()
            if tail.strip():
                store.update_due_date(item.id, "title", tail.strip())
            return [f"due date added: {item.id}"]
        if action == "set":
            item_id, field, value = _split(tail, 2)
            if field not in DUE_DATE_FIELDS:
                return [f"field must be one of: {', '.join(DUE_DATE_FIELDS)}"]
            if store.update_due_date(item_id, field, value) is None:
                return [f"due date not found: {item_id}"]
            return ["due date updated."]
        if action == "rm":
            return ["due date removed."] if store.remove_due_date(tail.strip()) else ["due date not found."]
        return ["usage: due add|set|rm"]

    def _health(self, rest: str) -> list[str]:
        action, tail = _split(rest, 1)
        if action == "rm":
            return ["note removed."] if self.store.remove_health_log(tail.strip()) else ["note not found."]
        log = self.store.add_health_log(rest)
        if log is None:
            return ["note is empty."]
        return [f"note added for week {log.week}."]


def store_exports_dir(store: StateStore) -> Path:
    blobs = store.persistence.blobs
    root = getattr(blobs, "root", None)
    if isinstance(root, Path):
        return root.parent / "exports"
    return Path.cwd()


class SprintPulseApp(App[None]):
    CSS = """
    Screen {
        layout: vertical;
    }

    #status-bar {
        height: 1;
        padding: 0 1;
        background: $boost;
        color: $text;
    }

    #main {
        height: 1fr;
    }

    #transcript {
        width: 2fr;
        border: solid $accent;
        padding: 0 1;
    }

    #sidebar {
        width: 1fr;
        border: solid $secondary;
        padding: 0 1;
    }

    .panel {
        height: 1fr;
        border: solid $primary;
        margin: 0 0 1 0;
        padding: 0 1;
    }

    #input-box {
        margin: 0;
        border: solid $border-blurred;
    }

    #input-box:focus {
        border: solid $border;
    }

    Footer {
        dock: none;
    }
    """

    BINDINGS = [
        ("ctrl+c", "request_quit", "Quit"),
        ("f5", "refresh_panels", "Refresh"),
    ]

    def __init__(self, *, workspace: Path | None = None, store: StateStore | None = None) -> None:
        super().__init__()
        self.workspace = workspace
        self.store = store
        self.session: CommandSession | None = CommandSession(store) if store is not None else None
        self.transcript_lines: list[str] = []
        self._unsubscribe = None

    def compose(self) -> ComposeResult:
        yield Static("", id="status-bar")
        with Horizontal(id="main"):
            yield TextArea(
                "",
                id="transcript",
                read_only=True,
                show_cursor=False,
                highlight_cursor_line=False,
                show_line_numbers=False,
            )
            with Vertical(id="sidebar"):
                yield Static("", id="panel-dashboard", classes="panel")
                yield Static("", id="panel-week", classes="panel")
        yield Input(id="input-box", placeholder="Type a command, e.g. `week`, `tactic toggle g1 t1`, `help`.")
        yield Footer()

    def on_mount(self) -> None:
        self.status_bar = self.query_one("#status-bar", Static)
        self.transcript = self.query_one("#transcript", TextArea)
        self.dashboard_panel = self.query_one("#panel-dashboard", Static)
        self.week_panel = self.query_one("#panel-week", Static)
        self.input_box = self.query_one("#input-box", Input)

        if self.store is None:
            from .cli import open_session

            try:
                self.store = open_session(self.workspace).store
            except StoreInitError as exc:
                self._write_system(f"App Error: {exc}")
                self.input_box.disabled = True
                return
            self.session = CommandSession(self.store)
        self._unsubscribe = self.store.events.subscribe(self._on_store_event)
        self._write_system(f"SprintPulse {__version__}. Type `help` for commands.")
        if not self.store.state.onboarding_complete:
            self._write_system("First run: `onboard <vision> | <first goal>` sets you up.")
        self._refresh_panels()
        self.input_box.focus()

    def on_unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
        if self.store is not None:
            self.store.flush()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        text = event.value.strip()
        event.input.value = ""
        if not text or self.session is None:
            return
        cmd, _ = _parse_command(text)
        if cmd in {"quit", "exit", "q"}:
            self.exit()
            return
        self._write_user(text)
        for line in self.session.run(text):
            self._write_system(line)
        self._refresh_panels()

    def action_request_quit(self) -> None:
        self.exit()

    def action_refresh_panels(self) -> None:
        self._refresh_panels()

    def _on_store_event(self, event: dict[str, Any]) -> None:
        if event.get("severity") in {"warning", "error"}:
            self._write_system(f"{event.get('severity')}: {event.get('message')}")

    def _refresh_panels(self) -> None:
        if self.store is None:
            return
        state = self.store.state
        pending = self.session.pending if self.session is not None else None
        status = f"SprintPulse | {week_label(state)} | WES {self.store.wes()}%"
        if pending is not None:
            status += f" | awaiting: {pending.title}"
        self.status_bar.update(status)
        self.dashboard_panel.update(build_dashboard(state))
        self.week_panel.update(build_week_view(state))

    def _write_user(self, text: str) -> None:
        self._append_transcript_line(f"> {text}")

    def _write_system(self, text: str) -> None:
        stamp = datetime.now().strftime("%H:%M")
        self._append_transcript_line(f"{stamp} {text}" if text else "")

    def _append_transcript_line(self, line: str) -> None:
        self.transcript_lines.append(line)
        del self.transcript_lines[:-TRANSCRIPT_MAX_LINES]
        with contextlib.suppress(Exception):
            self.transcript.load_text("\n".join(self.transcript_lines))
            self.transcript.scroll_end(animate=False)


def run_terminal_app(*, workspace: Path | None = None) -> int:
    app = SprintPulseApp(workspace=workspace)
    app.run(mouse=False)
    return 0
