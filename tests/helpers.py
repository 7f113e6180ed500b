from __future__ import annotations

from datetime import datetime
from typing import Any

from sprintpulse.events import EventBus
from sprintpulse.model import AppState, Goal, Tactic
from sprintpulse.persistence import MemoryBlobStore, PersistenceAdapter
from sprintpulse.store import StateStore


FIXED_NOW = datetime(2026, 3, 2, 9, 30)


def make_store(
    state: AppState | None = None,
    *,
    max_bytes: int | None = None,
) -> tuple[StateStore, MemoryBlobStore, list[dict[str, Any]]]:
    """StateStore over an in-memory blob store, plus the captured events."""

    blobs = MemoryBlobStore(max_bytes=max_bytes)
    events = EventBus()
    captured: list[dict[str, Any]] = []
    events.subscribe(captured.append)
    persistence = PersistenceAdapter(blobs, events=events)
    store = StateStore(state if state is not None else AppState(), persistence, events=events, clock=lambda: FIXED_NOW)
    return store, blobs, captured


def state_with_tactics(*specs: tuple[str, int | None, bool], goal_id: str = "g1") -> AppState:
    """One goal holding tactics given as (id, week, completed)."""

    tactics = [Tactic(id=tactic_id, title=f"task {tactic_id}", completed=done, week=week) for tactic_id, week, done in specs]
    return AppState(goals=[Goal(id=goal_id, title="Goal", tactics=tactics)])


def event_types(captured: list[dict[str, Any]]) -> list[str]:
    return [str(event.get("type")) for event in captured]
