from __future__ import annotations

from collections.abc import Callable
import contextlib
from datetime import datetime, timezone
import json
import secrets
import time
from pathlib import Path
from typing import Any

EventHandler = Callable[[dict[str, Any]], Any]

SEVERITIES = ("debug", "info", "warning", "error")
PENDING_EVENTS_MAX = 512


def _event_id() -> str:
    return f"evt-{int(time.time() * 1000)}-{secrets.token_hex(4)}"


def _severity(value: str) -> str:
    lowered = (value or "info").lower()
    if lowered == "warn":
        return "warning"
    return lowered if lowered in SEVERITIES else "info"


class EventBus:
    """Store and persistence notices, fanned out to subscribers and appended to a JSONL log.

    Events published before `set_log_path` are held (newest PENDING_EVENTS_MAX)
    and written once the path is known.
    """

    def __init__(self) -> None:
        self._log_path: Path | None = None
        self._held: list[dict[str, Any]] = []
        self._handlers: list[EventHandler] = []

    def set_log_path(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.touch(exist_ok=True)
        self._log_path = path
        held, self._held = self._held, []
        for event in held:
            self._write(event)

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        self._handlers.append(handler)

        def _unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._handlers.remove(handler)

        return _unsubscribe

    def publish_event(
        self,
        event_type: str,
        message: str,
        *,
        severity: str = "info",
        source: str = "store",
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        event = {
            "id": _event_id(),
            "ts": datetime.now(tz=timezone.utc).replace(microsecond=0).isoformat(),
            "type": event_type or "system.event",
            "severity": _severity(severity),
            "source": source or "store",
            "message": message or "",
            "metadata": dict(metadata or {}),
        }
        if self._log_path is None:
            self._held.append(event)
            del self._held[:-PENDING_EVENTS_MAX]
        else:
            self._write(event)
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception:  # noqa: BLE001
                continue
        return event

    def _write(self, event: dict[str, Any]) -> None:
        if self._log_path is None:
            return
        try:
            with self._log_path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(event, sort_keys=True, ensure_ascii=True) + "\n")
        except OSError:
            # audit log writes never block a mutation
            return
