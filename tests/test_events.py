from __future__ import annotations

import json
from pathlib import Path
from tempfile import TemporaryDirectory
import unittest

from sprintpulse.events import PENDING_EVENTS_MAX, EventBus


def _logged_types(path: Path) -> list[str]:
    return [json.loads(line)["type"] for line in path.read_text(encoding="utf-8").splitlines()]


class TestEventBus(unittest.TestCase):
    def test_events_before_log_path_are_written_once_it_is_set(self) -> None:
        with TemporaryDirectory() as tmp:
            event_log = Path(tmp) / "logs" / "events.jsonl"
            captured: list[dict[str, object]] = []

            bus = EventBus()
            bus.subscribe(lambda event: captured.append(event))
            event = bus.publish_event("store.goal_added", "goal added", metadata={"goal_id": "g7"})

            self.assertEqual(1, len(captured))
            self.assertEqual("store.goal_added", captured[0]["type"])
            self.assertEqual("store", captured[0]["source"])
            self.assertTrue(str(event.get("id", "")).startswith("evt-"))
            self.assertFalse(event_log.exists())

            bus.set_log_path(event_log)
            self.assertEqual(["store.goal_added"], _logged_types(event_log))
            bus.publish_event("store.vision_updated", "vision updated")

            lines = event_log.read_text(encoding="utf-8").splitlines()
            self.assertEqual(["store.goal_added", "store.vision_updated"], _logged_types(event_log))
            self.assertEqual({"goal_id": "g7"}, json.loads(lines[0])["metadata"])

    def test_held_events_are_capped(self) -> None:
        with TemporaryDirectory() as tmp:
            event_log = Path(tmp) / "events.jsonl"
            bus = EventBus()
            for idx in range(PENDING_EVENTS_MAX + 5):
                bus.publish_event(f"store.e{idx}", "x")
            bus.set_log_path(event_log)
            types = _logged_types(event_log)
        self.assertEqual(PENDING_EVENTS_MAX, len(types))
        self.assertEqual("store.e5", types[0])

    def test_severity_is_normalized(self) -> None:
        bus = EventBus()
        self.assertEqual("warning", bus.publish_event("x", "y", severity="WARN")["severity"])
        self.assertEqual("info", bus.publish_event("x", "y", severity="loud")["severity"])

    def test_failing_handler_does_not_reach_publisher(self) -> None:
        bus = EventBus()
        seen: list[str] = []

        def _boom(_event: dict) -> None:
            raise RuntimeError("handler bug")

        bus.subscribe(_boom)
        unsubscribe = bus.subscribe(lambda event: seen.append(event["type"]))
        bus.publish_event("a", "first")
        unsubscribe()
        unsubscribe()
        bus.publish_event("b", "second")
        self.assertEqual(["a"], seen)


if __name__ == "__main__":
    unittest.main()
