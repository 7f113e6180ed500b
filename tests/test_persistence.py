from __future__ import annotations

import json
from pathlib import Path
from tempfile import TemporaryDirectory
import unittest

from sprintpulse.events import EventBus
from sprintpulse.model import AppState, default_state
from sprintpulse.persistence import (
    FileBlobStore,
    MemoryBlobStore,
    PersistenceAdapter,
    StorageError,
    StorageQuotaError,
    export_data,
    export_filename,
)
from sprintpulse.store import StateStore


def _adapter(blobs=None) -> tuple[PersistenceAdapter, list[dict]]:
    events = EventBus()
    captured: list[dict] = []
    events.subscribe(captured.append)
    return PersistenceAdapter(blobs or MemoryBlobStore(), events=events), captured


class TestPersistence(unittest.TestCase):
    def test_load_without_saved_data_returns_defaults(self) -> None:
        adapter, captured = _adapter()
        state = adapter.load()
        self.assertEqual(default_state(), state)
        self.assertEqual([], captured)

    def test_corrupt_blob_falls_back_to_defaults_with_warning(self) -> None:
        blobs = MemoryBlobStore()
        blobs.set("sprintpulse_data", "{not json")
        adapter, captured = _adapter(blobs)
        self.assertEqual(default_state(), adapter.load())
        self.assertEqual(["storage.load_failed"], [event["type"] for event in captured])
        self.assertEqual("warning", captured[0]["severity"])

    def test_non_object_blob_falls_back_to_defaults(self) -> None:
        blobs = MemoryBlobStore()
        blobs.set("sprintpulse_data", "[1, 2, 3]")
        adapter, captured = _adapter(blobs)
        self.assertEqual(default_state(), adapter.load())
        self.assertEqual(1, len(captured))

    def test_undecodable_state_file_boots_from_defaults(self) -> None:
        with TemporaryDirectory() as tmp:
            root = Path(tmp)
            (root / "sprintpulse_data.json").write_bytes(b'{"vision": "\xff\xfe"}')
            adapter, captured = _adapter(FileBlobStore(root))
            store = StateStore.open(adapter, events=adapter.events)
        self.assertEqual(default_state(), store.state)
        self.assertIn("storage.load_failed", [event["type"] for event in captured])

    def test_deeply_nested_blob_boots_from_defaults(self) -> None:
        blobs = MemoryBlobStore()
        blobs.set("sprintpulse_data", "[" * 100_000 + "]" * 100_000)
        adapter, captured = _adapter(blobs)
        self.assertEqual(default_state(), adapter.load())
        self.assertEqual("warning", captured[0]["severity"])

    def test_odd_numeric_strings_do_not_block_loading(self) -> None:
        blobs = MemoryBlobStore()
        blobs.set("sprintpulse_data", json.dumps({"currentWeek": "--3", "emotionalHistory": {"²": "Peaceful", "2": "Amazed"}}))
        adapter, _ = _adapter(blobs)
        state = adapter.load()
        self.assertEqual(1, state.current_week)
        self.assertEqual({2: "Amazed"}, state.emotional_history)

    def test_partial_blob_is_merged_onto_defaults(self) -> None:
        blobs = MemoryBlobStore()
        blobs.set("sprintpulse_data", json.dumps({"vision": "Mine", "currentWeek": 3}))
        adapter, _ = _adapter(blobs)
        state = adapter.load()
        self.assertEqual("Mine", state.vision)
        self.assertEqual(3, state.current_week)
        self.assertEqual(["g1"], [goal.id for goal in state.goals])
        self.assertEqual({}, state.model_week)

    def test_saved_empty_goals_are_not_replaced_by_example(self) -> None:
        blobs = MemoryBlobStore()
        blobs.set("sprintpulse_data", json.dumps({"goals": []}))
        adapter, _ = _adapter(blobs)
        self.assertEqual([], adapter.load().goals)

    def test_save_then_load_keeps_unknown_keys(self) -> None:
        blobs = MemoryBlobStore()
        blobs.set("sprintpulse_data", json.dumps({"futureFlag": {"x": 1}, "vision": "v"}))
        adapter, _ = _adapter(blobs)
        state = adapter.load()
        state.vision = "v2"
        self.assertTrue(adapter.save(state))
        saved = json.loads(blobs.blobs["sprintpulse_data"])
        self.assertEqual({"x": 1}, saved["futureFlag"])
        self.assertEqual("v2", saved["vision"])

    def test_quota_failure_returns_false_and_publishes_error(self) -> None:
        adapter, captured = _adapter(MemoryBlobStore(max_bytes=20))
        self.assertFalse(adapter.save(AppState()))
        self.assertEqual("storage.save_failed", captured[0]["type"])
        self.assertEqual("error", captured[0]["severity"])
        self.assertTrue(adapter.last_error)

    def test_clear_removes_blob(self) -> None:
        blobs = MemoryBlobStore()
        adapter, _ = _adapter(blobs)
        adapter.save(AppState())
        self.assertTrue(adapter.clear())
        self.assertEqual({}, blobs.blobs)
        self.assertTrue(adapter.clear())


class TestFileBlobStore(unittest.TestCase):
    def test_set_replaces_file_without_leftovers(self) -> None:
        with TemporaryDirectory() as tmp:
            root = Path(tmp) / "state"
            blobs = FileBlobStore(root)
            blobs.set("sprintpulse_data", "{}")
            blobs.set("sprintpulse_data", '{"a": 1}')
            self.assertEqual('{"a": 1}', blobs.get("sprintpulse_data"))
            self.assertEqual(["sprintpulse_data.json"], sorted(path.name for path in root.iterdir()))
            blobs.delete("sprintpulse_data")
            self.assertIsNone(blobs.get("sprintpulse_data"))

    def test_quota_and_key_checks(self) -> None:
        with TemporaryDirectory() as tmp:
            blobs = FileBlobStore(Path(tmp), max_bytes=4)
            with self.assertRaises(StorageQuotaError):
                blobs.set("k", "too long")
            with self.assertRaises(StorageError):
                blobs.set("../escape", "{}")
            self.assertFalse((Path(tmp) / "k.json").exists())


class TestExport(unittest.TestCase):
    def test_export_writes_pretty_json_named_by_week(self) -> None:
        state = default_state()
        state.current_week = 4
        self.assertEqual("sprintpulse_week4.json", export_filename(state))
        with TemporaryDirectory() as tmp:
            path = export_data(state, Path(tmp) / "exports")
            self.assertEqual("sprintpulse_week4.json", path.name)
            text = path.read_text(encoding="utf-8")
            self.assertIn("\n  ", text)
            self.assertEqual(4, json.loads(text)["currentWeek"])


if __name__ == "__main__":
    unittest.main()
