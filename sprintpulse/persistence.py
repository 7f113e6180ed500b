from __future__ import annotations

import json
import os
from pathlib import Path
import re
from typing import Any, Protocol

from .events import EventBus
from .model import AppState, default_state


DEFAULT_STORAGE_KEY = "sprintpulse_data"
DEFAULT_MAX_BYTES = 5_000_000
EXPORT_FILENAME_TEMPLATE = "sprintpulse_week{week}.json"
SAVE_FAILED_NOTICE = "Could not save data. Storage might be full or unavailable."

_KEY_SAFE = re.compile(r"^[A-Za-z0-9_.-]+$")


class StorageError(Exception):
    pass


class StorageQuotaError(StorageError):
    pass


class BlobStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


def _check_key(key: str) -> str:
    if not _KEY_SAFE.match(key or ""):
        raise StorageError(f"invalid storage key: {key!r}")
    return key


def _check_quota(key: str, value: str, max_bytes: int | None) -> None:
    if max_bytes is None:
        return
    size = len(value.encode("utf-8"))
    if size > max_bytes:
        raise StorageQuotaError(f"blob {key!r} is {size} bytes; quota is {max_bytes}")


class MemoryBlobStore:
    def __init__(self, *, max_bytes: int | None = None) -> None:
        self.max_bytes = max_bytes
        self.blobs: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self.blobs.get(_check_key(key))

    def set(self, key: str, value: str) -> None:
        _check_key(key)
        _check_quota(key, value, self.max_bytes)
        self.blobs[key] = value

    def delete(self, key: str) -> None:
        self.blobs.pop(_check_key(key), None)


class FileBlobStore:
    """One `<key>.json` file per blob under `root`, replaced atomically."""

    def __init__(self, root: Path, *, max_bytes: int | None = DEFAULT_MAX_BYTES) -> None:
        self.root = root
        self.max_bytes = max_bytes

    def path_for(self, key: str) -> Path:
        return self.root / f"{_check_key(key)}.json"

    def get(self, key: str) -> str | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        path = self.path_for(key)
        _check_quota(key, value, self.max_bytes)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(path.name + ".tmp")
        tmp_path.write_text(value, encoding="utf-8")
        os.replace(tmp_path, path)

    def delete(self, key: str) -> None:
        path = self.path_for(key)
        if path.exists():
            path.unlink()


def serialize_state(state: AppState) -> str:
    return json.dumps(state.to_dict(), sort_keys=True, ensure_ascii=True)


def merge_onto_defaults(parsed: dict[str, Any]) -> AppState:
    """Shallow merge: saved top-level keys win, missing keys keep defaults."""

    merged = default_state().to_dict()
    merged.update(parsed)
    return AppState.from_mapping(merged)


class PersistenceAdapter:
    def __init__(self, blobs: BlobStore, *, key: str = DEFAULT_STORAGE_KEY, events: EventBus | None = None) -> None:
        self.blobs = blobs
        self.key = key
        self.events = events or EventBus()
        self.last_error = ""

    def save(self, state: AppState) -> bool:
        try:
            self.blobs.set(self.key, serialize_state(state))
        except (StorageError, OSError, TypeError, ValueError) as exc:
            self.last_error = str(exc) or exc.__class__.__name__
            self.events.publish_event(
                "storage.save_failed",
                SAVE_FAILED_NOTICE,
                severity="error",
                source="persistence",
                metadata={"key": self.key, "error": self.last_error},
            )
            return False
        self.last_error = ""
        return True

    def load(self) -> AppState:
        try:
            raw = self.blobs.get(self.key)
        except UnicodeDecodeError as exc:
            self._report_load_failure(f"saved data is not valid UTF-8: {exc}")
            return default_state()
        if raw is None:
            return default_state()
        try:
            parsed = json.loads(raw)
        except (json.JSONDecodeError, RecursionError) as exc:
            self._report_load_failure(f"saved data is not valid JSON: {exc}")
            return default_state()
        if not isinstance(parsed, dict):
            self._report_load_failure("saved data is not a JSON object")
            return default_state()
        return merge_onto_defaults(parsed)

    def clear(self) -> bool:
        try:
            self.blobs.delete(self.key)
        except (StorageError, OSError) as exc:
            self.last_error = str(exc) or exc.__class__.__name__
            self.events.publish_event(
                "storage.clear_failed",
                "Could not delete saved data.",
                severity="error",
                source="persistence",
                metadata={"key": self.key, "error": self.last_error},
            )
            return False
        return True

    def _report_load_failure(self, detail: str) -> None:
        self.events.publish_event(
            "storage.load_failed",
            f"Load failed, starting from defaults ({detail}).",
            severity="warning",
            source="persistence",
            metadata={"key": self.key},
        )


def export_filename(state: AppState) -> str:
    return EXPORT_FILENAME_TEMPLATE.format(week=state.current_week)


def export_data(state: AppState, directory: Path) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / export_filename(state)
    path.write_text(json.dumps(state.to_dict(), indent=2, sort_keys=True, ensure_ascii=True) + "\n", encoding="utf-8")
    return path
