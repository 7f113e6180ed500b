from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import re
import tomllib

from .persistence import DEFAULT_MAX_BYTES, DEFAULT_STORAGE_KEY


CONFIG_FILENAME = "sprintpulse.toml"
MIN_MAX_BYTES = 1_000
_STORAGE_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


def _as_int(value, *, default: int) -> int:
    try:
        return int(value)
    except Exception:  # noqa: BLE001
        return int(default)


def _as_bool(value, *, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "y", "on"}:
            return True
        if lowered in {"0", "false", "no", "n", "off"}:
            return False
    return bool(default)


def _in_range(value: int, low: int, high: int, *, default: int) -> int:
    if value < low or value > high:
        return default
    return value


@dataclass(frozen=True)
class WorkspaceConfig:
    name: str = "SprintPulse"


@dataclass(frozen=True)
class StorageConfig:
    key: str = DEFAULT_STORAGE_KEY
    max_bytes: int = DEFAULT_MAX_BYTES


@dataclass(frozen=True)
class PlannerConfig:
    days: int = 7
    hours: int = 16
    start_hour: int = 8

    def contains(self, day: int, hour: int) -> bool:
        return 0 <= day < self.days and 0 <= hour < self.hours


@dataclass(frozen=True)
class LoggingConfig:
    events: bool = True


@dataclass(frozen=True)
class SprintConfig:
    workspace: WorkspaceConfig = field(default_factory=WorkspaceConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    planner: PlannerConfig = field(default_factory=PlannerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: Path) -> tuple[SprintConfig, str]:
    """Load workspace config from sprintpulse.toml.

    Returns (config, warning). Warning is empty on success.
    """

    if not path.exists():
        return SprintConfig(), ""

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except Exception as exc:  # noqa: BLE001
        return SprintConfig(), f"{CONFIG_FILENAME} parse failed: {exc}"

    if not isinstance(data, dict):
        return SprintConfig(), f"{CONFIG_FILENAME} parse failed: top-level is not a table"

    workspace = data.get("workspace") if isinstance(data.get("workspace"), dict) else {}
    storage = data.get("storage") if isinstance(data.get("storage"), dict) else {}
    planner = data.get("planner") if isinstance(data.get("planner"), dict) else {}
    logging = data.get("logging") if isinstance(data.get("logging"), dict) else {}

    key = " ".join(str(storage.get("key") or "").split()).strip() or StorageConfig.key
    if not _STORAGE_KEY_RE.match(key):
        key = StorageConfig.key

    cfg = SprintConfig(
        workspace=WorkspaceConfig(
            name=str(workspace.get("name") or WorkspaceConfig.name),
        ),
        storage=StorageConfig(
            key=key,
            max_bytes=max(MIN_MAX_BYTES, _as_int(storage.get("max_bytes"), default=StorageConfig.max_bytes)),
        ),
        planner=PlannerConfig(
            days=_in_range(_as_int(planner.get("days"), default=PlannerConfig.days), 1, 7, default=PlannerConfig.days),
            hours=_in_range(_as_int(planner.get("hours"), default=PlannerConfig.hours), 1, 24, default=PlannerConfig.hours),
            start_hour=_in_range(
                _as_int(planner.get("start_hour"), default=PlannerConfig.start_hour),
                0,
                23,
                default=PlannerConfig.start_hour,
            ),
        ),
        logging=LoggingConfig(
            events=_as_bool(logging.get("events"), default=LoggingConfig.events),
        ),
    )
    return cfg, ""


def render_default_config(name: str = WorkspaceConfig.name) -> str:
    escaped = name.replace('"', '\\"')
    lines = [
        "[workspace]",
        f'name = "{escaped}"',
        "",
        "[storage]",
        f'key = "{StorageConfig.key}"',
        f"max_bytes = {StorageConfig.max_bytes}",
        "",
        "[planner]",
        f"days = {PlannerConfig.days}",
        f"hours = {PlannerConfig.hours}",
        f"start_hour = {PlannerConfig.start_hour}",
        "",
        "[logging]",
        "events = true",
    ]
    return "\n".join(lines) + "\n"


def write_default_config(path: Path, *, name: str = WorkspaceConfig.name) -> tuple[bool, str]:
    if path.exists():
        return False, f"{path} already exists"
    try:
        path.write_text(render_default_config(name), encoding="utf-8")
    except Exception as exc:  # noqa: BLE001
        return False, f"failed writing {CONFIG_FILENAME}: {exc}"
    return True, f"wrote {path}"


def explain_config(config: SprintConfig, *, path: Path | None = None) -> str:
    location = str(path) if path is not None else CONFIG_FILENAME
    planner = config.planner
    lines = [
        f"{CONFIG_FILENAME} guide ({location})",
        "",
        "[workspace]",
        f"- name: display name (current: {config.workspace.name})",
        "",
        "[storage]",
        f"- key: blob key the state is saved under (current: {config.storage.key})",
        f"- max_bytes: storage quota; larger saves fail with a notice (current: {config.storage.max_bytes})",
        "",
        "[planner]",
        f"- days: model-week columns, 1-7 (current: {planner.days})",
        f"- hours: model-week rows, 1-24 (current: {planner.hours})",
        f"- start_hour: clock label of the first row, 0-23 (current: {planner.start_hour})",
        "",
        "[logging]",
        f"- events: append store events to events.jsonl (current: {'true' if config.logging.events else 'false'})",
    ]
    return "\n".join(lines)
