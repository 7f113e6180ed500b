from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .config import CONFIG_FILENAME


RUNTIME_DIRNAME = ".sprintpulse"


def find_workspace_root(start: Path | None = None) -> Path:
    """Best-effort workspace root discovery.

    The nearest directory holding `sprintpulse.toml` or a `.sprintpulse/`
    runtime dir wins. If nothing matches, return the start directory so a
    first run creates its state right there.
    """

    probe = (start or Path.cwd()).resolve()
    for candidate in [probe, *probe.parents]:
        if (candidate / CONFIG_FILENAME).exists():
            return candidate
        if (candidate / RUNTIME_DIRNAME).is_dir():
            return candidate
    return probe


@dataclass(frozen=True)
class RuntimePaths:
    workspace: Path
    config_toml: Path
    root: Path
    state_dir: Path
    logs_dir: Path
    exports_dir: Path

    @property
    def events_log(self) -> Path:
        return self.logs_dir / "events.jsonl"


def runtime_paths(workspace: Path | None = None) -> RuntimePaths:
    base = workspace or find_workspace_root()
    root = base / RUNTIME_DIRNAME
    return RuntimePaths(
        workspace=base,
        config_toml=base / CONFIG_FILENAME,
        root=root,
        state_dir=root / "state",
        logs_dir=root / "logs",
        exports_dir=root / "exports",
    )


def ensure_runtime_dirs(paths: RuntimePaths | None = None) -> RuntimePaths:
    paths = paths or runtime_paths()
    paths.root.mkdir(parents=True, exist_ok=True)
    paths.state_dir.mkdir(parents=True, exist_ok=True)
    paths.logs_dir.mkdir(parents=True, exist_ok=True)
    paths.exports_dir.mkdir(parents=True, exist_ok=True)
    return paths
