"""Persistent key/value store for DailyFocus.

Each key is a JSON blob under ``<root>/data/``. Reads degrade to defaults and
writes degrade to a logged failure; nothing here raises to the caller.

The task-state blob and the two history blobs are written independently.
A crash between writes can leave them briefly out of step; the next load
runs the day reconciler, which brings them back in line.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable

import yaml

from dailyfocus.errors import StorageReadError, StorageWriteError
from dailyfocus.fileio import read_json, read_yaml, write_json_atomic, write_yaml_atomic
from dailyfocus.models import ActiveTimer, DailyFocusState, DailyHistory, Settings, Task
from dailyfocus.workspace import blob_path, settings_path, workspace_root

logger = logging.getLogger(__name__)

STATE_KEY = "taskBoardState"
TIMERS_KEY = "activeTimers"
HISTORY_KEY = "taskHistory"
COMPLETED_KEY = "completedTasks"


class Store:
    """JSON blob store rooted at a workspace directory."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = root if root is not None else workspace_root()

    # ── Raw blobs ─────────────────────────────────────────────

    def _read(self, key: str, default: Any, expected: type) -> Any:
        try:
            data = read_json(blob_path(key, self.root), default)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StorageReadError(key, str(e)) from e
        if data is not default and not isinstance(data, expected):
            raise StorageReadError(key, f"expected {expected.__name__}, got {type(data).__name__}")
        return data

    def read(self, key: str, default: Any = None, expected: type = object) -> Any:
        """Read a blob, falling back to *default* when it is absent or corrupt."""
        try:
            return self._read(key, default, expected)
        except StorageReadError as e:
            logger.warning("%s; using default", e)
            return default

    def _build(self, key: str, build: Callable[[], Any], default: Any) -> Any:
        """Turn a blob into models, falling back to *default* if its contents are malformed."""
        try:
            return build()
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning("%s; using default", StorageReadError(key, f"malformed contents: {e}"))
            return default

    def write(self, key: str, data: Any) -> bool:
        """Write a blob. Returns False (and logs) on failure."""
        try:
            write_json_atomic(blob_path(key, self.root), data)
        except (OSError, TypeError, ValueError) as e:
            logger.error("%s; in-memory state kept", StorageWriteError(key, str(e)))
            return False
        logger.debug("wrote %s", key)
        return True

    # ── Typed accessors ───────────────────────────────────────

    def load_state(self) -> DailyFocusState | None:
        data = self.read(STATE_KEY, None, dict)
        if data is None:
            return None
        return self._build(STATE_KEY, lambda: DailyFocusState.from_dict(data), None)

    def save_state(self, state: DailyFocusState) -> bool:
        return self.write(STATE_KEY, state.to_dict())

    def load_timers(self) -> list[ActiveTimer]:
        data = self.read(TIMERS_KEY, [], list)
        timers = self._build(TIMERS_KEY, lambda: [ActiveTimer.from_dict(t) for t in data if isinstance(t, dict)], [])
        return [t for t in timers if t.task_id and t.start_time is not None]

    def save_timers(self, timers: list[ActiveTimer]) -> bool:
        return self.write(TIMERS_KEY, [t.to_dict() for t in timers])

    def load_history(self) -> list[DailyHistory]:
        data = self.read(HISTORY_KEY, [], list)
        return self._build(
            HISTORY_KEY,
            lambda: [DailyHistory.from_dict(d) for d in data if isinstance(d, dict) and d.get("date")],
            [],
        )

    def save_history(self, history: list[DailyHistory]) -> bool:
        return self.write(HISTORY_KEY, [h.to_dict() for h in history])

    def load_completed(self) -> list[Task]:
        data = self.read(COMPLETED_KEY, [], list)
        return self._build(COMPLETED_KEY, lambda: [Task.from_dict(t) for t in data if isinstance(t, dict)], [])

    def save_completed(self, tasks: list[Task]) -> bool:
        return self.write(COMPLETED_KEY, [t.to_dict() for t in tasks])

    # ── Settings (YAML, read-only to the core) ────────────────

    def load_settings(self) -> Settings:
        try:
            data = read_yaml(settings_path(self.root))
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
            logger.warning("%s; using default settings", StorageReadError("settings", str(e)))
            return Settings()
        return Settings.from_dict(data)

    def save_settings(self, settings: Settings) -> bool:
        try:
            write_yaml_atomic(settings_path(self.root), settings.to_dict())
        except OSError as e:
            logger.error("%s", StorageWriteError("settings", str(e)))
            return False
        return True
