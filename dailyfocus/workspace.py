"""Workspace root, timezone, path helpers for DailyFocus."""

from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from dailyfocus.fileio import read_yaml


def workspace_root() -> Path:
    """Get the workspace root directory (holds settings.yaml and data/)."""
    return Path(
        os.environ.get("DAILYFOCUS_ROOT", str(Path.home() / ".dailyfocus"))
    ).expanduser().resolve()


def get_user_timezone(root: Path | None = None) -> ZoneInfo:
    """Get user's timezone from settings.yaml, defaulting to UTC."""
    if root is None:
        root = workspace_root()
    try:
        settings = read_yaml(settings_path(root))
        if settings and "timezone" in settings:
            return ZoneInfo(str(settings["timezone"]))
    except (OSError, ValueError, yaml.YAMLError, ZoneInfoNotFoundError):
        pass
    return ZoneInfo("UTC")


def day_key(moment: datetime) -> str:
    """Calendar-day key for an instant."""
    return moment.date().isoformat()


# ── Path helpers ──────────────────────────────────────────────

def data_dir(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "data"


def blob_path(key: str, root: Path | None = None) -> Path:
    """File backing a persisted blob key, e.g. ``taskHistory``."""
    return data_dir(root) / f"{key}.json"


def settings_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "settings.yaml"


def hooks_config_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "hooks.yaml"


def log_dir(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "logs"


def export_dir(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "exports"
