"""Shared test fixtures for DailyFocus tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import yaml

from dailyfocus.board import TaskBoard
from dailyfocus.models import DailyHistory
from dailyfocus.storage import Store
from dailyfocus.ticker import ManualTicker

START = datetime(2026, 2, 11, 9, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = START) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **delta: float) -> datetime:
        self.current += timedelta(**delta)
        return self.current


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Create a temporary workspace with a settings file."""
    root = tmp_path / "workspace"
    (root / "data").mkdir(parents=True)
    settings = {
        "timezone": "UTC",
        "timer": {"default_duration": 25, "sound": "bell"},
        "task": {"max_tasks": 5, "auto_move_unfinished": True},
        "notifications": {"timer_complete": True},
    }
    (root / "settings.yaml").write_text(yaml.dump(settings, default_flow_style=False), encoding="utf-8")
    monkeypatch.setenv("DAILYFOCUS_ROOT", str(root))
    return root


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ticker() -> ManualTicker:
    return ManualTicker()


@pytest.fixture
def store(workspace: Path) -> Store:
    return Store(workspace)


@pytest.fixture
def board(workspace: Path, ticker: ManualTicker, clock: FakeClock) -> TaskBoard:
    b = TaskBoard(root=workspace, ticker=ticker, clock=clock, hooks=False)
    b.initialize()
    yield b
    b.shutdown()


def _make_day(day: str, completed: int, total: int | None = None, time_spent: int = 0) -> DailyHistory:
    """History entry helper: *completed* of *total* tasks done on *day*."""
    total = completed if total is None else total
    rate = (200 * completed + total) // (2 * total) if total else 0
    return DailyHistory(
        date=day,
        tasks_completed=completed,
        total_tasks=total,
        total_time_spent=time_spent,
        completion_rate=rate,
    )


@pytest.fixture
def make_day():
    return _make_day
