"""Typed dataclasses for the DailyFocus data model.

All persisted models use from_dict/to_dict for JSON serialization.
camelCase in JSON is mapped to snake_case in Python.
Unknown keys are ignored; missing keys use defaults.
Settings come from YAML and keep snake_case keys.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any


PRIORITIES = ("low", "medium", "high")
PRIORITY_RANK = {"low": 1, "medium": 2, "high": 3}

DEFAULT_ESTIMATED_TIME = 1500  # seconds


# ── Helpers ───────────────────────────────────────────────────


def completion_rate(tasks_completed: int, total_tasks: int) -> int:
    """Percentage of completed tasks, rounded half-up; 0 when there are no tasks."""
    if total_tasks <= 0:
        return 0
    return (200 * tasks_completed + total_tasks) // (2 * total_tasks)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO 8601 string (or pass a datetime through). Bad input gives None."""
    if isinstance(value, datetime):
        return value
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat(timespec="seconds")


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return default


def _dicts(value: Any) -> list[dict[str, Any]]:
    """The dict items of a JSON array; anything that is not a list gives none."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


# ── Tasks ─────────────────────────────────────────────────────


@dataclass
class Task:
    id: str = ""
    title: str = ""
    description: str = ""
    completed: bool = False
    priority: str = "medium"  # low, medium, high
    time_spent: int = 0  # seconds
    estimated_time: int = DEFAULT_ESTIMATED_TIME  # seconds
    created_at: datetime | None = None
    completed_at: datetime | None = None

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Task:
        priority = str(d.get("priority", "medium"))
        if priority not in PRIORITY_RANK:
            priority = "medium"
        # Only a real boolean counts; a completed record needs a completion time.
        completed = d.get("completed") is True
        created_at = parse_timestamp(d.get("createdAt"))
        completed_at = None
        if completed:
            completed_at = parse_timestamp(d.get("completedAt")) or created_at
            completed = completed_at is not None
        return cls(
            id=str(d.get("id", "")),
            title=str(d.get("title", "")),
            description=str(d.get("description", "") or ""),
            completed=completed,
            priority=priority,
            time_spent=max(0, _int(d.get("timeSpent", 0))),
            estimated_time=max(1, _int(d.get("estimatedTime", DEFAULT_ESTIMATED_TIME), DEFAULT_ESTIMATED_TIME)),
            created_at=created_at,
            completed_at=completed_at,
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "completed": self.completed,
            "priority": self.priority,
            "timeSpent": self.time_spent,
            "estimatedTime": self.estimated_time,
            "createdAt": format_timestamp(self.created_at),
        }
        if self.completed_at is not None:
            d["completedAt"] = format_timestamp(self.completed_at)
        return d

    def snapshot(self) -> Task:
        """Detached copy, safe to hand to listeners and the history ledger."""
        return replace(self)

    def created_sort_key(self) -> float:
        return self.created_at.timestamp() if self.created_at else 0.0


# ── Daily statistics ──────────────────────────────────────────


@dataclass
class DailyStats:
    date: str = ""
    tasks_completed: int = 0
    total_tasks: int = 0
    total_time_spent: int = 0
    completion_rate: int = 0

    @classmethod
    def for_tasks(cls, day: str, tasks: list[Task]) -> DailyStats:
        """Aggregate stats over a full task set."""
        done = sum(1 for t in tasks if t.completed)
        return cls(
            date=day,
            tasks_completed=done,
            total_tasks=len(tasks),
            total_time_spent=sum(t.time_spent for t in tasks),
            completion_rate=completion_rate(done, len(tasks)),
        )

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> DailyStats:
        if not d or not isinstance(d, dict):
            return cls()
        done = max(0, _int(d.get("tasksCompleted", 0)))
        total = max(done, _int(d.get("totalTasks", 0)))
        # The stored rate is ignored; older files carry unrounded floats.
        return cls(
            date=str(d.get("date", "")),
            tasks_completed=done,
            total_tasks=total,
            total_time_spent=max(0, _int(d.get("totalTimeSpent", 0))),
            completion_rate=completion_rate(done, total),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "tasksCompleted": self.tasks_completed,
            "totalTasks": self.total_tasks,
            "totalTimeSpent": self.total_time_spent,
            "completionRate": self.completion_rate,
        }

    def recompute_rate(self) -> None:
        self.completion_rate = completion_rate(self.tasks_completed, self.total_tasks)


@dataclass
class DailyHistory(DailyStats):
    """One day of history: the day's stats plus the tasks completed on it."""

    tasks: list[Task] = field(default_factory=list)

    @classmethod
    def from_stats(cls, stats: DailyStats, tasks: list[Task]) -> DailyHistory:
        return cls(
            date=stats.date,
            tasks_completed=stats.tasks_completed,
            total_tasks=stats.total_tasks,
            total_time_spent=stats.total_time_spent,
            completion_rate=stats.completion_rate,
            tasks=[t.snapshot() for t in tasks if t.completed],
        )

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> DailyHistory:
        if not d or not isinstance(d, dict):
            return cls()
        stats = DailyStats.from_dict(d)
        tasks = [Task.from_dict(t) for t in _dicts(d.get("tasks"))]
        entry = cls.from_stats(stats, [])
        entry.tasks = tasks
        return entry

    def to_dict(self) -> dict[str, Any]:
        d = super().to_dict()
        d["tasks"] = [t.to_dict() for t in self.tasks]
        return d


@dataclass
class PeriodStats:
    """Aggregate over the last N history entries."""

    total_tasks: int = 0
    completed_tasks: int = 0
    total_time: int = 0
    average_completion_rate: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalTasks": self.total_tasks,
            "completedTasks": self.completed_tasks,
            "totalTime": self.total_time,
            "averageCompletionRate": self.average_completion_rate,
        }


# ── Timer ─────────────────────────────────────────────────────


@dataclass
class TimerState:
    active_task_id: str | None = None
    time_remaining: int = 0
    is_running: bool = False

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> TimerState:
        if not d or not isinstance(d, dict):
            return cls()
        active = d.get("activeTaskId")
        return cls(
            active_task_id=str(active) if active else None,
            time_remaining=max(0, _int(d.get("timeRemaining", 0))),
            is_running=bool(d.get("isRunning", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "activeTaskId": self.active_task_id,
            "timeRemaining": self.time_remaining,
            "isRunning": self.is_running,
        }


@dataclass
class ActiveTimer:
    task_id: str = ""
    start_time: datetime | None = None

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> ActiveTimer:
        if not d or not isinstance(d, dict):
            return cls()
        return cls(
            task_id=str(d.get("taskId", "")),
            start_time=parse_timestamp(d.get("startTime")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"taskId": self.task_id, "startTime": format_timestamp(self.start_time)}


# ── Board state ───────────────────────────────────────────────


@dataclass
class DailyFocusState:
    tasks: list[Task] = field(default_factory=list)
    daily_stats: DailyStats = field(default_factory=DailyStats)
    today: str = ""
    timer: TimerState = field(default_factory=TimerState)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> DailyFocusState:
        if not d or not isinstance(d, dict):
            return cls()
        return cls(
            tasks=[Task.from_dict(t) for t in _dicts(d.get("tasks"))],
            daily_stats=DailyStats.from_dict(d.get("dailyStats") or {}),
            today=str(d.get("today", "")),
            timer=TimerState.from_dict(d.get("timer") or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "tasks": [t.to_dict() for t in self.tasks],
            "dailyStats": self.daily_stats.to_dict(),
            "today": self.today,
            "timer": self.timer.to_dict(),
        }


# ── Settings ──────────────────────────────────────────────────


SOUNDS = {"bell", "chime", "beep", "none"}


@dataclass
class TimerSettings:
    default_duration: int = 25  # minutes
    auto_start_next: bool = True
    sound: str = "bell"

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> TimerSettings:
        sound = str(d.get("sound", "bell"))
        return cls(
            default_duration=max(1, _int(d.get("default_duration", 25), 25)),
            auto_start_next=bool(d.get("auto_start_next", True)),
            sound=sound if sound in SOUNDS else "bell",
        )


@dataclass
class TaskSettings:
    max_tasks: int = 5
    auto_move_unfinished: bool = True
    reset_time: str = "00:00"

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> TaskSettings:
        return cls(
            max_tasks=max(1, _int(d.get("max_tasks", 5), 5)),
            auto_move_unfinished=bool(d.get("auto_move_unfinished", True)),
            reset_time=str(d.get("reset_time", "00:00")),
        )


@dataclass
class NotificationSettings:
    task_reminders: bool = True
    daily_summary: bool = True
    streak_alerts: bool = True
    timer_complete: bool = True

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> NotificationSettings:
        return cls(
            task_reminders=bool(d.get("task_reminders", True)),
            daily_summary=bool(d.get("daily_summary", True)),
            streak_alerts=bool(d.get("streak_alerts", True)),
            timer_complete=bool(d.get("timer_complete", True)),
        )


@dataclass
class AppearanceSettings:
    theme: str = "light"
    animations: bool = True

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> AppearanceSettings:
        return cls(
            theme=str(d.get("theme", "light")),
            animations=bool(d.get("animations", True)),
        )


@dataclass
class Settings:
    timezone: str = "UTC"
    timer: TimerSettings = field(default_factory=TimerSettings)
    task: TaskSettings = field(default_factory=TaskSettings)
    notifications: NotificationSettings = field(default_factory=NotificationSettings)
    appearance: AppearanceSettings = field(default_factory=AppearanceSettings)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Settings:
        if not d or not isinstance(d, dict):
            return cls()

        def section(name: str) -> dict[str, Any]:
            value = d.get(name)
            return value if isinstance(value, dict) else {}

        return cls(
            timezone=str(d.get("timezone", "UTC")),
            timer=TimerSettings.from_dict(section("timer")),
            task=TaskSettings.from_dict(section("task")),
            notifications=NotificationSettings.from_dict(section("notifications")),
            appearance=AppearanceSettings.from_dict(section("appearance")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "timezone": self.timezone,
            "timer": {
                "default_duration": self.timer.default_duration,
                "auto_start_next": self.timer.auto_start_next,
                "sound": self.timer.sound,
            },
            "task": {
                "max_tasks": self.task.max_tasks,
                "auto_move_unfinished": self.task.auto_move_unfinished,
                "reset_time": self.task.reset_time,
            },
            "notifications": {
                "task_reminders": self.notifications.task_reminders,
                "daily_summary": self.notifications.daily_summary,
                "streak_alerts": self.notifications.streak_alerts,
                "timer_complete": self.notifications.timer_complete,
            },
            "appearance": {
                "theme": self.appearance.theme,
                "animations": self.appearance.animations,
            },
        }

    @property
    def default_estimated_time(self) -> int:
        """Default task estimate in seconds."""
        return self.timer.default_duration * 60
