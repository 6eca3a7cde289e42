"""Task board: the day's task list, its timers, and its history hand-off.

TaskBoard owns the in-memory DailyFocusState, a TimerEngine for per-task
countdowns and a HistoryLedger. Every mutation runs under one re-entrant
lock that the engine shares, so timer ticks and the day-boundary poll never
interleave with a board change. Each mutation recomputes the day's stats
and persists.
"""

from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from dailyfocus.history import HistoryLedger
from dailyfocus.hooks import run_hooks
from dailyfocus.models import (
    PRIORITY_RANK,
    DailyFocusState,
    DailyStats,
    Settings,
    Task,
    TimerState,
)
from dailyfocus.reconcile import reconcile_day
from dailyfocus.storage import Store
from dailyfocus.ticker import ManualTicker, Ticker, TickerJob
from dailyfocus.timers import CompletionListener, TimerEngine
from dailyfocus.workspace import day_key, get_user_timezone, workspace_root

logger = logging.getLogger(__name__)

DAY_POLL_SECONDS = 60


# ── Validation ────────────────────────────────────────────────


def validate_task_input(data: dict[str, Any], partial: bool = False) -> list[str]:
    """Validate a task payload and return list of errors (empty if valid)."""
    errors = []
    if not partial and not str(data.get("title", "")).strip():
        errors.append("Missing required field: title")
    if "title" in data and not isinstance(data["title"], str):
        errors.append("title must be a string")
    if "description" in data and not isinstance(data["description"], (str, type(None))):
        errors.append("description must be a string")
    if "priority" in data and data["priority"] not in PRIORITY_RANK:
        errors.append(f"Invalid priority: {data['priority']}")
    if "estimatedTime" in data:
        value = data["estimatedTime"]
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            errors.append("estimatedTime must be a positive integer (seconds)")
    if "timeSpent" in data:
        value = data["timeSpent"]
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            errors.append("timeSpent must be a non-negative integer (seconds)")
    return errors


def sort_tasks(tasks: list[Task]) -> list[Task]:
    """Display order: high priority first, open before done, newest first."""
    return sorted(
        tasks,
        key=lambda t: (-PRIORITY_RANK.get(t.priority, 0), t.completed, -t.created_sort_key()),
    )


# ── Board ─────────────────────────────────────────────────────


class TaskBoard:
    """Task collection manager for a single workspace."""

    def __init__(
        self,
        root: Path | None = None,
        ticker: Ticker | None = None,
        clock: Callable[[], datetime] | None = None,
        store: Store | None = None,
        settings: Settings | None = None,
        hooks: bool = True,
    ) -> None:
        self.root = root if root is not None else workspace_root()
        self.store = store if store is not None else Store(self.root)
        self.settings = settings if settings is not None else self.store.load_settings()
        if clock is None:
            tz = get_user_timezone(self.root)

            def clock() -> datetime:
                return datetime.now(tz)

        self._clock = clock
        self.ticker = ticker if ticker is not None else ManualTicker()
        self.ledger = HistoryLedger(self.store)
        self.hooks = hooks

        self._lock = threading.RLock()
        self._poll_job: TickerJob | None = None
        self.state = self._fresh_state()
        self.engine = TimerEngine(
            self.find_task, self.ticker, self._clock, on_flush=self.save, lock=self._lock,
        )
        self.engine.on_complete(self._on_countdown_complete)

    # ── Basics ────────────────────────────────────────────────

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    @property
    def tasks(self) -> list[Task]:
        return self.state.tasks

    @property
    def daily_stats(self) -> DailyStats:
        return self.state.daily_stats

    @property
    def today(self) -> str:
        return self.state.today

    @property
    def timer(self) -> TimerState:
        return self.state.timer

    def now(self) -> datetime:
        return self._clock()

    def today_key(self) -> str:
        return day_key(self._clock())

    def _fresh_state(self) -> DailyFocusState:
        today = self.today_key()
        return DailyFocusState(
            tasks=[],
            daily_stats=DailyStats(date=today),
            today=today,
            timer=TimerState(time_remaining=self.settings.default_estimated_time),
        )

    def find_task(self, task_id: str) -> Task | None:
        for task in self.state.tasks:
            if task.id == task_id:
                return task
        return None

    def save(self) -> None:
        """Persist task state and the running-timer list."""
        with self._lock:
            self.store.save_state(self.state)
            self.store.save_timers(self.engine.active_timers())

    def _update_stats(self) -> None:
        self.state.daily_stats = DailyStats.for_tasks(self.state.today, self.state.tasks)

    def _fire_hook(self, hook_point: str, context: dict[str, Any]) -> None:
        if not self.hooks:
            return
        threading.Thread(
            target=run_hooks, args=(hook_point, context, self.root), daemon=True,
        ).start()

    # ── Startup / shutdown ────────────────────────────────────

    def initialize(self) -> None:
        """Load persisted state, roll it forward to today, resume timers."""
        with self._lock:
            self.ledger.load()
            saved = self.store.load_state()
            if saved is not None:
                self.state = saved
                self._roll_forward(self.today_key())
            resumed = self.engine.restore(self.store.load_timers())
            for task_id in resumed:
                self.state.timer.active_task_id = task_id
                self.state.timer.is_running = True
            self.save()
        self.start_day_watch()

    def start_day_watch(self) -> None:
        if self._poll_job is None:
            self._poll_job = self.ticker.every(DAY_POLL_SECONDS, self.check_new_day)

    def shutdown(self) -> None:
        """Cancel the day poll and all timer jobs. Running timers stay persisted."""
        with self._lock:
            if self._poll_job is not None:
                self._poll_job.cancel()
                self._poll_job = None
            self.engine.shutdown()

    # ── Derived values ────────────────────────────────────────

    @property
    def completed_count(self) -> int:
        return sum(1 for t in self.state.tasks if t.completed)

    @property
    def total_time_spent(self) -> int:
        return sum(t.time_spent for t in self.state.tasks)

    @property
    def average_time_per_task(self) -> float:
        done = self.completed_count
        return self.total_time_spent / done if done else 0.0

    @property
    def active_task(self) -> Task | None:
        if not self.state.timer.active_task_id:
            return None
        return self.find_task(self.state.timer.active_task_id)

    def sorted_tasks(self) -> list[Task]:
        return sort_tasks(self.state.tasks)

    # ── CRUD ──────────────────────────────────────────────────

    def add(self, title: str, description: str = "", priority: str = "medium") -> Task:
        if priority not in PRIORITY_RANK:
            raise ValueError(f"Invalid priority: {priority}")
        with self._lock:
            task = Task(
                id=str(uuid.uuid4()),
                title=title,
                description=description,
                completed=False,
                priority=priority,
                time_spent=0,
                estimated_time=self.settings.default_estimated_time,
                created_at=self.now(),
            )
            self.state.tasks.insert(0, task)
            self._update_stats()
            self.save()
            return task

    def update(self, task: Task) -> bool:
        """Replace a task by id. Returns False if there is no such task."""
        with self._lock:
            for i, existing in enumerate(self.state.tasks):
                if existing.id == task.id:
                    self.state.tasks[i] = task
                    self._update_stats()
                    self.save()
                    return True
            return False

    def delete(self, task_id: str) -> bool:
        with self._lock:
            if self.find_task(task_id) is None:
                return False
            self.engine.stop(task_id)
            self.state.tasks = [t for t in self.state.tasks if t.id != task_id]
            if self.state.timer.active_task_id == task_id:
                self.state.timer.active_task_id = None
                self.state.timer.is_running = False
            self._update_stats()
            self.save()
            return True

    def toggle_completion(self, task_id: str) -> Task | None:
        """Mark a task done (or undone) and keep the history ledger in step.

        Undoing removes the task from its completion day; a day left with no
        tasks is deleted and is not recreated if the task is completed again
        on a later day.
        """
        with self._lock:
            task = self.find_task(task_id)
            if task is None:
                return None
            previous_completed_at = task.completed_at

            if not task.completed:
                self.engine.stop(task_id)
                task.completed = True
                task.completed_at = self.now()
                self.ledger.add_completed_task(task, now=task.completed_at)
                if self.state.timer.active_task_id == task_id:
                    self.state.timer.is_running = False
                hook_point = "on_task_complete"
            else:
                task.completed = False
                task.completed_at = None
                self.ledger.remove_completed_task(task_id)
                if previous_completed_at is not None:
                    self.ledger.remove_task_from_day(task_id, day_key(previous_completed_at))
                hook_point = "on_task_uncomplete"

            self._update_stats()
            self.save()
            snapshot = task.snapshot()
        self._fire_hook(hook_point, {"task": snapshot.to_dict(), "day": self.state.today})
        return task

    # ── Timers ────────────────────────────────────────────────

    def on_timer_complete(self, listener: CompletionListener) -> Callable[[], None]:
        return self.engine.on_complete(listener)

    def _on_countdown_complete(self, task: Task) -> None:
        with self._lock:
            if self.state.timer.active_task_id == task.id:
                self.state.timer.is_running = False
                self.save()
        if self.settings.notifications.timer_complete:
            self._fire_hook("on_timer_complete", {"task": task.to_dict(), "sound": self.settings.timer.sound})

    def is_task_timer_running(self, task_id: str) -> bool:
        return self.engine.is_running(task_id)

    def task_time_remaining(self, task_id: str) -> int:
        return self.engine.time_remaining(task_id)

    def start_task_timer(self, task_id: str, duration: int | None = None) -> bool:
        return self.engine.start(task_id, duration)

    def stop_task_timer(self, task_id: str) -> bool:
        return self.engine.stop(task_id)

    def toggle_task_timer(self, task_id: str, duration: int | None = None) -> bool:
        return self.engine.toggle(task_id, duration)

    def stop_all_timers(self) -> None:
        self.engine.stop_all()

    def start_timer(self) -> bool:
        """Start the focused task's countdown from the focus timer's duration."""
        with self._lock:
            task_id = self.state.timer.active_task_id
            if not task_id:
                return False
            self.engine.start(task_id, self.state.timer.time_remaining or None)
            self.state.timer.is_running = self.engine.is_running(task_id)
            self.save()
            return self.state.timer.is_running

    def stop_timer(self) -> None:
        with self._lock:
            if self.state.timer.active_task_id:
                self.engine.stop(self.state.timer.active_task_id)
            self.state.timer.is_running = False
            self.save()

    def toggle_timer(self, task_id: str | None = None) -> bool:
        """Toggle a task's countdown and make it the focused task."""
        with self._lock:
            if task_id:
                if self.find_task(task_id) is None:
                    return False
                self.engine.toggle(task_id)
                self.state.timer.active_task_id = task_id
            elif self.state.timer.active_task_id:
                task_id = self.state.timer.active_task_id
                self.engine.toggle(task_id)
            else:
                return False
            self.state.timer.is_running = self.engine.is_running(task_id)
            self.save()
            return self.state.timer.is_running

    def set_timer_duration(self, minutes: int) -> None:
        with self._lock:
            self.state.timer.time_remaining = max(0, int(minutes)) * 60
            self.save()

    def reset_timer(self) -> None:
        with self._lock:
            if self.state.timer.active_task_id:
                self.engine.stop(self.state.timer.active_task_id)
            self.state.timer = TimerState(time_remaining=self.settings.default_estimated_time)
            self.save()

    # ── Day boundary ──────────────────────────────────────────

    def _roll_forward(self, current_day: str) -> bool:
        previous_day = self.state.today
        result = reconcile_day(
            self.state,
            current_day,
            now=self.now(),
            carry_over=self.settings.task.auto_move_unfinished,
        )
        self.state = result.state
        if result.archived is None:
            return False
        self.ledger.add_to_history(result.archived, result.archived.tasks)
        logger.info(
            "rolled %s over to %s: %d/%d done, %d carried over",
            previous_day, current_day,
            result.archived.tasks_completed, result.archived.total_tasks,
            len(self.state.tasks),
        )
        return True

    def reset_day(self) -> bool:
        """Archive the current day and start today fresh.

        Timers stop before the task list changes so no tick lands on a task
        that has been archived or re-issued under a new id.
        """
        with self._lock:
            self.engine.stop_all()
            previous_day = self.state.today
            stats = self.state.daily_stats
            if stats.date != previous_day:
                stats = DailyStats.for_tasks(previous_day, self.state.tasks)
            if previous_day:
                self.ledger.add_to_history(stats, self.state.tasks)
            rolled = self._roll_forward(self.today_key())
            self.save()
            archived = self.ledger.find_day(previous_day)
        self._fire_hook("post_day_reset", {
            "day": previous_day,
            "today": self.state.today,
            "stats": archived.to_dict() if archived else None,
        })
        return rolled

    def check_new_day(self) -> bool:
        """Roll over if the calendar day has changed since the state was written."""
        with self._lock:
            if self.state.today == self.today_key():
                return False
            return self.reset_day()

    def clear_all(self) -> None:
        with self._lock:
            self.engine.stop_all()
            self.state = self._fresh_state()
            self.save()
