"""Per-task countdown timers for DailyFocus.

Any number of tasks may run at once. Each running task owns one repeating
job on the ticker; every tick adds a second to that task's ``time_spent``.
When the ticks reach the task's estimate the timer stops and completion
listeners are called with a snapshot of the task. Completing the countdown
does not mark the task done.

The engine persists through an ``on_flush`` callback: on start, on stop,
and every tenth tick of a running timer.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from dailyfocus.models import ActiveTimer, Task
from dailyfocus.ticker import Ticker, TickerJob

logger = logging.getLogger(__name__)

FLUSH_EVERY_TICKS = 10

CompletionListener = Callable[[Task], None]


def elapsed_seconds(start: datetime, now: datetime) -> int:
    """Whole seconds between two instants, never negative."""
    if start.tzinfo is None and now.tzinfo is not None:
        start = start.replace(tzinfo=now.tzinfo)
    elif start.tzinfo is not None and now.tzinfo is None:
        now = now.replace(tzinfo=start.tzinfo)
    return max(0, int((now - start).total_seconds()))


@dataclass
class _RunningTimer:
    task_id: str
    start_time: datetime
    job: TickerJob
    ticks: int = 0


class TimerEngine:
    """Runs zero or more independent per-task countdowns."""

    def __init__(
        self,
        lookup: Callable[[str], Task | None],
        ticker: Ticker,
        clock: Callable[[], datetime],
        on_flush: Callable[[], None] | None = None,
        lock: threading.RLock | None = None,
    ) -> None:
        self._lookup = lookup
        self._ticker = ticker
        self._clock = clock
        self._on_flush = on_flush
        self._lock = lock if lock is not None else threading.RLock()
        self._running: dict[str, _RunningTimer] = {}
        self._listeners: list[CompletionListener] = []

    # ── Queries ───────────────────────────────────────────────

    def is_running(self, task_id: str) -> bool:
        return task_id in self._running

    def running_ids(self) -> list[str]:
        return list(self._running)

    def active_timers(self) -> list[ActiveTimer]:
        return [ActiveTimer(task_id=t.task_id, start_time=t.start_time) for t in self._running.values()]

    def time_remaining(self, task_id: str) -> int:
        """Seconds left on a task's countdown; its full estimate when idle."""
        task = self._lookup(task_id)
        if task is None:
            return 0
        timer = self._running.get(task_id)
        if timer is None:
            return task.estimated_time
        return max(0, task.estimated_time - elapsed_seconds(timer.start_time, self._clock()))

    # ── Listeners ─────────────────────────────────────────────

    def on_complete(self, listener: CompletionListener) -> Callable[[], None]:
        """Subscribe to countdown completion. Returns an unsubscribe callable."""
        if listener not in self._listeners:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, task: Task) -> None:
        logger.info("timer complete for task %s (%ss)", task.id, task.time_spent)
        for listener in list(self._listeners):
            try:
                listener(task)
            except Exception:
                logger.exception("completion listener failed for task %s", task.id)

    # ── Lifecycle ─────────────────────────────────────────────

    def start(self, task_id: str, duration: int | None = None) -> bool:
        """Start a task's countdown. No-op for unknown, completed or running tasks."""
        with self._lock:
            task = self._lookup(task_id)
            if task is None or task.completed or task_id in self._running:
                return False
            if duration:
                task.estimated_time = int(duration)
            self._launch(task, self._clock(), ticks=0)
            logger.debug("timer started for task %s (%ss)", task_id, task.estimated_time)
            self._flush()
            return True

    def stop(self, task_id: str) -> bool:
        """Stop a running countdown. Returns False if it was not running."""
        with self._lock:
            timer = self._running.pop(task_id, None)
            if timer is None:
                return False
            timer.job.cancel()
            logger.debug("timer stopped for task %s after %s ticks", task_id, timer.ticks)
            self._flush()
            return True

    def toggle(self, task_id: str, duration: int | None = None) -> bool:
        """Stop if running, else start. Returns whether the task is now running."""
        with self._lock:
            if task_id in self._running:
                self.stop(task_id)
            else:
                self.start(task_id, duration)
            return task_id in self._running

    def stop_all(self) -> None:
        with self._lock:
            self._cancel_all()
            self._flush()

    def restore(self, saved: list[ActiveTimer]) -> list[str]:
        """Resume timers persisted by a previous process.

        A timer resumes from its original start time, so the countdown ends
        when it would have ended had the process never stopped. Timers whose
        countdown already ran out are dropped without firing completion.
        """
        resumed = []
        with self._lock:
            now = self._clock()
            for entry in saved:
                task = self._lookup(entry.task_id)
                if task is None or task.completed or entry.start_time is None:
                    continue
                if entry.task_id in self._running:
                    continue
                elapsed = elapsed_seconds(entry.start_time, now)
                if elapsed >= task.estimated_time:
                    logger.info("timer for task %s expired while offline; not resumed", task.id)
                    continue
                self._launch(task, entry.start_time, ticks=elapsed)
                resumed.append(task.id)
            self._flush()
        if resumed:
            logger.info("resumed %d timer(s)", len(resumed))
        return resumed

    def shutdown(self) -> None:
        """Cancel every job and drop listeners. Persisted timers are left for restore."""
        with self._lock:
            self._cancel_all()
            self._listeners.clear()

    # ── Internals ─────────────────────────────────────────────

    def _launch(self, task: Task, start_time: datetime, ticks: int) -> None:
        task_id = task.id
        job = self._ticker.every(1, lambda: self._tick(task_id))
        self._running[task_id] = _RunningTimer(task_id=task_id, start_time=start_time, job=job, ticks=ticks)

    def _cancel_all(self) -> None:
        for timer in self._running.values():
            timer.job.cancel()
        self._running.clear()

    def _tick(self, task_id: str) -> None:
        finished = None
        with self._lock:
            timer = self._running.get(task_id)
            if timer is None:
                return
            task = self._lookup(task_id)
            if task is None:
                self.stop(task_id)
                return
            task.time_spent += 1
            timer.ticks += 1
            if timer.ticks >= task.estimated_time:
                self.stop(task_id)
                finished = task.snapshot()
            elif timer.ticks % FLUSH_EVERY_TICKS == 0:
                self._flush()
        if finished is not None:
            self._notify(finished)

    def _flush(self) -> None:
        if self._on_flush is not None:
            self._on_flush()
