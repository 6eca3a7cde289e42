"""History ledger and streak analytics for DailyFocus.

The ledger keeps one DailyHistory per calendar day (sorted oldest first,
capped at a year) and a newest-first list of completed-task snapshots.
Metrics are plain functions over the history sequence so they can be used
on any list of entries, not only the ledger's own.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, timedelta
from typing import Any

from dailyfocus.models import DailyHistory, DailyStats, PeriodStats, Task
from dailyfocus.storage import Store

logger = logging.getLogger(__name__)

MAX_HISTORY_DAYS = 365
MAX_COMPLETED_TASKS = 500
PRODUCTIVE_RATE = 70


# ── Date helpers ──────────────────────────────────────────────


def _parse_day(key: str) -> date | None:
    try:
        return date.fromisoformat(key)
    except (TypeError, ValueError):
        return None


def day_gap(earlier: str, later: str) -> int | None:
    """Days between two day keys, or None if either is unparseable."""
    a, b = _parse_day(earlier), _parse_day(later)
    if a is None or b is None:
        return None
    return (b - a).days


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# ── Metrics ───────────────────────────────────────────────────


def current_streak(history: list[DailyHistory]) -> int:
    """Consecutive active days counted back from the newest entry.

    A zero-task newest entry (today, still in progress) is skipped. Any other
    zero-task day, or a jump of more than one day to the next older entry,
    ends the streak.
    """
    ordered = sorted(history, key=lambda h: h.date, reverse=True)
    streak = 0
    for i, day in enumerate(ordered):
        if day.tasks_completed > 0:
            streak += 1
            if i + 1 >= len(ordered):
                break
            gap = day_gap(ordered[i + 1].date, day.date)
            if gap is None or gap > 1:
                break
        else:
            if i == 0:
                continue
            break
    return streak


def best_streak(history: list[DailyHistory]) -> int:
    """Longest run of active days with no gap over one day."""
    ordered = sorted(history, key=lambda h: h.date)
    best = 0
    current = 0
    for i, day in enumerate(ordered):
        if day.tasks_completed > 0:
            current += 1
            best = max(best, current)
            if i + 1 >= len(ordered):
                continue
            gap = day_gap(day.date, ordered[i + 1].date)
            if gap is None or gap > 1:
                current = 0
        else:
            current = 0
    return best


def period_stats(history: list[DailyHistory], entries: int) -> PeriodStats:
    """Totals over the last *entries* history entries (not calendar days)."""
    window = history[-entries:] if entries > 0 else []
    if not window:
        return PeriodStats()
    return PeriodStats(
        total_tasks=sum(d.total_tasks for d in window),
        completed_tasks=sum(d.tasks_completed for d in window),
        total_time=sum(d.total_time_spent for d in window),
        average_completion_rate=_round_half_up(sum(d.completion_rate for d in window) / len(window)),
    )


def weekly_stats(history: list[DailyHistory]) -> PeriodStats:
    return period_stats(history, 7)


def monthly_stats(history: list[DailyHistory]) -> PeriodStats:
    return period_stats(history, 30)


def productive_days(history: list[DailyHistory]) -> int:
    return sum(1 for d in history if d.completion_rate >= PRODUCTIVE_RATE)


def average_completion_rate(history: list[DailyHistory]) -> int:
    if not history:
        return 0
    return _round_half_up(sum(d.completion_rate for d in history) / len(history))


def total_focus_time(history: list[DailyHistory]) -> int:
    return sum(d.total_time_spent for d in history)


def average_tasks_per_day(history: list[DailyHistory]) -> int:
    if not history:
        return 0
    return _round_half_up(sum(d.total_tasks for d in history) / len(history))


# ── Ledger ────────────────────────────────────────────────────


class HistoryLedger:
    """Date-keyed daily history plus the completed-task list."""

    def __init__(self, store: Store | None = None) -> None:
        self.store = store
        self.history: list[DailyHistory] = []
        self.completed_tasks: list[Task] = []

    def load(self) -> None:
        if self.store is None:
            return
        by_day: dict[str, DailyHistory] = {}
        for entry in self.store.load_history():
            by_day[entry.date] = entry
        self.history = sorted(by_day.values(), key=lambda h: h.date)[-MAX_HISTORY_DAYS:]
        self.completed_tasks = self.store.load_completed()[:MAX_COMPLETED_TASKS]

    def save_history(self) -> None:
        if self.store is not None:
            self.store.save_history(self.history)

    def save_completed(self) -> None:
        if self.store is not None:
            self.store.save_completed(self.completed_tasks)

    def find_day(self, day: str) -> DailyHistory | None:
        for entry in self.history:
            if entry.date == day:
                return entry
        return None

    def _sort_and_trim(self) -> None:
        self.history.sort(key=lambda h: h.date)
        if len(self.history) > MAX_HISTORY_DAYS:
            self.history = self.history[-MAX_HISTORY_DAYS:]

    # ── Mutations ─────────────────────────────────────────────

    def add_to_history(self, stats: DailyStats, tasks: list[Task]) -> DailyHistory:
        """Upsert a day by date, keeping only its completed tasks."""
        entry = DailyHistory.from_stats(stats, tasks)
        for i, existing in enumerate(self.history):
            if existing.date == entry.date:
                self.history[i] = entry
                break
        else:
            self.history.append(entry)
        self._sort_and_trim()
        self.save_history()
        return entry

    def add_completed_task(self, task: Task, now: datetime | None = None) -> Task:
        """Record a completed task and fold it into its completion day."""
        snapshot = task.snapshot()
        if snapshot.completed_at is None:
            snapshot.completed_at = now if now is not None else datetime.now().astimezone()

        for i, existing in enumerate(self.completed_tasks):
            if existing.id == snapshot.id:
                self.completed_tasks[i] = snapshot
                break
        else:
            self.completed_tasks.insert(0, snapshot)
        del self.completed_tasks[MAX_COMPLETED_TASKS:]
        self.save_completed()

        day = snapshot.completed_at.date().isoformat()
        entry = self.find_day(day)
        if entry is None:
            self.history.append(DailyHistory(
                date=day,
                tasks_completed=1,
                total_tasks=1,
                total_time_spent=snapshot.time_spent,
                completion_rate=100,
                tasks=[snapshot],
            ))
        else:
            entry.tasks_completed += 1
            entry.total_tasks += 1
            entry.total_time_spent += snapshot.time_spent
            entry.recompute_rate()
            entry.tasks.append(snapshot)
        self._sort_and_trim()
        self.save_history()
        return snapshot

    def remove_completed_task(self, task_id: str) -> bool:
        """Drop a task from the completed list only; daily history is untouched."""
        before = len(self.completed_tasks)
        self.completed_tasks = [t for t in self.completed_tasks if t.id != task_id]
        self.save_completed()
        return len(self.completed_tasks) != before

    def remove_task_from_day(self, task_id: str, day: str) -> bool:
        """Take an un-completed task back out of its completion day.

        Deletes the day when no tasks remain. Returns False when the day is
        no longer in history (for example after ``clear_old_history``).
        """
        entry = self.find_day(day)
        if entry is None:
            return False
        entry.tasks = [t for t in entry.tasks if t.id != task_id]
        entry.total_tasks = max(0, entry.total_tasks - 1)
        entry.tasks_completed = max(0, entry.tasks_completed - 1)
        entry.total_time_spent = sum(t.time_spent for t in entry.tasks)
        entry.recompute_rate()
        if not entry.tasks:
            self.history = [h for h in self.history if h.date != day]
        self.save_history()
        return True

    def clear_history(self) -> None:
        self.history = []
        self.completed_tasks = []
        self.save_history()
        self.save_completed()

    def clear_old_history(self, days_to_keep: int = 90, now: datetime | None = None) -> int:
        """Drop entries and completed tasks older than *days_to_keep* days.

        Returns the number of history entries removed.
        """
        if now is None:
            now = datetime.now().astimezone()
        cutoff = now - timedelta(days=days_to_keep)

        kept = []
        for entry in self.history:
            day = _parse_day(entry.date)
            if day is not None and day > cutoff.date():
                kept.append(entry)
        removed = len(self.history) - len(kept)
        self.history = kept

        def recent(task: Task) -> bool:
            completed_at = task.completed_at
            if completed_at is None:
                return True
            if completed_at.tzinfo is None and cutoff.tzinfo is not None:
                completed_at = completed_at.replace(tzinfo=cutoff.tzinfo)
            elif completed_at.tzinfo is not None and cutoff.tzinfo is None:
                completed_at = completed_at.replace(tzinfo=None)
            return completed_at >= cutoff

        self.completed_tasks = [t for t in self.completed_tasks if recent(t)]
        self.save_history()
        self.save_completed()
        if removed:
            logger.info("pruned %d history entr%s older than %d days", removed, "y" if removed == 1 else "ies", days_to_keep)
        return removed

    def history_between(self, start: date, end: date) -> list[DailyHistory]:
        out = []
        for entry in self.history:
            day = _parse_day(entry.date)
            if day is not None and start <= day <= end:
                out.append(entry)
        return out

    def replace_all(
        self,
        history: list[DailyHistory] | None = None,
        completed_tasks: list[Task] | None = None,
    ) -> None:
        """Swap in whole collections, e.g. from an import."""
        if history is not None:
            by_day = {h.date: h for h in history}
            self.history = sorted(by_day.values(), key=lambda h: h.date)[-MAX_HISTORY_DAYS:]
            self.save_history()
        if completed_tasks is not None:
            self.completed_tasks = completed_tasks[:MAX_COMPLETED_TASKS]
            self.save_completed()

    # ── Summary ───────────────────────────────────────────────

    def summary(self) -> dict[str, Any]:
        return {
            "totalCompletedTasks": len(self.completed_tasks),
            "averageCompletionRate": average_completion_rate(self.history),
            "totalFocusTime": total_focus_time(self.history),
            "currentStreak": current_streak(self.history),
            "bestStreak": best_streak(self.history),
            "productiveDays": productive_days(self.history),
            "averageTasksPerDay": average_tasks_per_day(self.history),
            "weekly": weekly_stats(self.history).to_dict(),
            "monthly": monthly_stats(self.history).to_dict(),
        }
