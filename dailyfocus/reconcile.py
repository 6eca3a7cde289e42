"""Day rollover for DailyFocus.

Turns the last saved board state into today's starting state. The previous
day is summarised into a DailyHistory entry for the caller to upsert into
the history ledger; unfinished tasks carry over as fresh copies.

Reconciling twice against the same day is a no-op.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import datetime

from dailyfocus.models import DailyFocusState, DailyHistory, DailyStats, Task, TimerState


@dataclass
class DayRollover:
    state: DailyFocusState
    archived: DailyHistory | None = None

    @property
    def rolled_over(self) -> bool:
        return self.archived is not None


def carry_over_task(task: Task, now: datetime) -> Task:
    """Clone an unfinished task for a new day: new identity, no time spent."""
    return replace(
        task,
        id=str(uuid.uuid4()),
        created_at=now,
        time_spent=0,
        completed=False,
        completed_at=None,
    )


def reconcile_day(
    previous: DailyFocusState,
    current_day: str,
    now: datetime | None = None,
    carry_over: bool = True,
) -> DayRollover:
    """Roll *previous* forward to *current_day*.

    Returns the state unchanged when it already belongs to *current_day*.
    Otherwise the returned state holds only the carried-over tasks (none when
    *carry_over* is false), with zeroed stats and an idle timer, and
    ``archived`` holds the previous day's summary.
    """
    if previous.today == current_day:
        return DayRollover(state=previous)

    if now is None:
        now = datetime.now().astimezone()

    archived = None
    if previous.today:
        stats = DailyStats.for_tasks(previous.today, previous.tasks)
        archived = DailyHistory.from_stats(stats, previous.tasks)

    unfinished = [t for t in previous.tasks if not t.completed]
    tasks = [carry_over_task(t, now) for t in unfinished] if carry_over else []

    state = DailyFocusState(
        tasks=tasks,
        daily_stats=DailyStats(date=current_day),
        today=current_day,
        timer=TimerState(active_task_id=None, time_remaining=0, is_running=False),
    )
    return DayRollover(state=state, archived=archived)
