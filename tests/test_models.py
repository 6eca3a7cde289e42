"""Tests for dailyfocus/models.py: serialization, defaults, rates."""

from datetime import datetime, timezone

from dailyfocus.models import (
    ActiveTimer,
    DailyFocusState,
    DailyHistory,
    DailyStats,
    Settings,
    Task,
    completion_rate,
)


def test_completion_rate_rounds_half_up():
    assert completion_rate(0, 0) == 0
    assert completion_rate(1, 3) == 33
    assert completion_rate(2, 3) == 67
    assert completion_rate(1, 8) == 13  # 12.5
    assert completion_rate(3, 3) == 100


def test_task_roundtrip_camel_case():
    created = datetime(2026, 2, 11, 9, 0, tzinfo=timezone.utc)
    task = Task(id="a", title="Write", priority="high", time_spent=42, estimated_time=600, created_at=created)
    d = task.to_dict()
    assert d["timeSpent"] == 42
    assert d["estimatedTime"] == 600
    assert d["createdAt"] == "2026-02-11T09:00:00+00:00"
    assert "completedAt" not in d
    assert Task.from_dict(d) == task


def test_task_from_dict_defaults_and_bad_values():
    task = Task.from_dict({"id": "x", "priority": "urgent", "timeSpent": "nope"})
    assert task.priority == "medium"
    assert task.time_spent == 0
    assert task.estimated_time == 1500
    assert task.created_at is None


def test_task_completed_at_dropped_when_not_completed():
    task = Task.from_dict({"id": "x", "completed": False, "completedAt": "2026-02-11T10:00:00+00:00"})
    assert task.completed_at is None


def test_daily_stats_for_tasks():
    tasks = [
        Task(id="a", completed=True, time_spent=60),
        Task(id="b", completed=False, time_spent=30),
        Task(id="c", completed=False),
    ]
    stats = DailyStats.for_tasks("2026-02-11", tasks)
    assert stats.tasks_completed == 1
    assert stats.total_tasks == 3
    assert stats.total_time_spent == 90
    assert stats.completion_rate == 33


def test_daily_history_keeps_completed_snapshots_only():
    tasks = [Task(id="a", completed=True), Task(id="b")]
    entry = DailyHistory.from_stats(DailyStats.for_tasks("2026-02-11", tasks), tasks)
    assert [t.id for t in entry.tasks] == ["a"]
    tasks[0].title = "changed"
    assert entry.tasks[0].title == ""


def test_state_from_garbage_gives_empty_state():
    state = DailyFocusState.from_dict({"tasks": "oops", "today": None, "timer": 3})
    assert state.tasks == []
    assert state.timer.active_task_id is None


def test_active_timer_roundtrip():
    t = ActiveTimer(task_id="a", start_time=datetime(2026, 2, 11, 9, 0, 5, tzinfo=timezone.utc))
    assert ActiveTimer.from_dict(t.to_dict()) == t


def test_settings_defaults_and_sections():
    s = Settings.from_dict({"timer": {"default_duration": 50, "sound": "gong"}, "task": "bad"})
    assert s.timer.default_duration == 50
    assert s.timer.sound == "bell"
    assert s.task.auto_move_unfinished is True
    assert s.default_estimated_time == 3000


# ── Tolerant loading ──────────────────────────────────────────


def test_completed_without_completed_at_falls_back_to_created_at():
    task = Task.from_dict({"id": "x", "completed": True, "createdAt": "2026-02-11T09:00:00+00:00"})
    assert task.completed is True
    assert task.completed_at == datetime(2026, 2, 11, 9, 0, tzinfo=timezone.utc)


def test_completed_without_any_timestamp_loads_open():
    task = Task.from_dict({"id": "x", "completed": True})
    assert task.completed is False
    assert task.completed_at is None


def test_completed_flag_must_be_a_boolean():
    for flag in ("false", "true", 1):
        task = Task.from_dict({"id": "x", "completed": flag, "completedAt": "2026-02-11T10:00:00+00:00"})
        assert task.completed is False
        assert task.completed_at is None


def test_daily_stats_rate_recomputed_from_counts():
    stats = DailyStats.from_dict({"date": "2026-02-11", "tasksCompleted": 2, "totalTasks": 3,
                                  "completionRate": 66.66666666666667})
    assert stats.completion_rate == 67
    assert stats.to_dict()["completionRate"] == 67


def test_daily_stats_total_never_below_completed():
    stats = DailyStats.from_dict({"date": "2026-02-11", "tasksCompleted": 4, "totalTasks": 2, "completionRate": 200})
    assert stats.total_tasks == 4
    assert stats.completion_rate == 100


def test_non_list_tasks_field_gives_no_tasks():
    entry = DailyHistory.from_dict({"date": "2026-02-10", "tasks": 5})
    assert entry.tasks == []
    assert DailyHistory.from_dict({"date": "2026-02-10", "tasks": True}).tasks == []
    assert DailyFocusState.from_dict({"tasks": 7}).tasks == []
