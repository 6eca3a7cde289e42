"""Tests for dailyfocus/board.py: task CRUD, completion, timers, day boundary."""

import json

import pytest

from dailyfocus.board import TaskBoard, sort_tasks, validate_task_input
from dailyfocus.models import ActiveTimer, Task
from dailyfocus.storage import Store


def _blob(workspace, key):
    return json.loads((workspace / "data" / f"{key}.json").read_text(encoding="utf-8"))


# ── Validation & sorting ──────────────────────────────────────


def test_validate_task_input():
    assert validate_task_input({"title": "Read"}) == []
    assert any("title" in e for e in validate_task_input({}))
    assert any("priority" in e for e in validate_task_input({"title": "x", "priority": "urgent"}))
    assert any("estimatedTime" in e for e in validate_task_input({"estimatedTime": 0}, partial=True))
    assert validate_task_input({"priority": "low"}, partial=True) == []


def test_sort_tasks_priority_then_open_then_newest(clock):
    older = clock()
    newer = clock.advance(minutes=5)
    tasks = [
        Task(id="low", priority="low", created_at=newer),
        Task(id="high-done", priority="high", completed=True, created_at=newer),
        Task(id="high-old", priority="high", created_at=older),
        Task(id="high-new", priority="high", created_at=newer),
        Task(id="medium", priority="medium", created_at=older),
    ]
    assert [t.id for t in sort_tasks(tasks)] == ["high-new", "high-old", "high-done", "medium", "low"]


# ── CRUD ──────────────────────────────────────────────────────


def test_add_prepends_and_persists(board, workspace):
    first = board.add("First")
    second = board.add("Second", "notes", "high")
    assert [t.id for t in board.tasks] == [second.id, first.id]
    assert second.estimated_time == 1500
    assert board.daily_stats.total_tasks == 2
    saved = _blob(workspace, "taskBoardState")
    assert [t["title"] for t in saved["tasks"]] == ["Second", "First"]
    assert saved["today"] == "2026-02-11"


def test_add_rejects_bad_priority(board):
    with pytest.raises(ValueError):
        board.add("x", priority="urgent")


def test_update_and_unknown_ids_are_noops(board):
    task = board.add("Draft")
    task.title = "Final"
    assert board.update(task)
    assert board.find_task(task.id).title == "Final"
    assert not board.update(Task(id="missing"))
    assert not board.delete("missing")
    assert board.toggle_completion("missing") is None


def test_delete_stops_timer_and_clears_focus(board, ticker):
    task = board.add("Focus")
    board.toggle_timer(task.id)
    assert board.timer.is_running
    assert board.delete(task.id)
    assert not board.is_task_timer_running(task.id)
    assert board.timer.active_task_id is None
    assert ticker.active_jobs == 1  # day poll only


# ── Completion ────────────────────────────────────────────────


def test_complete_stops_timer_and_records_history(board):
    task = board.add("Ship")
    board.start_task_timer(task.id)
    board.toggle_completion(task.id)

    assert task.completed
    assert task.completed_at == board.now()
    assert not board.is_task_timer_running(task.id)
    assert board.daily_stats.tasks_completed == 1
    assert board.daily_stats.completion_rate == 100
    assert [t.id for t in board.ledger.completed_tasks] == [task.id]
    day = board.ledger.find_day("2026-02-11")
    assert day.tasks_completed == 1
    assert [t.id for t in day.tasks] == [task.id]


def test_uncomplete_removes_from_day_and_list(board):
    task = board.add("Ship")
    board.toggle_completion(task.id)
    board.toggle_completion(task.id)

    assert not task.completed
    assert task.completed_at is None
    assert board.ledger.completed_tasks == []
    # The day only held this task, so it is deleted.
    assert board.ledger.find_day("2026-02-11") is None
    assert board.daily_stats.tasks_completed == 0


def test_uncomplete_keeps_day_with_other_tasks(board):
    a = board.add("A")
    b = board.add("B")
    board.toggle_completion(a.id)
    board.toggle_completion(b.id)
    board.toggle_completion(a.id)
    day = board.ledger.find_day("2026-02-11")
    assert [t.id for t in day.tasks] == [b.id]
    assert day.tasks_completed == 1


def test_recomplete_same_day_leaves_single_entry(board, clock):
    task = board.add("Ship")
    board.toggle_completion(task.id)
    board.toggle_completion(task.id)
    clock.advance(hours=2)
    board.toggle_completion(task.id)
    assert len(board.ledger.history) == 1
    assert board.ledger.history[0].date == "2026-02-11"


# ── Timers through the board ──────────────────────────────────


def test_countdown_complete_clears_focus_running(board, ticker):
    task = board.add("Short")
    task.estimated_time = 3
    seen = []
    board.on_timer_complete(seen.append)
    assert board.toggle_timer(task.id) is True
    ticker.advance(3)
    assert [t.id for t in seen] == [task.id]
    assert board.timer.active_task_id == task.id
    assert board.timer.is_running is False
    assert task.completed is False
    assert task.time_spent == 3


def test_toggle_task_timer_keeps_estimate(board):
    task = board.add("Long")
    task.estimated_time = 3600
    board.toggle_task_timer(task.id)
    assert task.estimated_time == 3600
    assert board.is_task_timer_running(task.id)
    board.toggle_task_timer(task.id)
    assert not board.is_task_timer_running(task.id)


def test_focus_timer_start_stop_reset(board):
    task = board.add("Focus")
    assert board.start_timer() is False
    board.toggle_timer(task.id)
    board.stop_timer()
    assert not board.timer.is_running
    board.set_timer_duration(10)
    assert board.timer.time_remaining == 600
    assert board.start_timer() is True
    assert task.estimated_time == 600
    board.reset_timer()
    assert board.timer.active_task_id is None
    assert board.timer.time_remaining == 1500
    assert not board.is_task_timer_running(task.id)


def test_running_timers_are_persisted(board, workspace, clock):
    task = board.add("Persist")
    board.start_task_timer(task.id)
    saved = _blob(workspace, "activeTimers")
    assert saved == [ActiveTimer(task_id=task.id, start_time=clock()).to_dict()]
    board.stop_task_timer(task.id)
    assert _blob(workspace, "activeTimers") == []


def test_restart_resumes_timer(workspace, ticker, clock):
    first = TaskBoard(root=workspace, ticker=ticker, clock=clock, hooks=False)
    first.initialize()
    task = first.add("Resume")
    first.toggle_timer(task.id)
    first.shutdown()

    clock.advance(seconds=100)
    second = TaskBoard(root=workspace, ticker=ticker, clock=clock, hooks=False)
    second.initialize()
    assert second.is_task_timer_running(task.id)
    assert second.task_time_remaining(task.id) == 1400
    assert second.timer.active_task_id == task.id
    assert second.timer.is_running
    second.shutdown()


# ── Day boundary ──────────────────────────────────────────────


def test_day_poll_rolls_over(board, ticker, clock):
    done = board.add("Done")
    board.add("Open", priority="high")
    board.toggle_completion(done.id)
    clock.advance(days=1)
    ticker.advance(60)

    assert board.today == "2026-02-12"
    assert [t.title for t in board.tasks] == ["Open"]
    assert board.daily_stats.total_tasks == 0
    archived = board.ledger.find_day("2026-02-11")
    assert archived.total_tasks == 2
    assert archived.tasks_completed == 1
    assert [t.id for t in archived.tasks] == [done.id]


def test_day_poll_same_day_does_nothing(board, ticker):
    board.add("Stay")
    ticker.advance(120)
    assert board.today == "2026-02-11"
    assert board.ledger.history == []


def test_reset_day_stops_timers_before_rollover(board, ticker, clock):
    task = board.add("Running")
    board.start_task_timer(task.id)
    ticker.advance(5)
    clock.advance(days=1)
    assert board.reset_day() is True
    assert board.engine.running_ids() == []
    ticker.advance(5)
    assert board.tasks[0].time_spent == 0
    assert task.time_spent == 5
    assert board.ledger.find_day("2026-02-11").total_time_spent == 5


def test_reset_day_without_auto_move(workspace, ticker, clock):
    b = TaskBoard(root=workspace, ticker=ticker, clock=clock, hooks=False)
    b.settings.task.auto_move_unfinished = False
    b.initialize()
    b.add("Gone tomorrow")
    clock.advance(days=1)
    b.reset_day()
    assert b.tasks == []
    b.shutdown()


def test_initialize_rolls_saved_state_forward(workspace, ticker, clock):
    first = TaskBoard(root=workspace, ticker=ticker, clock=clock, hooks=False)
    first.initialize()
    first.add("Carry me")
    first.shutdown()

    clock.advance(days=1)
    second = TaskBoard(root=workspace, ticker=ticker, clock=clock, hooks=False)
    second.initialize()
    assert second.today == "2026-02-12"
    assert [t.title for t in second.tasks] == ["Carry me"]
    assert second.ledger.find_day("2026-02-11").total_tasks == 1
    second.shutdown()


def test_clear_all(board, ticker):
    task = board.add("Wipe")
    board.start_task_timer(task.id)
    board.clear_all()
    assert board.tasks == []
    assert board.engine.running_ids() == []
    assert board.daily_stats.total_tasks == 0
    assert board.today == "2026-02-11"


def test_corrupt_state_blob_starts_empty(workspace, ticker, clock):
    (workspace / "data" / "taskBoardState.json").write_text("{not json", encoding="utf-8")
    b = TaskBoard(root=workspace, ticker=ticker, clock=clock, store=Store(workspace), hooks=False)
    b.initialize()
    assert b.tasks == []
    assert b.today == "2026-02-11"
    b.shutdown()


def test_derived_values(board):
    a = board.add("A")
    b = board.add("B")
    a.time_spent = 120
    b.time_spent = 60
    board.toggle_completion(a.id)
    assert board.completed_count == 1
    assert board.total_time_spent == 180
    assert board.average_time_per_task == 180.0


def test_initialize_with_non_list_tasks_fields(workspace, ticker, clock):
    data = workspace / "data"
    (data / "taskBoardState.json").write_text('{"tasks": 7, "today": "2026-02-11"}', encoding="utf-8")
    (data / "taskHistory.json").write_text('[{"date": "2026-02-10", "tasks": true}]', encoding="utf-8")
    b = TaskBoard(root=workspace, ticker=ticker, clock=clock, store=Store(workspace), hooks=False)
    b.initialize()
    assert b.tasks == []
    assert [h.date for h in b.ledger.history] == ["2026-02-10"]
    b.shutdown()
