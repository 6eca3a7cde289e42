"""DailyFocus JSON API.

A thin FastAPI layer over TaskBoard. The lifespan handler builds one board on
an asyncio ticker, so per-task timers and the day-boundary poll run on the
server's event loop.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, AsyncIterator, Callable

from fastapi import APIRouter, Body, Depends, FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse

from dailyfocus import (
    AsyncioTicker,
    Task,
    TaskBoard,
    Ticker,
    completed_tasks_csv,
    export_dir,
    history_csv,
    import_data,
    validate_task_input,
    workspace_root,
    write_exports,
)
from dailyfocus.export import export_payload

logger = logging.getLogger(__name__)

# Fields a client may change through PUT; completion goes through /toggle.
EDITABLE_FIELDS = {"title", "description", "priority", "estimatedTime", "timeSpent"}

router = APIRouter()


def get_board(request: Request) -> TaskBoard:
    return request.app.state.board


def _task_view(board: TaskBoard, task: Task) -> dict[str, Any]:
    d = task.to_dict()
    d["isRunning"] = board.is_task_timer_running(task.id)
    d["timeRemaining"] = board.task_time_remaining(task.id)
    return d


def _require_task(board: TaskBoard, task_id: str) -> Task:
    task = board.find_task(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail=f"Task not found: {task_id}")
    return task


# ── Board ─────────────────────────────────────────────────────


@router.get("/healthz")
def healthz() -> dict[str, bool]:
    return {"ok": True}


@router.get("/api/state")
def api_get_state(board: TaskBoard = Depends(get_board)) -> dict[str, Any]:
    """Today's board: stats, focus timer, tasks in display order."""
    with board.lock:
        active = board.active_task
        return {
            "today": board.today,
            "dailyStats": board.daily_stats.to_dict(),
            "timer": board.timer.to_dict(),
            "activeTask": active.to_dict() if active else None,
            "tasks": [_task_view(board, t) for t in board.sorted_tasks()],
            "activeTimers": [t.to_dict() for t in board.engine.active_timers()],
            "completedCount": board.completed_count,
            "totalTimeSpent": board.total_time_spent,
            "averageTimePerTask": round(board.average_time_per_task, 1),
        }


@router.get("/api/tasks")
def api_list_tasks(board: TaskBoard = Depends(get_board)) -> dict[str, Any]:
    with board.lock:
        return {"tasks": [_task_view(board, t) for t in board.sorted_tasks()]}


@router.post("/api/tasks")
def api_create_task(payload: dict[str, Any] = Body(...), board: TaskBoard = Depends(get_board)) -> dict[str, Any]:
    errors = validate_task_input(payload)
    if errors:
        raise HTTPException(status_code=400, detail="; ".join(errors))
    task = board.add(
        str(payload["title"]).strip(),
        payload.get("description") or "",
        payload.get("priority", "medium"),
    )
    return {"ok": True, "task": task.to_dict()}


@router.put("/api/tasks/{task_id}")
def api_update_task(task_id: str, payload: dict[str, Any] = Body(...), board: TaskBoard = Depends(get_board)) -> dict[str, Any]:
    errors = validate_task_input(payload, partial=True)
    if errors:
        raise HTTPException(status_code=400, detail="; ".join(errors))
    with board.lock:
        task = _require_task(board, task_id)
        merged = task.to_dict()
        merged.update({k: v for k, v in payload.items() if k in EDITABLE_FIELDS})
        updated = Task.from_dict(merged)
        updated.completed_at = task.completed_at
        board.update(updated)
        return {"ok": True, "task": updated.to_dict()}


@router.delete("/api/tasks/{task_id}")
def api_delete_task(task_id: str, board: TaskBoard = Depends(get_board)) -> dict[str, Any]:
    if not board.delete(task_id):
        raise HTTPException(status_code=404, detail=f"Task not found: {task_id}")
    return {"ok": True, "task_id": task_id}


@router.post("/api/tasks/{task_id}/toggle")
def api_toggle_completion(task_id: str, board: TaskBoard = Depends(get_board)) -> dict[str, Any]:
    task = board.toggle_completion(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail=f"Task not found: {task_id}")
    return {"ok": True, "task": task.to_dict(), "dailyStats": board.daily_stats.to_dict()}


# ── Timers ────────────────────────────────────────────────────


@router.post("/api/tasks/{task_id}/timer/{action}")
def api_task_timer(
    task_id: str,
    action: str,
    payload: dict[str, Any] = Body(default={}),
    board: TaskBoard = Depends(get_board),
) -> dict[str, Any]:
    """Start, stop or toggle one task's countdown. Optional ``duration`` in seconds."""
    duration = payload.get("duration")
    if duration is not None and (not isinstance(duration, int) or isinstance(duration, bool) or duration <= 0):
        raise HTTPException(status_code=400, detail="duration must be a positive integer (seconds)")
    with board.lock:
        task = _require_task(board, task_id)
        if action == "start":
            if task.completed:
                raise HTTPException(status_code=409, detail="Task is already completed")
            board.start_task_timer(task_id, duration)
        elif action == "stop":
            board.stop_task_timer(task_id)
        elif action == "toggle":
            board.toggle_task_timer(task_id, duration)
        else:
            raise HTTPException(status_code=404, detail=f"Unknown timer action: {action}")
        return {"ok": True, "task": _task_view(board, task)}


@router.post("/api/timer/toggle")
def api_focus_toggle(payload: dict[str, Any] = Body(default={}), board: TaskBoard = Depends(get_board)) -> dict[str, Any]:
    """Toggle the focused timer, optionally switching focus to ``taskId``."""
    running = board.toggle_timer(payload.get("taskId"))
    return {"ok": True, "running": running, "timer": board.timer.to_dict()}


@router.post("/api/timer/duration")
def api_focus_duration(payload: dict[str, Any] = Body(...), board: TaskBoard = Depends(get_board)) -> dict[str, Any]:
    minutes = payload.get("minutes")
    if not isinstance(minutes, int) or isinstance(minutes, bool) or minutes <= 0:
        raise HTTPException(status_code=400, detail="minutes must be a positive integer")
    board.set_timer_duration(minutes)
    return {"ok": True, "timer": board.timer.to_dict()}


@router.post("/api/timer/reset")
def api_focus_reset(board: TaskBoard = Depends(get_board)) -> dict[str, Any]:
    board.reset_timer()
    return {"ok": True, "timer": board.timer.to_dict()}


# ── Day ───────────────────────────────────────────────────────


@router.post("/api/day/reset")
def api_reset_day(board: TaskBoard = Depends(get_board)) -> dict[str, Any]:
    rolled = board.reset_day()
    return {"ok": True, "rolledOver": rolled, "today": board.today}


@router.post("/api/clear")
def api_clear_all(board: TaskBoard = Depends(get_board)) -> dict[str, Any]:
    board.clear_all()
    return {"ok": True, "today": board.today}


# ── History ───────────────────────────────────────────────────


@router.get("/api/history")
def api_history(board: TaskBoard = Depends(get_board)) -> dict[str, Any]:
    with board.lock:
        return {
            "history": [h.to_dict() for h in board.ledger.history],
            "completedTasks": [t.to_dict() for t in board.ledger.completed_tasks],
        }


@router.get("/api/history/stats")
def api_history_stats(board: TaskBoard = Depends(get_board)) -> dict[str, Any]:
    with board.lock:
        return board.ledger.summary()


@router.post("/api/history/prune")
def api_history_prune(payload: dict[str, Any] = Body(default={}), board: TaskBoard = Depends(get_board)) -> dict[str, Any]:
    days = payload.get("daysToKeep", 90)
    if not isinstance(days, int) or isinstance(days, bool) or days < 0:
        raise HTTPException(status_code=400, detail="daysToKeep must be a non-negative integer")
    with board.lock:
        removed = board.ledger.clear_old_history(days, now=board.now())
    return {"ok": True, "removed": removed}


@router.delete("/api/history")
def api_history_clear(board: TaskBoard = Depends(get_board)) -> dict[str, Any]:
    with board.lock:
        board.ledger.clear_history()
    return {"ok": True}


# ── Export / import ───────────────────────────────────────────


@router.get("/api/export.json")
def api_export_json(board: TaskBoard = Depends(get_board)) -> dict[str, Any]:
    with board.lock:
        return export_payload(board.ledger, board.now())


@router.get("/api/export/history.csv")
def api_export_history_csv(board: TaskBoard = Depends(get_board)) -> PlainTextResponse:
    with board.lock:
        return PlainTextResponse(history_csv(board.ledger.history), media_type="text/csv")


@router.get("/api/export/tasks.csv")
def api_export_tasks_csv(board: TaskBoard = Depends(get_board)) -> PlainTextResponse:
    with board.lock:
        return PlainTextResponse(completed_tasks_csv(board.ledger.completed_tasks), media_type="text/csv")


@router.post("/api/export/files")
def api_export_files(board: TaskBoard = Depends(get_board)) -> dict[str, Any]:
    with board.lock:
        paths = write_exports(board.ledger, board.now(), out_dir=export_dir(board.root))
    return {"ok": True, "files": [str(p) for p in paths]}


@router.post("/api/import")
async def api_import(request: Request) -> dict[str, Any]:
    board: TaskBoard = request.app.state.board
    text = (await request.body()).decode("utf-8", errors="replace")
    with board.lock:
        ok = import_data(board.ledger, text)
    if not ok:
        raise HTTPException(status_code=400, detail="Malformed import document")
    return {"ok": True}


# ── App factory ───────────────────────────────────────────────


def create_app(
    root: Path | None = None,
    clock: Callable[[], datetime] | None = None,
    ticker_factory: Callable[[], Ticker] | None = None,
) -> FastAPI:
    """Build the API around one TaskBoard.

    The board is created when the app starts, on an AsyncioTicker for the
    running loop unless *ticker_factory* supplies another ticker.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        board_root = root if root is not None else workspace_root()
        ticker = ticker_factory() if ticker_factory is not None else AsyncioTicker()
        board = TaskBoard(root=board_root, ticker=ticker, clock=clock)
        board.initialize()
        app.state.board = board
        logger.info("DailyFocus board ready at %s (today %s)", board_root, board.today)
        try:
            yield
        finally:
            board.shutdown()
            logger.info("DailyFocus board stopped")

    app = FastAPI(title="DailyFocus", version="0.1.0", lifespan=lifespan)
    app.include_router(router)
    return app


app = create_app()
