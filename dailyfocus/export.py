"""Export and import of DailyFocus history.

Exports: a JSON dump of history, completed tasks and headline stats, plus a
CSV per collection. Import takes a JSON document with optional ``history``
and ``completedTasks`` arrays and replaces those collections wholesale. The
whole payload is validated before anything changes.
"""

from __future__ import annotations

import csv
import io
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from dailyfocus.errors import ImportParseError
from dailyfocus.fileio import write_text_atomic
from dailyfocus.history import HistoryLedger
from dailyfocus.models import DailyHistory, Task
from dailyfocus.workspace import export_dir

logger = logging.getLogger(__name__)

HISTORY_CSV_HEADER = ["Date", "Total Tasks", "Completed Tasks", "Completion Rate (%)", "Total Time (minutes)"]
TASKS_CSV_HEADER = ["Task Title", "Description", "Priority", "Time Spent (minutes)", "Completed Date"]


def _minutes(seconds: int) -> int:
    return (seconds + 30) // 60


# ── Export ────────────────────────────────────────────────────


def export_payload(ledger: HistoryLedger, now: datetime) -> dict[str, Any]:
    summary = ledger.summary()
    return {
        "history": [h.to_dict() for h in ledger.history],
        "completedTasks": [t.to_dict() for t in ledger.completed_tasks],
        "exportDate": now.isoformat(timespec="seconds"),
        "stats": {
            "totalCompletedTasks": summary["totalCompletedTasks"],
            "averageCompletionRate": summary["averageCompletionRate"],
            "totalFocusTime": summary["totalFocusTime"],
            "currentStreak": summary["currentStreak"],
            "bestStreak": summary["bestStreak"],
        },
    }


def export_json(ledger: HistoryLedger, now: datetime) -> str:
    return json.dumps(export_payload(ledger, now), indent=2, ensure_ascii=False) + "\n"


def history_csv(history: list[DailyHistory]) -> str:
    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\n")
    writer.writerow(HISTORY_CSV_HEADER)
    for day in history:
        writer.writerow([
            day.date,
            day.total_tasks,
            day.tasks_completed,
            day.completion_rate,
            _minutes(day.total_time_spent),
        ])
    return out.getvalue()


def completed_tasks_csv(tasks: list[Task]) -> str:
    """Completed tasks; every text field is quoted with embedded quotes doubled."""
    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\n", quoting=csv.QUOTE_NONNUMERIC)
    writer.writerow(TASKS_CSV_HEADER)
    for task in tasks:
        completed = task.completed_at.date().isoformat() if task.completed_at else "N/A"
        writer.writerow([
            task.title,
            task.description or "",
            task.priority,
            _minutes(task.time_spent),
            completed,
        ])
    return out.getvalue()


def write_exports(
    ledger: HistoryLedger,
    now: datetime,
    out_dir: Path | None = None,
) -> list[Path]:
    """Write the JSON dump and both CSVs. Returns the written paths."""
    if out_dir is None:
        out_dir = export_dir()
    stamp = now.date().isoformat()
    files = {
        out_dir / f"daily-focus-export-{stamp}.json": export_json(ledger, now),
        out_dir / f"daily-focus-history-{stamp}.csv": history_csv(ledger.history),
        out_dir / f"daily-focus-tasks-{stamp}.csv": completed_tasks_csv(ledger.completed_tasks),
    }
    for path, content in files.items():
        write_text_atomic(path, content)
    logger.info("exported %d history entries to %s", len(ledger.history), out_dir)
    return list(files)


# ── Import ────────────────────────────────────────────────────


def parse_import(text: str) -> tuple[list[DailyHistory] | None, list[Task] | None]:
    """Parse an import document. Raises ImportParseError if it is malformed."""
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise ImportParseError(f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ImportParseError("import document must be a JSON object")

    history = None
    if data.get("history") is not None:
        raw = data["history"]
        if not isinstance(raw, list) or not all(isinstance(d, dict) for d in raw):
            raise ImportParseError("history must be a list of objects")
        try:
            history = [DailyHistory.from_dict(d) for d in raw]
        except (TypeError, ValueError) as e:
            raise ImportParseError(f"bad history entry: {e}") from e
        for entry in history:
            try:
                datetime.strptime(entry.date, "%Y-%m-%d")
            except ValueError as e:
                raise ImportParseError(f"bad history date {entry.date!r}") from e

    completed = None
    if data.get("completedTasks") is not None:
        raw = data["completedTasks"]
        if not isinstance(raw, list) or not all(isinstance(t, dict) for t in raw):
            raise ImportParseError("completedTasks must be a list of objects")
        try:
            completed = [Task.from_dict(t) for t in raw]
        except (TypeError, ValueError) as e:
            raise ImportParseError(f"bad completed task: {e}") from e

    return history, completed


def import_data(ledger: HistoryLedger, text: str) -> bool:
    """Replace history and/or completed tasks from an export document.

    Returns False, leaving the ledger untouched, if the document is malformed.
    """
    try:
        history, completed = parse_import(text)
    except ImportParseError as e:
        logger.warning("import rejected: %s", e)
        return False
    ledger.replace_all(history=history, completed_tasks=completed)
    logger.info(
        "imported %s history entries, %s completed tasks",
        len(history) if history is not None else "no",
        len(completed) if completed is not None else "no",
    )
    return True
