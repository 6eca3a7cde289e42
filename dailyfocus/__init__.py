"""DailyFocus core library: tasks, per-task timers, day rollover and history.

Public API re-exports for convenient imports:
    from dailyfocus import TaskBoard, reconcile_day, current_streak, ...
"""

# Workspace & paths
from dailyfocus.workspace import (
    workspace_root,
    get_user_timezone,
    day_key,
    data_dir,
    blob_path,
    settings_path,
    hooks_config_path,
    log_dir,
    export_dir,
)

# File I/O
from dailyfocus.fileio import (
    read_text,
    read_json,
    read_yaml,
    write_text_atomic,
    write_json_atomic,
    write_yaml_atomic,
)

# Errors
from dailyfocus.errors import (
    DailyFocusError,
    StorageReadError,
    StorageWriteError,
    ImportParseError,
)

# Models
from dailyfocus.models import (
    PRIORITIES,
    Task,
    DailyStats,
    DailyHistory,
    PeriodStats,
    TimerState,
    ActiveTimer,
    DailyFocusState,
    Settings,
    completion_rate,
)

# Storage
from dailyfocus.storage import Store

# Day rollover
from dailyfocus.reconcile import DayRollover, reconcile_day, carry_over_task

# Ticking & timers
from dailyfocus.ticker import Ticker, TickerJob, ManualTicker, AsyncioTicker
from dailyfocus.timers import TimerEngine

# History
from dailyfocus.history import (
    HistoryLedger,
    current_streak,
    best_streak,
    weekly_stats,
    monthly_stats,
    productive_days,
    average_completion_rate,
    total_focus_time,
    average_tasks_per_day,
)

# Board
from dailyfocus.board import TaskBoard, sort_tasks, validate_task_input

# Export / import
from dailyfocus.export import (
    export_json,
    history_csv,
    completed_tasks_csv,
    write_exports,
    import_data,
)

# Hooks
from dailyfocus.hooks import run_hooks
