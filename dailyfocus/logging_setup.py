"""Logging configuration for DailyFocus entry points.

Library modules only create loggers; handlers are installed here, once, by
whatever runs the app.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from dailyfocus.workspace import log_dir as _default_log_dir

APP_LOGGERS = ("dailyfocus", "ui")


class _ConsoleNoiseFilter(logging.Filter):
    """Keep the console readable.

    - our own records pass at the handler's level
    - third-party records only at ERROR and above
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name.split(".", 1)[0]
        if name in APP_LOGGERS:
            return True
        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path | None = None,
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """Configure console + file logging. Returns the log file path.

    Call this once, before the first log record.
    """
    log_dir = Path(log_dir) if log_dir is not None else _default_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "dailyfocus.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    logging.captureWarnings(True)
    return log_file
