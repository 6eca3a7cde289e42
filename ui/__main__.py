"""Run the DailyFocus API: ``python -m ui``.

DAILYFOCUS_HOST and DAILYFOCUS_PORT override the bind address.
"""

from __future__ import annotations

import logging
import os

import uvicorn

from dailyfocus.logging_setup import setup_logging

logger = logging.getLogger("ui")


def main() -> None:
    log_file = setup_logging()
    host = os.environ.get("DAILYFOCUS_HOST", "127.0.0.1")
    port = int(os.environ.get("DAILYFOCUS_PORT", "8765"))
    logger.info("serving on http://%s:%d (log: %s)", host, port, log_file)
    uvicorn.run("ui.app:app", host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()
