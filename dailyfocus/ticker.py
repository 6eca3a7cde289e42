"""Repeating-job tick sources for DailyFocus.

A ticker runs callbacks at a fixed interval and hands back a cancellable
job per registration. The timer engine registers one job per running task;
the board registers one for the day-boundary poll.

- ManualTicker: advanced explicitly, one simulated second at a time.
- AsyncioTicker: runs jobs on an asyncio event loop. Registration and
  cancellation are safe from other threads.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable

logger = logging.getLogger(__name__)


class TickerJob:
    """Handle for a repeating job."""

    def __init__(self, interval: float, callback: Callable[[], None]) -> None:
        self.interval = interval
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class Ticker(ABC):
    @abstractmethod
    def every(self, interval: float, callback: Callable[[], None]) -> TickerJob:
        """Run *callback* every *interval* seconds until the job is cancelled."""


class ManualTicker(Ticker):
    """Ticker driven by explicit ``advance`` calls, in whole seconds."""

    def __init__(self) -> None:
        self.elapsed = 0
        self._countdown: dict[TickerJob, int] = {}

    def every(self, interval: float, callback: Callable[[], None]) -> TickerJob:
        job = TickerJob(interval, callback)
        self._countdown[job] = max(1, int(interval))
        return job

    @property
    def active_jobs(self) -> int:
        return sum(1 for job in self._countdown if not job.cancelled)

    def advance(self, seconds: int = 1) -> None:
        for _ in range(seconds):
            self.elapsed += 1
            # Jobs registered by a callback start counting on the next second.
            for job in list(self._countdown):
                if job.cancelled:
                    continue
                self._countdown[job] -= 1
                if self._countdown[job] <= 0:
                    self._countdown[job] = max(1, int(job.interval))
                    job.callback()
            self._countdown = {j: n for j, n in self._countdown.items() if not j.cancelled}


class _LoopJob(TickerJob):
    def __init__(self, loop: asyncio.AbstractEventLoop, interval: float, callback: Callable[[], None]) -> None:
        super().__init__(interval, callback)
        self._loop = loop

    def arm(self) -> None:
        if not self.cancelled:
            self._loop.call_later(self.interval, self._run)

    def _run(self) -> None:
        if self.cancelled:
            return
        try:
            self.callback()
        except Exception:
            logger.exception("ticker job failed")
        self.arm()


class AsyncioTicker(Ticker):
    """Ticker backed by ``loop.call_later``."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self.loop = loop if loop is not None else asyncio.get_running_loop()

    def every(self, interval: float, callback: Callable[[], None]) -> TickerJob:
        job = _LoopJob(self.loop, interval, callback)
        self.loop.call_soon_threadsafe(job.arm)
        return job
