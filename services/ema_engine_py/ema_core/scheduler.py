# ema_core/scheduler.py
"""Timer-driven refresh of a pipeline call, outside the core.

Ticks start a new run every ``interval`` seconds whether or not the
previous run has finished.  Runs are numbered; a run's outcome is only
delivered if no later run has been delivered already (last writer wins),
so a slow, superseded fetch can never overwrite fresher data.
"""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Generic, Optional, Set, TypeVar

from . import config
from .errors import MarketDataError

logger = config.get_logger("ema_scheduler")

T = TypeVar("T")

DEFAULT_REFRESH_SECS = 120.0


class RefreshScheduler(Generic[T]):
    def __init__(
        self,
        job: Callable[[], Awaitable[T]],
        interval: float = DEFAULT_REFRESH_SECS,
        on_result: Optional[Callable[[T], None]] = None,
        on_error: Optional[Callable[[MarketDataError], None]] = None,
    ):
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self.job = job
        self.interval = interval
        self.on_result = on_result
        self.on_error = on_error
        self.latest: Optional[T] = None
        self._issued = 0
        self._applied = 0
        self._stopping = asyncio.Event()
        self._tasks: Set[asyncio.Task] = set()

    @property
    def applied_run(self) -> int:
        """Sequence number of the run whose outcome was delivered last."""
        return self._applied

    async def run_once(self) -> bool:
        """
        Run the job once.  Returns True if its outcome was delivered,
        False if a newer run had already been delivered.  Failures of a
        current run go to ``on_error`` or are raised when none is set.
        """
        self._issued += 1
        seq = self._issued
        try:
            result = await self.job()
        except MarketDataError as e:
            if seq < self._applied:
                logger.debug("Dropping error from superseded run %s: %s", seq, e)
                return False
            self._applied = seq
            if self.on_error is None:
                raise
            self.on_error(e)
            return True

        if seq < self._applied:
            logger.debug("Dropping result from superseded run %s (latest %s)", seq, self._applied)
            return False
        self._applied = seq
        self.latest = result
        if self.on_result is not None:
            self.on_result(result)
        return True

    async def _tick(self) -> None:
        try:
            await self.run_once()
        except MarketDataError as e:
            logger.warning("Refresh failed: %s", e)
        except Exception:
            logger.exception("Unhandled error in refresh run")

    async def run_forever(self) -> None:
        self._stopping.clear()
        while not self._stopping.is_set():
            task = asyncio.create_task(self._tick())
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
        pending = list(self._tasks)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    def stop(self) -> None:
        self._stopping.set()
