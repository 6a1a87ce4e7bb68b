"""Fixed-interval pass scheduler.

One pass runs immediately, then one per tick of a fixed wall-clock grid
(``start + k * interval``), with no jitter and no backoff. At most one pass is
in flight: a tick that fires while a pass is still running is either skipped
or coalesced into a single follow-up pass, depending on ``OverlapPolicy``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum

from loguru import logger

log = logger.bind(component="scheduler")

type PassFn = Callable[[], Awaitable[object]]

DEFAULT_INTERVAL = 30.0


class OverlapPolicy(Enum):
    SKIP = "skip"
    QUEUE = "queue"


class Scheduler:
    def __init__(
        self,
        interval: float = DEFAULT_INTERVAL,
        *,
        overlap: OverlapPolicy = OverlapPolicy.SKIP,
        max_passes: int | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        if max_passes is not None and max_passes < 1:
            raise ValueError(f"max_passes must be at least 1, got {max_passes}")
        self._interval = interval
        self._overlap = overlap
        self._max_passes = max_passes
        self._in_flight = False
        self._queued = False
        self._started = 0
        self._completed = 0
        self._skipped = 0
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def passes_started(self) -> int:
        return self._started

    @property
    def passes_completed(self) -> int:
        return self._completed

    @property
    def ticks_skipped(self) -> int:
        return self._skipped

    def _exhausted(self) -> bool:
        return self._max_passes is not None and self._started >= self._max_passes

    async def run(self, pass_fn: PassFn) -> None:
        """Run passes until ``max_passes`` is reached, or forever."""
        loop = asyncio.get_running_loop()
        start = loop.time()
        tick = 0
        log.info("Scheduler started: interval={interval}s overlap={overlap}",
                 interval=self._interval, overlap=self._overlap.value)
        try:
            while True:
                self._on_tick(pass_fn)
                if self._exhausted():
                    break
                tick += 1
                await asyncio.sleep(max(0.0, start + tick * self._interval - loop.time()))

            while self._tasks:
                await asyncio.gather(*self._tasks)
        finally:
            for task in self._tasks:
                task.cancel()

    def _on_tick(self, pass_fn: PassFn) -> None:
        if not self._in_flight:
            self._spawn(pass_fn)
            return

        match self._overlap:
            case OverlapPolicy.QUEUE:
                if not self._queued:
                    log.info("Previous pass still running; queueing one follow-up pass")
                self._queued = True
            case OverlapPolicy.SKIP:
                self._skipped += 1
                log.warning("Previous pass still running; skipping tick")

    def _spawn(self, pass_fn: PassFn) -> None:
        self._started += 1
        self._in_flight = True
        task = asyncio.create_task(self._run_pass(pass_fn, self._started))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_pass(self, pass_fn: PassFn, number: int) -> None:
        try:
            await pass_fn()
        except Exception:
            log.exception("Reconciliation pass {n} failed", n=number)
        finally:
            self._completed += 1
            self._in_flight = False

        if self._queued:
            self._queued = False
            if not self._exhausted():
                self._spawn(pass_fn)


__all__ = ["DEFAULT_INTERVAL", "OverlapPolicy", "PassFn", "Scheduler"]
