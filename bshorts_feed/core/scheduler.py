"""Fixed-rate playlist scheduler with a single-flight guard."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable

from bshorts_feed.core.context import FeedContext
from bshorts_feed.core.logging import log_event
from bshorts_feed.core.models import CycleResult
from bshorts_feed.core.options import FeedOptions
from bshorts_feed.core.pipeline import run_cycle

logger = logging.getLogger("bshorts_feed")

CycleFn = Callable[[FeedOptions, FeedContext], Awaitable[CycleResult]]


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class PlaylistScheduler:
    """Runs one generation cycle at startup, then every ``interval_seconds``.

    Ticks fire at a fixed rate measured from ``run_forever`` start. A tick
    that arrives while a cycle is still running is a no-op, so two cycles
    never write the same files at once.
    """

    def __init__(
        self,
        options: FeedOptions,
        context: FeedContext,
        *,
        cycle: CycleFn = run_cycle,
    ) -> None:
        self._options = options
        self._context = context
        self._cycle = cycle
        self._state = SchedulerState.IDLE
        self._tasks: set[asyncio.Task] = set()
        self.completed_cycles = 0
        self.skipped_ticks = 0

    @property
    def state(self) -> SchedulerState:
        return self._state

    async def tick(self) -> CycleResult | None:
        """Start a cycle unless one is in flight. Never raises."""
        # No await between the check and the set: the event loop cannot
        # interleave another tick here.
        if self._state is SchedulerState.RUNNING:
            self.skipped_ticks += 1
            log_event(
                logging.WARNING,
                "Previous generation cycle still running; skipping tick",
                event="tick_skipped",
            )
            return None
        self._state = SchedulerState.RUNNING

        try:
            result = await self._cycle(self._options, self._context)
            self.completed_cycles += 1
            return result
        except Exception:
            logger.exception("Generation cycle failed")
            return None
        finally:
            self._state = SchedulerState.IDLE

    def _spawn_tick(self) -> asyncio.Task:
        task = asyncio.create_task(self.tick())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def run_forever(self, *, max_ticks: int | None = None) -> None:
        """Fire the startup cycle, then tick on a fixed-rate schedule.

        ``max_ticks`` bounds the number of interval ticks (startup run not
        counted) and then waits for in-flight cycles to finish.
        """
        loop = asyncio.get_running_loop()
        interval = self._options.interval_seconds
        self._spawn_tick()
        logger.info("Scheduler started: every %.0f seconds", interval)

        next_fire = loop.time() + interval
        fired = 0
        while max_ticks is None or fired < max_ticks:
            await asyncio.sleep(max(0.0, next_fire - loop.time()))
            next_fire += interval
            fired += 1
            self._spawn_tick()

        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
