"""Owned, named timers backed by asyncio tasks.

Each timer runs as a task named ``timer:<name>`` so that tests and shutdown
code can find anything left running. A timer may be cancelled from inside
its own callback; the loop then ends after the current tick.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], Awaitable[Any]]

TASK_PREFIX = "timer:"


def live_timer_tasks() -> list[asyncio.Task[Any]]:
    return [
        t
        for t in asyncio.all_tasks()
        if t.get_name().startswith(TASK_PREFIX) and not t.done()
    ]


async def _await_cancelled(task: asyncio.Task[Any] | None) -> None:
    if task is None or task is asyncio.current_task():
        return
    try:
        await task
    except asyncio.CancelledError:
        pass


class PeriodicTimer:
    """Calls ``callback`` every ``interval`` seconds until cancelled."""

    def __init__(
        self,
        name: str,
        interval: float,
        callback: TimerCallback,
        *,
        run_immediately: bool = False,
    ) -> None:
        self.name = name
        self._interval = interval
        self._callback = callback
        self._run_immediately = run_immediately
        self._task: asyncio.Task[None] | None = None
        self._stopped = False

    @property
    def active(self) -> bool:
        return self._task is not None and not self._stopped and not self._task.done()

    def start(self, *, run_immediately: bool | None = None) -> None:
        """Start ticking. ``run_immediately`` overrides the constructor default for this run."""
        if self.active:
            return
        if run_immediately is None:
            run_immediately = self._run_immediately
        self._stopped = False
        self._task = asyncio.create_task(self._run(run_immediately), name=f"{TASK_PREFIX}{self.name}")

    def cancel(self) -> None:
        self._stopped = True
        task = self._task
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()

    async def stop(self) -> None:
        self.cancel()
        task, self._task = self._task, None
        await _await_cancelled(task)

    def _owns_loop(self) -> bool:
        # a restarted timer replaces the task; the old loop must not keep going
        return not self._stopped and self._task is asyncio.current_task()

    async def _run(self, run_immediately: bool) -> None:
        if run_immediately:
            await self._tick()
        while self._owns_loop():
            await asyncio.sleep(self._interval)
            if not self._owns_loop():
                break
            await self._tick()

    async def _tick(self) -> None:
        try:
            await self._callback()
        except Exception:
            logger.exception("Timer %s callback failed", self.name)


class DebounceTimer:
    """One-shot timer; re-arming replaces the pending call."""

    def __init__(self, name: str, delay: float, callback: TimerCallback) -> None:
        self.name = name
        self._delay = delay
        self._callback = callback
        self._task: asyncio.Task[None] | None = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done() and not self._task.cancelling()

    def arm(self) -> None:
        self.cancel()
        self._task = asyncio.create_task(self._fire(), name=f"{TASK_PREFIX}{self.name}")

    def cancel(self) -> None:
        task = self._task
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()

    async def stop(self) -> None:
        self.cancel()
        task, self._task = self._task, None
        await _await_cancelled(task)

    async def _fire(self) -> None:
        await asyncio.sleep(self._delay)
        try:
            await self._callback()
        except Exception:
            logger.exception("Timer %s callback failed", self.name)
