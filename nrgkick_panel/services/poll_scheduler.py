# nrgkick_panel/services/poll_scheduler.py

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List, Optional

Tick = Callable[[], Awaitable[object]]


class ScheduledTask:
    """Handle for a one-shot delayed callback that can be invalidated."""

    def __init__(self, delay: float, callback: Tick, log):
        self.delay = delay
        self.callback = callback
        self.log = log
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        await asyncio.sleep(self.delay)
        try:
            await self.callback()
        except Exception as exc:
            self.log.warning("Scheduled refresh failed: %s", exc)

    @property
    def done(self) -> bool:
        return self._task.done()

    @property
    def cancelled(self) -> bool:
        return self._task.cancelled()

    def cancel(self) -> None:
        if not self._task.done():
            self._task.cancel()

    async def wait(self) -> None:
        try:
            await self._task
        except asyncio.CancelledError:
            pass


class PollScheduler:
    """Single repeating timer; at most one poll loop is active at a time."""

    def __init__(self, interval: float, tick: Tick, log):
        self.interval = interval
        self.tick = tick
        self.log = log
        self._task: Optional[asyncio.Task] = None
        self._pending: List[ScheduledTask] = []

    # ------------------------------------------------------------------
    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        self.stop()
        self._task = asyncio.get_running_loop().create_task(self._loop())
        self.log.debug("Polling every %.1fs", self.interval)

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
            self.log.debug("Polling stopped")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.tick()
            except Exception as exc:
                # A failed tick never stops polling; only stop() does.
                self.log.warning("Status update failed: %s", exc)

    # ------------------------------------------------------------------
    def schedule_once(self, delay: float, callback: Tick) -> ScheduledTask:
        self._pending = [task for task in self._pending if not task.done]
        handle = ScheduledTask(delay, callback, self.log)
        self._pending.append(handle)
        return handle

    @property
    def pending(self) -> List[ScheduledTask]:
        return [task for task in self._pending if not task.done]

    def cancel_pending(self) -> None:
        for task in self._pending:
            task.cancel()
        self._pending = []
