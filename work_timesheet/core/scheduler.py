"""
Single-slot deferred callbacks on the running asyncio loop.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

log = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


class ScheduledTask:
    """
    Holds at most one pending "sleep, then call back" task.

    Scheduling a new run cancels the pending one first, so a slot is a
    debounce by construction. A callback may reschedule its own slot.
    """

    def __init__(self, name: str, sleep: SleepFunc = asyncio.sleep):
        self.name = name
        self._sleep = sleep
        self._task: asyncio.Task | None = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self, delay: float, callback: Callable[[], None]) -> None:
        """
        Runs `callback` after `delay` seconds, replacing any pending run.

        Must be called while an event loop is running.
        """
        self.cancel()
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(
            self._run(delay, callback), name=f"{self.name}-scheduled"
        )
        log.debug(f"Scheduled '{self.name}' in {delay:.2f}s.")

    def cancel(self) -> bool:
        """Cancels the pending run. Returns True if something was cancelled."""
        task = self._task
        if task is None or task.done():
            self._task = None
            return False
        if task is asyncio.current_task():
            # Called from inside the callback: the run is already finishing.
            self._task = None
            return False
        task.cancel()
        self._task = None
        log.debug(f"Cancelled pending '{self.name}'.")
        return True

    async def _run(self, delay: float, callback: Callable[[], None]) -> None:
        await self._sleep(delay)
        callback()

    async def wait(self) -> None:
        """Waits until the slot is empty, following any reschedules."""
        while self._task is not None and not self._task.done():
            await asyncio.wait({self._task})
