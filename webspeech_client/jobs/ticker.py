"""
One-second heartbeat used for job progress and recording limits.
"""

import asyncio
from typing import Callable, Optional

from .scheduler import AsyncioScheduler

TickCallback = Callable[[int], None]


class Ticker:
    """
    Emits ``on_tick(elapsed)`` once per second, counting from 1.

    The ticker does not know what it is timing. ``start()`` while running
    restarts the count; ``stop()`` is always safe and resets elapsed to 0.
    Must be started from inside a running event loop.
    """

    def __init__(self, scheduler=None, interval: float = 1.0):
        self._scheduler = scheduler or AsyncioScheduler()
        self._interval = interval
        self._task: Optional[asyncio.Task] = None
        self.elapsed = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, on_tick: Optional[TickCallback] = None):
        self.stop()
        self._task = asyncio.get_running_loop().create_task(self._run(on_tick))

    def stop(self):
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
        self.elapsed = 0

    async def _run(self, on_tick: Optional[TickCallback]):
        me = asyncio.current_task()
        while True:
            await self._scheduler.sleep(self._interval)
            # stop() may have swapped us out while we were waking up
            if self._task is not me:
                return
            self.elapsed += 1
            if on_tick:
                on_tick(self.elapsed)
