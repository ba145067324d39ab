"""
Time sources for tickers and pollers.

Every timed component sleeps through a scheduler so that production code runs
on the event loop clock while tests advance a virtual clock by hand.
"""

import asyncio
import heapq
import itertools
from typing import List, Tuple


class AsyncioScheduler:
    """Scheduler backed by the running event loop."""

    def now(self) -> float:
        return asyncio.get_running_loop().time()

    async def sleep(self, seconds: float):
        await asyncio.sleep(seconds)


class VirtualScheduler:
    """
    Manually driven clock.

    ``sleep()`` parks the caller until ``advance()`` moves time past its
    deadline. Timers fire in deadline order and the event loop is given a few
    turns after each one so the woken tasks can run to their next sleep.

    Example:
        scheduler = VirtualScheduler()
        ticker = Ticker(scheduler)
        ticker.start(print)
        await scheduler.advance(3)   # prints 1, 2, 3
    """

    SETTLE_TURNS = 20

    def __init__(self):
        self._now = 0.0
        self._timers: List[Tuple[float, int, asyncio.Future]] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self._now

    async def sleep(self, seconds: float):
        future = asyncio.get_running_loop().create_future()
        heapq.heappush(self._timers, (self._now + max(seconds, 0.0), next(self._counter), future))
        await future

    @property
    def pending(self) -> int:
        """Number of sleepers that have not been woken or cancelled."""
        return sum(1 for _, _, future in self._timers if not future.done())

    async def advance(self, seconds: float):
        """Move the clock forward, waking every sleeper whose deadline passes."""
        target = self._now + seconds
        await self.settle()
        while self._timers and self._timers[0][0] <= target:
            deadline, _, future = heapq.heappop(self._timers)
            if future.done():
                continue
            self._now = deadline
            future.set_result(None)
            await self.settle()
        self._now = target
        await self.settle()

    async def settle(self):
        """Give ready tasks a chance to run."""
        for _ in range(self.SETTLE_TURNS):
            await asyncio.sleep(0)
