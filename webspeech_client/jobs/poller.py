"""
Bounded polling of remote status endpoints.

A poll session moves IDLE -> POLLING -> TERMINAL | EXHAUSTED | CANCELLED.
Checks run immediately (or after one interval when asked) and then on a fixed
interval; the attempt budget ends the session silently, leaving the last delivered status in place.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

from .logger import JobLogger, create_logger
from .models import PollSession, PollState
from .scheduler import AsyncioScheduler

CheckFn = Callable[[], Awaitable[Any]]
StatusCallback = Callable[[Any], None]
TerminalPredicate = Callable[[Any], bool]


def never_terminal(_status: Any) -> bool:
    return False


class BoundedPoller:
    """
    Runs at most one poll session at a time.

    Example:
        poller = BoundedPoller(name="sts-status")
        poller.start_polling(
            check=fetch_status,
            interval=5.0,
            max_attempts=60,
            on_status=show_status,
            is_terminal=lambda status: status.running,
        )
    """

    def __init__(self, scheduler=None, name: str = "poller", logger: Optional[JobLogger] = None):
        self._scheduler = scheduler or AsyncioScheduler()
        self.name = name
        self.logger = logger or create_logger(f"poller.{name}")
        self.session: Optional[PollSession] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def attempts(self) -> int:
        return self.session.attempts if self.session else 0

    @property
    def active(self) -> bool:
        return self.session is not None and self.session.active

    def start_polling(
        self,
        check: CheckFn,
        interval: float,
        max_attempts: Optional[int] = None,
        on_status: Optional[StatusCallback] = None,
        is_terminal: TerminalPredicate = never_terminal,
        delay_first: bool = False
    ) -> PollSession:
        """
        Start a new poll session, replacing any running one.

        Args:
            check: Coroutine function returning the current status
            interval: Seconds between attempts
            max_attempts: Attempt budget; None polls until stopped
            on_status: Receives every successfully fetched status
            is_terminal: Returns True for the status that ends polling
            delay_first: Wait one interval before the first check

        Returns:
            The new PollSession
        """
        self.stop_polling()
        session = PollSession(interval=interval, max_attempts=max_attempts, state=PollState.POLLING)
        self.session = session
        self._task = asyncio.get_running_loop().create_task(
            self._run(session, check, on_status, is_terminal, delay_first)
        )
        self.logger.debug(
            "Polling started",
            metadata={'interval': interval, 'max_attempts': max_attempts}
        )
        return session

    def stop_polling(self):
        """Cancel any pending attempt and reset the attempt counter."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
        if self.session is not None:
            if self.session.active:
                self.session.state = PollState.CANCELLED
                self.logger.debug("Polling cancelled", metadata={'attempts': self.session.attempts})
            self.session = None

    async def _run(
        self,
        session: PollSession,
        check: CheckFn,
        on_status: Optional[StatusCallback],
        is_terminal: TerminalPredicate,
        delay_first: bool
    ):
        if delay_first:
            await self._scheduler.sleep(session.interval)
        while True:
            session.attempts += 1
            try:
                status = await check()
            except Exception as e:
                self.logger.warning(
                    f"Status check failed: {e}",
                    metadata={'attempt': session.attempts}
                )
            else:
                if on_status:
                    try:
                        on_status(status)
                    except Exception as e:
                        self.logger.log_error_with_context(e, f"{self.name} status delivery")
                if is_terminal(status):
                    session.state = PollState.TERMINAL
                    self.logger.debug("Terminal status observed", metadata={'attempts': session.attempts})
                    return

            if session.budget_spent():
                session.state = PollState.EXHAUSTED
                self.logger.info(
                    "Poll budget exhausted",
                    metadata={'attempts': session.attempts}
                )
                return

            await self._scheduler.sleep(session.interval)
