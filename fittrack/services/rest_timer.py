import asyncio
import logging
from contextlib import suppress
from typing import Callable, Optional

from fittrack.errors import InvalidArgument

logger = logging.getLogger(__name__)


class RestTimer:
    """A single cooperative rest countdown between sets.

    Purely advisory: it never touches stored sessions. Starting a countdown
    while one is running cancels the old one first.
    """

    def __init__(self, tick: float = 1.0):
        self.tick = tick
        self.remaining = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, seconds: int, on_tick: Optional[Callable[[int], None]] = None,
            on_finish: Optional[Callable[[], None]] = None) -> asyncio.Task:
        """Starts counting down from seconds. Must be called inside a running loop."""
        if seconds < 0:
            raise InvalidArgument("Rest time must be zero or more seconds")
        self.cancel()
        self.remaining = seconds
        self._task = asyncio.get_running_loop().create_task(self._run(on_tick, on_finish))
        logger.debug("Rest countdown started: %d s", seconds)
        return self._task

    def cancel(self) -> bool:
        """Stops the running countdown. Returns False if none was running."""
        if not self.running:
            return False
        self._task.cancel()
        self.remaining = 0
        logger.debug("Rest countdown cancelled")
        return True

    async def wait(self) -> None:
        """Waits until the countdown finishes or is cancelled."""
        if self._task is None:
            return
        with suppress(asyncio.CancelledError):
            await self._task

    async def _run(self, on_tick, on_finish) -> None:
        while self.remaining > 0:
            await asyncio.sleep(self.tick)
            self.remaining -= 1
            if on_tick:
                on_tick(self.remaining)
        logger.debug("Rest countdown finished")
        if on_finish:
            on_finish()
