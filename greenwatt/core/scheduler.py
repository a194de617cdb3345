import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class TickScheduler:
    """Runs an async callback on a fixed interval until stopped"""

    def __init__(
        self,
        interval: float,
        callback: Callable[[], Awaitable[object]],
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if interval <= 0:
            raise ValueError("Tick interval must be positive")
        self.interval = interval
        self._callback = callback
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self.tick_count = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the periodic task on the running event loop"""
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info(f"Tick scheduler started with interval {self.interval}s")

    async def stop(self) -> None:
        """Cancel the periodic task and wait for it to finish"""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info(f"Tick scheduler stopped after {self.tick_count} ticks")

    async def _run(self) -> None:
        while True:
            await self._sleep(self.interval)
            await self._fire()

    async def _fire(self) -> None:
        self.tick_count += 1
        try:
            await self._callback()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # A failed tick must not stop the schedule
            logger.error(f"Tick {self.tick_count} failed: {e}")
