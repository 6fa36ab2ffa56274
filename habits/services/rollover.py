import asyncio
import logging
from typing import Awaitable, Callable, Optional

from django.conf import settings

from habits.services.calendar import DayKey, SystemClock, local_today

logger = logging.getLogger(__name__)

STABLE = "stable"
ROLLING_OVER = "rolling_over"

DEFAULT_INTERVAL_SECONDS = 60


class DailyRolloverController:
    """
    Keeps track of the day the engine believes is today.

    check() compares that day with the clock. When the clock has moved
    on, the cursor is advanced first and then ``on_rollover(new_day,
    previous_day)`` is awaited, so a second check racing with the first
    sees the new day and does nothing.
    """

    def __init__(
            self,
            *,
            on_rollover: Callable[[DayKey, DayKey], Awaitable[None]],
            clock=None,
            interval: Optional[float] = None,
    ):
        self.clock = clock or SystemClock()
        self.interval = interval if interval is not None else getattr(
            settings, "HABITS_ROLLOVER_INTERVAL_SECONDS", DEFAULT_INTERVAL_SECONDS
        )
        self.current_day = local_today(self.clock)
        self.state = STABLE
        self._on_rollover = on_rollover
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def check(self) -> bool:
        """Returns True when a rollover happened."""
        today = local_today(self.clock)
        if today == self.current_day:
            return False

        previous = self.current_day
        self.current_day = today
        self.state = ROLLING_OVER
        logger.info("Day rolled over from %s to %s", previous, today)
        try:
            await self._on_rollover(today, previous)
        finally:
            self.state = STABLE
        return True

    async def on_foreground(self) -> bool:
        return await self.check()

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.check()
            except Exception:
                logger.exception("Rollover check failed")

    def start(self):
        if self.is_running:
            return self._task
        self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    async def stop(self):
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
