"""WeeklyProfileScheduler -- recomputes all profiles every Monday 00:00 UTC."""

import asyncio
from datetime import datetime, time, timedelta, timezone
from typing import Awaitable, Callable, Optional

import structlog

from .models import ProfileUpdateSummary
from .profile import ProfileLearner

logger = structlog.get_logger()

MONDAY = 0


def next_run_after(now: datetime) -> datetime:
    """The first Monday 00:00 UTC strictly after ``now``."""
    now = now.astimezone(timezone.utc)
    days_ahead = (MONDAY - now.weekday()) % 7
    candidate = datetime.combine(
        now.date() + timedelta(days=days_ahead), time(0, 0), tzinfo=timezone.utc
    )
    if candidate <= now:
        candidate += timedelta(days=7)
    return candidate


class WeeklyProfileScheduler:
    """Background loop around :meth:`ProfileLearner.run_scheduled`."""

    def __init__(
        self,
        learner: ProfileLearner,
        clock: Optional[Callable[[], datetime]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._learner = learner
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None  # type: ignore[type-arg]
        self.last_summary: Optional[ProfileUpdateSummary] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def next_run_after(self, now: Optional[datetime] = None) -> datetime:
        return next_run_after(now or self._clock())

    async def start(self) -> None:
        """Start the loop. Calling it twice is a no-op."""
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="weekly-profile-update")
        logger.info("Profile scheduler started", next_run=self.next_run_after().isoformat())

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish."""
        task, self._task = self._task, None
        if task and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.info("Profile scheduler stopped")

    async def run_once(self) -> ProfileUpdateSummary:
        summary = await self._learner.run_scheduled()
        self.last_summary = summary
        return summary

    async def _loop(self) -> None:
        while True:
            now = self._clock()
            delay = (self.next_run_after(now) - now).total_seconds()
            await self._sleep(max(delay, 0.0))
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error("Scheduled profile update failed", error=str(exc))
