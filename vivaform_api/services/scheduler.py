from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from vivaform_api.core.dates import utcnow
from vivaform_api.db.session import session_scope
from vivaform_api.services.recommendations import RecommendationGenerator

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def seconds_until_next_run(now: datetime, hour: int, tz_name: str) -> float:
    """Seconds from `now` until the next `hour`:00 in the given time zone (strictly in the future)."""
    tz = ZoneInfo(tz_name)
    local_now = now.astimezone(tz)
    next_run = local_now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if next_run <= local_now:
        next_run += timedelta(days=1)
    return (next_run - local_now).total_seconds()


class RecommendationScheduler:
    """
    Background asyncio task that regenerates recommendations for all users once a day.

    Started on application startup when RECOMMENDATIONS_SCHEDULE_ENABLED is set and
    cancelled on shutdown.
    """

    def __init__(self, hour: int, tz_name: str) -> None:
        self.hour = hour
        self.tz_name = tz_name
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="recommendations-scheduler")
        logger.info("Recommendations scheduler started (daily at %02d:00 %s)", self.hour, self.tz_name)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Recommendations scheduler stopped")

    async def run_once(self) -> int:
        async with session_scope() as session:
            return await RecommendationGenerator(session).generate_for_all_users()

    async def _loop(self) -> None:
        while True:
            delay = seconds_until_next_run(utcnow(), self.hour, self.tz_name)
            logger.info("Next recommendations run in %.0f seconds", delay)
            await asyncio.sleep(delay)
            try:
                count = await self.run_once()
                logger.info("Scheduled run generated %d recommendations", count)
            except Exception:
                logger.exception("Scheduled recommendations run failed")
