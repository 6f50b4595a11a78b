"""
Scheduler Runner - минутный тик уведомлений

Запускается как background task жизненного цикла бота. Если прогон тика
занял больше минуты, пропущенные минуты прогоняются по порядку: время
пользователя совпадает только с одной минутой HH:MM.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from intentions_bot.dates import DEFAULT_TIMEZONE, anchored_now

from .jobs import NotificationJobs

logger = logging.getLogger(__name__)

ONE_MINUTE = timedelta(minutes=1)

# Больше не догоняем (долгий сон процесса): дальше только текущая минута
MAX_CATCH_UP_MINUTES = 60


class SchedulerRunner:
    """Вызывает NotificationJobs.run_tick для каждой минуты ровно один раз"""

    def __init__(
        self,
        jobs: NotificationJobs,
        timezone: str = DEFAULT_TIMEZONE,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.jobs = jobs
        self.timezone = timezone
        self._clock = clock or (lambda: anchored_now(self.timezone))
        self._stopped = asyncio.Event()
        self._last_tick: Optional[datetime] = None

    def _due_minutes(self, current: datetime):
        if self._last_tick is None or current - self._last_tick > ONE_MINUTE * MAX_CATCH_UP_MINUTES:
            if self._last_tick is not None:
                logger.warning(f"⚠️ Scheduler was idle since {self._last_tick:%H:%M}, skipping to {current:%H:%M}")
            return [current]

        minutes = []
        minute = self._last_tick + ONE_MINUTE
        while minute <= current:
            minutes.append(minute)
            minute += ONE_MINUTE
        return minutes

    async def tick(self):
        current = self._clock().replace(second=0, microsecond=0)

        for minute in self._due_minutes(current):
            self._last_tick = minute
            try:
                await self.jobs.run_tick(minute)
            except Exception as e:
                logger.error(f"❌ Scheduler tick {minute:%Y-%m-%d %H:%M} failed: {e}", exc_info=True)

    async def run(self):
        logger.info(f"⏰ Scheduler started ({self.timezone})")

        while not self._stopped.is_set():
            await self.tick()

            now = self._clock()
            delay = 60 - now.second - now.microsecond / 1_000_000
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=max(delay, 0.5))
            except asyncio.TimeoutError:
                pass

        logger.info("⏰ Scheduler stopped")

    def stop(self):
        self._stopped.set()
