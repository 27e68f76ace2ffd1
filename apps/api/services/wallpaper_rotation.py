"""Self-rearming wall-clock timers for the wallpaper shuffle and daily image jobs."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, time, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, Optional
from zoneinfo import ZoneInfo

from config import settings
from services.wallpaper import WallpaperService

logger = logging.getLogger(__name__)

TIMER_IDLE = "idle"
TIMER_ARMED = "armed"
TIMER_FIRING = "firing"


def parse_trigger_time(value: str) -> time:
    """Parse ``HH:MM`` into a ``datetime.time``."""
    hours, _, minutes = str(value or "").strip().partition(":")
    try:
        return time(hour=int(hours), minute=int(minutes or 0))
    except ValueError as exc:
        raise ValueError(f"Invalid trigger time {value!r}; expected HH:MM") from exc


def next_fire_time(now: datetime, at: time) -> datetime:
    """Next occurrence of ``at`` strictly after ``now`` (today if still ahead, else tomorrow)."""
    target = now.replace(hour=at.hour, minute=at.minute, second=0, microsecond=0)
    if target <= now:
        target = target + timedelta(days=1)
    return target


def seconds_until(target: datetime, now: datetime) -> float:
    delta = target.astimezone(timezone.utc) - now.astimezone(timezone.utc)
    return max(delta.total_seconds(), 0.0)


async def run_job_safely(name: str, job: Callable[[], Awaitable[Any]]) -> bool:
    """Run a scheduled job; failures are logged so the timer keeps looping."""
    try:
        await job()
    except Exception:
        logger.exception("Wallpaper %s job failed; next attempt at the following trigger", name)
        return False
    return True


class DailyTimer:
    """One-shot timer that re-arms itself 24 hours after each target time."""

    def __init__(
        self,
        name: str,
        at: time,
        job: Callable[[], Awaitable[Any]],
        *,
        tz: ZoneInfo,
        now: Optional[Callable[[], datetime]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.name = name
        self.at = at
        self.tz = tz
        self._job = job
        self._now_fn = now
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self.state = TIMER_IDLE
        self.next_fire_at: Optional[datetime] = None
        self.fire_count = 0

    def _now(self) -> datetime:
        if self._now_fn is not None:
            return self._now_fn()
        return datetime.now(self.tz)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name=f"wallpaper-{self.name}-timer")

    async def _run(self) -> None:
        target = next_fire_time(self._now(), self.at)
        while True:
            self.state = TIMER_ARMED
            self.next_fire_at = target
            logger.info("Wallpaper %s timer armed for %s", self.name, target.isoformat())
            await self._sleep(seconds_until(target, self._now()))

            self.state = TIMER_FIRING
            self.fire_count += 1
            await run_job_safely(self.name, self._job)

            target = target + timedelta(days=1)
            now = self._now()
            if target <= now:
                # process was suspended past a whole cycle
                target = next_fire_time(now, self.at)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self.state = TIMER_IDLE
        self.next_fire_at = None

    def status(self) -> Dict[str, Any]:
        return {
            "state": self.state,
            "trigger_time": self.at.strftime("%H:%M"),
            "next_fire_at": self.next_fire_at.isoformat() if self.next_fire_at else None,
            "fire_count": self.fire_count,
        }


class WallpaperRotationScheduler:
    """Owns the shuffle and daily-image timers for one process.

    Schedule state is not persisted, so ``start`` also runs both jobs once in
    the background to cover a rotation missed while the process was down.
    """

    def __init__(
        self,
        service: WallpaperService,
        *,
        shuffle_at: time,
        daily_at: time,
        now: Optional[Callable[[], datetime]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.service = service
        self.shuffle_timer = DailyTimer(
            "shuffle", shuffle_at, self._shuffle_job, tz=service.tz, now=now, sleep=sleep
        )
        self.daily_timer = DailyTimer(
            "daily", daily_at, self._daily_job, tz=service.tz, now=now, sleep=sleep
        )
        self._startup_task: Optional[asyncio.Task] = None

    async def _shuffle_job(self) -> None:
        await self.service.shuffle()

    async def _daily_job(self) -> None:
        await self.service.refresh_daily_image()

    async def _startup_daily_job(self) -> None:
        today = self.service.today()
        if await self.service.has_history_for(today):
            logger.info("Daily wallpaper for %s already recorded; startup refresh skipped", today)
            return
        await self.service.refresh_daily_image(today)

    async def run_startup_jobs(self) -> None:
        await run_job_safely("shuffle", self._shuffle_job)
        await run_job_safely("daily", self._startup_daily_job)

    def start(self, run_startup_jobs: bool = True) -> None:
        if run_startup_jobs and self._startup_task is None:
            self._startup_task = asyncio.create_task(self.run_startup_jobs(), name="wallpaper-startup")
        self.shuffle_timer.start()
        self.daily_timer.start()

    async def stop(self) -> None:
        task, self._startup_task = self._startup_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self.shuffle_timer.stop()
        await self.daily_timer.stop()

    def status(self) -> Dict[str, Any]:
        return {
            "shuffle": self.shuffle_timer.status(),
            "daily": self.daily_timer.status(),
        }


def build_rotation_scheduler(service: WallpaperService) -> WallpaperRotationScheduler:
    return WallpaperRotationScheduler(
        service,
        shuffle_at=parse_trigger_time(settings.WALLPAPER_SHUFFLE_TIME),
        daily_at=parse_trigger_time(settings.WALLPAPER_DAILY_TIME),
    )
