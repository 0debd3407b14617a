"""Host timer facility backed by APScheduler.

Each key owns at most one pending one-shot job (`DateTrigger`); arming a key
again replaces its job. Jobs live in APScheduler's memory job store only:
pending wake-ups do not survive a restart, and the coordinator re-arms them
from the schedule table at startup. Recurring maintenance work (the daily
resync) runs on the same scheduler as an `IntervalTrigger` job.

Exact arming can be denied by configuration to mirror hosts that withhold
exact-alarm permission; callers then fall back to `arm_inexact`, which rounds
the wake-up up to the next `inexact_window` boundary.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Protocol

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from moodjournal.logic.errors import AlarmPermissionError

logger = logging.getLogger(__name__)

ElapsedCallback = Callable[[str], None]


class TimerFacility(Protocol):
    def arm_exact(self, key: str, instant: datetime) -> None: ...

    def arm_inexact(self, key: str, instant: datetime) -> None: ...

    def cancel(self, key: str) -> None: ...


class ManagedTimerFacility(TimerFacility, Protocol):
    """A facility whose lifecycle and elapsed callback the app factory controls."""

    def bind(self, callback: ElapsedCallback) -> None: ...

    def start(self) -> None: ...

    def shutdown(self) -> None: ...

    def add_recurring(
        self, job_id: str, func: Callable[[], object], interval: timedelta, first_run: datetime
    ) -> None: ...

    def remove_recurring(self, job_id: str) -> None: ...


def round_up(instant: datetime, window: timedelta) -> datetime:
    """Round `instant` up to the next multiple of `window` since the epoch."""
    seconds = window.total_seconds()
    if seconds <= 0:
        return instant
    epoch = instant.astimezone(timezone.utc).timestamp()
    return datetime.fromtimestamp(math.ceil(epoch / seconds) * seconds, tz=timezone.utc)


class APSchedulerTimerFacility:
    def __init__(
        self,
        *,
        exact_allowed: bool = True,
        inexact_window: timedelta = timedelta(minutes=1),
        scheduler: Optional[BaseScheduler] = None,
    ) -> None:
        self.exact_allowed = exact_allowed
        self.inexact_window = inexact_window
        self._scheduler = scheduler or BackgroundScheduler(
            timezone=timezone.utc,
            job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": None},
        )
        self._on_elapsed: Optional[ElapsedCallback] = None

    def bind(self, callback: ElapsedCallback) -> None:
        """Register the handler invoked with the key when a timer elapses."""
        self._on_elapsed = callback

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def start(self) -> None:
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("timer_facility_started")

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("timer_facility_stopped")

    def arm_exact(self, key: str, instant: datetime) -> None:
        if not self.exact_allowed:
            raise AlarmPermissionError("exact alarms are not permitted on this host")
        self._add(key, instant)

    def arm_inexact(self, key: str, instant: datetime) -> None:
        self._add(key, round_up(instant, self.inexact_window))

    def cancel(self, key: str) -> None:
        try:
            self._scheduler.remove_job(key)
        except JobLookupError:
            logger.debug("timer_cancel_nothing_pending key=%s", key)

    def add_recurring(
        self, job_id: str, func: Callable[[], object], interval: timedelta, first_run: datetime
    ) -> None:
        """Run `func` every `interval`, first at `first_run`; replaces a job with the same id."""
        self._scheduler.add_job(
            func,
            trigger=IntervalTrigger(seconds=interval.total_seconds(), timezone=timezone.utc),
            id=job_id,
            name=f"recurring:{job_id}",
            next_run_time=first_run,
            replace_existing=True,
        )
        logger.info(
            "recurring_job_added id=%s interval_s=%s first_run=%s",
            job_id,
            int(interval.total_seconds()),
            first_run.isoformat(),
        )

    def remove_recurring(self, job_id: str) -> None:
        try:
            self._scheduler.remove_job(job_id)
        except JobLookupError:
            logger.debug("recurring_job_missing id=%s", job_id)

    def pending(self) -> dict:
        """One-shot wake-ups by key; recurring jobs are not listed."""
        return {
            job.id: job.trigger.run_date
            for job in self._scheduler.get_jobs()
            if isinstance(job.trigger, DateTrigger)
        }

    def _add(self, key: str, run_date: datetime) -> None:
        self._scheduler.add_job(
            self._fire,
            trigger=DateTrigger(run_date=run_date, timezone=timezone.utc),
            args=[key],
            id=key,
            name=f"prompt:{key}",
            replace_existing=True,
        )
        logger.debug("timer_armed key=%s run_date=%s", key, run_date.isoformat())

    def _fire(self, key: str) -> None:
        callback = self._on_elapsed
        if callback is None:
            logger.warning("timer_elapsed_unbound key=%s", key)
            return
        callback(key)


__all__ = ["ElapsedCallback", "TimerFacility", "ManagedTimerFacility", "APSchedulerTimerFacility", "round_up"]
