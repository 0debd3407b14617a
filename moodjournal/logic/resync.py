"""Daily self-healing resync.

Registers `AlarmCoordinator.sync_all` as a recurring job on the timer
facility's scheduler: first run after `initial_delay`, then every `interval`.
Reconciliation is idempotent, so a run that overlaps a user-triggered sync
only re-confirms the armed timers. A failed run is logged and the job stays
registered until `stop()`.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from moodjournal.logic.alarm_coordinator import AlarmCoordinator
from moodjournal.logic.domain import Clock, utcnow
from moodjournal.logic.timer_facility import ManagedTimerFacility

logger = logging.getLogger(__name__)

RESYNC_JOB_ID = "moodjournal-resync"


class PeriodicResync:
    def __init__(
        self,
        coordinator: AlarmCoordinator,
        timers: ManagedTimerFacility,
        *,
        interval: timedelta = timedelta(hours=24),
        initial_delay: timedelta = timedelta(minutes=60),
        clock: Clock = utcnow,
    ) -> None:
        if interval.total_seconds() <= 0:
            raise ValueError("resync interval must be positive")
        self.coordinator = coordinator
        self.timers = timers
        self.interval = interval
        self.initial_delay = initial_delay
        self.clock = clock
        self.running = False

    def start(self) -> None:
        if self.running:
            return
        self.timers.add_recurring(
            RESYNC_JOB_ID, self.run_once, self.interval, self.clock() + self.initial_delay
        )
        self.running = True
        logger.info(
            "resync_started interval_s=%s initial_delay_s=%s",
            int(self.interval.total_seconds()),
            int(self.initial_delay.total_seconds()),
        )

    def stop(self) -> None:
        if not self.running:
            return
        self.timers.remove_recurring(RESYNC_JOB_ID)
        self.running = False
        logger.info("resync_stopped")

    def run_once(self) -> bool:
        """Run one sync; return False when it failed."""
        try:
            self.coordinator.sync_all()
        except Exception:
            logger.error("resync_failed", exc_info=True)
            return False
        return True


__all__ = ["PeriodicResync", "RESYNC_JOB_ID"]
