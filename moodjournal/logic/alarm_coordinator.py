"""Alarm coordinator: keeps one live timer per enabled schedule.

The coordinator is constructed explicitly (see `moodjournal.main`) with the
store engine, a timer facility and a notifier. It owns only the transient
`armed` map (schedule id -> ArmedTimer). That map is never persisted; it is
rebuilt from the schedule table at every start.

Every mutation of `armed` happens under one re-entrant lock, so a sync,
a fire callback and a user edit never interleave partial updates. A single
failing arm or cancel is logged and recorded in the SyncReport; the rest of
the batch still runs.

Recurrence is re-arm-on-fire: the host primitive is one-shot, so
`on_timer_elapsed` delivers the prompt and then arms the same schedule for
its next occurrence.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, tzinfo
from typing import Dict, List, Optional

from sqlalchemy.engine import Engine

from moodjournal.logic import repository_schedules
from moodjournal.logic.domain import Clock, utcnow
from moodjournal.logic.errors import AlarmPermissionError, NotFoundError, StoreError, ValidationError
from moodjournal.logic.events import SCHEDULES_SYNCED, publish
from moodjournal.logic.notifications import LoggingNotifier, Notifier, PromptPayload
from moodjournal.logic.schedule_engine import (
    DEFAULT_IMMEDIATE_FIRE_EPSILON,
    ArmedTimer,
    ReconcilePlan,
    as_utc,
    next_trigger,
    reconcile,
)
from moodjournal.logic.timer_facility import TimerFacility

logger = logging.getLogger(__name__)

SNOOZE_KEY = "snooze"
# A fire this far ahead of the armed instant belongs to a timer that was
# already replaced by a user edit.
STALE_FIRE_TOLERANCE = timedelta(minutes=1)


@dataclass
class SyncReport:
    armed: List[str] = field(default_factory=list)
    cancelled: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def action_count(self) -> int:
        return len(self.armed) + len(self.cancelled)

    def to_dict(self) -> dict:
        return {"armed": list(self.armed), "cancelled": list(self.cancelled), "failed": dict(self.failed)}


class AlarmCoordinator:
    def __init__(
        self,
        engine: Engine,
        timers: TimerFacility,
        notifier: Optional[Notifier] = None,
        *,
        tz: tzinfo,
        clock: Clock = utcnow,
        epsilon: timedelta = DEFAULT_IMMEDIATE_FIRE_EPSILON,
        default_snooze_minutes: int = 15,
    ) -> None:
        self.engine = engine
        self.timers = timers
        self.notifier = notifier or LoggingNotifier()
        self.tz = tz
        self.clock = clock
        self.epsilon = epsilon
        self.default_snooze_minutes = default_snooze_minutes
        self._lock = threading.RLock()
        self._armed: Dict[str, ArmedTimer] = {}
        self._snooze_at: Optional[datetime] = None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    def armed_snapshot(self) -> Dict[str, ArmedTimer]:
        with self._lock:
            return dict(self._armed)

    @property
    def snooze_at(self) -> Optional[datetime]:
        with self._lock:
            return self._snooze_at

    def _now(self, now: Optional[datetime]) -> datetime:
        return as_utc(now if now is not None else self.clock(), self.tz)

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------
    def sync_all(self, now: Optional[datetime] = None) -> SyncReport:
        """Bring armed timers in line with the schedule table.

        A failure to read the table propagates as StoreError; failures to
        arm or cancel individual timers do not.
        """
        with self._lock:
            now_utc = self._now(now)
            schedules = repository_schedules.list_schedules(engine=self.engine)
            plan = reconcile(schedules, self._armed, now_utc, self.tz, self.epsilon)
            report = self._apply(plan)
        if report.action_count or report.failed:
            logger.info(
                "schedules_synced armed=%s cancelled=%s failed=%s",
                len(report.armed),
                len(report.cancelled),
                len(report.failed),
            )
            publish(SCHEDULES_SYNCED, report.to_dict())
        return report

    request_sync = sync_all

    def arm_one(self, schedule_id: str, now: Optional[datetime] = None) -> SyncReport:
        """Reconcile a single schedule right after a user edit.

        Raises NotFoundError when the schedule does not exist.
        """
        with self._lock:
            now_utc = self._now(now)
            schedule = repository_schedules.get_schedule(schedule_id, engine=self.engine)
            if schedule is None:
                raise NotFoundError("schedule", schedule_id)
            current = {schedule_id: self._armed[schedule_id]} if schedule_id in self._armed else {}
            plan = reconcile([schedule], current, now_utc, self.tz, self.epsilon)
            return self._apply(plan)

    def cancel_one(self, schedule_id: str) -> SyncReport:
        with self._lock:
            return self._apply(ReconcilePlan(to_cancel=(schedule_id,)))

    def on_boot_or_process_restart(self, now: Optional[datetime] = None) -> SyncReport:
        """Forget every in-memory timer and rebuild from the schedule table."""
        with self._lock:
            self._armed.clear()
            self._snooze_at = None
            logger.info("coordinator_recovering")
            return self.sync_all(now)

    def _apply(self, plan: ReconcilePlan) -> SyncReport:
        report = SyncReport()
        for schedule_id in plan.to_cancel:
            try:
                self.timers.cancel(schedule_id)
            except Exception as exc:
                logger.error("schedule_cancel_failed schedule_id=%s", schedule_id, exc_info=True)
                report.failed[schedule_id] = str(exc) or exc.__class__.__name__
                continue
            self._armed.pop(schedule_id, None)
            report.cancelled.append(schedule_id)
        for request in plan.to_arm:
            try:
                self._arm(request.schedule_id, request.trigger_at)
            except Exception as exc:
                logger.error("schedule_arm_failed schedule_id=%s", request.schedule_id, exc_info=True)
                report.failed[request.schedule_id] = str(exc) or exc.__class__.__name__
                continue
            self._armed[request.schedule_id] = ArmedTimer(request.trigger_at, request.time_of_day)
            report.armed.append(request.schedule_id)
            if request.immediate:
                logger.info("schedule_missed_firing_now schedule_id=%s", request.schedule_id)
        return report

    def _arm(self, key: str, instant: datetime) -> None:
        try:
            self.timers.arm_exact(key, instant)
        except AlarmPermissionError:
            logger.warning("exact_alarm_denied_using_inexact key=%s", key)
            self.timers.arm_inexact(key, instant)

    # ------------------------------------------------------------------
    # Snooze
    # ------------------------------------------------------------------
    def arm_snooze(self, delay_minutes: Optional[int] = None, now: Optional[datetime] = None) -> datetime:
        """Arm a one-shot prompt `delay_minutes` from now, replacing any pending snooze."""
        delay = self.default_snooze_minutes if delay_minutes is None else int(delay_minutes)
        if delay < 1:
            raise ValidationError("delay_minutes must be at least 1")
        with self._lock:
            trigger_at = self._now(now) + timedelta(minutes=delay)
            self._arm(SNOOZE_KEY, trigger_at)
            self._snooze_at = trigger_at
        logger.info("snooze_armed trigger_at=%s", trigger_at.isoformat())
        return trigger_at

    # ------------------------------------------------------------------
    # Timer callbacks
    # ------------------------------------------------------------------
    def on_timer_elapsed(self, key: str, now: Optional[datetime] = None) -> None:
        with self._lock:
            now_utc = self._now(now)
            if key == SNOOZE_KEY:
                scheduled_for = self._snooze_at or now_utc
                self._snooze_at = None
                self._deliver(self._payload(None, scheduled_for, now_utc, is_snooze=True))
                return
            self._fire_schedule(key, now_utc)

    def _fire_schedule(self, schedule_id: str, now_utc: datetime) -> None:
        current = self._armed.get(schedule_id)
        if current is not None and as_utc(current.trigger_at, self.tz) > now_utc + STALE_FIRE_TOLERANCE:
            logger.info("timer_elapsed_stale schedule_id=%s", schedule_id)
            return
        try:
            schedule = repository_schedules.get_schedule(schedule_id, engine=self.engine)
        except StoreError:
            # The armed entry stays; its elapsed trigger makes the next sync fire it again
            logger.error("timer_elapsed_store_unavailable schedule_id=%s", schedule_id)
            return
        if schedule is None or not schedule.is_enabled:
            self._armed.pop(schedule_id, None)
            logger.info("timer_elapsed_for_inactive_schedule schedule_id=%s", schedule_id)
            return

        scheduled_for = as_utc(current.trigger_at, self.tz) if current is not None else now_utc
        self._deliver(self._payload(schedule_id, scheduled_for, now_utc))

        upcoming = next_trigger(schedule, max(now_utc, scheduled_for), self.tz)
        try:
            self._arm(schedule_id, upcoming)
        except Exception:
            logger.error("schedule_rearm_failed schedule_id=%s", schedule_id, exc_info=True)
            self._armed.pop(schedule_id, None)
            return
        self._armed[schedule_id] = ArmedTimer(upcoming, schedule.time_of_day)

    def _payload(
        self, schedule_id: Optional[str], scheduled_for: datetime, fired_at: datetime, is_snooze: bool = False
    ) -> PromptPayload:
        return PromptPayload(
            schedule_id=schedule_id,
            scheduled_for=scheduled_for,
            fired_at=fired_at,
            local_day=fired_at.astimezone(self.tz).date(),
            is_snooze=is_snooze,
        )

    def _deliver(self, payload: PromptPayload) -> None:
        try:
            self.notifier.show(payload)
        except Exception:
            logger.error("prompt_delivery_failed schedule_id=%s", payload.schedule_id, exc_info=True)


__all__ = ["SNOOZE_KEY", "SyncReport", "AlarmCoordinator"]
