"""Schedule engine: next-trigger computation and timer reconciliation.

Pure functions only. Given the current instant and the persisted schedules,
this module decides when each daily prompt should next fire and which timers
must be armed or cancelled to match the table. It performs no I/O and never
reads the clock itself.

All instants returned are timezone-aware UTC datetimes. Wall-clock fields
are re-derived from the calendar date after date arithmetic, so a prompt set
for 09:00 stays at 09:00 local time across DST transitions.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Dict, Iterable, Mapping, Tuple

from moodjournal.logic.validation import parse_time_of_day
from moodjournal.models.entities import NotificationSchedule

DEFAULT_IMMEDIATE_FIRE_EPSILON = timedelta(seconds=5)


@dataclass(frozen=True)
class ArmedTimer:
    """What the coordinator remembers about a live timer."""

    trigger_at: datetime
    time_of_day: str


@dataclass(frozen=True)
class ArmRequest:
    schedule_id: str
    trigger_at: datetime
    time_of_day: str
    immediate: bool = False


@dataclass(frozen=True)
class ReconcilePlan:
    to_arm: Tuple[ArmRequest, ...] = ()
    to_cancel: Tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.to_arm and not self.to_cancel


def as_utc(moment: datetime, tz: tzinfo) -> datetime:
    """Normalize `moment` to UTC; naive values are read as wall-clock time in `tz`."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=tz)
    return moment.astimezone(timezone.utc)


def _local_instant(day: date, hour: int, minute: int, tz: tzinfo) -> datetime:
    return datetime.combine(day, time(hour, minute), tzinfo=tz).astimezone(timezone.utc)


def next_trigger(schedule: NotificationSchedule, now: datetime, tz: tzinfo) -> datetime:
    """Return the first occurrence of the schedule's time of day strictly after `now`."""
    hour, minute = parse_time_of_day(schedule.time_of_day)
    now_utc = as_utc(now, tz)
    day = now_utc.astimezone(tz).date()
    candidate = _local_instant(day, hour, minute, tz)
    while candidate <= now_utc:
        day += timedelta(days=1)
        candidate = _local_instant(day, hour, minute, tz)
    return candidate


def reconcile(
    desired: Iterable[NotificationSchedule],
    armed: Mapping[str, ArmedTimer],
    now: datetime,
    tz: tzinfo,
    epsilon: timedelta = DEFAULT_IMMEDIATE_FIRE_EPSILON,
) -> ReconcilePlan:
    """Diff the persisted schedules against the armed timers.

    - armed but deleted or disabled: cancel;
    - enabled but not armed, or armed for a different time of day: arm at
      the next trigger;
    - armed with a trigger that already elapsed (missed while asleep or
      killed): arm at `now + epsilon` so the prompt still fires;
    - otherwise leave the timer alone.
    """
    now_utc = as_utc(now, tz)
    enabled: Dict[str, NotificationSchedule] = {s.id: s for s in desired if s.is_enabled}

    to_cancel = tuple(sorted(sid for sid in armed if sid not in enabled))

    to_arm = []
    for sid in sorted(enabled):
        schedule = enabled[sid]
        current = armed.get(sid)
        if current is None or current.time_of_day != schedule.time_of_day:
            to_arm.append(
                ArmRequest(sid, next_trigger(schedule, now_utc, tz), schedule.time_of_day)
            )
        elif as_utc(current.trigger_at, tz) <= now_utc:
            to_arm.append(
                ArmRequest(sid, now_utc + epsilon, schedule.time_of_day, immediate=True)
            )

    return ReconcilePlan(to_arm=tuple(to_arm), to_cancel=to_cancel)


__all__ = [
    "DEFAULT_IMMEDIATE_FIRE_EPSILON",
    "ArmedTimer",
    "ArmRequest",
    "ReconcilePlan",
    "as_utc",
    "next_trigger",
    "reconcile",
]
