"""Notification schedule endpoints.

Every write is persisted first and then reconciled through the coordinator,
so the armed timers follow the table even when the follow-up arm fails (the
next sync retries it).
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Response
from sqlalchemy.engine import Engine

from moodjournal.logic import repository_schedules
from moodjournal.logic.alarm_coordinator import AlarmCoordinator
from moodjournal.logic.domain import create_schedule, update_schedule
from moodjournal.models.payloads import ScheduleEnabledUpdate, ScheduleWrite, SnoozeRequest
from moodjournal.routes.deps import coordinator_dep, engine_dep

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/schedules", summary="List schedules", operation_id="listSchedules", tags=["Schedules"])
def list_schedules(enabled: bool = False, engine: Engine = Depends(engine_dep)):
    schedules = repository_schedules.list_schedules(enabled_only=enabled, engine=engine)
    return {"items": [s.to_dict() for s in schedules]}


@router.post(
    "/schedules",
    summary="Add a daily prompt time",
    operation_id="createSchedule",
    tags=["Schedules"],
    status_code=201,
)
def post_schedule(
    body: ScheduleWrite,
    engine: Engine = Depends(engine_dep),
    coordinator: AlarmCoordinator = Depends(coordinator_dep),
):
    schedule = repository_schedules.insert_schedule(create_schedule(body.time_of_day, body.is_enabled), engine=engine)
    coordinator.arm_one(schedule.id)
    return schedule.to_dict()


@router.put(
    "/schedules/{schedule_id}",
    summary="Change time of day and/or enabled flag",
    operation_id="updateSchedule",
    tags=["Schedules"],
)
def put_schedule(
    schedule_id: str,
    body: ScheduleWrite,
    engine: Engine = Depends(engine_dep),
    coordinator: AlarmCoordinator = Depends(coordinator_dep),
):
    existing = repository_schedules.require_schedule(schedule_id, engine=engine)
    updated = repository_schedules.save_schedule(
        update_schedule(existing, body.time_of_day, body.is_enabled), engine=engine
    )
    coordinator.arm_one(schedule_id)
    return updated.to_dict()


@router.patch(
    "/schedules/{schedule_id}/enabled",
    summary="Enable or disable a schedule",
    operation_id="setScheduleEnabled",
    tags=["Schedules"],
)
def patch_enabled(
    schedule_id: str,
    body: ScheduleEnabledUpdate,
    engine: Engine = Depends(engine_dep),
    coordinator: AlarmCoordinator = Depends(coordinator_dep),
):
    existing = repository_schedules.require_schedule(schedule_id, engine=engine)
    updated = repository_schedules.save_schedule(update_schedule(existing, is_enabled=body.is_enabled), engine=engine)
    coordinator.arm_one(schedule_id)
    return updated.to_dict()


@router.delete(
    "/schedules/{schedule_id}",
    summary="Delete a schedule and cancel its timer",
    operation_id="deleteSchedule",
    tags=["Schedules"],
    status_code=204,
)
def delete_schedule(
    schedule_id: str,
    engine: Engine = Depends(engine_dep),
    coordinator: AlarmCoordinator = Depends(coordinator_dep),
) -> Response:
    repository_schedules.delete_schedule(schedule_id, engine=engine)
    coordinator.cancel_one(schedule_id)
    return Response(status_code=204)


@router.post(
    "/schedules/sync",
    summary="Reconcile armed timers with the schedule table",
    operation_id="requestSync",
    tags=["Schedules"],
)
def request_sync(coordinator: AlarmCoordinator = Depends(coordinator_dep)):
    return coordinator.sync_all().to_dict()


@router.get(
    "/schedules/armed",
    summary="Currently armed timers",
    operation_id="listArmedTimers",
    tags=["Schedules"],
)
def armed_timers(coordinator: AlarmCoordinator = Depends(coordinator_dep)):
    snapshot = coordinator.armed_snapshot()
    snooze_at = coordinator.snooze_at
    return {
        "items": [
            {"schedule_id": sid, "trigger_at": timer.trigger_at.isoformat(), "time_of_day": timer.time_of_day}
            for sid, timer in sorted(snapshot.items(), key=lambda item: item[1].trigger_at)
        ],
        "snooze_at": snooze_at.isoformat() if snooze_at else None,
    }


@router.post(
    "/snooze",
    summary="Ask again after a delay",
    operation_id="snooze",
    tags=["Schedules"],
    status_code=202,
)
def snooze(
    body: Optional[SnoozeRequest] = Body(default=None),
    coordinator: AlarmCoordinator = Depends(coordinator_dep),
):
    delay = body.delay_minutes if body is not None else None
    trigger_at = coordinator.arm_snooze(delay)
    return {"trigger_at": trigger_at.isoformat()}


__all__ = ["router"]
