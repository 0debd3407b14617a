"""Notification schedule data access helpers."""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Engine

from moodjournal.db.base import get_engine
from moodjournal.logic.errors import NotFoundError
from moodjournal.logic.repository_common import store_errors
from moodjournal.models.entities import NotificationSchedule

logger = logging.getLogger(__name__)


def _row_to_schedule(row) -> NotificationSchedule:  # type: ignore[no-untyped-def]
    return NotificationSchedule(
        id=str(row["schedule_id"]),
        time_of_day=str(row["time_of_day"]),
        is_enabled=bool(row["is_enabled"]),
    )


def insert_schedule(schedule: NotificationSchedule, *, engine: Engine | None = None) -> NotificationSchedule:
    eng = engine or get_engine()
    with store_errors("insert_schedule", schedule_id=schedule.id):
        with eng.begin() as conn:
            conn.execute(
                sql_text(
                    "INSERT INTO notification_schedules (schedule_id, time_of_day, is_enabled) "
                    "VALUES (:sid, :tod, :enabled)"
                ),
                {"sid": schedule.id, "tod": schedule.time_of_day, "enabled": bool(schedule.is_enabled)},
            )
    logger.info("schedule_inserted schedule_id=%s time=%s", schedule.id, schedule.time_of_day)
    return schedule


def save_schedule(schedule: NotificationSchedule, *, engine: Engine | None = None) -> NotificationSchedule:
    eng = engine or get_engine()
    with store_errors("save_schedule", schedule_id=schedule.id):
        with eng.begin() as conn:
            result = conn.execute(
                sql_text(
                    "UPDATE notification_schedules SET time_of_day = :tod, is_enabled = :enabled "
                    "WHERE schedule_id = :sid"
                ),
                {"sid": schedule.id, "tod": schedule.time_of_day, "enabled": bool(schedule.is_enabled)},
            )
    if result.rowcount == 0:
        raise NotFoundError("schedule", schedule.id)
    logger.info(
        "schedule_saved schedule_id=%s time=%s enabled=%s",
        schedule.id,
        schedule.time_of_day,
        schedule.is_enabled,
    )
    return schedule


def get_schedule(schedule_id: str, *, engine: Engine | None = None) -> Optional[NotificationSchedule]:
    eng = engine or get_engine()
    with store_errors("get_schedule", schedule_id=schedule_id):
        with eng.connect() as conn:
            row = conn.execute(
                sql_text(
                    "SELECT schedule_id, time_of_day, is_enabled FROM notification_schedules "
                    "WHERE schedule_id = :sid"
                ),
                {"sid": str(schedule_id)},
            ).mappings().fetchone()
    return _row_to_schedule(row) if row else None


def require_schedule(schedule_id: str, *, engine: Engine | None = None) -> NotificationSchedule:
    schedule = get_schedule(schedule_id, engine=engine)
    if schedule is None:
        raise NotFoundError("schedule", schedule_id)
    return schedule


def list_schedules(*, enabled_only: bool = False, engine: Engine | None = None) -> List[NotificationSchedule]:
    """Return schedules ordered by time of day ascending (ties by id)."""
    eng = engine or get_engine()
    where = "WHERE is_enabled = :enabled" if enabled_only else ""
    with store_errors("list_schedules", enabled_only=enabled_only):
        with eng.connect() as conn:
            rows = conn.execute(
                sql_text(
                    f"SELECT schedule_id, time_of_day, is_enabled FROM notification_schedules {where} "
                    "ORDER BY time_of_day ASC, schedule_id ASC"
                ),
                {"enabled": True} if enabled_only else {},
            ).mappings().all()
    return [_row_to_schedule(r) for r in rows]


def count_schedules(*, enabled_only: bool = False, engine: Engine | None = None) -> int:
    eng = engine or get_engine()
    where = "WHERE is_enabled = :enabled" if enabled_only else ""
    with store_errors("count_schedules", enabled_only=enabled_only):
        with eng.connect() as conn:
            value = conn.execute(
                sql_text(f"SELECT COUNT(*) FROM notification_schedules {where}"),
                {"enabled": True} if enabled_only else {},
            ).scalar()
    return int(value or 0)


def delete_schedule(schedule_id: str, *, engine: Engine | None = None) -> None:
    eng = engine or get_engine()
    with store_errors("delete_schedule", schedule_id=schedule_id):
        with eng.begin() as conn:
            result = conn.execute(
                sql_text("DELETE FROM notification_schedules WHERE schedule_id = :sid"),
                {"sid": str(schedule_id)},
            )
    if result.rowcount == 0:
        raise NotFoundError("schedule", schedule_id)
    logger.info("schedule_deleted schedule_id=%s", schedule_id)


__all__ = [
    "insert_schedule",
    "save_schedule",
    "get_schedule",
    "require_schedule",
    "list_schedules",
    "count_schedules",
    "delete_schedule",
]
