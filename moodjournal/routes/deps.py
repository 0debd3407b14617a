"""Request-scoped accessors for objects built by the app factory."""

from __future__ import annotations

from datetime import tzinfo

from fastapi import Request
from sqlalchemy.engine import Engine

from moodjournal.logic.alarm_coordinator import AlarmCoordinator
from moodjournal.logic.domain import Clock


def engine_dep(request: Request) -> Engine:
    return request.app.state.engine


def coordinator_dep(request: Request) -> AlarmCoordinator:
    return request.app.state.coordinator


def clock_dep(request: Request) -> Clock:
    return request.app.state.clock


def tz_dep(request: Request) -> tzinfo:
    return request.app.state.coordinator.tz


__all__ = ["engine_dep", "coordinator_dep", "clock_dep", "tz_dep"]
