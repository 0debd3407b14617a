"""Functional test bootstrap for the mood journal service.

Every test gets its own in-memory SQLite engine with the migrations applied,
so no state leaks between tests. The host timer facility and the notifier
are replaced by recording fakes; the clock is a mutable fixture so tests can
move time forward explicitly.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient

from moodjournal.config import AppConfig, SchedulerConfig, SeedConfig
from moodjournal.db.base import build_engine
from moodjournal.db.migrations_runner import apply_migrations
from moodjournal.logic.alarm_coordinator import AlarmCoordinator
from moodjournal.logic.errors import AlarmPermissionError
from moodjournal.logic.events import EVENT_BUFFER
from moodjournal.logic.notifications import PromptPayload
from moodjournal.main import create_app

UTC = timezone.utc
# Monday; 09:30 local in UTC
START = datetime(2024, 3, 4, 9, 30, tzinfo=UTC)


class FakeTimerFacility:
    """Records arm/cancel calls; one pending entry per key like the real one."""

    def __init__(self, exact_allowed: bool = True) -> None:
        self.exact_allowed = exact_allowed
        self.fail_keys: set = set()
        self.pending: Dict[str, Tuple[datetime, str]] = {}
        self.calls: List[tuple] = []
        self.recurring: Dict[str, tuple] = {}
        self.callback: Optional[Callable[[str], None]] = None
        self.started = False

    def bind(self, callback: Callable[[str], None]) -> None:
        self.callback = callback

    def start(self) -> None:
        self.started = True

    def shutdown(self) -> None:
        self.started = False

    def _check(self, key: str) -> None:
        if key in self.fail_keys:
            raise RuntimeError(f"timer unavailable for {key}")

    def arm_exact(self, key: str, instant: datetime) -> None:
        self.calls.append(("arm_exact", key, instant))
        self._check(key)
        if not self.exact_allowed:
            raise AlarmPermissionError("exact alarms denied")
        self.pending[key] = (instant, "exact")

    def arm_inexact(self, key: str, instant: datetime) -> None:
        self.calls.append(("arm_inexact", key, instant))
        self._check(key)
        self.pending[key] = (instant, "inexact")

    def cancel(self, key: str) -> None:
        self.calls.append(("cancel", key))
        self._check(key)
        self.pending.pop(key, None)

    def add_recurring(self, job_id: str, func: Callable[[], object], interval: timedelta, first_run: datetime) -> None:
        self.recurring[job_id] = (func, interval, first_run)

    def remove_recurring(self, job_id: str) -> None:
        self.recurring.pop(job_id, None)

    def instant_for(self, key: str) -> datetime:
        return self.pending[key][0]


class RecordingNotifier:
    def __init__(self) -> None:
        self.shown: List[PromptPayload] = []
        self.fail = False

    def show(self, payload: PromptPayload) -> None:
        if self.fail:
            raise RuntimeError("notification channel unavailable")
        self.shown.append(payload)


class MutableClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:  # type: ignore[no-untyped-def]
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
def _clear_event_buffer():
    EVENT_BUFFER.clear()
    yield
    EVENT_BUFFER.clear()


@pytest.fixture
def engine():
    eng = build_engine("sqlite+pysqlite:///:memory:")
    apply_migrations(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def tz():
    return ZoneInfo("UTC")


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock(START)


@pytest.fixture
def timers() -> FakeTimerFacility:
    return FakeTimerFacility()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def coordinator(engine, timers, notifier, tz, clock) -> AlarmCoordinator:
    return AlarmCoordinator(engine, timers, notifier, tz=tz, clock=clock, epsilon=timedelta(seconds=5))


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig(
        scheduler=SchedulerConfig(timezone="UTC"),
        seed=SeedConfig(seed_defaults=False),
        resync_enabled=False,
    )


@pytest.fixture
def client(app_config, engine, timers, notifier, clock):
    app = create_app(app_config, engine=engine, timers=timers, notifier=notifier, clock=clock)
    with TestClient(app) as c:
        yield c
