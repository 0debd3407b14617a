"""Application factory for the mood journal service.

`create_app()` wires the store engine, the APScheduler-backed timer facility,
the notifier and the alarm coordinator, and stores them on `app.state`.
Nothing touches the database at import time: migrations, seeding, boot
recovery and the periodic resync all run in the lifespan startup phase.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text as sql_text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from moodjournal.config import AppConfig, load_config
from moodjournal.db.base import get_engine
from moodjournal.db.migrations_runner import apply_migrations
from moodjournal.http.problem import (
    handle_domain_validation_error,
    handle_http_exception,
    handle_not_found,
    handle_request_validation_error,
    handle_store_error,
    handle_unexpected_error,
)
from moodjournal.http.request_id import RequestIdMiddleware
from moodjournal.logging_setup import configure_logging
from moodjournal.logic.alarm_coordinator import AlarmCoordinator
from moodjournal.logic.domain import Clock, utcnow
from moodjournal.logic.errors import NotFoundError, StoreError, ValidationError
from moodjournal.logic.notifications import LoggingNotifier, Notifier
from moodjournal.logic.resync import PeriodicResync
from moodjournal.logic.seed import seed_defaults
from moodjournal.logic.timer_facility import APSchedulerTimerFacility, ManagedTimerFacility
from moodjournal.routes import api_router
from moodjournal.routes.test_support import router as test_support_router

logger = logging.getLogger(__name__)


def _startup(app: FastAPI) -> None:
    config: AppConfig = app.state.config
    engine: Engine = app.state.engine
    try:
        apply_migrations(engine)
    except Exception:
        logger.error("Failed to apply migrations at startup", exc_info=True)
        raise
    if config.seed.seed_defaults:
        seed_defaults(engine=engine, schedule_times=config.scheduler.default_schedule_times)

    app.state.timers.start()
    try:
        app.state.coordinator.on_boot_or_process_restart()
    except StoreError:
        # The periodic resync retries once the store is reachable again
        logger.error("boot_sync_failed")
    if app.state.resync is not None:
        app.state.resync.start()


def _shutdown(app: FastAPI) -> None:
    if app.state.resync is not None:
        app.state.resync.stop()
    app.state.timers.shutdown()
    logger.info("app_stopped")


def create_app(
    config: Optional[AppConfig] = None,
    *,
    engine: Optional[Engine] = None,
    timers: Optional[ManagedTimerFacility] = None,
    notifier: Optional[Notifier] = None,
    clock: Clock = utcnow,
) -> FastAPI:
    configure_logging()
    config = config or load_config()
    engine = engine or get_engine(config.database.url)
    sched = config.scheduler
    timers = timers or APSchedulerTimerFacility(
        exact_allowed=sched.exact_alarms_allowed,
        inexact_window=sched.inexact_window,
    )
    coordinator = AlarmCoordinator(
        engine,
        timers,
        notifier or LoggingNotifier(),
        tz=sched.tz,
        clock=clock,
        epsilon=sched.epsilon,
        default_snooze_minutes=sched.default_snooze_minutes,
    )
    timers.bind(coordinator.on_timer_elapsed)
    resync = (
        PeriodicResync(
            coordinator,
            timers,
            interval=sched.resync_interval,
            initial_delay=sched.resync_initial_delay,
            clock=clock,
        )
        if config.resync_enabled
        else None
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):  # type: ignore[no-untyped-def]
        _startup(app)
        try:
            yield
        finally:
            _shutdown(app)

    app = FastAPI(title="Mood Journal", version="1.0.0", lifespan=lifespan)
    app.state.config = config
    app.state.engine = engine
    app.state.timers = timers
    app.state.coordinator = coordinator
    app.state.clock = clock
    app.state.resync = resync

    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(ValidationError, handle_domain_validation_error)
    app.add_exception_handler(NotFoundError, handle_not_found)
    app.add_exception_handler(StoreError, handle_store_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router, prefix="/api/v1")
    # Test-support router (no prefix) exposes '/__test__/events'
    app.include_router(test_support_router)

    @app.get("/health")
    def health(request: Request):
        db_ok = True
        try:
            with request.app.state.engine.connect() as conn:
                conn.execute(sql_text("SELECT 1"))
        except SQLAlchemyError:
            logger.error("Health DB check failed", exc_info=True)
            db_ok = False
        return {
            "status": "ok" if db_ok else "degraded",
            "db": db_ok,
            "armed": len(request.app.state.coordinator.armed_snapshot()),
        }

    return app


# Intentionally do not instantiate the app at import time to prevent side effects.
