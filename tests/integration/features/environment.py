"""Behave environment hooks for mood journal integration scenarios.

By default every scenario gets a fresh in-process app (in-memory SQLite,
default questions and schedules seeded, real APScheduler timers) driven
through FastAPI's TestClient. When `TEST_BASE_URL` is set the scenarios run
against that live API over httpx instead; they then only rely on data they
create themselves.
"""

from __future__ import annotations

import os
from typing import Any

import httpx
from fastapi.testclient import TestClient

from moodjournal.config import AppConfig, SeedConfig
from moodjournal.db.base import DEFAULT_DATABASE_URL, build_engine
from moodjournal.main import create_app


def before_all(context: Any) -> None:  # pragma: no cover - executed by Behave
    context.test_base_url = os.getenv("TEST_BASE_URL", "").strip().rstrip("/")
    context.api_prefix = os.getenv("TEST_API_PREFIX", "/api/v1")
    if context.test_base_url:
        print(f"[env] live mode against {context.test_base_url}")


def before_scenario(context: Any, scenario: Any) -> None:  # pragma: no cover - executed by Behave
    context.vars = {}
    context.last_response = None
    if context.test_base_url:
        context.client = httpx.Client(base_url=context.test_base_url, timeout=10.0)
        context.client.post("/__test__/reset-state")
        context.live = True
        return
    config = AppConfig(seed=SeedConfig(seed_defaults=True), resync_enabled=False)
    app = create_app(config, engine=build_engine(DEFAULT_DATABASE_URL))
    context.client = TestClient(app)
    context.client.__enter__()
    context.live = False


def after_scenario(context: Any, scenario: Any) -> None:  # pragma: no cover - executed by Behave
    client = getattr(context, "client", None)
    if client is None:
        return
    if isinstance(client, TestClient):
        client.__exit__(None, None, None)
    else:
        client.close()
    context.client = None
