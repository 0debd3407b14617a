"""Configuration loading for the mood journal service.

Rules:
- Primary source: `moodjournal_config.json` at the project root.
- Overrides: environment variables, then optional text files under `config/`.
- Validation: Pydantic models reject unknown zones, non-positive intervals
  and malformed times of day.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import timedelta, tzinfo
from pathlib import Path
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from moodjournal.db.base import DEFAULT_DATABASE_URL
from moodjournal.logic.seed import DEFAULT_SCHEDULE_TIMES
from moodjournal.logic.validation import normalize_time_of_day


CONFIG_DIR = Path("config")
ROOT_CONFIG = Path("moodjournal_config.json")
LOCALTIME_FILE = Path("/etc/localtime")
LOCAL_ZONE = "local"
logger = logging.getLogger(__name__)


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


def _truthy(value: object) -> bool:
    return str(value).strip().lower() in {"true", "1", "yes", "on"}


class DatabaseConfig(BaseModel):
    url: str = DEFAULT_DATABASE_URL

    @field_validator("url")
    @classmethod
    def url_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.url must be a non-empty string")
        return v.strip()


def resolve_zone(name: str) -> tzinfo:
    """Map a configured zone name to a tzinfo; "local" means the host zone.

    The host zone comes from the TZ variable when it names an IANA zone, else
    from /etc/localtime. Hosts with neither fall back to UTC.
    """
    if name != LOCAL_ZONE:
        return ZoneInfo(name)
    tz_env = os.environ.get("TZ", "").strip().lstrip(":")
    if tz_env:
        try:
            return ZoneInfo(tz_env)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Ignoring unknown TZ=%s", tz_env)
    try:
        with LOCALTIME_FILE.open("rb") as fh:
            return ZoneInfo.from_file(fh, key="localtime")
    except (OSError, ValueError):
        logger.warning("Host zone unavailable; using UTC")
        return ZoneInfo("UTC")


class SchedulerConfig(BaseModel):
    timezone: str = LOCAL_ZONE
    exact_alarms_allowed: bool = True
    inexact_window_seconds: int = Field(default=60, ge=0)
    immediate_fire_epsilon_seconds: float = Field(default=5.0, gt=0)
    resync_interval_hours: float = Field(default=24.0, gt=0)
    resync_initial_delay_minutes: float = Field(default=60.0, ge=0)
    default_snooze_minutes: int = Field(default=15, ge=1, le=1440)
    default_schedule_times: List[str] = Field(default_factory=lambda: list(DEFAULT_SCHEDULE_TIMES))

    @field_validator("timezone")
    @classmethod
    def timezone_must_exist(cls, v: str) -> str:
        v = v.strip()
        if v == LOCAL_ZONE:
            return v
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"scheduler.timezone is not a known zone: {v!r}") from e
        return v

    @field_validator("default_schedule_times")
    @classmethod
    def times_must_parse(cls, v: List[str]) -> List[str]:
        return [normalize_time_of_day(item) for item in v]

    @property
    def tz(self) -> tzinfo:
        return resolve_zone(self.timezone)

    @property
    def epsilon(self) -> timedelta:
        return timedelta(seconds=self.immediate_fire_epsilon_seconds)

    @property
    def inexact_window(self) -> timedelta:
        return timedelta(seconds=self.inexact_window_seconds)

    @property
    def resync_interval(self) -> timedelta:
        return timedelta(hours=self.resync_interval_hours)

    @property
    def resync_initial_delay(self) -> timedelta:
        return timedelta(minutes=self.resync_initial_delay_minutes)


class SeedConfig(BaseModel):
    seed_defaults: bool = True


class AppConfig(BaseModel):
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    seed: SeedConfig = Field(default_factory=SeedConfig)
    resync_enabled: bool = True


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def load_config() -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in `config/` (optional)
    3) moodjournal_config.json at project root
    4) Defaults suitable for local development
    """

    base = _read_json_file(ROOT_CONFIG)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        if isinstance(cur, list):
            return ",".join(str(item) for item in cur)
        return str(cur) if cur is not None else default

    def _pick(env_key: str, file_key: str, json_key: str, default: str) -> str:
        value = _env(env_key) or _read_config_file(file_key) or _base(json_key)
        return str(value if value is not None else default).strip()

    url = _pick("DATABASE_URL", "database.url", "database.url", DEFAULT_DATABASE_URL)

    timezone = _pick("MOODJOURNAL_TIMEZONE", "scheduler.timezone", "scheduler.timezone", LOCAL_ZONE)
    exact = _pick("MOODJOURNAL_EXACT_ALARMS", "scheduler.exact_alarms", "scheduler.exact_alarms_allowed", "true")
    window = _pick("MOODJOURNAL_INEXACT_WINDOW_SECONDS", "scheduler.inexact_window", "scheduler.inexact_window_seconds", "60")
    epsilon = _pick(
        "MOODJOURNAL_IMMEDIATE_FIRE_EPSILON_SECONDS",
        "scheduler.immediate_fire_epsilon",
        "scheduler.immediate_fire_epsilon_seconds",
        "5",
    )
    resync_hours = _pick("MOODJOURNAL_RESYNC_INTERVAL_HOURS", "scheduler.resync_interval", "scheduler.resync_interval_hours", "24")
    resync_delay = _pick(
        "MOODJOURNAL_RESYNC_INITIAL_DELAY_MINUTES",
        "scheduler.resync_initial_delay",
        "scheduler.resync_initial_delay_minutes",
        "60",
    )
    snooze = _pick("MOODJOURNAL_SNOOZE_MINUTES", "scheduler.snooze_minutes", "scheduler.default_snooze_minutes", "15")
    times_text = _pick(
        "MOODJOURNAL_DEFAULT_TIMES",
        "scheduler.default_times",
        "scheduler.default_schedule_times",
        ",".join(DEFAULT_SCHEDULE_TIMES),
    )

    seed_text = _pick("MOODJOURNAL_SEED_DEFAULTS", "seed.defaults", "seed.seed_defaults", "true")
    resync_text = _pick("MOODJOURNAL_RESYNC_ENABLED", "scheduler.resync_enabled", "resync_enabled", "true")

    try:
        cfg = AppConfig(
            database=DatabaseConfig(url=url),
            scheduler=SchedulerConfig(
                timezone=timezone,
                exact_alarms_allowed=_truthy(exact),
                inexact_window_seconds=int(window),
                immediate_fire_epsilon_seconds=float(epsilon),
                resync_interval_hours=float(resync_hours),
                resync_initial_delay_minutes=float(resync_delay),
                default_snooze_minutes=int(snooze),
                default_schedule_times=[t for t in (p.strip() for p in times_text.split(",")) if t],
            ),
            seed=SeedConfig(seed_defaults=_truthy(seed_text)),
            resync_enabled=_truthy(resync_text),
        )
        return cfg
    except (PydanticValidationError, ValueError) as e:
        logger.error("Invalid application configuration: %s", e)
        raise


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "SchedulerConfig",
    "SeedConfig",
    "load_config",
    "resolve_zone",
]
