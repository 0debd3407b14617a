"""Process-wide logging for the journal service.

One stdout handler carries every record, tagged with the request id from
`moodjournal.http.request_id` (or "-" for scheduler threads).
`MOODJOURNAL_LOG_LEVEL` sets the root level; APScheduler's per-job chatter is
held at WARNING. A second call is a no-op once the root logger has handlers.
"""
from __future__ import annotations

import logging
import os
from logging.config import dictConfig
from typing import Any, Dict

LOG_FORMAT = "%(asctime)s %(levelname)s:%(name)s:[%(request_id)s] %(message)s"


def _logging_config(level: str) -> Dict[str, Any]:
    routed = {"level": "INFO", "handlers": ["stdout"], "propagate": False}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"request_id": {"()": "moodjournal.http.request_id.RequestIdLogFilter"}},
        "formatters": {"journal": {"format": LOG_FORMAT}},
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "level": "DEBUG",
                "formatter": "journal",
                "filters": ["request_id"],
                "stream": "ext://sys.stdout",
            }
        },
        "root": {"level": level, "handlers": ["stdout"]},
        "loggers": {
            "uvicorn": dict(routed),
            "uvicorn.error": dict(routed),
            "uvicorn.access": dict(routed),
            "apscheduler": {**routed, "level": "WARNING"},
        },
    }


def configure_logging(level: str | None = None) -> None:
    """Install the handler once; `level` beats MOODJOURNAL_LOG_LEVEL, default INFO."""
    if logging.getLogger().handlers:
        return
    chosen = (level or os.environ.get("MOODJOURNAL_LOG_LEVEL") or "INFO").upper()
    dictConfig(_logging_config(chosen))
