"""Mood journal service package.

Exposes the FastAPI application factory. The scheduling core (schedule
engine, alarm coordinator, timer facility) lives in `moodjournal/logic/`,
persistence in `moodjournal/db/` and the HTTP surface in
`moodjournal/routes/`.
"""

from __future__ import annotations

from moodjournal.main import create_app

__all__ = ["create_app"]
