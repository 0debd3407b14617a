"""APIRouter registration for the mood journal service."""

from __future__ import annotations

from fastapi import APIRouter

from moodjournal.routes.answers import router as answers_router
from moodjournal.routes.export import router as export_router
from moodjournal.routes.questions import router as questions_router
from moodjournal.routes.schedules import router as schedules_router

api_router = APIRouter()
api_router.include_router(questions_router, tags=["Questions"])
api_router.include_router(answers_router, tags=["Answers"])
api_router.include_router(schedules_router, tags=["Schedules"])
api_router.include_router(export_router, tags=["Export"])

__all__ = ["api_router"]
