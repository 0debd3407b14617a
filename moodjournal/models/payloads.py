"""Pydantic models for API request bodies.

Kept apart from the route modules so the payload structure is declared
without coupling it to route implementation files.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from moodjournal.models.question_kind import QuestionType


class QuestionWrite(BaseModel):
    text: str
    type: QuestionType
    options: Optional[List[str]] = None


class VisibilityUpdate(BaseModel):
    is_hidden: bool


class AnswerCreate(BaseModel):
    question_id: str
    answer_text: str
    additional_notes: Optional[str] = None
    was_snooze: bool = False


class ScheduleWrite(BaseModel):
    time_of_day: str
    is_enabled: bool = True


class ScheduleEnabledUpdate(BaseModel):
    is_enabled: bool


class SnoozeRequest(BaseModel):
    delay_minutes: Optional[int] = Field(default=None, ge=1, le=24 * 60)


__all__ = [
    "QuestionWrite",
    "VisibilityUpdate",
    "AnswerCreate",
    "ScheduleWrite",
    "ScheduleEnabledUpdate",
    "SnoozeRequest",
]
