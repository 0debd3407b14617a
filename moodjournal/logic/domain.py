"""Domain operations for questions, answers and schedules.

These functions are pure: they validate input and return new entity
instances with the versioning rules applied. Persistence is the caller's
job (see the repository modules).

Versioning rules:
- a question starts at version 1;
- every edit of text, type or options bumps the version by exactly 1;
- toggling visibility never touches the version;
- an answer records the question's version at creation time and is never
  re-versioned afterwards.
"""

from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from moodjournal.logic.validation import (
    normalize_time_of_day,
    validate_answer_for,
    validate_question_shape,
)
from moodjournal.models.entities import Answer, NotificationSchedule, Question

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def create_question(
    text: str,
    qtype,
    options: Optional[Iterable[str]] = None,
    *,
    clock: Clock = utcnow,
) -> Question:
    clean_text, kind, clean_options = validate_question_shape(text, qtype, options)
    now = clock()
    return Question(
        id=new_id(),
        text=clean_text,
        type=kind,
        options=clean_options,
        is_hidden=False,
        created_at=now,
        modified_at=now,
        version=1,
    )


def update_question(
    existing: Question,
    new_text: str,
    new_type,
    new_options: Optional[Iterable[str]] = None,
    *,
    clock: Clock = utcnow,
) -> Question:
    clean_text, kind, clean_options = validate_question_shape(new_text, new_type, new_options)
    return replace(
        existing,
        text=clean_text,
        type=kind,
        options=clean_options,
        modified_at=clock(),
        version=existing.version + 1,
    )


def set_hidden(existing: Question, hidden: bool) -> Question:
    return replace(existing, is_hidden=bool(hidden))


def record_answer(
    question: Question,
    answer_text: str,
    notes: Optional[str] = None,
    was_snooze: bool = False,
    *,
    clock: Clock = utcnow,
) -> Answer:
    value = validate_answer_for(question, answer_text)
    clean_notes = notes.strip() if isinstance(notes, str) and notes.strip() else None
    return Answer(
        id=new_id(),
        question_id=question.id,
        question_version=question.version,
        answer_text=value,
        additional_notes=clean_notes,
        timestamp=clock(),
        was_snooze=bool(was_snooze),
    )


def create_schedule(time_of_day: str, is_enabled: bool = True) -> NotificationSchedule:
    return NotificationSchedule(
        id=new_id(),
        time_of_day=normalize_time_of_day(time_of_day),
        is_enabled=bool(is_enabled),
    )


def update_schedule(
    existing: NotificationSchedule,
    time_of_day: Optional[str] = None,
    is_enabled: Optional[bool] = None,
) -> NotificationSchedule:
    return replace(
        existing,
        time_of_day=normalize_time_of_day(time_of_day) if time_of_day is not None else existing.time_of_day,
        is_enabled=existing.is_enabled if is_enabled is None else bool(is_enabled),
    )


__all__ = [
    "Clock",
    "utcnow",
    "new_id",
    "create_question",
    "update_question",
    "set_hidden",
    "record_answer",
    "create_schedule",
    "update_schedule",
]
