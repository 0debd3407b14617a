"""First-run defaults: a starter question set and four daily prompts.

Seeding only touches an empty table, so user deletions are never undone by
a restart.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.engine import Engine

from moodjournal.logic import repository_questions, repository_schedules
from moodjournal.logic.domain import Clock, create_question, create_schedule, utcnow
from moodjournal.models.question_kind import QuestionType

logger = logging.getLogger(__name__)

DEFAULT_QUESTIONS: Tuple[Tuple[str, QuestionType, Optional[Sequence[str]]], ...] = (
    ("How is your mood?", QuestionType.MULTIPLE_CHOICE, ("Great", "Good", "Okay", "Not great", "Terrible")),
    ("Have you exercised today yet?", QuestionType.YES_NO, None),
    ("How many hours were you sitting at the computer?", QuestionType.NUMBER, None),
    ("Any reminders you would like for the future?", QuestionType.TEXT, None),
)

DEFAULT_SCHEDULE_TIMES: Tuple[str, ...] = ("09:00", "13:00", "17:00", "21:00")


def seed_questions(*, engine: Engine | None = None, clock: Clock = utcnow) -> int:
    if repository_questions.count_questions(engine=engine):
        return 0
    base = clock()
    for offset, (text, kind, options) in enumerate(DEFAULT_QUESTIONS):
        # Distinct creation instants keep the listing in declaration order
        stamp = base + timedelta(milliseconds=offset)
        question = create_question(text, kind, options, clock=lambda stamp=stamp: stamp)
        repository_questions.insert_question(question, engine=engine)
    logger.info("seeded_default_questions count=%s", len(DEFAULT_QUESTIONS))
    return len(DEFAULT_QUESTIONS)


def seed_schedules(times: Iterable[str] = DEFAULT_SCHEDULE_TIMES, *, engine: Engine | None = None) -> int:
    if repository_schedules.count_schedules(engine=engine):
        return 0
    created: List[str] = []
    for value in times:
        schedule = repository_schedules.insert_schedule(create_schedule(value), engine=engine)
        created.append(schedule.time_of_day)
    logger.info("seeded_default_schedules times=%s", ",".join(created))
    return len(created)


def seed_defaults(
    *,
    engine: Engine | None = None,
    schedule_times: Iterable[str] = DEFAULT_SCHEDULE_TIMES,
    clock: Clock = utcnow,
) -> dict:
    return {
        "questions": seed_questions(engine=engine, clock=clock),
        "schedules": seed_schedules(schedule_times, engine=engine),
    }


__all__ = [
    "DEFAULT_QUESTIONS",
    "DEFAULT_SCHEDULE_TIMES",
    "seed_questions",
    "seed_schedules",
    "seed_defaults",
]
