"""Domain entities for questions, answers and notification schedules.

Entities are frozen dataclasses: edits go through `moodjournal.logic.domain`
which returns new instances with the versioning rules applied.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from moodjournal.models.question_kind import QuestionType


@dataclass(frozen=True)
class Question:
    id: str
    text: str
    type: QuestionType
    options: Optional[Tuple[str, ...]]
    is_hidden: bool
    created_at: datetime
    modified_at: datetime
    version: int = 1

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "type": self.type.value,
            "options": list(self.options) if self.options is not None else None,
            "is_hidden": self.is_hidden,
            "created_at": self.created_at.isoformat(),
            "modified_at": self.modified_at.isoformat(),
            "version": self.version,
        }


@dataclass(frozen=True)
class Answer:
    """A single recorded answer.

    `question_version` pins the meaning of `answer_text` to the question as
    it was when answered; it is never rewritten.
    """

    id: str
    question_id: str
    question_version: int
    answer_text: str
    timestamp: datetime
    additional_notes: Optional[str] = None
    was_snooze: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "question_id": self.question_id,
            "question_version": self.question_version,
            "answer_text": self.answer_text,
            "additional_notes": self.additional_notes,
            "timestamp": self.timestamp.isoformat(),
            "was_snooze": self.was_snooze,
        }


@dataclass(frozen=True)
class NotificationSchedule:
    id: str
    time_of_day: str  # normalized HH:MM, 24-hour, local zone
    is_enabled: bool = True

    def to_dict(self) -> dict:
        return {"id": self.id, "time_of_day": self.time_of_day, "is_enabled": self.is_enabled}


__all__ = ["Question", "Answer", "NotificationSchedule"]
