"""QuestionType enumeration for the four supported question variants.

Only MULTIPLE_CHOICE carries options; the per-variant rules live in
`moodjournal.logic.validation`.
"""

from __future__ import annotations

from enum import Enum


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    YES_NO = "YES_NO"
    NUMBER = "NUMBER"
    TEXT = "TEXT"

    @property
    def takes_options(self) -> bool:
        return self is QuestionType.MULTIPLE_CHOICE


__all__ = ["QuestionType"]
