"""Shape validation for questions, answers and schedule times.

Question variants are validated through a table keyed by QuestionType so
the options rule lives in one place instead of at every call site.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from moodjournal.logic.errors import ValidationError
from moodjournal.models.entities import Question
from moodjournal.models.question_kind import QuestionType

logger = logging.getLogger(__name__)

MIN_CHOICE_OPTIONS = 2
YES, NO = "Yes", "No"

_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{1,2})\s*$")


def require_text(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} must not be blank")
    return value.strip()


def coerce_question_type(value: Any) -> QuestionType:
    if isinstance(value, QuestionType):
        return value
    try:
        return QuestionType(str(value).strip().upper())
    except ValueError:
        allowed = [t.value for t in QuestionType]
        raise ValidationError(f"type must be one of {allowed}") from None


def _choice_options(options: Optional[Iterable[str]]) -> Tuple[str, ...]:
    cleaned = tuple(o.strip() for o in (options or ()) if isinstance(o, str) and o.strip())
    if len(cleaned) < MIN_CHOICE_OPTIONS:
        raise ValidationError(
            f"multiple choice questions need at least {MIN_CHOICE_OPTIONS} non-blank options"
        )
    return cleaned


def _no_options(options: Optional[Iterable[str]]) -> None:
    if options:
        logger.debug("question_options_dropped count=%s", len(list(options)))
    return None


_OPTION_RULES: Dict[QuestionType, Callable[[Optional[Iterable[str]]], Optional[Tuple[str, ...]]]] = {
    QuestionType.MULTIPLE_CHOICE: _choice_options,
    QuestionType.YES_NO: _no_options,
    QuestionType.NUMBER: _no_options,
    QuestionType.TEXT: _no_options,
}


def validate_question_shape(
    text: Any, qtype: Any, options: Optional[Iterable[str]]
) -> Tuple[str, QuestionType, Optional[Tuple[str, ...]]]:
    """Return the normalized (text, type, options) triple or raise ValidationError."""
    clean_text = require_text(text, "text")
    kind = coerce_question_type(qtype)
    return clean_text, kind, _OPTION_RULES[kind](options)


def _choice_answer(question: Question, value: str) -> str:
    if value not in (question.options or ()):
        raise ValidationError(f"answer must be one of {list(question.options or ())}")
    return value


def _yes_no_answer(question: Question, value: str) -> str:
    lowered = value.lower()
    if lowered not in {"yes", "no"}:
        raise ValidationError("answer must be Yes or No")
    return YES if lowered == "yes" else NO


def _number_answer(question: Question, value: str) -> str:
    try:
        parsed = float(value)
    except ValueError:
        raise ValidationError("answer must be a number") from None
    if not math.isfinite(parsed):
        raise ValidationError("answer must be a finite number")
    return value


def _text_answer(question: Question, value: str) -> str:
    return value


_ANSWER_RULES: Dict[QuestionType, Callable[[Question, str], str]] = {
    QuestionType.MULTIPLE_CHOICE: _choice_answer,
    QuestionType.YES_NO: _yes_no_answer,
    QuestionType.NUMBER: _number_answer,
    QuestionType.TEXT: _text_answer,
}


def validate_answer_for(question: Question, answer_text: Any) -> str:
    value = require_text(answer_text, "answer_text")
    return _ANSWER_RULES[question.type](question, value)


def parse_time_of_day(value: Any) -> Tuple[int, int]:
    """Parse "H:M" / "HH:MM" into (hour, minute) on a 24-hour clock."""
    match = _TIME_RE.match(value) if isinstance(value, str) else None
    if not match:
        raise ValidationError("time_of_day must look like HH:MM")
    hour, minute = int(match.group(1)), int(match.group(2))
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValidationError("time_of_day must be between 00:00 and 23:59")
    return hour, minute


def normalize_time_of_day(value: Any) -> str:
    hour, minute = parse_time_of_day(value)
    return f"{hour:02d}:{minute:02d}"


__all__ = [
    "MIN_CHOICE_OPTIONS",
    "require_text",
    "coerce_question_type",
    "validate_question_shape",
    "validate_answer_for",
    "parse_time_of_day",
    "normalize_time_of_day",
]
