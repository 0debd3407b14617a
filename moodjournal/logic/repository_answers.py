"""Answer data access helpers.

Answers are append-only: there is an insert and a delete, never an update,
so `question_version` keeps pointing at the question as it was answered.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Engine

from moodjournal.db.base import get_engine
from moodjournal.logic.errors import ValidationError
from moodjournal.logic.repository_common import from_epoch_us, store_errors, to_epoch_us
from moodjournal.models.entities import Answer

logger = logging.getLogger(__name__)

_COLUMNS = (
    "answer_id, question_id, question_version, answer_text, additional_notes, "
    "answered_at, was_snooze"
)
# Newest first; equal timestamps fall back to id so ordering is deterministic
_NEWEST_FIRST = "ORDER BY answered_at DESC, answer_id DESC"


def _row_to_answer(row) -> Answer:  # type: ignore[no-untyped-def]
    return Answer(
        id=str(row["answer_id"]),
        question_id=str(row["question_id"]),
        question_version=int(row["question_version"]),
        answer_text=str(row["answer_text"]),
        additional_notes=row["additional_notes"],
        timestamp=from_epoch_us(row["answered_at"]),
        was_snooze=bool(row["was_snooze"]),
    )


def insert_answer(answer: Answer, *, engine: Engine | None = None) -> Answer:
    eng = engine or get_engine()
    with store_errors("insert_answer", answer_id=answer.id, question_id=answer.question_id):
        with eng.begin() as conn:
            conn.execute(
                sql_text(
                    f"""
                    INSERT INTO answers ({_COLUMNS})
                    VALUES (:aid, :qid, :qver, :atext, :notes, :at, :snooze)
                    """
                ),
                {
                    "aid": answer.id,
                    "qid": answer.question_id,
                    "qver": int(answer.question_version),
                    "atext": answer.answer_text,
                    "notes": answer.additional_notes,
                    "at": to_epoch_us(answer.timestamp),
                    "snooze": bool(answer.was_snooze),
                },
            )
    logger.info(
        "answer_inserted answer_id=%s question_id=%s question_version=%s snooze=%s",
        answer.id,
        answer.question_id,
        answer.question_version,
        answer.was_snooze,
    )
    return answer


def get_answer(answer_id: str, *, engine: Engine | None = None) -> Optional[Answer]:
    eng = engine or get_engine()
    with store_errors("get_answer", answer_id=answer_id):
        with eng.connect() as conn:
            row = conn.execute(
                sql_text(f"SELECT {_COLUMNS} FROM answers WHERE answer_id = :aid"),
                {"aid": str(answer_id)},
            ).mappings().fetchone()
    return _row_to_answer(row) if row else None


def list_answers(*, engine: Engine | None = None) -> List[Answer]:
    eng = engine or get_engine()
    with store_errors("list_answers"):
        with eng.connect() as conn:
            rows = conn.execute(
                sql_text(f"SELECT {_COLUMNS} FROM answers {_NEWEST_FIRST}")
            ).mappings().all()
    return [_row_to_answer(r) for r in rows]


def list_answers_for_question(
    question_id: str, *, limit: int | None = None, engine: Engine | None = None
) -> List[Answer]:
    """Return answers for one question newest-first, optionally truncated."""
    if limit is not None and int(limit) < 1:
        raise ValidationError("limit must be at least 1")
    eng = engine or get_engine()
    params: dict = {"qid": str(question_id)}
    limit_sql = ""
    if limit is not None:
        limit_sql = "LIMIT :lim"
        params["lim"] = int(limit)
    with store_errors("list_answers_for_question", question_id=question_id, limit=limit):
        with eng.connect() as conn:
            rows = conn.execute(
                sql_text(
                    f"SELECT {_COLUMNS} FROM answers WHERE question_id = :qid "
                    f"{_NEWEST_FIRST} {limit_sql}"
                ),
                params,
            ).mappings().all()
    return [_row_to_answer(r) for r in rows]


def recent_answers_for_question(
    question_id: str, limit: int, *, engine: Engine | None = None
) -> List[Answer]:
    return list_answers_for_question(question_id, limit=limit, engine=engine)


def latest_answer_per_question(*, engine: Engine | None = None) -> List[Answer]:
    """Return exactly one row per answered question: its newest answer.

    Ties on timestamp resolve to the greatest answer id.
    """
    eng = engine or get_engine()
    with store_errors("latest_answer_per_question"):
        with eng.connect() as conn:
            rows = conn.execute(
                sql_text(
                    f"""
                    SELECT {_COLUMNS} FROM answers a
                    WHERE a.answer_id = (
                        SELECT b.answer_id FROM answers b
                        WHERE b.question_id = a.question_id
                        ORDER BY b.answered_at DESC, b.answer_id DESC
                        LIMIT 1
                    )
                    {_NEWEST_FIRST}
                    """
                )
            ).mappings().all()
    return [_row_to_answer(r) for r in rows]


def count_answers_for_question(question_id: str, *, engine: Engine | None = None) -> int:
    eng = engine or get_engine()
    with store_errors("count_answers_for_question", question_id=question_id):
        with eng.connect() as conn:
            value = conn.execute(
                sql_text("SELECT COUNT(*) FROM answers WHERE question_id = :qid"),
                {"qid": str(question_id)},
            ).scalar()
    return int(value or 0)


def delete_answer(answer_id: str, *, engine: Engine | None = None) -> bool:
    eng = engine or get_engine()
    with store_errors("delete_answer", answer_id=answer_id):
        with eng.begin() as conn:
            result = conn.execute(
                sql_text("DELETE FROM answers WHERE answer_id = :aid"),
                {"aid": str(answer_id)},
            )
    deleted = bool(result.rowcount)
    if deleted:
        logger.info("answer_deleted answer_id=%s", answer_id)
    return deleted


__all__ = [
    "insert_answer",
    "get_answer",
    "list_answers",
    "list_answers_for_question",
    "recent_answers_for_question",
    "latest_answer_per_question",
    "count_answers_for_question",
    "delete_answer",
]
