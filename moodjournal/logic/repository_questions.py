"""Question repository helpers.

Encapsulates DB reads/writes for questions, keeping the HTTP layer free of
direct SQL. Deleting a question removes its answers in the same transaction;
the foreign key cascade enforces the same rule at the schema level.
"""

from __future__ import annotations

import json
import logging
from typing import List, Optional

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Engine

from moodjournal.db.base import get_engine
from moodjournal.logic.errors import NotFoundError
from moodjournal.logic.repository_common import from_epoch_us, store_errors, to_epoch_us
from moodjournal.models.entities import Question
from moodjournal.models.question_kind import QuestionType

logger = logging.getLogger(__name__)

_COLUMNS = (
    "question_id, question_text, question_type, options_json, is_hidden, "
    "created_at, modified_at, version"
)


def _row_to_question(row) -> Question:  # type: ignore[no-untyped-def]
    options_raw = row["options_json"]
    options = tuple(json.loads(options_raw)) if options_raw else None
    return Question(
        id=str(row["question_id"]),
        text=str(row["question_text"]),
        type=QuestionType(str(row["question_type"])),
        options=options,
        is_hidden=bool(row["is_hidden"]),
        created_at=from_epoch_us(row["created_at"]),
        modified_at=from_epoch_us(row["modified_at"]),
        version=int(row["version"]),
    )


def _params(question: Question) -> dict:
    return {
        "qid": question.id,
        "qtext": question.text,
        "qtype": question.type.value,
        "opts": json.dumps(list(question.options)) if question.options is not None else None,
        "hidden": bool(question.is_hidden),
        "created": to_epoch_us(question.created_at),
        "modified": to_epoch_us(question.modified_at),
        "version": int(question.version),
    }


def insert_question(question: Question, *, engine: Engine | None = None) -> Question:
    eng = engine or get_engine()
    with store_errors("insert_question", question_id=question.id):
        with eng.begin() as conn:
            conn.execute(
                sql_text(
                    f"""
                    INSERT INTO questions ({_COLUMNS})
                    VALUES (:qid, :qtext, :qtype, :opts, :hidden, :created, :modified, :version)
                    """
                ),
                _params(question),
            )
    logger.info("question_inserted question_id=%s type=%s", question.id, question.type.value)
    return question


def save_question(question: Question, *, engine: Engine | None = None) -> Question:
    """Overwrite the mutable columns of an existing question row.

    `created_at` is never written here so it stays immutable.
    """
    eng = engine or get_engine()
    params = _params(question)
    params.pop("created")
    with store_errors("save_question", question_id=question.id):
        with eng.begin() as conn:
            result = conn.execute(
                sql_text(
                    """
                    UPDATE questions
                    SET question_text = :qtext, question_type = :qtype, options_json = :opts,
                        is_hidden = :hidden, modified_at = :modified, version = :version
                    WHERE question_id = :qid
                    """
                ),
                params,
            )
    if result.rowcount == 0:
        raise NotFoundError("question", question.id)
    logger.info("question_saved question_id=%s version=%s", question.id, question.version)
    return question


def get_question(question_id: str, *, engine: Engine | None = None) -> Optional[Question]:
    eng = engine or get_engine()
    with store_errors("get_question", question_id=question_id):
        with eng.connect() as conn:
            row = conn.execute(
                sql_text(f"SELECT {_COLUMNS} FROM questions WHERE question_id = :qid"),
                {"qid": str(question_id)},
            ).mappings().fetchone()
    return _row_to_question(row) if row else None


def require_question(question_id: str, *, engine: Engine | None = None) -> Question:
    question = get_question(question_id, engine=engine)
    if question is None:
        raise NotFoundError("question", question_id)
    return question


def list_questions(*, active_only: bool = False, engine: Engine | None = None) -> List[Question]:
    """Return questions ordered by creation time ascending (ties by id)."""
    eng = engine or get_engine()
    where = "WHERE is_hidden = :hidden" if active_only else ""
    with store_errors("list_questions", active_only=active_only):
        with eng.connect() as conn:
            rows = conn.execute(
                sql_text(
                    f"SELECT {_COLUMNS} FROM questions {where} "
                    "ORDER BY created_at ASC, question_id ASC"
                ),
                {"hidden": False} if active_only else {},
            ).mappings().all()
    return [_row_to_question(r) for r in rows]


def count_questions(*, active_only: bool = False, engine: Engine | None = None) -> int:
    eng = engine or get_engine()
    where = "WHERE is_hidden = :hidden" if active_only else ""
    with store_errors("count_questions", active_only=active_only):
        with eng.connect() as conn:
            value = conn.execute(
                sql_text(f"SELECT COUNT(*) FROM questions {where}"),
                {"hidden": False} if active_only else {},
            ).scalar()
    return int(value or 0)


def delete_question(question_id: str, *, engine: Engine | None = None) -> int:
    """Delete a question and all of its answers atomically.

    Returns the number of answers removed. Raises NotFoundError when the
    question does not exist.
    """
    eng = engine or get_engine()
    with store_errors("delete_question", question_id=question_id):
        with eng.begin() as conn:
            removed = conn.execute(
                sql_text("DELETE FROM answers WHERE question_id = :qid"),
                {"qid": str(question_id)},
            ).rowcount
            result = conn.execute(
                sql_text("DELETE FROM questions WHERE question_id = :qid"),
                {"qid": str(question_id)},
            )
            if result.rowcount == 0:
                # Rolls back the answer delete above; nothing to cascade
                raise NotFoundError("question", question_id)
    logger.info("question_deleted question_id=%s answers_removed=%s", question_id, removed)
    return int(removed or 0)


__all__ = [
    "insert_question",
    "save_question",
    "get_question",
    "require_question",
    "list_questions",
    "count_questions",
    "delete_question",
]
