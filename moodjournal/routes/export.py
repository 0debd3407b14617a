"""CSV export of the answer history."""

from __future__ import annotations

import logging
from datetime import tzinfo

from fastapi import APIRouter, Depends, Response
from sqlalchemy.engine import Engine

from moodjournal.logic import repository_answers, repository_questions
from moodjournal.logic.csv_io import build_answers_csv
from moodjournal.routes.deps import engine_dep, tz_dep

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get(
    "/export/answers.csv",
    summary="Export all answers as CSV",
    operation_id="exportAnswersCsv",
    tags=["Export"],
)
def export_answers(engine: Engine = Depends(engine_dep), tz: tzinfo = Depends(tz_dep)) -> Response:
    answers = repository_answers.list_answers(engine=engine)
    questions = {q.id: q for q in repository_questions.list_questions(engine=engine)}
    body = build_answers_csv(answers, questions, tz)
    logger.info("answers_exported rows=%s", len(answers))
    return Response(
        content=body.encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="mood_journal_answers.csv"'},
    )


__all__ = ["router"]
