"""Answer recording and history endpoints."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.engine import Engine

from moodjournal.logic import repository_answers, repository_questions
from moodjournal.logic.domain import Clock, record_answer
from moodjournal.logic.errors import NotFoundError
from moodjournal.logic.events import ANSWER_RECORDED, publish
from moodjournal.models.payloads import AnswerCreate
from moodjournal.routes.deps import clock_dep, engine_dep

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/answers", summary="All answers, newest first", operation_id="listAnswers", tags=["Answers"])
def list_answers(engine: Engine = Depends(engine_dep)):
    return {"items": [a.to_dict() for a in repository_answers.list_answers(engine=engine)]}


@router.get(
    "/answers/latest",
    summary="Newest answer for each answered question",
    operation_id="latestAnswers",
    tags=["Answers"],
)
def latest_answers(engine: Engine = Depends(engine_dep)):
    return {"items": [a.to_dict() for a in repository_answers.latest_answer_per_question(engine=engine)]}


@router.post(
    "/answers",
    summary="Record an answer against the question's current version",
    operation_id="recordAnswer",
    tags=["Answers"],
    status_code=201,
)
def post_answer(body: AnswerCreate, engine: Engine = Depends(engine_dep), clock: Clock = Depends(clock_dep)):
    question = repository_questions.require_question(body.question_id, engine=engine)
    answer = record_answer(question, body.answer_text, body.additional_notes, body.was_snooze, clock=clock)
    repository_answers.insert_answer(answer, engine=engine)
    publish(
        ANSWER_RECORDED,
        {
            "answer_id": answer.id,
            "question_id": answer.question_id,
            "question_version": answer.question_version,
            "was_snooze": answer.was_snooze,
        },
    )
    return answer.to_dict()


@router.get(
    "/questions/{question_id}/answers",
    summary="Answers for one question, newest first",
    operation_id="listAnswersForQuestion",
    tags=["Answers"],
)
def answers_for_question(
    question_id: str,
    limit: Optional[int] = Query(default=None, ge=1),
    engine: Engine = Depends(engine_dep),
):
    repository_questions.require_question(question_id, engine=engine)
    answers = repository_answers.list_answers_for_question(question_id, limit=limit, engine=engine)
    return {"items": [a.to_dict() for a in answers]}


@router.delete(
    "/answers/{answer_id}",
    summary="Delete a single answer",
    operation_id="deleteAnswer",
    tags=["Answers"],
    status_code=204,
)
def delete_answer(answer_id: str, engine: Engine = Depends(engine_dep)) -> Response:
    if not repository_answers.delete_answer(answer_id, engine=engine):
        raise NotFoundError("answer", answer_id)
    return Response(status_code=204)


__all__ = ["router"]
