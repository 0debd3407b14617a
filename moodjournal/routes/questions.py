"""Question authoring endpoints.

Edits go through `moodjournal.logic.domain` so the version rules hold no
matter which client calls them; visibility has its own endpoint because it
must never bump the version.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response
from sqlalchemy.engine import Engine

from moodjournal.logic import repository_questions
from moodjournal.logic.domain import Clock, create_question, set_hidden, update_question
from moodjournal.logic.events import QUESTION_DELETED, publish
from moodjournal.models.payloads import QuestionWrite, VisibilityUpdate
from moodjournal.routes.deps import clock_dep, engine_dep

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/questions", summary="List questions", operation_id="listQuestions", tags=["Questions"])
def list_questions(active: bool = False, engine: Engine = Depends(engine_dep)):
    questions = repository_questions.list_questions(active_only=active, engine=engine)
    return {"items": [q.to_dict() for q in questions]}


@router.post(
    "/questions",
    summary="Create a question",
    operation_id="createQuestion",
    tags=["Questions"],
    status_code=201,
)
def post_question(body: QuestionWrite, engine: Engine = Depends(engine_dep), clock: Clock = Depends(clock_dep)):
    question = create_question(body.text, body.type, body.options, clock=clock)
    repository_questions.insert_question(question, engine=engine)
    return question.to_dict()


@router.get("/questions/{question_id}", summary="Get a question", operation_id="getQuestion", tags=["Questions"])
def get_question(question_id: str, engine: Engine = Depends(engine_dep)):
    return repository_questions.require_question(question_id, engine=engine).to_dict()


@router.put(
    "/questions/{question_id}",
    summary="Edit text, type or options (bumps version)",
    operation_id="updateQuestion",
    tags=["Questions"],
)
def put_question(
    question_id: str,
    body: QuestionWrite,
    engine: Engine = Depends(engine_dep),
    clock: Clock = Depends(clock_dep),
):
    existing = repository_questions.require_question(question_id, engine=engine)
    updated = update_question(existing, body.text, body.type, body.options, clock=clock)
    repository_questions.save_question(updated, engine=engine)
    return updated.to_dict()


@router.patch(
    "/questions/{question_id}/visibility",
    summary="Hide or show a question",
    operation_id="setQuestionVisibility",
    tags=["Questions"],
)
def patch_visibility(question_id: str, body: VisibilityUpdate, engine: Engine = Depends(engine_dep)):
    existing = repository_questions.require_question(question_id, engine=engine)
    updated = set_hidden(existing, body.is_hidden)
    repository_questions.save_question(updated, engine=engine)
    return updated.to_dict()


@router.delete(
    "/questions/{question_id}",
    summary="Delete a question and all of its answers",
    operation_id="deleteQuestion",
    tags=["Questions"],
    status_code=204,
)
def delete_question(question_id: str, engine: Engine = Depends(engine_dep)) -> Response:
    removed = repository_questions.delete_question(question_id, engine=engine)
    publish(QUESTION_DELETED, {"question_id": question_id, "answers_removed": removed})
    return Response(status_code=204)


__all__ = ["router"]
