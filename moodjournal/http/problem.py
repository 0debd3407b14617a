"""Problem+JSON utilities and global exception handlers.

Defines the RFC7807 media type and the handlers that turn framework and
domain errors into application/problem+json responses:

- HTTPException: status preserved
- RequestValidationError and domain ValidationError: 422
- NotFoundError: 404
- StoreError: 503
- anything else: 500
"""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from moodjournal.logic.errors import NotFoundError, StoreError, ValidationError

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)


def problem(status: int, title: str, detail: str | None = None, **extra) -> JSONResponse:  # type: ignore[no-untyped-def]
    body = {"title": title, "status": status}
    if detail:
        body["detail"] = detail
    body.update(extra)
    return JSONResponse(body, status_code=status, media_type=PROBLEM_MEDIA_TYPE)


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:  # noqa: D401
    status_code = int(exc.status_code or 500)
    if isinstance(exc.detail, dict):
        body = {"status": status_code, **exc.detail}
        return JSONResponse(body, status_code=status_code, media_type=PROBLEM_MEDIA_TYPE, headers=exc.headers)
    response = problem(status_code, "Error", str(exc.detail or ""))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: D401
    errors = [
        {"loc": list(err.get("loc", ())), "msg": str(err.get("msg", "")), "type": str(err.get("type", ""))}
        for err in exc.errors()
    ]
    return problem(422, "Invalid Request", "Request validation failed", errors=errors)


async def handle_domain_validation_error(request: Request, exc: ValidationError) -> JSONResponse:  # noqa: D401
    logger.info("request_rejected path=%s reason=%s", request.url.path, exc)
    return problem(422, "Invalid Request", str(exc))


async def handle_not_found(request: Request, exc: NotFoundError) -> JSONResponse:  # noqa: D401
    return problem(404, "Not Found", str(exc), kind=exc.kind, id=exc.ident)


async def handle_store_error(request: Request, exc: StoreError) -> JSONResponse:  # noqa: D401
    # Already logged with traceback at the repository boundary
    return problem(503, "Store Unavailable", str(exc))


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error("unexpected_error path=%s", request.url.path, exc_info=exc)
    return problem(500, "Internal Server Error")


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "problem",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_domain_validation_error",
    "handle_not_found",
    "handle_store_error",
    "handle_unexpected_error",
]
