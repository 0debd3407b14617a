"""Per-request correlation id.

The middleware takes the caller's X-Request-Id (or mints a uuid4), keeps it
in a context variable for the duration of the request and echoes it on the
response. `RequestIdLogFilter` stamps that id onto every log record, so the
console format can show which request a repository or coordinator log line
belongs to. Records emitted outside a request carry "-".
"""

from __future__ import annotations

import logging
import uuid
from contextvars import ContextVar

REQUEST_ID_HEADER = "X-Request-Id"
_NO_REQUEST = "-"

current_request_id: ContextVar[str] = ContextVar("current_request_id", default=_NO_REQUEST)


class RequestIdLogFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = current_request_id.get()
        return True


class RequestIdMiddleware:
    def __init__(self, app, header_name: str = REQUEST_ID_HEADER) -> None:  # type: ignore[no-untyped-def]
        self.app = app
        self.header_name = header_name.encode("latin-1")
        self._match = header_name.lower().encode("latin-1")

    def _incoming(self, scope) -> str | None:  # type: ignore[no-untyped-def]
        for key, value in scope.get("headers") or []:
            if key.lower() == self._match and value.strip():
                return value.decode("latin-1").strip()
        return None

    async def __call__(self, scope, receive, send):  # type: ignore[no-untyped-def]
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        request_id = self._incoming(scope) or str(uuid.uuid4())
        token = current_request_id.set(request_id)

        async def send_with_id(message):  # type: ignore[no-untyped-def]
            if message.get("type") == "http.response.start":
                headers = [(k, v) for k, v in message.get("headers") or [] if k.lower() != self._match]
                headers.append((self.header_name, request_id.encode("latin-1")))
                message = {**message, "headers": headers}
            await send(message)

        try:
            await self.app(scope, receive, send_with_id)
        finally:
            current_request_id.reset(token)


__all__ = ["REQUEST_ID_HEADER", "current_request_id", "RequestIdLogFilter", "RequestIdMiddleware"]
