"""Domain events raised by the journal.

`publish()` logs each event and keeps the most recent ones in a bounded
in-memory buffer that the test-support routes expose. Timer callbacks run on
APScheduler worker threads, so the buffer is guarded by a lock.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional

logger = logging.getLogger(__name__)

PROMPT_SHOWN = "prompt.shown"
ANSWER_RECORDED = "answer.recorded"
QUESTION_DELETED = "question.deleted"
SCHEDULES_SYNCED = "schedules.synced"

EVENT_BUFFER_SIZE = 500

EVENT_BUFFER: Deque[Dict[str, Any]] = deque(maxlen=EVENT_BUFFER_SIZE)
_buffer_lock = threading.Lock()


def publish(event_type: str, payload: Dict[str, Any]) -> None:
    logger.info("event_published type=%s", event_type)
    logger.debug("event_payload type=%s payload=%s", event_type, payload)
    event = {
        "type": event_type,
        "at": datetime.now(timezone.utc).isoformat(),
        "payload": payload,
    }
    with _buffer_lock:
        EVENT_BUFFER.append(event)


def get_buffered_events(clear: bool = True, event_type: Optional[str] = None) -> List[Dict[str, Any]]:
    """Return buffered events oldest first, optionally only one type.

    Clearing always empties the whole buffer, whatever the filter.
    """
    with _buffer_lock:
        events = list(EVENT_BUFFER)
        if clear:
            EVENT_BUFFER.clear()
    if event_type is not None:
        events = [e for e in events if e["type"] == event_type]
    return events


__all__ = [
    "PROMPT_SHOWN",
    "ANSWER_RECORDED",
    "QUESTION_DELETED",
    "SCHEDULES_SYNCED",
    "EVENT_BUFFER",
    "publish",
    "get_buffered_events",
]
