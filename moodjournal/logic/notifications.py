"""Notification delivery collaborator.

The coordinator hands a PromptPayload to a Notifier when a timer elapses.
Delivery is fire-and-forget; the core never inspects a return value.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Protocol

from moodjournal.logic.events import PROMPT_SHOWN, publish

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PromptPayload:
    """What the user is being asked to answer, and why now.

    `local_day` is the calendar day of the actual fire time in the
    configured zone, even when an inexact timer slipped past midnight.
    """

    schedule_id: Optional[str]
    scheduled_for: datetime
    fired_at: datetime
    local_day: date
    is_snooze: bool = False

    def to_dict(self) -> dict:
        return {
            "schedule_id": self.schedule_id,
            "scheduled_for": self.scheduled_for.isoformat(),
            "fired_at": self.fired_at.isoformat(),
            "local_day": self.local_day.isoformat(),
            "is_snooze": self.is_snooze,
            "action": "answer_questions",
        }


class Notifier(Protocol):
    def show(self, payload: PromptPayload) -> None: ...


class LoggingNotifier:
    """Default delivery: log the prompt and publish a `prompt.shown` event."""

    title = "Time for a check-in"
    text = "How are you doing? Take a moment to answer your questions."

    def show(self, payload: PromptPayload) -> None:
        logger.info(
            "prompt_shown schedule_id=%s snooze=%s day=%s",
            payload.schedule_id,
            payload.is_snooze,
            payload.local_day.isoformat(),
        )
        publish(PROMPT_SHOWN, {**payload.to_dict(), "title": self.title, "text": self.text})


__all__ = ["PromptPayload", "Notifier", "LoggingNotifier"]
