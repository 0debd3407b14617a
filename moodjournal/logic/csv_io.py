"""RFC4180 CSV export of recorded answers.

One row per answer in the order given (the repository lists newest first).
Date and time are rendered in the configured local zone. Answers whose
question row is gone are labelled "Unknown Question".
"""

from __future__ import annotations

import csv
import io
from datetime import tzinfo
from typing import Iterable, Mapping

from moodjournal.models.entities import Answer, Question

HEADER = ["Date", "Time", "Question", "Answer", "Notes", "Snoozed"]
UNKNOWN_QUESTION = "Unknown Question"


def build_answers_csv(
    answers: Iterable[Answer],
    questions: Mapping[str, Question],
    tz: tzinfo,
) -> str:
    buf = io.StringIO(newline="")
    writer = csv.DictWriter(buf, fieldnames=HEADER, lineterminator="\n")
    writer.writeheader()
    for answer in answers:
        local = answer.timestamp.astimezone(tz)
        question = questions.get(answer.question_id)
        writer.writerow(
            {
                "Date": local.strftime("%Y-%m-%d"),
                "Time": local.strftime("%H:%M"),
                "Question": question.text if question is not None else UNKNOWN_QUESTION,
                "Answer": answer.answer_text,
                "Notes": answer.additional_notes or "",
                "Snoozed": "Yes" if answer.was_snooze else "No",
            }
        )
    return buf.getvalue()


__all__ = ["HEADER", "UNKNOWN_QUESTION", "build_answers_csv"]
