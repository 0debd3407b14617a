"""Functional tests for the answers CSV export."""

from __future__ import annotations

import csv
import io
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from moodjournal.logic.csv_io import HEADER, UNKNOWN_QUESTION, build_answers_csv
from moodjournal.logic.domain import create_question, record_answer


def _rows(text: str):
    return list(csv.reader(io.StringIO(text)))


def test_rows_use_local_date_time_and_yes_no_snooze_flag():
    q = create_question("How is your mood?", "MULTIPLE_CHOICE", ["Good", "Bad"])
    moment = datetime(2024, 7, 1, 23, 30, tzinfo=timezone.utc)
    answer = record_answer(q, "Good", notes="after dinner", was_snooze=True, clock=lambda: moment)

    rows = _rows(build_answers_csv([answer], {q.id: q}, ZoneInfo("Europe/Berlin")))

    assert rows[0] == HEADER
    assert rows[1] == ["2024-07-02", "01:30", "How is your mood?", "Good", "after dinner", "Yes"]


def test_answers_without_a_question_row_are_labelled_unknown():
    q = create_question("Gone", "TEXT")
    answer = record_answer(q, "text")

    rows = _rows(build_answers_csv([answer], {}, ZoneInfo("UTC")))

    assert rows[1][2] == UNKNOWN_QUESTION
    assert rows[1][4] == ""
    assert rows[1][5] == "No"


def test_commas_quotes_and_newlines_are_escaped():
    q = create_question("Anything, else?", "TEXT")
    answer = record_answer(q, 'a "quoted"\nvalue')

    text = build_answers_csv([answer], {q.id: q}, ZoneInfo("UTC"))

    assert '"Anything, else?"' in text
    assert '"a ""quoted""\nvalue"' in text
    assert _rows(text)[1][2:4] == ["Anything, else?", 'a "quoted"\nvalue']


def test_empty_history_exports_only_the_header():
    assert build_answers_csv([], {}, ZoneInfo("UTC")) == "Date,Time,Question,Answer,Notes,Snoozed\n"
