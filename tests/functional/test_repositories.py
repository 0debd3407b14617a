"""Functional tests for the SQL repositories against in-memory SQLite."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import text as sql_text
from sqlalchemy.exc import OperationalError

from moodjournal.db.base import build_engine
from moodjournal.db.migrations_runner import applied_migrations, apply_migrations
from moodjournal.logic import repository_answers as answers_repo
from moodjournal.logic import repository_questions as questions_repo
from moodjournal.logic import repository_schedules as schedules_repo
from moodjournal.logic.domain import create_question, create_schedule, record_answer, set_hidden, update_question
from moodjournal.logic.errors import NotFoundError, StoreError, ValidationError
from moodjournal.logic.seed import DEFAULT_QUESTIONS, seed_defaults

T1 = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


def _answer_at(engine, question, text, moment, **kwargs):
    answer = record_answer(question, text, clock=lambda: moment, **kwargs)
    return answers_repo.insert_answer(answer, engine=engine)


def test_migrations_are_recorded_and_not_reapplied(engine):
    assert applied_migrations(engine) == ["001_init.sql", "002_indexes.sql"]
    assert apply_migrations(engine) == []


def test_semicolons_inside_sql_comments_do_not_split_statements(tmp_path):
    (tmp_path / "001_first.sql").write_text(
        "-- notes; with a semicolon\nCREATE TABLE t1 (id TEXT PRIMARY KEY);\n"
        "  -- indented; comment\nCREATE TABLE t2 (id TEXT PRIMARY KEY);\n",
        encoding="utf-8",
    )
    fresh = build_engine("sqlite+pysqlite:///:memory:")

    assert apply_migrations(fresh, tmp_path) == ["001_first.sql"]
    with fresh.connect() as conn:
        names = conn.execute(sql_text("SELECT name FROM sqlite_master WHERE type = 'table'")).scalars().all()
    assert {"t1", "t2"} <= set(names)


def test_packaged_migrations_apply_to_a_fresh_database():
    fresh = build_engine("sqlite+pysqlite:///:memory:")
    assert apply_migrations(fresh) == ["001_init.sql", "002_indexes.sql"]


def test_stored_timestamps_keep_microseconds(engine):
    moment = datetime(2024, 3, 4, 9, 30, 0, 123456, tzinfo=timezone.utc)
    q = questions_repo.insert_question(create_question("Sleep?", "TEXT", clock=lambda: moment), engine=engine)
    a = _answer_at(engine, q, "fine", moment)

    assert questions_repo.get_question(q.id, engine=engine) == q
    assert answers_repo.get_answer(a.id, engine=engine) == a
    assert answers_repo.get_answer(a.id, engine=engine).timestamp.microsecond == 123456


def test_answers_under_a_millisecond_apart_stay_newest_first(engine):
    q = questions_repo.insert_question(create_question("Mood?", "TEXT", clock=lambda: T1), engine=engine)
    made = [_answer_at(engine, q, f"a{i}", T1 + timedelta(microseconds=50 * i)) for i in range(6)]

    latest = answers_repo.latest_answer_per_question(engine=engine)
    recent = answers_repo.recent_answers_for_question(q.id, 3, engine=engine)

    assert [a.id for a in latest] == [made[-1].id]
    assert [a.answer_text for a in recent] == ["a5", "a4", "a3"]


def test_question_round_trip_preserves_version_and_options(engine):
    q = questions_repo.insert_question(
        create_question("Mood?", "MULTIPLE_CHOICE", ["Great", "Okay"], clock=lambda: T1), engine=engine
    )
    edited = questions_repo.save_question(update_question(q, "Mood now?", "MULTIPLE_CHOICE", ["A", "B", "C"]), engine=engine)

    stored = questions_repo.get_question(q.id, engine=engine)
    assert stored == edited
    assert stored.version == 2
    assert stored.options == ("A", "B", "C")
    assert stored.created_at == T1


def test_save_question_of_unknown_id_raises_not_found(engine):
    with pytest.raises(NotFoundError):
        questions_repo.save_question(create_question("Ghost", "TEXT"), engine=engine)


def test_active_listing_excludes_hidden_questions_in_creation_order(engine):
    made = []
    for offset, text in enumerate(["first", "second", "third"]):
        q = create_question(text, "TEXT", clock=lambda o=offset: T1 + timedelta(minutes=o))
        made.append(questions_repo.insert_question(q, engine=engine))
    questions_repo.save_question(set_hidden(made[1], True), engine=engine)

    assert [q.text for q in questions_repo.list_questions(engine=engine)] == ["first", "second", "third"]
    assert [q.text for q in questions_repo.list_questions(active_only=True, engine=engine)] == ["first", "third"]
    assert questions_repo.count_questions(active_only=True, engine=engine) == 2


def test_deleting_a_question_removes_all_of_its_answers(engine):
    q = questions_repo.insert_question(create_question("Q", "TEXT"), engine=engine)
    other = questions_repo.insert_question(create_question("Other", "TEXT"), engine=engine)
    for i in range(5):
        _answer_at(engine, q, f"a{i}", T1 + timedelta(minutes=i))
    _answer_at(engine, other, "kept", T1)

    removed = questions_repo.delete_question(q.id, engine=engine)

    assert removed == 5
    assert questions_repo.get_question(q.id, engine=engine) is None
    assert answers_repo.count_answers_for_question(q.id, engine=engine) == 0
    assert [a.answer_text for a in answers_repo.list_answers(engine=engine)] == ["kept"]


def test_foreign_key_cascade_also_applies_to_raw_deletes(engine):
    q = questions_repo.insert_question(create_question("Q", "TEXT"), engine=engine)
    _answer_at(engine, q, "x", T1)
    with engine.begin() as conn:
        conn.execute(sql_text("DELETE FROM questions WHERE question_id = :qid"), {"qid": q.id})
    assert answers_repo.count_answers_for_question(q.id, engine=engine) == 0


def test_deleting_unknown_question_raises_not_found(engine):
    with pytest.raises(NotFoundError):
        questions_repo.delete_question("missing", engine=engine)


def test_recent_answers_are_newest_first_and_limited(engine):
    q = questions_repo.insert_question(create_question("Q", "TEXT"), engine=engine)
    for i in range(1, 5):
        _answer_at(engine, q, f"T{i}", T1 + timedelta(hours=i))

    recent = answers_repo.recent_answers_for_question(q.id, 2, engine=engine)

    assert [a.answer_text for a in recent] == ["T4", "T3"]
    with pytest.raises(ValidationError):
        answers_repo.list_answers_for_question(q.id, limit=0, engine=engine)


def test_latest_answer_per_question_returns_one_row_each(engine):
    q1 = questions_repo.insert_question(create_question("Q1", "TEXT"), engine=engine)
    q2 = questions_repo.insert_question(create_question("Q2", "TEXT"), engine=engine)
    questions_repo.insert_question(create_question("Unanswered", "TEXT"), engine=engine)
    _answer_at(engine, q1, "old", T1)
    _answer_at(engine, q1, "new", T1 + timedelta(hours=2))
    _answer_at(engine, q2, "only", T1 + timedelta(hours=1))

    latest = answers_repo.latest_answer_per_question(engine=engine)

    assert {(a.question_id, a.answer_text) for a in latest} == {(q1.id, "new"), (q2.id, "only")}
    assert len(latest) == 2


def test_answers_keep_their_version_after_question_edits(engine):
    q = questions_repo.insert_question(create_question("Mood?", "MULTIPLE_CHOICE", ["Good", "Bad"]), engine=engine)
    _answer_at(engine, q, "Good", T1)
    q2 = questions_repo.save_question(update_question(q, "Mood today?", "MULTIPLE_CHOICE", ["Good", "Bad"]), engine=engine)
    _answer_at(engine, q2, "Bad", T1 + timedelta(hours=1), was_snooze=True)

    history = answers_repo.list_answers_for_question(q.id, engine=engine)

    assert [(a.answer_text, a.question_version, a.was_snooze) for a in history] == [
        ("Bad", 2, True),
        ("Good", 1, False),
    ]


def test_delete_answer_reports_whether_a_row_was_removed(engine):
    q = questions_repo.insert_question(create_question("Q", "TEXT"), engine=engine)
    a = _answer_at(engine, q, "x", T1)
    assert answers_repo.delete_answer(a.id, engine=engine) is True
    assert answers_repo.delete_answer(a.id, engine=engine) is False


def test_schedules_are_listed_by_time_and_filtered_by_enabled(engine):
    late = schedules_repo.insert_schedule(create_schedule("21:00"), engine=engine)
    early = schedules_repo.insert_schedule(create_schedule("07:30"), engine=engine)
    schedules_repo.save_schedule(replace(late, is_enabled=False), engine=engine)

    assert [s.time_of_day for s in schedules_repo.list_schedules(engine=engine)] == ["07:30", "21:00"]
    assert [s.id for s in schedules_repo.list_schedules(enabled_only=True, engine=engine)] == [early.id]

    schedules_repo.delete_schedule(early.id, engine=engine)
    with pytest.raises(NotFoundError):
        schedules_repo.delete_schedule(early.id, engine=engine)


def test_seed_defaults_only_fill_empty_tables(engine):
    first = seed_defaults(engine=engine)
    second = seed_defaults(engine=engine)

    assert first == {"questions": len(DEFAULT_QUESTIONS), "schedules": 4}
    assert second == {"questions": 0, "schedules": 0}
    texts = [q.text for q in questions_repo.list_questions(engine=engine)]
    assert texts == [text for text, _kind, _opts in DEFAULT_QUESTIONS]
    times = [s.time_of_day for s in schedules_repo.list_schedules(engine=engine)]
    assert times == ["09:00", "13:00", "17:00", "21:00"]


def test_driver_failures_surface_as_store_error(mocker):
    broken = mocker.MagicMock()
    broken.connect.side_effect = OperationalError("SELECT", {}, Exception("disk I/O error"))
    with pytest.raises(StoreError):
        schedules_repo.list_schedules(engine=broken)
