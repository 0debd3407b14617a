"""Architectural tests for the mood journal package.

Static, file/AST-based checks: they read sources under the project root and
never import application code, so a broken module surfaces as a failed
assertion rather than a collection crash.
"""

from __future__ import annotations

import ast
import re
from pathlib import Path
from typing import Iterable, List, Set

import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[2]
PKG_DIR = PROJECT_ROOT / "moodjournal"
LOGIC_DIR = PKG_DIR / "logic"
ROUTES_DIR = PKG_DIR / "routes"
MIGRATIONS = PKG_DIR / "db" / "migrations"


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        pytest.fail(f"Expected file is missing: {path}")


def _parse(path: Path) -> ast.Module:
    try:
        return ast.parse(_read_text(path), filename=str(path))
    except SyntaxError as exc:
        pytest.fail(f"Cannot parse {path}: {exc}")


def _imported_roots(tree: ast.Module) -> Set[str]:
    """Top-level module names imported anywhere in the tree."""
    roots: Set[str] = set()
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            roots.update(alias.name.split(".")[0] for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module and node.level == 0:
            roots.add(node.module.split(".")[0])
    return roots


def _py_files(root: Path) -> Iterable[Path]:
    return sorted(p for p in root.rglob("*.py") if "__pycache__" not in p.parts)


def test_schedule_engine_is_pure() -> None:
    roots = _imported_roots(_parse(LOGIC_DIR / "schedule_engine.py"))
    forbidden = {"sqlalchemy", "fastapi", "starlette", "apscheduler", "threading", "time"}
    assert not roots & forbidden, f"schedule_engine imports {sorted(roots & forbidden)}"


def test_logic_layer_does_not_depend_on_the_web_framework() -> None:
    offenders: List[str] = []
    for path in _py_files(LOGIC_DIR):
        roots = _imported_roots(_parse(path))
        if roots & {"fastapi", "starlette"}:
            offenders.append(path.name)
    assert offenders == []


def test_only_the_timer_facility_talks_to_apscheduler() -> None:
    users = [
        path.relative_to(PKG_DIR).as_posix()
        for path in _py_files(PKG_DIR)
        if "apscheduler" in _imported_roots(_parse(path))
    ]
    assert users == ["logic/timer_facility.py"]


def test_routes_issue_no_sql() -> None:
    for path in _py_files(ROUTES_DIR):
        text = _read_text(path)
        assert "sql_text" not in text, path.name
        assert not re.search(r"\b(SELECT|INSERT|UPDATE|DELETE)\s+(FROM|INTO|\w+\s+SET)\b", text), path.name


def test_ddl_lives_only_in_migrations() -> None:
    for path in _py_files(PKG_DIR):
        text = _read_text(path)
        assert not re.search(r"\bCREATE\s+(TABLE|INDEX)\b", text, re.IGNORECASE), path.name


def test_answers_cascade_with_their_question() -> None:
    sql = _read_text(MIGRATIONS / "001_init.sql")
    assert re.search(
        r"FOREIGN\s+KEY\s*\(question_id\)\s*REFERENCES\s+questions\s*\(question_id\)\s*ON\s+DELETE\s+CASCADE",
        sql,
        re.IGNORECASE,
    )


def test_migrations_are_numbered_and_contiguous() -> None:
    names = sorted(p.name for p in MIGRATIONS.glob("*.sql"))
    numbers = [int(n.split("_", 1)[0]) for n in names]
    assert numbers == list(range(1, len(names) + 1))


def test_app_is_not_instantiated_at_import_time() -> None:
    tree = _parse(PKG_DIR / "main.py")
    for node in tree.body:
        if isinstance(node, (ast.Assign, ast.Expr)) and isinstance(getattr(node, "value", None), ast.Call):
            func = node.value.func
            name = getattr(func, "id", None) or getattr(func, "attr", None)
            assert name not in {"create_app", "FastAPI"}, "module-level app instance in main.py"


def test_modules_that_log_use_a_module_logger() -> None:
    pattern = re.compile(r"^logger = logging\.getLogger\(__name__\)$", re.MULTILINE)
    for path in _py_files(PKG_DIR):
        if path.name == "logging_setup.py":
            continue
        text = _read_text(path)
        if "logger." in text:
            assert pattern.search(text), f"{path.name} logs without a module logger"


def test_package_readme_is_the_project_readme() -> None:
    match = re.search(r'^readme = "([^"]+)"$', _read_text(PROJECT_ROOT / "pyproject.toml"), re.MULTILINE)
    assert match, "pyproject.toml declares no readme"
    assert match.group(1) == "README.md"
    assert (PROJECT_ROOT / match.group(1)).is_file()
