"""
tests/test_database_engine.py — Session helper error translation
=================================================================
"""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from sqlalchemy import func, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gamify.database.engine import get_session, is_unique_violation
from gamify.database.models import GameMetric
from gamify.errors import ConflictError, InternalError


def _metric_count(engine):
    with Session(engine) as session:
        return session.scalar(select(func.count()).select_from(GameMetric))


class TestGetSession:
    def test_commits_on_success(self, db_engine):
        with get_session(db_engine) as session:
            session.add(GameMetric(name="points", units="pts"))
        assert _metric_count(db_engine) == 1

    def test_unique_violation_is_conflict(self, db_engine):
        with get_session(db_engine) as session:
            session.add(GameMetric(name="points", units="pts"))
        insert = text(
            "INSERT INTO user_game_metrics (user_id, metric_id, value) VALUES ('u1', 1, 1)"
        )
        with pytest.raises(ConflictError):
            with get_session(db_engine) as session:
                session.execute(insert)
                session.execute(insert)

    def test_not_null_violation_is_internal_not_conflict(self, db_engine):
        with pytest.raises(InternalError, match="integrity"):
            with get_session(db_engine) as session:
                session.add(GameMetric(name="ok", units="u"))
                session.flush()
                session.execute(text(
                    "INSERT INTO game_metrics (name, units, type, default_increment_value) "
                    "VALUES ('bad', 'u', 'Number', NULL)"
                ))
        assert _metric_count(db_engine) == 0


class TestIsUniqueViolation:
    @pytest.mark.parametrize("code,expected", [("23505", True), ("23502", False), ("23503", False)])
    def test_postgres_sqlstate(self, code, expected):
        exc = IntegrityError("INSERT ...", {}, SimpleNamespace(pgcode=code))
        assert is_unique_violation(exc) is expected

    def test_sqlite_message(self):
        orig = Exception("UNIQUE constraint failed: user_game_metrics.user_id")
        assert is_unique_violation(IntegrityError("INSERT ...", {}, orig)) is True

    def test_sqlite_not_null_message(self):
        orig = Exception("NOT NULL constraint failed: user_game_metrics.value")
        assert is_unique_violation(IntegrityError("INSERT ...", {}, orig)) is False
