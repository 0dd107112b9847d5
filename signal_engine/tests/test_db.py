"""Tests for engine setup and the session helpers in db.py."""
from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

import signal_engine.db as db_mod
from signal_engine.db import default_db_path, init_db, session_generator, session_scope
from signal_engine.models import Campaign


@pytest.fixture()
def file_db(tmp_path, monkeypatch):
    """Point the module-level engine at a throwaway SQLite file."""
    monkeypatch.setattr(db_mod, "_engine", None)
    monkeypatch.setattr(db_mod, "_SessionLocal", None)
    path = tmp_path / "engine.db"
    init_db(path)
    yield path
    db_mod._engine.dispose()


class TestDefaultPath:
    def test_env_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SIGNAL_ENGINE_DB", str(tmp_path / "x.db"))
        assert default_db_path() == tmp_path / "x.db"

    def test_fallback(self, monkeypatch):
        monkeypatch.delenv("SIGNAL_ENGINE_DB", raising=False)
        assert default_db_path().name == "signal_engine.db"


class TestSessionManagement:
    def test_uninitialised(self, monkeypatch):
        monkeypatch.setattr(db_mod, "_SessionLocal", None)
        with pytest.raises(RuntimeError, match="init_db"):
            db_mod.get_session()

    def test_init_creates_file(self, file_db):
        assert file_db.exists()

    def test_session_scope_commits(self, file_db):
        with session_scope() as sess:
            assert isinstance(sess, Session)
            sess.add(Campaign(slug="scoped", title="Scoped"))
            sess.commit()
        with session_scope() as sess:
            assert sess.execute(select(func.count(Campaign.id))).scalar_one() == 1

    def test_session_scope_rolls_back(self, file_db):
        with pytest.raises(ValueError):
            with session_scope() as sess:
                sess.add(Campaign(slug="doomed", title="Doomed"))
                sess.flush()
                raise ValueError("boom")
        with session_scope() as sess:
            assert sess.execute(select(func.count(Campaign.id))).scalar_one() == 0

    def test_session_generator(self, file_db):
        gen = session_generator()
        sess = next(gen)
        assert isinstance(sess, Session)
        gen.close()

    def test_api_dependency_uses_session_generator(self, file_db):
        from signal_engine.app import db_session

        gen = db_session()
        sess = next(gen)
        assert isinstance(sess, Session)
        sess.add(Campaign(slug="via-api", title="Via API"))
        sess.commit()
        gen.close()
        with session_scope() as check:
            assert check.execute(select(func.count(Campaign.id))).scalar_one() == 1
