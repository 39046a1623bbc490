"""
Tests for database infrastructure (pass_kernel/db/engine.py, pass_kernel/db/base.py).

Covers:
- UTC normalization of stored timestamps
- Rejection of naive datetimes
- session_scope commit/rollback
- Engine lifecycle errors
"""

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import select
from sqlalchemy.exc import StatementError

from pass_kernel.db import engine as engine_module
from pass_kernel.db.engine import get_engine, session_scope
from pass_kernel.models.unit import Building
from pass_kernel.models.visitor_pass import VisitorPass


class TestUTCDateTime:
    def test_local_time_stored_as_same_instant(self, session, ledger, unit, vehicle):
        local = datetime(2024, 7, 4, 22, 30, tzinfo=ZoneInfo("America/New_York"))
        issued = ledger.create_pass(unit.id, vehicle.id, now=local)
        session.commit()
        session.expunge_all()

        row = session.get(VisitorPass, issued.id)

        assert row.created_at == local
        assert row.created_at.utcoffset() == timedelta(0)
        assert row.expires_at == local + timedelta(hours=24)

    def test_naive_datetime_rejected(self, session):
        with pytest.raises(StatementError):
            session.execute(
                select(VisitorPass).where(VisitorPass.created_at > datetime(2024, 1, 1))
            ).all()

    def test_server_default_timestamps_are_aware(self, session, building):
        session.commit()
        session.expunge_all()

        row = session.execute(select(Building)).scalar_one()
        assert row.created_at.tzinfo is not None


class TestSessionScope:
    def test_commits_on_success(self, db_engine):
        with session_scope() as s:
            s.add(Building(number="SCOPE-1"))

        with session_scope() as s:
            assert s.execute(select(Building.number)).scalars().all() == ["SCOPE-1"]

    def test_rolls_back_on_error(self, db_engine, captured_logs):
        with pytest.raises(RuntimeError):
            with session_scope() as s:
                s.add(Building(number="SCOPE-2"))
                s.flush()
                raise RuntimeError("boom")

        with session_scope() as s:
            assert s.execute(select(Building.number)).scalars().all() == []
        assert any(r["message"] == "transaction_rolled_back" for r in captured_logs())


class TestEngineLifecycle:
    def test_engine_available(self, db_engine):
        assert get_engine() is db_engine

    def test_uninitialized_engine_raises(self, monkeypatch):
        monkeypatch.setattr(engine_module, "_engine", None)
        monkeypatch.setattr(engine_module, "_SessionFactory", None)

        with pytest.raises(RuntimeError, match="not initialized"):
            engine_module.get_session()
        with pytest.raises(RuntimeError, match="not initialized"):
            engine_module.get_engine()
