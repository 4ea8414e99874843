import logging

import pytest
from sqlalchemy import JSON
from sqlalchemy.dialects import postgresql, sqlite

import jobtracker.database as dbmod
from jobtracker.models import JobApplication


def test_get_db_closes_session_after_request(monkeypatch):
    closed = []

    class _Session:
        def close(self):
            closed.append(True)

    monkeypatch.setattr(dbmod, "SessionLocal", _Session)
    gen = dbmod.get_db()
    assert isinstance(next(gen), _Session)
    gen.close()
    assert closed == [True]


def test_json_columns_use_jsonb_on_postgres_only():
    column = JobApplication.__table__.c.interviews
    assert isinstance(column.type.dialect_impl(postgresql.dialect()), postgresql.JSONB)
    on_sqlite = column.type.dialect_impl(sqlite.dialect())
    assert isinstance(on_sqlite, JSON)
    assert not isinstance(on_sqlite, postgresql.JSONB)


def test_json_columns_round_trip_nested_data(db_session):
    from jobtracker.repos import job_application_repo, user_repo

    user = user_repo.create(db_session, "nested@example.com", None, first_name="N", last_name="D")
    job = job_application_repo.create(
        db_session,
        user.id,
        {"job_title": "SRE", "company": "Initech", "location": {"city": "Pune", "is_remote": True}},
    )
    db_session.expire_all()
    stored = db_session.get(JobApplication, job.id)
    assert stored.location == {"city": "Pune", "is_remote": True}


def test_ensure_tables_exist_logs_only_missing(monkeypatch, caplog):
    class _Inspector:
        def get_table_names(self):
            return ["users", "job_applications"]

    class _Meta:
        tables = {"users": object(), "job_applications": object(), "reminders": object()}

        def create_all(self, bind):
            return None

    monkeypatch.setattr(dbmod, "inspect", lambda _engine: _Inspector())
    monkeypatch.setattr(dbmod.Base, "metadata", _Meta())
    with caplog.at_level(logging.INFO, logger="jobtracker.database"):
        dbmod.ensure_tables_exist()
    assert "Created missing DB tables: reminders" in caplog.text


def test_init_db_propagates_failures(monkeypatch):
    class _Meta:
        def create_all(self, bind):
            raise RuntimeError("db down")

    monkeypatch.setattr(dbmod.Base, "metadata", _Meta())
    with pytest.raises(RuntimeError):
        dbmod.init_db()
