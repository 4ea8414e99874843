from types import SimpleNamespace

import pytest

import jobtracker.scripts.ensure_tables as ensure_tables
import jobtracker.scripts.refresh_analytics as refresh_analytics
import jobtracker.scripts.send_due_reminders as send_due


class _DB:
    def __init__(self):
        self.rollbacks = 0

    def rollback(self):
        self.rollbacks += 1


def test_ensure_tables_main(monkeypatch, capsys):
    calls = []
    monkeypatch.setattr(ensure_tables, "ensure_tables_exist", lambda: calls.append("ensure"))
    ensure_tables.main()
    assert calls == ["ensure"]
    assert "created only missing tables" in capsys.readouterr().out


def test_refresh_all_counts_and_isolates_failures(monkeypatch):
    users = [SimpleNamespace(id="u1"), SimpleNamespace(id="u2"), SimpleNamespace(id="u3")]
    refreshed = []

    def _refresh(db, user_id):
        if user_id == "u2":
            raise RuntimeError("boom")
        refreshed.append(user_id)

    monkeypatch.setattr(refresh_analytics.analytics_service, "refresh", _refresh)
    db = _DB()
    result = refresh_analytics.refresh_all(db, users=users)
    assert result == {"refreshed": 2, "skipped": 0, "failed": 1}
    assert refreshed == ["u1", "u3"]
    assert db.rollbacks == 1


def test_refresh_all_stale_only_skips_fresh(monkeypatch):
    users = [SimpleNamespace(id="fresh"), SimpleNamespace(id="stale")]
    monkeypatch.setattr(refresh_analytics, "list_active", lambda db: users)
    monkeypatch.setattr(refresh_analytics.analytics_repo, "get_snapshot", lambda db, uid: uid)
    monkeypatch.setattr(refresh_analytics.analytics_service, "needs_refresh", lambda snapshot: snapshot == "stale")
    monkeypatch.setattr(refresh_analytics.analytics_service, "refresh", lambda db, uid: None)
    result = refresh_analytics.refresh_all(_DB(), stale_only=True)
    assert result == {"refreshed": 1, "skipped": 1, "failed": 0}


def test_dispatch_due_marks_only_delivered(monkeypatch):
    user = SimpleNamespace(id="u1")
    delivered = SimpleNamespace(id="r1", job_application_id="job-1")
    bounced = SimpleNamespace(id="r2", job_application_id="job-1")
    marked = []

    monkeypatch.setattr(send_due, "list_active", lambda db: [user])
    monkeypatch.setattr(send_due.reminder_repo, "due_for_email", lambda db, uid: [delivered, bounced])
    monkeypatch.setattr(send_due.reminder_repo, "mark_email_sent", lambda db, r: marked.append(r.id))
    monkeypatch.setattr(send_due.job_application_repo, "get_by_id", lambda db, jid, uid: None)
    monkeypatch.setattr(send_due.email_service, "notify_reminder", lambda u, r, job: r.id == "r1")

    assert send_due.dispatch_due(object()) == {"sent": 1, "failed": 1}
    assert marked == ["r1"]


def test_send_due_main_exits_when_email_disabled(monkeypatch):
    monkeypatch.setattr(send_due.settings, "email_enabled", False)
    monkeypatch.setattr(send_due, "setup_logging", lambda: None)
    monkeypatch.setattr(send_due, "ensure_tables_exist", lambda: pytest.fail("no database work expected"))
    monkeypatch.setattr("sys.argv", ["prog", "--once"])
    send_due.main()
