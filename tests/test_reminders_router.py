from datetime import datetime, timedelta, timezone

import jobtracker.routers.reminders as reminders_mod
from jobtracker.core.errors import NotFoundError
from jobtracker.models.reminder import Reminder
from jobtracker.services import reminder_lifecycle


def _make_reminder(reminder_id="rem-1", **fields) -> Reminder:
    data = {
        "id": reminder_id,
        "user_id": "user-1",
        "job_application_id": "job-1",
        "title": "Follow up with recruiter",
        "reminder_date": datetime.now(timezone.utc) + timedelta(days=2),
        "reminder_type": "follow_up",
        "priority": "medium",
        "status": "pending",
        "is_recurring": False,
        "notify_email": True,
        "notify_push": True,
        "notify_sms": False,
        "email_sent": False,
        "is_auto_generated": False,
    }
    data.update(fields)
    return Reminder(**data)


def _owned(monkeypatch, reminder):
    monkeypatch.setattr(reminders_mod.reminder_repo, "get_by_id", lambda db, rid, uid: reminder)


def test_list_rejects_unknown_status(client):
    resp = client.get("/reminders", params={"status": "done"})
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "status"


def test_list_returns_derived_fields(monkeypatch, client):
    overdue = _make_reminder("rem-2", reminder_date=datetime.now(timezone.utc) - timedelta(hours=3))
    monkeypatch.setattr(
        reminders_mod.reminder_repo, "list_for_user", lambda db, uid, **kw: ([_make_reminder(), overdue], 2)
    )
    resp = client.get("/reminders", params={"status": "pending"})
    assert resp.status_code == 200
    items = resp.json()["data"]["items"]
    assert [i["is_overdue"] for i in items] == [False, True]
    assert items[0]["days_until"] == 2


def test_create_reminder(monkeypatch, client):
    captured = {}

    def _create(db, user_id, fields):
        captured.update(fields)
        return _make_reminder(title=fields["title"])

    monkeypatch.setattr(reminders_mod.reminder_repo, "create", _create)
    when = (datetime.now(timezone.utc) + timedelta(days=1)).isoformat()
    resp = client.post(
        "/reminders",
        json={"job_application_id": "job-1", "title": "Prep", "reminder_date": when, "reminder_type": "interview_prep"},
    )
    assert resp.status_code == 201
    assert resp.json()["data"]["title"] == "Prep"
    assert captured["reminder_type"] == "interview_prep"


def test_create_reminder_for_foreign_job_is_404(monkeypatch, client):
    def _create(db, user_id, fields):
        raise NotFoundError("Job application not found")

    monkeypatch.setattr(reminders_mod.reminder_repo, "create", _create)
    when = (datetime.now(timezone.utc) + timedelta(days=1)).isoformat()
    resp = client.post(
        "/reminders",
        json={"job_application_id": "job-x", "title": "Prep", "reminder_date": when, "reminder_type": "custom"},
    )
    assert resp.status_code == 404


def test_create_reminder_rejects_unknown_type(client):
    when = (datetime.now(timezone.utc) + timedelta(days=1)).isoformat()
    resp = client.post(
        "/reminders",
        json={"job_application_id": "job-1", "title": "Prep", "reminder_date": when, "reminder_type": "party"},
    )
    assert resp.status_code == 400


def test_complete_recurring_returns_next_occurrence(monkeypatch, client):
    reminder = _make_reminder(is_recurring=True, recurrence_type="weekly", recurrence_interval=1)
    _owned(monkeypatch, reminder)

    def _complete(db, r, notes=None):
        return r, reminder_lifecycle.complete(r, notes=notes)

    monkeypatch.setattr(reminders_mod.reminder_repo, "complete", _complete)
    resp = client.post("/reminders/rem-1/complete", json={"notes": "Sent email"})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["reminder"]["status"] == "completed"
    assert data["reminder"]["notes"] == "Sent email"
    assert data["next_occurrence"]["status"] == "pending"
    assert data["next_occurrence"]["days_until"] == 9


def test_complete_twice_is_rejected(monkeypatch, client):
    _owned(monkeypatch, _make_reminder(status="completed"))
    monkeypatch.setattr(
        reminders_mod.reminder_repo, "complete", lambda db, r, notes=None: (r, reminder_lifecycle.complete(r))
    )
    resp = client.post("/reminders/rem-1/complete")
    assert resp.status_code == 400
    assert resp.json()["message"] == "Cannot complete a completed reminder"


def test_snooze_uses_default_minutes(monkeypatch, client):
    reminder = _make_reminder()
    _owned(monkeypatch, reminder)
    snoozed = []
    monkeypatch.setattr(
        reminders_mod.reminder_repo,
        "snooze",
        lambda db, r, minutes: snoozed.append(minutes) or reminder_lifecycle.snooze(r, minutes),
    )
    resp = client.post("/reminders/rem-1/snooze")
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "snoozed"
    assert snoozed == [reminders_mod.settings.default_snooze_minutes]


def test_auto_reminders_need_owned_job(monkeypatch, client):
    monkeypatch.setattr(reminders_mod.job_application_repo, "get_by_id", lambda db, jid, uid: None)
    resp = client.post("/reminders/auto", json={"job_application_id": "job-x"})
    assert resp.status_code == 404


def test_auto_reminders_use_configured_offsets(monkeypatch, client):
    class _Job:
        id = "job-1"

    seen = {}

    def _follow_ups(db, job, offsets):
        seen["offsets"] = offsets
        return [_make_reminder(f"rem-{d}", is_auto_generated=True) for d in offsets]

    monkeypatch.setattr(reminders_mod.job_application_repo, "get_by_id", lambda db, jid, uid: _Job())
    monkeypatch.setattr(reminders_mod.reminder_repo, "create_follow_ups", _follow_ups)
    resp = client.post("/reminders/auto", json={"job_application_id": "job-1"})
    assert resp.status_code == 201
    assert seen["offsets"] == [7, 14]
    assert resp.json()["message"] == "2 follow-up reminders created"


def test_bulk_action(monkeypatch, client):
    monkeypatch.setattr(
        reminders_mod.reminder_repo,
        "bulk_action",
        lambda db, uid, ids, action, minutes=None: {
            "action": action,
            "processed": ids[:1],
            "skipped": [{"id": i, "reason": "not found"} for i in ids[1:]],
            "spawned": [],
        },
    )
    resp = client.post("/reminders/bulk", json={"ids": ["rem-1", "rem-2"], "action": "cancel"})
    assert resp.status_code == 200
    assert resp.json()["message"] == "1 reminders processed"
    assert resp.json()["data"]["skipped"] == [{"id": "rem-2", "reason": "not found"}]


def test_get_missing_reminder(monkeypatch, client):
    _owned(monkeypatch, None)
    resp = client.get("/reminders/rem-404")
    assert resp.status_code == 404
    assert resp.json()["message"] == "Reminder not found"
