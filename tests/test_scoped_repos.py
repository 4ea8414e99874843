from datetime import datetime, timedelta, timezone

import pytest

from jobtracker.core.clock import as_utc
from jobtracker.core.errors import DuplicateError, InvalidStateTransition, NotFoundError
from jobtracker.models import AnalyticsSnapshot, JobApplication, Reminder, Resume
from jobtracker.repos import (
    analytics_repo,
    job_application_repo,
    reminder_repo,
    resume_repo,
    user_repo,
)
from jobtracker.repos.scoped import ScopedRepository
from jobtracker.services import analytics_service

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def users(db_session):
    alice = user_repo.create(db_session, "alice@example.com", "Password123!", first_name="Alice", last_name="A")
    bob = user_repo.create(db_session, "bob@example.com", "Password123!", first_name="Bob", last_name="B")
    return alice, bob


def _job(db, user_id, /, **fields):
    data = {"job_title": "Backend Engineer", "company": "Acme", "application_date": NOW - timedelta(days=3)}
    data.update(fields)
    return job_application_repo.create(db, user_id, data, now=NOW)


def _reminder(db, user_id, job_id, **fields):
    data = {
        "job_application_id": job_id,
        "title": "Follow up",
        "reminder_date": NOW + timedelta(days=1),
        "reminder_type": "follow_up",
    }
    data.update(fields)
    return reminder_repo.create(db, user_id, data, now=NOW)


def test_scoped_repository_requires_user(db_session):
    with pytest.raises(ValueError):
        ScopedRepository(db_session, JobApplication, "")


def test_duplicate_email_rejected(db_session, users):
    with pytest.raises(DuplicateError):
        user_repo.create(db_session, "ALICE@example.com", "Password123!")


def test_other_users_records_are_invisible(db_session, users):
    alice, bob = users
    job = _job(db_session, alice.id)

    assert job_application_repo.get_by_id(db_session, job.id, alice.id) is not None
    assert job_application_repo.get_by_id(db_session, job.id, bob.id) is None
    items, total = job_application_repo.list_for_user(db_session, bob.id)
    assert items == [] and total == 0


def test_create_stamps_owner_and_initial_history(db_session, users):
    alice, _ = users
    job = _job(db_session, alice.id, user_id="someone-else", status="Phone Screen")
    assert job.user_id == alice.id
    assert job.status == "Phone Screen"
    assert [h.status for h in job.status_history] == ["Phone Screen"]


def test_list_filters_search_and_archive(db_session, users):
    alice, _ = users
    _job(db_session, alice.id, company="Globex", job_title="Data Engineer")
    _job(db_session, alice.id, company="Initech")
    archived = _job(db_session, alice.id, company="Umbrella")
    job_application_repo.archive(db_session, archived, "Position filled", now=NOW)

    items, total = job_application_repo.list_for_user(db_session, alice.id, search="data")
    assert total == 1 and items[0].company == "Globex"

    _, total = job_application_repo.list_for_user(db_session, alice.id)
    assert total == 2
    _, total = job_application_repo.list_for_user(db_session, alice.id, include_archived=True)
    assert total == 3

    items, _ = job_application_repo.list_for_user(db_session, alice.id, sort="company")
    assert [j.company for j in items] == ["Globex", "Initech"]


def test_change_status_persists_history(db_session, users):
    alice, _ = users
    job = _job(db_session, alice.id)
    assert job_application_repo.change_status(db_session, job, "Offer Extended", now=NOW) is True
    assert job_application_repo.change_status(db_session, job, "Offer Extended", now=NOW) is False
    reloaded = job_application_repo.get_by_id(db_session, job.id, alice.id)
    assert [h.status for h in reloaded.status_history] == ["Applied", "Offer Extended"]


def test_bulk_update_ignores_foreign_ids(db_session, users):
    alice, bob = users
    mine = _job(db_session, alice.id)
    theirs = _job(db_session, bob.id)
    updated = job_application_repo.bulk_update(db_session, alice.id, [mine.id, theirs.id], {"priority": "High"}, now=NOW)
    assert [j.id for j in updated] == [mine.id]
    assert job_application_repo.get_by_id(db_session, theirs.id, bob.id).priority == "Medium"


def test_reminder_on_another_users_job_is_not_found(db_session, users):
    alice, bob = users
    job = _job(db_session, alice.id)
    with pytest.raises(NotFoundError):
        _reminder(db_session, bob.id, job.id)


def test_snoozed_reminder_wakes_up_on_read(db_session, users):
    alice, _ = users
    job = _job(db_session, alice.id)
    reminder = _reminder(db_session, alice.id, job.id, snooze_until=NOW + timedelta(hours=2))
    assert reminder.status == "snoozed"

    later = NOW + timedelta(hours=3)
    items, total = reminder_repo.list_for_user(db_session, alice.id, status="pending", now=later)
    assert total == 1
    assert items[0].id == reminder.id
    assert items[0].snooze_until is None


def test_completing_recurring_reminder_persists_next(db_session, users):
    alice, _ = users
    job = _job(db_session, alice.id)
    reminder = _reminder(db_session, alice.id, job.id, is_recurring=True, recurrence_type="weekly", recurrence_interval=1)

    done, spawned = reminder_repo.complete(db_session, reminder, notes="Emailed recruiter", now=NOW)
    assert done.status == "completed"
    assert spawned is not None
    assert spawned.status == "pending"
    assert spawned.user_id == alice.id
    assert db_session.query(Reminder).count() == 2

    with pytest.raises(InvalidStateTransition):
        reminder_repo.complete(db_session, done, now=NOW)


def test_auto_follow_ups_persisted(db_session, users):
    alice, _ = users
    job = _job(db_session, alice.id)
    created = reminder_repo.create_follow_ups(db_session, job, [7, 14], now=NOW)
    assert len(created) == 2
    assert all(r.is_auto_generated for r in created)
    assert len(reminder_repo.list_all(db_session, alice.id)) == 2


def test_bulk_reminder_action_reports_skips(db_session, users):
    alice, _ = users
    job = _job(db_session, alice.id)
    first = _reminder(db_session, alice.id, job.id)
    second = _reminder(db_session, alice.id, job.id)
    reminder_repo.cancel(db_session, second)

    result = reminder_repo.bulk_action(db_session, alice.id, [first.id, second.id, "missing"], "complete", now=NOW)
    assert result["processed"] == [first.id]
    assert {s["id"] for s in result["skipped"]} == {second.id, "missing"}


def test_share_token_lookup_requires_public(db_session, users):
    alice, _ = users
    resume = resume_repo.create(db_session, alice.id, {"title": "Main", "is_public": True})
    token = resume.share_token
    assert resume_repo.get_public_by_share_token(db_session, token).id == resume.id

    resume_repo.set_visibility(db_session, resume, False)
    assert resume_repo.get_public_by_share_token(db_session, token) is None


def test_resume_version_is_a_new_row(db_session, users):
    alice, _ = users
    parent = resume_repo.create(db_session, alice.id, {"title": "Main", "summary": "Original"})
    child = resume_repo.create_version(db_session, parent, changes={"summary": "Tailored"})
    assert child.id != parent.id
    assert child.parent_resume_id == parent.id
    assert resume_repo.get_by_id(db_session, parent.id, alice.id).summary == "Original"
    assert resume_repo.count_for_user(db_session, alice.id) == 2


def test_snapshot_refresh_and_mark_stale(db_session, users):
    alice, _ = users
    _job(db_session, alice.id)
    snapshot = analytics_service.get_summary(db_session, alice.id, now=NOW)
    assert snapshot.is_stale is False
    assert snapshot.data["total_applications"] == 1

    _job(db_session, alice.id, company="Globex")
    db_session.refresh(snapshot)
    assert snapshot.is_stale is True
    assert analytics_service.needs_refresh(snapshot, NOW) is True

    refreshed = analytics_service.get_summary(db_session, alice.id, now=NOW)
    assert refreshed.data["total_applications"] == 2
    assert analytics_service.needs_refresh(refreshed, NOW) is False
    assert analytics_service.needs_refresh(refreshed, NOW + timedelta(days=2)) is True


def test_snooze_and_visibility_changes_mark_snapshot_stale(db_session, users):
    alice, _ = users
    job = _job(db_session, alice.id)
    reminder = _reminder(db_session, alice.id, job.id)
    resume = resume_repo.create(db_session, alice.id, {"title": "Main"})

    analytics_service.refresh(db_session, alice.id, now=NOW)
    reminder_repo.snooze(db_session, reminder, 30, now=NOW)
    assert analytics_repo.get_snapshot(db_session, alice.id).is_stale is True

    analytics_service.refresh(db_session, alice.id, now=NOW)
    resume_repo.set_visibility(db_session, resume, True)
    assert analytics_repo.get_snapshot(db_session, alice.id).is_stale is True

    analytics_service.refresh(db_session, alice.id, now=NOW)
    reminder_repo.reactivate_elapsed(db_session, alice.id, now=NOW + timedelta(hours=1))
    assert analytics_repo.get_snapshot(db_session, alice.id).is_stale is True


def test_rescheduling_snoozed_reminder_moves_wake_time(db_session, users):
    alice, _ = users
    job = _job(db_session, alice.id)
    reminder = _reminder(db_session, alice.id, job.id)
    reminder_repo.snooze(db_session, reminder, 30, now=NOW)

    new_date = NOW + timedelta(days=2)
    updated = reminder_repo.update(db_session, reminder, {"reminder_date": new_date})
    assert updated.status == "snoozed"
    assert as_utc(updated.snooze_until) == new_date

    items, _ = reminder_repo.list_for_user(db_session, alice.id, status="snoozed", now=NOW + timedelta(hours=1))
    assert [r.id for r in items] == [reminder.id]


def test_windowed_dashboard_leaves_snapshot_untouched(db_session, users):
    alice, _ = users
    _job(db_session, alice.id, company="Old", application_date=NOW - timedelta(days=90))
    _job(db_session, alice.id, company="New", application_date=NOW - timedelta(days=3))
    cached = analytics_service.refresh(db_session, alice.id, now=NOW)
    assert cached.data["total_applications"] == 2

    windowed = analytics_service.get_dashboard(db_session, alice.id, now=NOW, start=NOW - timedelta(days=30))
    assert windowed["summary"]["total_applications"] == 1
    assert windowed["last_calculated"] == NOW

    snapshot = analytics_repo.get_snapshot(db_session, alice.id)
    assert snapshot.data["total_applications"] == 2
    assert snapshot.is_stale is False

    records = analytics_service.export_records(db_session, alice.id, start=NOW - timedelta(days=30))
    assert [r["company"] for r in records] == ["New"]
    assert len(analytics_service.export_records(db_session, alice.id, end=NOW - timedelta(days=30))) == 1


def test_export_csv_has_one_row_per_application(db_session, users):
    alice, _ = users
    _job(db_session, alice.id, company="Globex")
    _job(db_session, alice.id, company="Initech")
    lines = analytics_service.export_csv(db_session, alice.id).strip().splitlines()
    assert lines[0].startswith("id,job_title,company,status")
    assert len(lines) == 3


def test_deleting_user_cascades(db_session, users):
    alice, bob = users
    job = _job(db_session, alice.id)
    _reminder(db_session, alice.id, job.id)
    resume_repo.create(db_session, alice.id, {"title": "Main"})
    analytics_service.refresh(db_session, alice.id, now=NOW)
    _job(db_session, bob.id)

    assert user_repo.delete_user(db_session, alice.id) is True
    assert db_session.query(JobApplication).filter_by(user_id=alice.id).count() == 0
    assert db_session.query(Reminder).count() == 0
    assert db_session.query(Resume).count() == 0
    assert db_session.query(AnalyticsSnapshot).count() == 0
    assert db_session.query(JobApplication).filter_by(user_id=bob.id).count() == 1
    assert user_repo.delete_user(db_session, alice.id) is False
