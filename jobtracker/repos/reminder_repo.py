import logging
from datetime import datetime

from sqlalchemy.orm import Session

from jobtracker.core.clock import as_utc, utcnow
from jobtracker.core.constants import REMINDER_PENDING, REMINDER_SNOOZED
from jobtracker.core.errors import InvalidStateTransition, NotFoundError
from jobtracker.models.job_application import JobApplication
from jobtracker.models.reminder import Reminder
from jobtracker.repos import analytics_repo, job_application_repo
from jobtracker.repos.scoped import ScopedRepository
from jobtracker.services import reminder_lifecycle

logger = logging.getLogger(__name__)

PROTECTED_FIELDS = {"id", "user_id", "status", "completed_at", "snooze_until", "email_sent", "is_auto_generated"}
BULK_ACTIONS = ("complete", "snooze", "cancel", "delete")


def _scoped(db: Session, user_id: str) -> ScopedRepository:
    return ScopedRepository(db, Reminder, user_id)


def reactivate_elapsed(db: Session, user_id: str, now: datetime | None = None) -> int:
    """Wake snoozed reminders whose snooze has run out. Runs before every read."""
    snoozed = _scoped(db, user_id).list(Reminder.status == REMINDER_SNOOZED)
    changed = reminder_lifecycle.reactivate_elapsed(snoozed, now=now)
    if changed:
        analytics_repo.mark_stale(db, user_id)
        db.commit()
        logger.debug("Reactivated %d snoozed reminders for user=%s", len(changed), user_id)
    return len(changed)


def _validate_recurrence_fields(reminder: Reminder) -> None:
    if reminder.is_recurring:
        reminder_lifecycle.validate_recurrence(reminder.recurrence_type, reminder.recurrence_interval or 1)
        reminder.recurrence_interval = reminder.recurrence_interval or 1


def create(db: Session, user_id: str, fields: dict, now: datetime | None = None) -> Reminder:
    now = now or utcnow()
    job = job_application_repo.get_by_id(db, fields.get("job_application_id"), user_id)
    if not job:
        raise NotFoundError("Job application not found")
    reminder = Reminder(**{k: v for k, v in fields.items() if k not in PROTECTED_FIELDS})
    _validate_recurrence_fields(reminder)
    snooze_until = fields.get("snooze_until")
    reminder.status = reminder_lifecycle.initial_status(snooze_until, now=now)
    if reminder.status == REMINDER_SNOOZED:
        reminder.snooze_until = snooze_until
        reminder.reminder_date = snooze_until
    _scoped(db, user_id).add(reminder)
    analytics_repo.mark_stale(db, user_id)
    db.commit()
    db.refresh(reminder)
    return reminder


def create_follow_ups(
    db: Session,
    job: JobApplication,
    offsets_days: list[int],
    now: datetime | None = None,
) -> list[Reminder]:
    scoped = _scoped(db, job.user_id)
    reminders = [scoped.add(r) for r in reminder_lifecycle.build_follow_up_reminders(job, offsets_days, now=now)]
    analytics_repo.mark_stale(db, job.user_id)
    db.commit()
    for reminder in reminders:
        db.refresh(reminder)
    return reminders


def get_by_id(db: Session, reminder_id: str, user_id: str, now: datetime | None = None) -> Reminder | None:
    reactivate_elapsed(db, user_id, now=now)
    return _scoped(db, user_id).get(reminder_id)


def list_for_user(
    db: Session,
    user_id: str,
    *,
    status: str | None = None,
    reminder_type: str | None = None,
    job_application_id: str | None = None,
    offset: int = 0,
    limit: int = 10,
    now: datetime | None = None,
) -> tuple[list[Reminder], int]:
    reactivate_elapsed(db, user_id, now=now)
    criteria = []
    if status:
        criteria.append(Reminder.status == status)
    if reminder_type:
        criteria.append(Reminder.reminder_type == reminder_type)
    if job_application_id:
        criteria.append(Reminder.job_application_id == job_application_id)
    scoped = _scoped(db, user_id)
    total = scoped.count(*criteria)
    items = scoped.list(*criteria, order_by=[Reminder.reminder_date.asc(), Reminder.id], offset=offset, limit=limit)
    return items, total


def _pending(db: Session, user_id: str, now: datetime | None) -> list[Reminder]:
    reactivate_elapsed(db, user_id, now=now)
    return _scoped(db, user_id).list(Reminder.status == REMINDER_PENDING, order_by=Reminder.reminder_date.asc())


def upcoming(db: Session, user_id: str, days: int = 7, now: datetime | None = None) -> list[Reminder]:
    now = now or utcnow()
    return [r for r in _pending(db, user_id, now) if reminder_lifecycle.is_due_within(r, days, now)]


def overdue(db: Session, user_id: str, now: datetime | None = None) -> list[Reminder]:
    now = now or utcnow()
    return [r for r in _pending(db, user_id, now) if reminder_lifecycle.is_overdue(r, now)]


def due_for_email(db: Session, user_id: str, now: datetime | None = None) -> list[Reminder]:
    """Pending reminders at or past their date that still owe an email."""
    now = now or utcnow()
    return [
        r
        for r in _pending(db, user_id, now)
        if r.notify_email and not r.email_sent and as_utc(r.reminder_date) <= now
    ]


def list_all(db: Session, user_id: str) -> list[Reminder]:
    return _scoped(db, user_id).list()


def update(db: Session, reminder: Reminder, fields: dict) -> Reminder:
    if reminder.status not in (REMINDER_PENDING, REMINDER_SNOOZED):
        raise InvalidStateTransition(f"Cannot edit a {reminder.status} reminder")
    for key, value in fields.items():
        if key in PROTECTED_FIELDS or key == "job_application_id":
            continue
        setattr(reminder, key, value)
    if "reminder_date" in fields and reminder.status == REMINDER_SNOOZED:
        reminder.snooze_until = reminder.reminder_date
    _validate_recurrence_fields(reminder)
    analytics_repo.mark_stale(db, reminder.user_id)
    db.commit()
    db.refresh(reminder)
    return reminder


def mark_email_sent(db: Session, reminder: Reminder) -> None:
    reminder.email_sent = True
    db.commit()


def complete(
    db: Session,
    reminder: Reminder,
    notes: str | None = None,
    now: datetime | None = None,
) -> tuple[Reminder, Reminder | None]:
    """Complete and persist; a recurring reminder's next occurrence is saved in the same commit."""
    spawned = reminder_lifecycle.complete(reminder, notes=notes, now=now)
    if spawned is not None:
        _scoped(db, reminder.user_id).add(spawned)
    analytics_repo.mark_stale(db, reminder.user_id)
    db.commit()
    db.refresh(reminder)
    if spawned is not None:
        db.refresh(spawned)
        logger.info("Recurring reminder %s -> next occurrence %s", reminder.id, spawned.id)
    return reminder, spawned


def snooze(db: Session, reminder: Reminder, minutes: int, now: datetime | None = None) -> Reminder:
    reminder_lifecycle.snooze(reminder, minutes, now=now)
    analytics_repo.mark_stale(db, reminder.user_id)
    db.commit()
    db.refresh(reminder)
    return reminder


def cancel(db: Session, reminder: Reminder) -> Reminder:
    reminder_lifecycle.cancel(reminder)
    analytics_repo.mark_stale(db, reminder.user_id)
    db.commit()
    db.refresh(reminder)
    return reminder


def delete(db: Session, reminder: Reminder) -> None:
    user_id = reminder.user_id
    _scoped(db, user_id).delete(reminder)
    analytics_repo.mark_stale(db, user_id)
    db.commit()


def bulk_action(
    db: Session,
    user_id: str,
    reminder_ids: list[str],
    action: str,
    minutes: int | None = None,
    now: datetime | None = None,
) -> dict:
    """Apply one action to many reminders. Ids that are missing or in the wrong state are reported, not fatal."""
    if action not in BULK_ACTIONS:
        raise InvalidStateTransition(f"Unsupported bulk action '{action}'")
    reactivate_elapsed(db, user_id, now=now)
    scoped = _scoped(db, user_id)
    found = {r.id: r for r in scoped.get_many(reminder_ids)}
    processed, skipped, spawned = [], [], []
    for reminder_id in reminder_ids:
        reminder = found.get(reminder_id)
        if reminder is None:
            skipped.append({"id": reminder_id, "reason": "not found"})
            continue
        try:
            if action == "complete":
                nxt = reminder_lifecycle.complete(reminder, now=now)
                if nxt is not None:
                    spawned.append(scoped.add(nxt).id)
            elif action == "snooze":
                reminder_lifecycle.snooze(reminder, minutes, now=now)
            elif action == "cancel":
                reminder_lifecycle.cancel(reminder)
            else:
                scoped.delete(reminder)
        except InvalidStateTransition as e:
            skipped.append({"id": reminder_id, "reason": e.message})
            continue
        processed.append(reminder_id)
    analytics_repo.mark_stale(db, user_id)
    db.commit()
    return {"action": action, "processed": processed, "skipped": skipped, "spawned": spawned}
