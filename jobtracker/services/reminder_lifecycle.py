"""
Reminder state machine.

    pending  --snooze-->   snoozed   (snooze_until = now + duration)
    snoozed  --snooze-->   snoozed
    pending|snoozed --complete--> completed   (may spawn next occurrence)
    pending|snoozed --cancel-->   cancelled
    snoozed  --(read, snooze_until <= now)--> pending

completed and cancelled are terminal.
"""
import logging
from datetime import datetime, timedelta
from typing import Iterable

from jobtracker.core.clock import add_months, as_utc, utcnow
from jobtracker.core.constants import (
    RECURRENCE_TYPES,
    REMINDER_CANCELLED,
    REMINDER_COMPLETED,
    REMINDER_PENDING,
    REMINDER_SNOOZED,
    REMINDER_TERMINAL_STATUSES,
)
from jobtracker.core.errors import InvalidStateTransition, ValidationError
from jobtracker.core.security import generate_id
from jobtracker.models.job_application import JobApplication
from jobtracker.models.reminder import Reminder

logger = logging.getLogger(__name__)

FOLLOW_UP_TITLES = {
    0: ("Follow up on application", "Check on the status of your application"),
    1: ("Second follow-up", "Send a second follow-up if there has been no response"),
}


def validate_recurrence(recurrence_type: str | None, interval: int | None) -> None:
    if recurrence_type not in RECURRENCE_TYPES:
        raise InvalidStateTransition(
            f"Invalid recurrence type '{recurrence_type}'",
            errors=[{"field": "recurrence_type", "message": f"must be one of: {', '.join(RECURRENCE_TYPES)}"}],
        )
    if interval is not None and interval < 1:
        raise InvalidStateTransition(
            "Recurrence interval must be at least 1",
            errors=[{"field": "recurrence_interval", "message": "must be >= 1"}],
        )


def initial_status(snooze_until: datetime | None, now: datetime | None = None) -> str:
    now = now or utcnow()
    if snooze_until and as_utc(snooze_until) > now:
        return REMINDER_SNOOZED
    return REMINDER_PENDING


def _require_active(reminder: Reminder, action: str) -> None:
    if reminder.status in REMINDER_TERMINAL_STATUSES:
        raise InvalidStateTransition(f"Cannot {action} a {reminder.status} reminder")


def snooze(reminder: Reminder, minutes: int, now: datetime | None = None) -> Reminder:
    _require_active(reminder, "snooze")
    if minutes is None or minutes <= 0:
        raise ValidationError(
            "Snooze duration must be positive",
            errors=[{"field": "minutes", "message": "must be > 0"}],
        )
    now = now or utcnow()
    until = now + timedelta(minutes=minutes)
    reminder.status = REMINDER_SNOOZED
    reminder.snooze_until = until
    reminder.reminder_date = until
    return reminder


def next_occurrence(reminder: Reminder) -> datetime | None:
    """Date of the next occurrence, or None when the series has ended."""
    if not reminder.is_recurring:
        return None
    validate_recurrence(reminder.recurrence_type, reminder.recurrence_interval)
    interval = reminder.recurrence_interval or 1
    current = as_utc(reminder.reminder_date)
    if reminder.recurrence_type == "daily":
        nxt = current + timedelta(days=interval)
    elif reminder.recurrence_type == "weekly":
        nxt = current + timedelta(weeks=interval)
    else:
        nxt = add_months(current, interval)
    end = as_utc(reminder.recurrence_end_date)
    if end is not None and nxt > end:
        return None
    return nxt


def _spawn(reminder: Reminder, when: datetime) -> Reminder:
    return Reminder(
        id=generate_id(),
        user_id=reminder.user_id,
        job_application_id=reminder.job_application_id,
        title=reminder.title,
        description=reminder.description,
        reminder_date=when,
        reminder_type=reminder.reminder_type,
        priority=reminder.priority,
        status=REMINDER_PENDING,
        is_recurring=True,
        recurrence_type=reminder.recurrence_type,
        recurrence_interval=reminder.recurrence_interval,
        recurrence_end_date=reminder.recurrence_end_date,
        notify_email=reminder.notify_email,
        notify_push=reminder.notify_push,
        notify_sms=reminder.notify_sms,
        email_sent=False,
        tags=list(reminder.tags or []),
        is_auto_generated=reminder.is_auto_generated,
    )


def complete(reminder: Reminder, notes: str | None = None, now: datetime | None = None) -> Reminder | None:
    """Mark completed. Returns the next occurrence for recurring reminders, unsaved."""
    _require_active(reminder, "complete")
    now = now or utcnow()
    reminder.status = REMINDER_COMPLETED
    reminder.completed_at = now
    reminder.snooze_until = None
    if notes:
        reminder.notes = notes
    when = next_occurrence(reminder)
    if when is None:
        return None
    logger.debug("Reminder %s spawns next occurrence at %s", reminder.id, when.isoformat())
    return _spawn(reminder, when)


def cancel(reminder: Reminder) -> Reminder:
    _require_active(reminder, "cancel")
    reminder.status = REMINDER_CANCELLED
    reminder.snooze_until = None
    return reminder


def reactivate_elapsed(reminders: Iterable[Reminder], now: datetime | None = None) -> list[Reminder]:
    """Flip snoozed reminders whose snooze has elapsed back to pending. Returns the changed ones."""
    now = now or utcnow()
    changed = []
    for reminder in reminders:
        if reminder.status != REMINDER_SNOOZED:
            continue
        until = as_utc(reminder.snooze_until)
        if until is None or until <= now:
            reminder.status = REMINDER_PENDING
            reminder.snooze_until = None
            changed.append(reminder)
    return changed


def is_overdue(reminder: Reminder, now: datetime | None = None) -> bool:
    now = now or utcnow()
    return reminder.status == REMINDER_PENDING and as_utc(reminder.reminder_date) < now


def days_until(reminder: Reminder, now: datetime | None = None) -> int:
    now = now or utcnow()
    delta = as_utc(reminder.reminder_date) - now
    return delta.days + (1 if delta.seconds or delta.microseconds else 0)


def is_due_within(reminder: Reminder, days: int, now: datetime | None = None) -> bool:
    now = now or utcnow()
    when = as_utc(reminder.reminder_date)
    return reminder.status == REMINDER_PENDING and now <= when <= now + timedelta(days=days)


def build_follow_up_reminders(
    job: JobApplication,
    offsets_days: Iterable[int] = (7, 14),
    now: datetime | None = None,
) -> list[Reminder]:
    """Follow-up reminders offset from the application date, unsaved."""
    offsets_days = list(offsets_days)
    if any(days < 1 for days in offsets_days):
        raise ValidationError(
            "Follow-up offsets must be positive",
            errors=[{"field": "offsets_days", "message": "each offset must be >= 1 day"}],
        )
    base = as_utc(job.application_date) or now or utcnow()
    reminders = []
    for index, days in enumerate(offsets_days):
        title, description = FOLLOW_UP_TITLES.get(index, (f"Follow-up #{index + 1}", "Follow up on your application"))
        reminders.append(
            Reminder(
                id=generate_id(),
                user_id=job.user_id,
                job_application_id=job.id,
                title=f"{title}: {job.job_title} at {job.company}",
                description=description,
                reminder_date=base + timedelta(days=days),
                reminder_type="follow_up",
                priority="medium",
                status=REMINDER_PENDING,
                is_recurring=False,
                notify_email=True,
                notify_push=True,
                notify_sms=False,
                email_sent=False,
                is_auto_generated=True,
            )
        )
    return reminders
