"""
Job application status lifecycle.

Free functions over JobApplication rows: status transitions with an audit
history, time-in-status bookkeeping, follow-up scheduling and archiving.
Nothing here touches the session; callers commit.
"""
import logging
from datetime import datetime, timedelta

from jobtracker.core.clock import as_utc, utcnow
from jobtracker.core.constants import JOB_STATUSES, TERMINAL_STATUSES
from jobtracker.core.errors import InvalidStatus, ValidationError
from jobtracker.models.job_application import JobApplication, JobStatusHistory

logger = logging.getLogger(__name__)


def validate_status(status: str) -> str:
    if status not in JOB_STATUSES:
        raise InvalidStatus(
            f"Invalid status '{status}'",
            errors=[{"field": "status", "message": f"must be one of: {', '.join(JOB_STATUSES)}"}],
        )
    return status


def _last_entry(job: JobApplication) -> JobStatusHistory | None:
    history = job.status_history or []
    return history[-1] if history else None


def _append_entry(job: JobApplication, status: str, when: datetime, note: str | None, added_by: str) -> None:
    job.status_history.append(JobStatusHistory(status=status, date=when, notes=note, added_by=added_by))


def _open_interval(job: JobApplication, status: str, when: datetime) -> None:
    intervals = [dict(i) for i in (job.time_in_status or [])]
    if intervals and intervals[-1].get("end_date") is None:
        start = datetime.fromisoformat(intervals[-1]["start_date"])
        intervals[-1]["end_date"] = when.isoformat()
        intervals[-1]["duration_days"] = round((when - as_utc(start)).total_seconds() / 86400, 2)
    intervals.append({"status": status, "start_date": when.isoformat(), "end_date": None, "duration_days": None})
    job.time_in_status = intervals


def record_initial_status(job: JobApplication, now: datetime | None = None, added_by: str = "User") -> None:
    """Seed history with the creation status so it is never empty after the first save."""
    now = now or utcnow()
    status = validate_status(job.status or "Applied")
    job.status = status
    if _last_entry(job) is None:
        _append_entry(job, status, now, "Application created", added_by)
        _open_interval(job, status, now)


def update_status(
    job: JobApplication,
    new_status: str,
    note: str | None = None,
    added_by: str = "User",
    now: datetime | None = None,
) -> bool:
    """
    Move ``job`` to ``new_status``.

    A history entry is appended only when the latest entry has a different
    status, so repeating the current status is a no-op for the audit log.
    Entry dates never go backwards. Returns True when an entry was appended.
    """
    validate_status(new_status)
    now = now or utcnow()
    last = _last_entry(job)
    job.status = new_status
    if last is not None and last.status == new_status:
        return False
    when = now
    if last is not None and as_utc(last.date) > when:
        when = as_utc(last.date)
    _append_entry(job, new_status, when, note, added_by)
    _open_interval(job, new_status, when)
    logger.debug("Job %s status -> %s", job.id, new_status)
    return True


def is_terminal(job: JobApplication) -> bool:
    return job.status in TERMINAL_STATUSES


def validate_dates(application_date: datetime | None, deadline: datetime | None) -> None:
    if application_date and deadline and as_utc(deadline) < as_utc(application_date):
        raise ValidationError(
            "Application deadline must be on or after the application date",
            errors=[{"field": "application_deadline", "message": "must be >= application_date"}],
        )


def compute_follow_up_date(job: JobApplication, days: int) -> datetime:
    base = as_utc(job.application_date) or utcnow()
    return base + timedelta(days=days)


def needs_follow_up(job: JobApplication, now: datetime | None = None) -> bool:
    now = now or utcnow()
    if job.is_archived or is_terminal(job) or not job.follow_up_date:
        return False
    return as_utc(job.follow_up_date) <= now


def record_follow_up(job: JobApplication, days: int, now: datetime | None = None) -> None:
    now = now or utcnow()
    job.last_follow_up_date = now
    job.follow_up_count = (job.follow_up_count or 0) + 1
    job.follow_up_date = now + timedelta(days=days)


def archive(job: JobApplication, reason: str | None = None, now: datetime | None = None) -> None:
    job.is_archived = True
    job.archived_at = now or utcnow()
    job.archived_reason = reason


def unarchive(job: JobApplication) -> None:
    job.is_archived = False
    job.archived_at = None
    job.archived_reason = None


def record_view(job: JobApplication, now: datetime | None = None) -> None:
    job.view_count = (job.view_count or 0) + 1
    job.last_viewed_at = now or utcnow()


def add_interview(job: JobApplication, interview: dict) -> dict:
    interviews = [dict(i) for i in (job.interviews or [])]
    interviews.append(interview)
    interviews.sort(key=lambda i: i.get("scheduled_date") or "")
    job.interviews = interviews
    return interview


def next_interview(job: JobApplication, now: datetime | None = None) -> dict | None:
    """Earliest scheduled interview still in the future."""
    now = now or utcnow()
    upcoming = []
    for interview in job.interviews or []:
        if interview.get("status", "Scheduled") != "Scheduled" or not interview.get("scheduled_date"):
            continue
        when = as_utc(datetime.fromisoformat(interview["scheduled_date"]))
        if when > now:
            upcoming.append((when, interview))
    if not upcoming:
        return None
    return min(upcoming, key=lambda pair: pair[0])[1]


def days_since_application(job: JobApplication, now: datetime | None = None) -> int:
    now = now or utcnow()
    applied = as_utc(job.application_date)
    if not applied:
        return 0
    return max(0, (now - applied).days)


def current_status_duration(job: JobApplication, now: datetime | None = None) -> int:
    now = now or utcnow()
    last = _last_entry(job)
    if last is None:
        return 0
    return max(0, (now - as_utc(last.date)).days)
