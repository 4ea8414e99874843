import logging
from datetime import datetime

from sqlalchemy import or_
from sqlalchemy.orm import Session

from jobtracker.core.clock import utcnow
from jobtracker.core.constants import TERMINAL_STATUSES
from jobtracker.models.job_application import JobApplication
from jobtracker.repos import analytics_repo
from jobtracker.repos.scoped import ScopedRepository
from jobtracker.services import status_lifecycle

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    "application_date": JobApplication.application_date,
    "company": JobApplication.company,
    "job_title": JobApplication.job_title,
    "status": JobApplication.status,
    "priority": JobApplication.priority,
    "created_at": JobApplication.created_at,
    "updated_at": JobApplication.updated_at,
}
# Set through dedicated operations only.
PROTECTED_FIELDS = {"id", "user_id", "status", "status_history", "is_archived", "archived_at", "archived_reason"}


def _scoped(db: Session, user_id: str) -> ScopedRepository:
    return ScopedRepository(db, JobApplication, user_id)


def _order_by(sort: str | None):
    sort = sort or "-application_date"
    descending = sort.startswith("-")
    column = SORT_FIELDS.get(sort.lstrip("-"), JobApplication.application_date)
    return column.desc() if descending else column.asc()


def create(db: Session, user_id: str, fields: dict, now: datetime | None = None) -> JobApplication:
    now = now or utcnow()
    job = JobApplication(**{k: v for k, v in fields.items() if k not in PROTECTED_FIELDS})
    job.status = fields.get("status") or "Applied"
    job.application_date = job.application_date or now
    status_lifecycle.validate_dates(job.application_date, job.application_deadline)
    status_lifecycle.record_initial_status(job, now=now)
    _scoped(db, user_id).add(job)
    analytics_repo.mark_stale(db, user_id)
    db.commit()
    db.refresh(job)
    return job


def get_by_id(db: Session, job_id: str, user_id: str) -> JobApplication | None:
    return _scoped(db, user_id).get(job_id)


def list_for_user(
    db: Session,
    user_id: str,
    *,
    status: str | None = None,
    company: str | None = None,
    priority: str | None = None,
    job_type: str | None = None,
    search: str | None = None,
    include_archived: bool = False,
    sort: str | None = None,
    offset: int = 0,
    limit: int = 10,
) -> tuple[list[JobApplication], int]:
    """Filtered page of a user's applications. Returns (items, total)."""
    criteria = []
    if not include_archived:
        criteria.append(JobApplication.is_archived.is_(False))
    if status:
        criteria.append(JobApplication.status == status)
    if company:
        criteria.append(JobApplication.company.ilike(f"%{company.strip()}%"))
    if priority:
        criteria.append(JobApplication.priority == priority)
    if job_type:
        criteria.append(JobApplication.job_type == job_type)
    if search and search.strip():
        term = f"%{search.strip()}%"
        criteria.append(or_(JobApplication.job_title.ilike(term), JobApplication.company.ilike(term)))
    scoped = _scoped(db, user_id)
    total = scoped.count(*criteria)
    items = scoped.list(*criteria, order_by=[_order_by(sort), JobApplication.id], offset=offset, limit=limit)
    return items, total


def list_all(db: Session, user_id: str, include_archived: bool = True) -> list[JobApplication]:
    criteria = [] if include_archived else [JobApplication.is_archived.is_(False)]
    return _scoped(db, user_id).list(*criteria, order_by=JobApplication.application_date.desc())


def recent(db: Session, user_id: str, limit: int = 5) -> list[JobApplication]:
    return _scoped(db, user_id).list(
        JobApplication.is_archived.is_(False),
        order_by=JobApplication.application_date.desc(),
        limit=limit,
    )


def update(db: Session, job: JobApplication, fields: dict, now: datetime | None = None) -> JobApplication:
    for key, value in fields.items():
        if key in PROTECTED_FIELDS:
            continue
        setattr(job, key, value)
    status_lifecycle.validate_dates(job.application_date, job.application_deadline)
    if fields.get("status") and fields["status"] != job.status:
        status_lifecycle.update_status(job, fields["status"], now=now)
    analytics_repo.mark_stale(db, job.user_id)
    db.commit()
    db.refresh(job)
    return job


def change_status(
    db: Session,
    job: JobApplication,
    new_status: str,
    note: str | None = None,
    now: datetime | None = None,
) -> bool:
    """Apply a status transition and persist. Returns True if history grew."""
    previous = job.status
    appended = status_lifecycle.update_status(job, new_status, note=note, now=now)
    analytics_repo.mark_stale(db, job.user_id)
    db.commit()
    db.refresh(job)
    if appended:
        logger.info("Job status changed: job=%s %s -> %s", job.id, previous, new_status)
    return appended


def add_interview(db: Session, job: JobApplication, interview: dict) -> JobApplication:
    status_lifecycle.add_interview(job, interview)
    analytics_repo.mark_stale(db, job.user_id)
    db.commit()
    db.refresh(job)
    return job


def record_follow_up(db: Session, job: JobApplication, days: int, now: datetime | None = None) -> JobApplication:
    status_lifecycle.record_follow_up(job, days, now=now)
    db.commit()
    db.refresh(job)
    return job


def record_view(db: Session, job: JobApplication, now: datetime | None = None) -> JobApplication:
    status_lifecycle.record_view(job, now=now)
    db.commit()
    db.refresh(job)
    return job


def archive(db: Session, job: JobApplication, reason: str | None = None, now: datetime | None = None) -> JobApplication:
    status_lifecycle.archive(job, reason, now=now)
    analytics_repo.mark_stale(db, job.user_id)
    db.commit()
    db.refresh(job)
    return job


def restore(db: Session, job: JobApplication) -> JobApplication:
    status_lifecycle.unarchive(job)
    analytics_repo.mark_stale(db, job.user_id)
    db.commit()
    db.refresh(job)
    return job


def delete_permanently(db: Session, job: JobApplication) -> None:
    """Hard delete, including status history and reminders attached to the job."""
    user_id = job.user_id
    _scoped(db, user_id).delete(job)
    analytics_repo.mark_stale(db, user_id)
    db.commit()


def needing_follow_up(db: Session, user_id: str, now: datetime | None = None) -> list[JobApplication]:
    now = now or utcnow()
    candidates = _scoped(db, user_id).list(
        JobApplication.is_archived.is_(False),
        JobApplication.status.notin_(TERMINAL_STATUSES),
        JobApplication.follow_up_date.isnot(None),
        order_by=JobApplication.follow_up_date.asc(),
    )
    return [job for job in candidates if status_lifecycle.needs_follow_up(job, now)]


def bulk_update(
    db: Session,
    user_id: str,
    job_ids: list[str],
    fields: dict,
    now: datetime | None = None,
) -> list[JobApplication]:
    """Apply the same change to several of the user's applications in one transaction."""
    jobs = _scoped(db, user_id).get_many(job_ids)
    new_status = fields.get("status")
    for job in jobs:
        for key, value in fields.items():
            if key not in PROTECTED_FIELDS:
                setattr(job, key, value)
        if new_status:
            status_lifecycle.update_status(job, new_status, note="Bulk update", now=now)
        if fields.get("is_archived") is True:
            status_lifecycle.archive(job, fields.get("archived_reason"), now=now)
        elif fields.get("is_archived") is False:
            status_lifecycle.unarchive(job)
    if jobs:
        analytics_repo.mark_stale(db, user_id)
    db.commit()
    return jobs
