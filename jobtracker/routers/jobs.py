import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from jobtracker.config import settings
from jobtracker.database import get_db
from jobtracker.dependencies import get_current_user_full_access
from jobtracker.core.clock import utcnow
from jobtracker.core.errors import AppError, NotFoundError
from jobtracker.models.job_application import JobApplication
from jobtracker.models.user import User
from jobtracker.repos import job_application_repo, reminder_repo
from jobtracker.schemas.common import ApiResponse, Page, PageParams, ok, pagination
from jobtracker.schemas.job import (
    ArchiveRequest,
    BulkJobResult,
    BulkJobUpdate,
    FollowUpJob,
    FollowUpRequest,
    Interview,
    JobApplicationCreate,
    JobApplicationResponse,
    JobApplicationUpdate,
    JobStats,
    StatusUpdate,
)
from jobtracker.services import analytics_aggregator, email_service, status_lifecycle

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/jobs", tags=["jobs"])


def _job_to_response(job: JobApplication, now=None) -> JobApplicationResponse:
    now = now or utcnow()
    return JobApplicationResponse.model_validate(job).model_copy(
        update={
            "days_since_application": status_lifecycle.days_since_application(job, now),
            "current_status_duration": status_lifecycle.current_status_duration(job, now),
            "needs_follow_up": status_lifecycle.needs_follow_up(job, now),
            "next_interview": status_lifecycle.next_interview(job, now),
        }
    )


def _get_owned(db: Session, job_id: str, user: User) -> JobApplication:
    job = job_application_repo.get_by_id(db, job_id, user.id)
    if not job:
        raise NotFoundError("Job application not found")
    return job


@router.get("", response_model=ApiResponse[Page[JobApplicationResponse]])
def list_jobs(
    status_filter: str | None = Query(None, alias="status"),
    company: str | None = None,
    priority: str | None = None,
    job_type: str | None = None,
    search: str | None = None,
    sort: str | None = Query(None, description="Field name, prefix with '-' for descending"),
    include_archived: bool = False,
    page: PageParams = Depends(pagination),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    items, total = job_application_repo.list_for_user(
        db,
        user.id,
        status=status_filter,
        company=company,
        priority=priority,
        job_type=job_type,
        search=search,
        include_archived=include_archived,
        sort=sort,
        offset=page.offset,
        limit=page.limit,
    )
    now = utcnow()
    return ok(page.wrap([_job_to_response(j, now) for j in items], total))


@router.post("", response_model=ApiResponse[JobApplicationResponse], status_code=status.HTTP_201_CREATED)
def create_job(
    data: JobApplicationCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    try:
        job = job_application_repo.create(db, user.id, data.to_record_fields())
        if data.auto_reminders:
            reminder_repo.create_follow_ups(db, job, settings.follow_up_offsets)
        logger.info("Job application created: user=%s job=%s company=%s", user.id, job.id, job.company)
        return ok(_job_to_response(job), "Job application created")
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.exception("Create job failed for user=%s: %s", user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create job application") from e


@router.get("/stats", response_model=ApiResponse[JobStats])
def job_stats(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    now = utcnow()
    jobs = job_application_repo.list_all(db, user.id)
    active = [j for j in jobs if not j.is_archived]
    return ok(
        JobStats(
            total=len(jobs),
            active=len(active),
            archived=len(jobs) - len(active),
            status_counts=analytics_aggregator.status_counts(active),
            needs_follow_up=sum(1 for j in active if status_lifecycle.needs_follow_up(j, now)),
            upcoming_interviews=sum(1 for j in active if status_lifecycle.next_interview(j, now)),
        )
    )


@router.get("/follow-ups", response_model=ApiResponse[list[FollowUpJob]])
def follow_ups(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    jobs = job_application_repo.needing_follow_up(db, user.id)
    return ok([FollowUpJob.model_validate(j) for j in jobs])


@router.patch("/bulk", response_model=ApiResponse[BulkJobResult])
def bulk_update(
    data: BulkJobUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    changes = data.changes()
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No changes provided")
    if changes.get("status"):
        status_lifecycle.validate_status(changes["status"])
    jobs = job_application_repo.bulk_update(db, user.id, data.ids, changes)
    updated = [j.id for j in jobs]
    logger.info("Bulk update: user=%s updated=%d of %d", user.id, len(updated), len(data.ids))
    return ok(
        BulkJobResult(requested=len(data.ids), updated=updated, not_found=[i for i in data.ids if i not in updated]),
        f"{len(updated)} job applications updated",
    )


@router.get("/{job_id}", response_model=ApiResponse[JobApplicationResponse])
def get_job(
    job_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    job = job_application_repo.record_view(db, _get_owned(db, job_id, user))
    return ok(_job_to_response(job))


@router.put("/{job_id}", response_model=ApiResponse[JobApplicationResponse])
def update_job(
    job_id: str,
    data: JobApplicationUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    job = job_application_repo.update(db, _get_owned(db, job_id, user), data.to_record_fields())
    return ok(_job_to_response(job), "Job application updated")


@router.delete("/{job_id}", response_model=ApiResponse[dict])
def delete_job(
    job_id: str,
    permanent: bool = False,
    reason: str | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    """Archive by default; ``?permanent=true`` removes the record with its history and reminders."""
    job = _get_owned(db, job_id, user)
    if permanent:
        job_application_repo.delete_permanently(db, job)
        logger.info("Job application deleted: user=%s job=%s", user.id, job_id)
        return ok({"id": job_id, "deleted": True}, "Job application deleted")
    job_application_repo.archive(db, job, reason)
    return ok({"id": job_id, "archived": True}, "Job application archived")


@router.patch("/{job_id}/status", response_model=ApiResponse[JobApplicationResponse])
def update_job_status(
    job_id: str,
    data: StatusUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    job = _get_owned(db, job_id, user)
    previous = job.status
    changed = job_application_repo.change_status(db, job, data.status, note=data.note)
    if changed and data.notify:
        email_service.notify_status_change(user, job, previous, data.note)
    message = "Status updated" if changed else "Status unchanged"
    return ok(_job_to_response(job), message)


@router.post("/{job_id}/interviews", response_model=ApiResponse[JobApplicationResponse], status_code=status.HTTP_201_CREATED)
def add_interview(
    job_id: str,
    data: Interview,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    job = job_application_repo.add_interview(db, _get_owned(db, job_id, user), data.model_dump(mode="json"))
    return ok(_job_to_response(job), "Interview added")


@router.post("/{job_id}/follow-up", response_model=ApiResponse[JobApplicationResponse])
def record_follow_up(
    job_id: str,
    data: FollowUpRequest | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    days = (data.days if data else None) or settings.default_follow_up_days
    job = job_application_repo.record_follow_up(db, _get_owned(db, job_id, user), days)
    return ok(_job_to_response(job), "Follow-up recorded")


@router.post("/{job_id}/archive", response_model=ApiResponse[JobApplicationResponse])
def archive_job(
    job_id: str,
    data: ArchiveRequest | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    job = job_application_repo.archive(db, _get_owned(db, job_id, user), data.reason if data else None)
    return ok(_job_to_response(job), "Job application archived")


@router.post("/{job_id}/restore", response_model=ApiResponse[JobApplicationResponse])
def restore_job(
    job_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    job = job_application_repo.restore(db, _get_owned(db, job_id, user))
    return ok(_job_to_response(job), "Job application restored")
