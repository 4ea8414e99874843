import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from jobtracker.config import settings
from jobtracker.database import get_db
from jobtracker.dependencies import get_current_user_full_access
from jobtracker.core.clock import utcnow
from jobtracker.core.constants import REMINDER_STATUSES
from jobtracker.core.errors import AppError, NotFoundError, ValidationError
from jobtracker.models.reminder import Reminder
from jobtracker.models.user import User
from jobtracker.repos import job_application_repo, reminder_repo
from jobtracker.schemas.common import ApiResponse, Page, PageParams, ok, pagination
from jobtracker.schemas.reminder import (
    AutoRemindersRequest,
    BulkReminderAction,
    BulkReminderResult,
    CompleteRequest,
    CompleteResult,
    ReminderCreate,
    ReminderResponse,
    ReminderUpdate,
    SnoozeRequest,
)
from jobtracker.services import reminder_lifecycle

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/reminders", tags=["reminders"])


def _reminder_to_response(reminder: Reminder, now=None) -> ReminderResponse:
    now = now or utcnow()
    return ReminderResponse.model_validate(reminder).model_copy(
        update={
            "is_overdue": reminder_lifecycle.is_overdue(reminder, now),
            "days_until": reminder_lifecycle.days_until(reminder, now),
        }
    )


def _responses(reminders: list[Reminder]) -> list[ReminderResponse]:
    now = utcnow()
    return [_reminder_to_response(r, now) for r in reminders]


def _get_owned(db: Session, reminder_id: str, user: User) -> Reminder:
    reminder = reminder_repo.get_by_id(db, reminder_id, user.id)
    if not reminder:
        raise NotFoundError("Reminder not found")
    return reminder


@router.get("", response_model=ApiResponse[Page[ReminderResponse]])
def list_reminders(
    status_filter: str | None = Query(None, alias="status"),
    reminder_type: str | None = None,
    job_application_id: str | None = None,
    page: PageParams = Depends(pagination),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    if status_filter and status_filter not in REMINDER_STATUSES:
        raise ValidationError(
            f"Invalid status '{status_filter}'",
            errors=[{"field": "status", "message": f"must be one of: {', '.join(REMINDER_STATUSES)}"}],
        )
    items, total = reminder_repo.list_for_user(
        db,
        user.id,
        status=status_filter,
        reminder_type=reminder_type,
        job_application_id=job_application_id,
        offset=page.offset,
        limit=page.limit,
    )
    return ok(page.wrap(_responses(items), total))


@router.get("/upcoming", response_model=ApiResponse[list[ReminderResponse]])
def upcoming_reminders(
    days: int = Query(7, ge=1, le=90),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    return ok(_responses(reminder_repo.upcoming(db, user.id, days=days)))


@router.get("/overdue", response_model=ApiResponse[list[ReminderResponse]])
def overdue_reminders(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    return ok(_responses(reminder_repo.overdue(db, user.id)))


@router.post("", response_model=ApiResponse[ReminderResponse], status_code=status.HTTP_201_CREATED)
def create_reminder(
    data: ReminderCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    try:
        reminder = reminder_repo.create(db, user.id, data.to_record_fields())
        logger.info("Reminder created: user=%s reminder=%s type=%s", user.id, reminder.id, reminder.reminder_type)
        return ok(_reminder_to_response(reminder), "Reminder created")
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.exception("Create reminder failed for user=%s: %s", user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create reminder") from e


@router.post("/auto", response_model=ApiResponse[list[ReminderResponse]], status_code=status.HTTP_201_CREATED)
def create_auto_reminders(
    data: AutoRemindersRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    """Follow-up reminders at fixed offsets from the application date."""
    job = job_application_repo.get_by_id(db, data.job_application_id, user.id)
    if not job:
        raise NotFoundError("Job application not found")
    reminders = reminder_repo.create_follow_ups(db, job, data.offsets_days or settings.follow_up_offsets)
    logger.info("Auto reminders created: user=%s job=%s count=%d", user.id, job.id, len(reminders))
    return ok(_responses(reminders), f"{len(reminders)} follow-up reminders created")


@router.post("/bulk", response_model=ApiResponse[BulkReminderResult])
def bulk_reminders(
    data: BulkReminderAction,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    minutes = data.minutes if data.minutes is not None else settings.default_snooze_minutes
    result = reminder_repo.bulk_action(db, user.id, data.ids, data.action, minutes=minutes)
    logger.info(
        "Bulk reminder %s: user=%s processed=%d skipped=%d",
        data.action,
        user.id,
        len(result["processed"]),
        len(result["skipped"]),
    )
    return ok(BulkReminderResult(**result), f"{len(result['processed'])} reminders processed")


@router.get("/{reminder_id}", response_model=ApiResponse[ReminderResponse])
def get_reminder(
    reminder_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    return ok(_reminder_to_response(_get_owned(db, reminder_id, user)))


@router.put("/{reminder_id}", response_model=ApiResponse[ReminderResponse])
def update_reminder(
    reminder_id: str,
    data: ReminderUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    reminder = reminder_repo.update(db, _get_owned(db, reminder_id, user), data.to_record_fields())
    return ok(_reminder_to_response(reminder), "Reminder updated")


@router.delete("/{reminder_id}", response_model=ApiResponse[dict])
def delete_reminder(
    reminder_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    reminder_repo.delete(db, _get_owned(db, reminder_id, user))
    return ok({"id": reminder_id, "deleted": True}, "Reminder deleted")


@router.post("/{reminder_id}/complete", response_model=ApiResponse[CompleteResult])
def complete_reminder(
    reminder_id: str,
    data: CompleteRequest | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    """Complete; a recurring reminder also yields its next occurrence."""
    reminder, spawned = reminder_repo.complete(db, _get_owned(db, reminder_id, user), notes=data.notes if data else None)
    logger.info("Reminder completed: user=%s reminder=%s", user.id, reminder.id)
    result = CompleteResult(
        reminder=_reminder_to_response(reminder),
        next_occurrence=_reminder_to_response(spawned) if spawned is not None else None,
    )
    return ok(result, "Reminder completed")


@router.post("/{reminder_id}/snooze", response_model=ApiResponse[ReminderResponse])
def snooze_reminder(
    reminder_id: str,
    data: SnoozeRequest | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    minutes = data.minutes if data and data.minutes is not None else settings.default_snooze_minutes
    reminder = reminder_repo.snooze(db, _get_owned(db, reminder_id, user), minutes)
    return ok(_reminder_to_response(reminder), f"Reminder snoozed for {minutes} minutes")


@router.post("/{reminder_id}/cancel", response_model=ApiResponse[ReminderResponse])
def cancel_reminder(
    reminder_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    reminder = reminder_repo.cancel(db, _get_owned(db, reminder_id, user))
    return ok(_reminder_to_response(reminder), "Reminder cancelled")
