from typing import Annotated

from pydantic import BaseModel, Field, field_validator, model_validator

from jobtracker.core.constants import REMINDER_PRIORITIES, REMINDER_TYPES
from jobtracker.schemas.common import RecordPayload, UtcDatetime, one_of


class _ReminderFields(RecordPayload):
    json_fields = frozenset({"tags"})

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=1000)
    reminder_date: UtcDatetime | None = None
    reminder_type: str | None = None
    priority: str | None = None
    is_recurring: bool | None = None
    recurrence_type: str | None = None
    recurrence_interval: int | None = None
    recurrence_end_date: UtcDatetime | None = None
    notify_email: bool | None = None
    notify_push: bool | None = None
    notify_sms: bool | None = None
    notes: str | None = Field(None, max_length=1000)
    tags: list[str] | None = None

    @field_validator("reminder_type")
    @classmethod
    def type_allowed(cls, v):
        return one_of(v, REMINDER_TYPES, "reminder_type")

    @field_validator("priority")
    @classmethod
    def priority_allowed(cls, v):
        return one_of(v, REMINDER_PRIORITIES, "priority")


class ReminderCreate(_ReminderFields):
    job_application_id: str
    title: str = Field(..., min_length=1, max_length=200)
    reminder_date: UtcDatetime
    reminder_type: str
    priority: str = "medium"
    is_recurring: bool = False
    snooze_until: UtcDatetime | None = None

    @model_validator(mode="after")
    def recurrence_end_after_start(self):
        if self.recurrence_end_date and self.recurrence_end_date < self.reminder_date:
            raise ValueError("recurrence_end_date cannot be before reminder_date")
        return self


class ReminderUpdate(_ReminderFields):
    pass


class CompleteRequest(BaseModel):
    notes: str | None = Field(None, max_length=1000)


class SnoozeRequest(BaseModel):
    minutes: int | None = None


class AutoRemindersRequest(BaseModel):
    job_application_id: str
    offsets_days: list[Annotated[int, Field(ge=1, le=365)]] | None = Field(None, min_length=1, max_length=5)


class BulkReminderAction(BaseModel):
    ids: list[str] = Field(..., min_length=1, max_length=100)
    action: str
    minutes: int | None = None


class ReminderResponse(BaseModel):
    id: str
    job_application_id: str
    title: str
    description: str | None = None
    reminder_date: UtcDatetime
    reminder_type: str
    priority: str
    status: str
    is_recurring: bool = False
    recurrence_type: str | None = None
    recurrence_interval: int | None = None
    recurrence_end_date: UtcDatetime | None = None
    notify_email: bool = True
    notify_push: bool = True
    notify_sms: bool = False
    email_sent: bool = False
    completed_at: UtcDatetime | None = None
    snooze_until: UtcDatetime | None = None
    notes: str | None = None
    tags: list[str] = []
    is_auto_generated: bool = False
    created_at: UtcDatetime | None = None
    updated_at: UtcDatetime | None = None

    is_overdue: bool = False
    days_until: int = 0

    class Config:
        from_attributes = True

    @field_validator("tags", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return v or []


class CompleteResult(BaseModel):
    reminder: ReminderResponse
    next_occurrence: ReminderResponse | None = None


class BulkReminderResult(BaseModel):
    action: str
    processed: list[str]
    skipped: list[dict]
    spawned: list[str]