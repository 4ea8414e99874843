from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from jobtracker.core.constants import (
    CONTACT_ROLES,
    CURRENCIES,
    INTERVIEW_STATUSES,
    INTERVIEW_TYPES,
    JOB_TYPES,
    PRIORITIES,
    REMOTE_TYPES,
    SALARY_PERIODS,
    SOURCE_PLATFORMS,
)
from jobtracker.schemas.common import RecordPayload, UtcDatetime, one_of

JOB_JSON_FIELDS = frozenset(
    {
        "location",
        "source",
        "contacts",
        "interviews",
        "documents",
        "requirements",
        "skills_required",
        "benefits",
        "tags",
    }
)


class Location(BaseModel):
    city: str | None = None
    state: str | None = None
    country: str | None = None
    is_remote: bool = False
    remote_type: str | None = None

    @field_validator("remote_type")
    @classmethod
    def remote_type_allowed(cls, v):
        return one_of(v, REMOTE_TYPES, "remote_type")


class Referral(BaseModel):
    name: str | None = None
    email: EmailStr | None = None
    relationship: str | None = None


class Source(BaseModel):
    platform: str | None = None
    job_post_url: str | None = None
    referral: Referral | None = None

    @field_validator("platform")
    @classmethod
    def platform_allowed(cls, v):
        return one_of(v, SOURCE_PLATFORMS, "platform")


class Contact(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr | None = None
    phone: str | None = None
    role: str | None = None
    linkedin: str | None = None
    notes: str | None = None

    @field_validator("role")
    @classmethod
    def role_allowed(cls, v):
        return one_of(v, CONTACT_ROLES, "role")


class Interview(BaseModel):
    type: str
    scheduled_date: UtcDatetime
    duration_minutes: int | None = Field(None, ge=1)
    status: str = "Scheduled"
    interviewer: str | None = None
    location: str | None = None
    meeting_link: str | None = None
    feedback: str | None = None
    rating: int | None = Field(None, ge=1, le=5)
    notes: str | None = None

    @field_validator("type")
    @classmethod
    def type_allowed(cls, v):
        return one_of(v, INTERVIEW_TYPES, "type")

    @field_validator("status")
    @classmethod
    def status_allowed(cls, v):
        return one_of(v, INTERVIEW_STATUSES, "status")


class Documents(BaseModel):
    resume_url: str | None = None
    cover_letter_url: str | None = None
    portfolio_url: str | None = None
    other: list[str] = []


class _JobFields(RecordPayload):
    json_fields = JOB_JSON_FIELDS

    job_title: str | None = Field(None, min_length=1, max_length=100)
    company: str | None = Field(None, min_length=1, max_length=100)
    job_type: str | None = None
    salary_currency: str | None = None
    application_date: UtcDatetime | None = None
    status: str | None = None
    interviews: list[Interview] | None = None
    priority: str | None = None
    company_website: str | None = None
    location: Location | None = None
    experience_level: str | None = None
    department: str | None = None
    salary_min: int | None = Field(None, ge=0)
    salary_max: int | None = Field(None, ge=0)
    salary_period: str | None = None
    application_deadline: UtcDatetime | None = None
    source: Source | None = None
    contacts: list[Contact] | None = None
    documents: Documents | None = None
    resume_id: str | None = None
    job_description: str | None = Field(None, max_length=10000)
    requirements: list[str] | None = None
    skills_required: list[str] | None = None
    benefits: list[str] | None = None
    notes: str | None = Field(None, max_length=2000)
    research_notes: str | None = Field(None, max_length=5000)
    tags: list[str] | None = None
    follow_up_date: UtcDatetime | None = None

    @field_validator("salary_period")
    @classmethod
    def salary_period_allowed(cls, v):
        return one_of(v, SALARY_PERIODS, "salary_period")

    @field_validator("job_type", "priority", "salary_currency")
    @classmethod
    def vocabulary(cls, v, info):
        allowed = {"job_type": JOB_TYPES, "priority": PRIORITIES, "salary_currency": CURRENCIES}[info.field_name]
        return one_of(v, allowed, info.field_name)

    @model_validator(mode="after")
    def ranges_ordered(self):
        if self.salary_min is not None and self.salary_max is not None and self.salary_min > self.salary_max:
            raise ValueError("Minimum salary cannot exceed maximum salary")
        if self.application_date and self.application_deadline and self.application_deadline < self.application_date:
            raise ValueError("Application deadline cannot be before the application date")
        return self


class JobApplicationCreate(_JobFields):
    non_column_fields = frozenset({"auto_reminders"})

    job_title: str = Field(..., min_length=1, max_length=100)
    company: str = Field(..., min_length=1, max_length=100)
    job_type: str = "Full-time"
    salary_currency: str = "INR"
    status: str = "Applied"
    priority: str = "Medium"
    auto_reminders: bool = False

    @field_validator("job_title", "company")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field cannot be blank")
        return v


class JobApplicationUpdate(_JobFields):
    pass


class StatusUpdate(BaseModel):
    status: str
    note: str | None = Field(None, max_length=500)
    notify: bool = True


class FollowUpRequest(BaseModel):
    days: int | None = Field(None, ge=1, le=365)


class ArchiveRequest(BaseModel):
    reason: str | None = Field(None, max_length=200)


class BulkJobUpdate(BaseModel):
    ids: list[str] = Field(..., min_length=1, max_length=100)
    status: str | None = None
    priority: str | None = None
    tags: list[str] | None = None
    is_archived: bool | None = None
    archived_reason: str | None = None

    @field_validator("priority")
    @classmethod
    def priority_allowed(cls, v):
        return one_of(v, PRIORITIES, "priority")

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude={"ids"})


class StatusHistoryEntry(BaseModel):
    status: str
    date: UtcDatetime
    notes: str | None = None
    added_by: str = "User"

    class Config:
        from_attributes = True


class JobApplicationResponse(BaseModel):
    id: str
    job_title: str
    company: str
    company_website: str | None = None
    location: dict | None = None
    job_type: str
    experience_level: str | None = None
    department: str | None = None
    salary_min: int | None = None
    salary_max: int | None = None
    salary_currency: str
    salary_period: str | None = None
    application_date: UtcDatetime
    application_deadline: UtcDatetime | None = None
    status: str
    status_history: list[StatusHistoryEntry] = []
    source: dict | None = None
    contacts: list[dict] = []
    interviews: list[dict] = []
    documents: dict | None = None
    resume_id: str | None = None
    job_description: str | None = None
    requirements: list[str] = []
    skills_required: list[str] = []
    benefits: list[str] = []
    notes: str | None = None
    research_notes: str | None = None
    priority: str
    tags: list[str] = []
    follow_up_date: UtcDatetime | None = None
    last_follow_up_date: UtcDatetime | None = None
    follow_up_count: int = 0
    view_count: int = 0
    is_archived: bool = False
    archived_at: UtcDatetime | None = None
    archived_reason: str | None = None
    created_at: UtcDatetime | None = None
    updated_at: UtcDatetime | None = None

    days_since_application: int = 0
    current_status_duration: int = 0
    needs_follow_up: bool = False
    next_interview: dict | None = None

    class Config:
        from_attributes = True

    @field_validator("contacts", "interviews", "requirements", "skills_required", "benefits", "tags", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return v or []


class JobApplicationSummary(BaseModel):
    id: str
    job_title: str
    company: str
    status: str
    priority: str
    application_date: UtcDatetime
    is_archived: bool = False

    class Config:
        from_attributes = True


class BulkJobResult(BaseModel):
    requested: int
    updated: list[str]
    not_found: list[str]


class FollowUpJob(BaseModel):
    id: str
    job_title: str
    company: str
    status: str
    follow_up_date: UtcDatetime | None = None
    follow_up_count: int = 0

    class Config:
        from_attributes = True


class JobStats(BaseModel):
    total: int
    active: int
    archived: int
    status_counts: dict[str, int]
    needs_follow_up: int
    upcoming_interviews: int
