from datetime import date

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from jobtracker.core.constants import JOB_TYPES, REMINDER_FREQUENCIES, SKILL_LEVELS, CURRENCIES
from jobtracker.schemas.common import RecordPayload, UtcDatetime, one_of


class Address(BaseModel):
    street: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    zip_code: str | None = None


class SocialLinks(BaseModel):
    linkedin: str | None = None
    github: str | None = None
    portfolio: str | None = None
    twitter: str | None = None


class ProfileSkill(BaseModel):
    name: str = Field(..., min_length=1)
    level: str | None = None
    category: str | None = None

    @field_validator("level")
    @classmethod
    def level_allowed(cls, v):
        return one_of(v, SKILL_LEVELS, "level")


class ProfileExperience(BaseModel):
    job_title: str = Field(..., min_length=1)
    company: str = Field(..., min_length=1)
    location: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    is_current: bool = False
    description: str | None = None
    achievements: list[str] = []
    technologies: list[str] = []

    @model_validator(mode="after")
    def dates_ordered(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")
        return self


class ProfileEducation(BaseModel):
    degree: str = Field(..., min_length=1)
    institution: str = Field(..., min_length=1)
    field_of_study: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    gpa: str | None = None


class ProfileCertification(BaseModel):
    name: str = Field(..., min_length=1)
    issuer: str | None = None
    issue_date: date | None = None
    expiration_date: date | None = None
    credential_id: str | None = None
    url: str | None = None


class ProfileUpdate(RecordPayload):
    json_fields = frozenset({"address", "social_links", "experience", "education", "certifications", "skills"})

    first_name: str | None = Field(None, min_length=1, max_length=50)
    last_name: str | None = Field(None, min_length=1, max_length=50)
    phone: str | None = None
    headline: str | None = Field(None, max_length=200)
    summary: str | None = Field(None, max_length=2000)
    address: Address | None = None
    social_links: SocialLinks | None = None
    skills: list[ProfileSkill] | None = None
    experience: list[ProfileExperience] | None = None
    education: list[ProfileEducation] | None = None
    certifications: list[ProfileCertification] | None = None


class SkillsUpdate(BaseModel):
    skills: list[ProfileSkill]


class ExpectedSalary(BaseModel):
    min: int | None = Field(None, ge=0)
    max: int | None = Field(None, ge=0)
    currency: str = "INR"

    @field_validator("currency")
    @classmethod
    def currency_allowed(cls, v):
        return one_of(v, CURRENCIES, "currency")

    @model_validator(mode="after")
    def range_ordered(self):
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError("Minimum salary cannot exceed maximum salary")
        return self


class PreferencesUpdate(BaseModel):
    job_alerts: bool | None = None
    email_notifications: bool | None = None
    reminder_frequency: str | None = None
    preferred_job_types: list[str] | None = None
    preferred_locations: list[str] | None = None
    expected_salary: ExpectedSalary | None = None
    experience_level: str | None = None

    @field_validator("reminder_frequency")
    @classmethod
    def frequency_allowed(cls, v):
        return one_of(v, REMINDER_FREQUENCIES, "reminder_frequency")

    @field_validator("preferred_job_types")
    @classmethod
    def job_types_allowed(cls, v):
        for job_type in v or []:
            one_of(job_type, JOB_TYPES, "preferred_job_types")
        return v


class ProfileResponse(BaseModel):
    id: str
    email: EmailStr
    first_name: str = ""
    last_name: str = ""
    phone: str | None = None
    headline: str | None = None
    summary: str | None = None
    address: dict | None = None
    social_links: dict | None = None
    skills: list[dict] = []
    experience: list[dict] = []
    education: list[dict] = []
    certifications: list[dict] = []
    preferences: dict = {}
    account_status: str
    subscription_type: str
    subscription_expires: UtcDatetime | None = None
    last_login_at: UtcDatetime | None = None
    login_count: int = 0
    connected_providers: list[str] = []
    created_at: UtcDatetime | None = None

    class Config:
        from_attributes = True

    @field_validator("skills", "experience", "education", "certifications", mode="before")
    @classmethod
    def none_as_empty_list(cls, v):
        return v or []

    @field_validator("preferences", mode="before")
    @classmethod
    def none_as_empty_dict(cls, v):
        return v or {}
