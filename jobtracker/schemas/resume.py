from datetime import date

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from jobtracker.core.constants import (
    RESUME_LAYOUTS,
    RESUME_LIST_SECTIONS,
    RESUME_STATUSES,
    RESUME_THEMES,
    RESUME_TYPES,
    SKILL_LEVELS,
)
from jobtracker.schemas.common import RecordPayload, UtcDatetime, one_of

RESUME_JSON_FIELDS = frozenset(
    {
        "personal_info",
        "experience",
        "education",
        "skills",
        "projects",
        "certifications",
        "awards",
        "publications",
        "volunteer_experience",
        "additional_sections",
        "settings",
        "tags",
    }
)
FONT_SIZES = ("small", "medium", "large")
PDF_SECTIONS = ("summary", "skills") + RESUME_LIST_SECTIONS


class PersonalInfo(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    email: EmailStr | None = None
    phone: str | None = None
    location: str | None = None
    linkedin: str | None = None
    github: str | None = None
    portfolio: str | None = None
    website: str | None = None


class _Ordered(BaseModel):
    display_order: int = 0


class ExperienceEntry(_Ordered):
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


class EducationEntry(_Ordered):
    degree: str = Field(..., min_length=1)
    institution: str = Field(..., min_length=1)
    field_of_study: str | None = None
    location: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    gpa: str | None = None
    honors: list[str] = []


class SkillItem(BaseModel):
    name: str = Field(..., min_length=1)
    level: str | None = None
    years_of_experience: float | None = Field(None, ge=0)

    @field_validator("level")
    @classmethod
    def level_allowed(cls, v):
        return one_of(v, SKILL_LEVELS, "level")


class SkillCategory(_Ordered):
    category: str = Field(..., min_length=1)
    items: list[SkillItem] = []


class LanguageSkill(BaseModel):
    language: str = Field(..., min_length=1)
    proficiency: str | None = None


class Skills(BaseModel):
    technical: list[SkillCategory] = []
    soft: list[str] = []
    languages: list[LanguageSkill] = []


class ProjectEntry(_Ordered):
    name: str = Field(..., min_length=1)
    description: str | None = None
    technologies: list[str] = []
    url: str | None = None
    start_date: date | None = None
    end_date: date | None = None


class CertificationEntry(_Ordered):
    name: str = Field(..., min_length=1)
    issuer: str | None = None
    issue_date: date | None = None
    expiration_date: date | None = None
    does_not_expire: bool = False
    credential_id: str | None = None
    url: str | None = None


class AwardEntry(_Ordered):
    title: str = Field(..., min_length=1)
    issuer: str | None = None
    date_received: date | None = None
    description: str | None = None


class PublicationEntry(_Ordered):
    title: str = Field(..., min_length=1)
    publisher: str | None = None
    publication_date: date | None = None
    url: str | None = None


class VolunteerEntry(_Ordered):
    role: str = Field(..., min_length=1)
    organization: str = Field(..., min_length=1)
    start_date: date | None = None
    end_date: date | None = None
    description: str | None = None


class AdditionalSection(_Ordered):
    title: str = Field(..., min_length=1)
    content: str = ""


class ResumeSettings(BaseModel):
    theme: str = "classic"
    layout: str = "single-column"
    font_size: str = "medium"
    primary_color: str | None = None
    show_photo: bool = False

    @field_validator("theme")
    @classmethod
    def theme_allowed(cls, v):
        return one_of(v, RESUME_THEMES, "theme")

    @field_validator("layout")
    @classmethod
    def layout_allowed(cls, v):
        return one_of(v, RESUME_LAYOUTS, "layout")

    @field_validator("font_size")
    @classmethod
    def font_size_allowed(cls, v):
        return one_of(v, FONT_SIZES, "font_size")


class _ResumeFields(RecordPayload):
    json_fields = RESUME_JSON_FIELDS

    title: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    type: str | None = None
    template_name: str | None = None
    personal_info: PersonalInfo | None = None
    summary: str | None = Field(None, max_length=2000)
    experience: list[ExperienceEntry] | None = None
    education: list[EducationEntry] | None = None
    skills: Skills | None = None
    projects: list[ProjectEntry] | None = None
    certifications: list[CertificationEntry] | None = None
    awards: list[AwardEntry] | None = None
    publications: list[PublicationEntry] | None = None
    volunteer_experience: list[VolunteerEntry] | None = None
    additional_sections: list[AdditionalSection] | None = None
    settings: ResumeSettings | None = None
    status: str | None = None
    tags: list[str] | None = None
    category: str | None = None

    @field_validator("type")
    @classmethod
    def type_allowed(cls, v):
        return one_of(v, RESUME_TYPES, "type")

    @field_validator("status")
    @classmethod
    def status_allowed(cls, v):
        return one_of(v, RESUME_STATUSES, "status")


class ResumeCreate(_ResumeFields):
    title: str = Field(..., min_length=1, max_length=100)
    type: str = "Master"
    status: str = "Draft"
    is_public: bool = False


class ResumeUpdate(_ResumeFields):
    pass


class ResumeVersionCreate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=100)
    changes: ResumeUpdate | None = None


class VisibilityUpdate(BaseModel):
    is_public: bool


class PdfRenderRequest(BaseModel):
    theme: str | None = None
    font_size: str | None = None
    sections: list[str] | None = None

    @field_validator("theme")
    @classmethod
    def theme_allowed(cls, v):
        return one_of(v, RESUME_THEMES, "theme")

    @field_validator("font_size")
    @classmethod
    def font_size_allowed(cls, v):
        return one_of(v, FONT_SIZES, "font_size")

    @field_validator("sections")
    @classmethod
    def sections_allowed(cls, v):
        for section in v or []:
            one_of(section, PDF_SECTIONS, "sections")
        return v


class ResumeGenerateRequest(BaseModel):
    job_description: str = Field(..., min_length=50, max_length=12000)
    target_role: str | None = Field(None, max_length=100)
    title: str | None = Field(None, max_length=100)


class CoverLetterRequest(BaseModel):
    job_application_id: str | None = None
    job_title: str | None = None
    company: str | None = None
    job_description: str | None = Field(None, max_length=12000)
    tone: str = "professional"

    @field_validator("tone")
    @classmethod
    def tone_allowed(cls, v):
        return one_of(v, ("professional", "enthusiastic", "formal", "friendly"), "tone")

    @model_validator(mode="after")
    def job_given(self):
        if not self.job_application_id and not (self.job_title and self.company):
            raise ValueError("Provide job_application_id, or job_title and company")
        return self


class JobFitRequest(BaseModel):
    job_application_id: str | None = None
    job_description: str | None = Field(None, max_length=12000)

    @model_validator(mode="after")
    def job_given(self):
        if not self.job_application_id and not self.job_description:
            raise ValueError("Provide job_application_id or job_description")
        return self


class InterviewQuestionsRequest(BaseModel):
    job_application_id: str | None = None
    job_title: str | None = None
    job_description: str | None = Field(None, max_length=12000)
    count: int = Field(10, ge=1, le=20)

    @model_validator(mode="after")
    def job_given(self):
        if not self.job_application_id and not self.job_title:
            raise ValueError("Provide job_application_id or job_title")
        return self


class ResumeResponse(BaseModel):
    id: str
    title: str
    version: str
    description: str | None = None
    type: str
    template_name: str | None = None
    personal_info: dict | None = None
    summary: str | None = None
    experience: list[dict] = []
    education: list[dict] = []
    skills: dict | None = None
    projects: list[dict] = []
    certifications: list[dict] = []
    awards: list[dict] = []
    publications: list[dict] = []
    volunteer_experience: list[dict] = []
    additional_sections: list[dict] = []
    settings: dict | None = None
    ai_generation: dict | None = None
    files: dict | None = None
    view_count: int = 0
    download_count: int = 0
    share_count: int = 0
    applications_used: int = 0
    status: str
    is_public: bool = False
    share_token: str | None = None
    tags: list[str] = []
    category: str | None = None
    parent_resume_id: str | None = None
    created_at: UtcDatetime | None = None
    updated_at: UtcDatetime | None = None

    completeness_score: int = 0
    total_experience_years: float = 0.0
    needs_update: bool = False

    class Config:
        from_attributes = True

    @field_validator(
        "experience",
        "education",
        "projects",
        "certifications",
        "awards",
        "publications",
        "volunteer_experience",
        "additional_sections",
        "tags",
        mode="before",
    )
    @classmethod
    def none_as_empty(cls, v):
        return v or []


class ResumeSummary(BaseModel):
    id: str
    title: str
    version: str
    type: str
    status: str
    is_public: bool = False
    parent_resume_id: str | None = None
    updated_at: UtcDatetime | None = None
    created_at: UtcDatetime | None = None

    class Config:
        from_attributes = True


class PublicResumeResponse(BaseModel):
    """What a share link exposes: content only, no owner or analytics."""

    title: str
    personal_info: dict | None = None
    summary: str | None = None
    experience: list[dict] = []
    education: list[dict] = []
    skills: dict | None = None
    projects: list[dict] = []
    certifications: list[dict] = []
    awards: list[dict] = []
    publications: list[dict] = []
    volunteer_experience: list[dict] = []
    additional_sections: list[dict] = []
    settings: dict | None = None

    class Config:
        from_attributes = True

    @field_validator(
        "experience",
        "education",
        "projects",
        "certifications",
        "awards",
        "publications",
        "volunteer_experience",
        "additional_sections",
        mode="before",
    )
    @classmethod
    def none_as_empty(cls, v):
        return v or []


class CoverLetterResponse(BaseModel):
    job_title: str
    company: str
    tone: str
    content: str


class JobFitResponse(BaseModel):
    score: float
    matching_skills: list[str]
    missing_skills: list[str]
    suggestions: list[str]
    summary: str


class InterviewQuestion(BaseModel):
    question: str
    category: str | None = None
    tip: str | None = None
