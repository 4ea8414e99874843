"""Resume versioning, visibility and derived fields."""
import copy
import logging
import re
from datetime import datetime, timedelta

from jobtracker.core.clock import as_utc, utcnow
from jobtracker.core.constants import RESUME_LIST_SECTIONS
from jobtracker.core.security import generate_id, generate_share_token
from jobtracker.models.resume import Resume

logger = logging.getLogger(__name__)

CONTENT_FIELDS = (
    "personal_info",
    "summary",
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
    "category",
    "description",
    "template_name",
    "type",
)
_VERSION_RE = re.compile(r"^\s*(\d+)\.(\d+)\s*$")
NEEDS_UPDATE_DAYS = 30


def next_version(version: str | None) -> str:
    """Bump the minor component: "1.3" -> "1.4". Unparseable input is treated as "1.0"."""
    match = _VERSION_RE.match(version or "")
    major, minor = (int(match.group(1)), int(match.group(2))) if match else (1, 0)
    return f"{major}.{minor + 1}"


def sort_sections(resume: Resume) -> None:
    """Order every list section by display_order, highest first."""
    for field in RESUME_LIST_SECTIONS:
        entries = getattr(resume, field, None)
        if not entries:
            continue
        setattr(resume, field, sorted(entries, key=lambda e: (e or {}).get("display_order") or 0, reverse=True))
    skills = resume.skills
    if isinstance(skills, dict) and skills.get("technical"):
        skills = dict(skills)
        skills["technical"] = sorted(
            skills["technical"], key=lambda c: (c or {}).get("display_order") or 0, reverse=True
        )
        resume.skills = skills


def set_visibility(resume: Resume, is_public: bool) -> Resume:
    """Keep share_token present exactly when the resume is public."""
    resume.is_public = bool(is_public)
    if resume.is_public:
        if not resume.share_token:
            resume.share_token = generate_share_token()
    else:
        resume.share_token = None
    return resume


def create_version(
    resume: Resume,
    new_title: str | None = None,
    changes: dict | None = None,
    now: datetime | None = None,
) -> Resume:
    """
    Return a new, unsaved child of ``resume``.

    Content is deep-copied; identity-bound fields (files, share token,
    analytics, timestamps) start empty. The source row is not modified.
    """
    child = Resume(
        id=generate_id(),
        user_id=resume.user_id,
        title=new_title or f"{resume.title} v{next_version(resume.version)}",
        version=next_version(resume.version),
        status="Draft",
        is_public=False,
        share_token=None,
        files={},
        view_count=0,
        download_count=0,
        share_count=0,
        applications_used=0,
        last_viewed_at=None,
        last_downloaded_at=None,
        parent_resume_id=resume.id,
        ai_generation=copy.deepcopy(resume.ai_generation),
    )
    for field in CONTENT_FIELDS:
        setattr(child, field, copy.deepcopy(getattr(resume, field)))
    for field, value in (changes or {}).items():
        if field in CONTENT_FIELDS:
            setattr(child, field, copy.deepcopy(value))
    sort_sections(child)
    logger.debug("Resume %s -> version %s", resume.id, child.version)
    return child


def clone(resume: Resume) -> Resume:
    """Independent copy with the same version and no parent link."""
    copy_ = create_version(resume, new_title=f"{resume.title} (Copy)")
    copy_.version = resume.version or "1.0"
    copy_.parent_resume_id = None
    return copy_


def record_file(resume: Resume, kind: str, filename: str, size: int, now: datetime | None = None) -> None:
    now = now or utcnow()
    files = dict(resume.files or {})
    files[kind] = {"filename": filename, "size": size, "generated_at": now.isoformat()}
    resume.files = files


def record_view(resume: Resume, now: datetime | None = None) -> None:
    resume.view_count = (resume.view_count or 0) + 1
    resume.last_viewed_at = now or utcnow()


def record_download(resume: Resume, now: datetime | None = None) -> None:
    resume.download_count = (resume.download_count or 0) + 1
    resume.last_downloaded_at = now or utcnow()


def record_share(resume: Resume) -> None:
    resume.share_count = (resume.share_count or 0) + 1


def completeness_score(resume: Resume) -> int:
    score = 0
    info = resume.personal_info or {}
    if info.get("first_name") and info.get("last_name") and info.get("email"):
        score += 20
    if resume.summary and len(resume.summary) > 50:
        score += 10
    if resume.experience:
        score += 30
    if resume.education:
        score += 15
    skills = resume.skills or {}
    skill_count = sum(len(c.get("items") or []) for c in skills.get("technical") or [])
    skill_count += len(skills.get("soft") or [])
    if skill_count >= 5:
        score += 15
    extra_sections = [resume.projects, resume.certifications, resume.awards, resume.publications]
    if len([s for s in extra_sections if s]) >= 2:
        score += 10
    return min(score, 100)


def _parse_date(value) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    return as_utc(datetime.fromisoformat(str(value)))


def total_experience_years(resume: Resume, now: datetime | None = None) -> float:
    now = now or utcnow()
    total_days = 0
    for entry in resume.experience or []:
        start = _parse_date(entry.get("start_date"))
        if start is None:
            continue
        end = now if entry.get("is_current") else (_parse_date(entry.get("end_date")) or now)
        total_days += max(0, (end - start).days)
    return round(total_days / 365.25, 1)


def active_certifications(resume: Resume, now: datetime | None = None) -> list[dict]:
    now = now or utcnow()
    active = []
    for cert in resume.certifications or []:
        expires = _parse_date(cert.get("expiration_date"))
        if cert.get("does_not_expire") or expires is None or expires > now:
            active.append(cert)
    return active


def needs_update(resume: Resume, now: datetime | None = None) -> bool:
    now = now or utcnow()
    touched = as_utc(resume.updated_at or resume.created_at)
    return resume.status == "Active" and touched is not None and now - touched > timedelta(days=NEEDS_UPDATE_DAYS)
