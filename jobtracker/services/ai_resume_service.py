"""Turn a user's stored profile plus a job description into an AI-generated Resume payload."""
import logging

from jobtracker.config import settings
from jobtracker.core.clock import utcnow
from jobtracker.core.errors import AIServiceError
from jobtracker.models.user import User
from jobtracker.services import llm_client

logger = logging.getLogger(__name__)

MAX_JOB_DESCRIPTION_CHARS = 12000


def profile_for_prompt(user: User) -> dict:
    """Profile fields the model may draw on. Credentials and tokens never leave the server."""
    return {
        "name": f"{user.first_name or ''} {user.last_name or ''}".strip(),
        "headline": user.headline,
        "summary": user.summary,
        "skills": user.skills or [],
        "experience": user.experience or [],
        "education": user.education or [],
        "certifications": user.certifications or [],
    }


def _with_display_order(entries) -> list[dict]:
    entries = [e for e in (entries or []) if isinstance(e, dict)]
    total = len(entries)
    return [{**e, "display_order": e.get("display_order", total - i)} for i, e in enumerate(entries)]


def build_resume_fields(
    user: User,
    job_description: str,
    target_role: str | None = None,
    title: str | None = None,
) -> dict:
    """Call the model and shape its answer into Resume columns. Nothing is persisted here."""
    jd = (job_description or "").strip()[:MAX_JOB_DESCRIPTION_CHARS]
    content = llm_client.generate_resume_content(profile_for_prompt(user), jd, target_role)
    if not content.get("experience") and not content.get("summary"):
        raise AIServiceError("AI service returned an empty resume")
    skills = content.get("skills") if isinstance(content.get("skills"), dict) else {}
    logger.info("AI resume content generated for user=%s role=%s", user.id, target_role or "-")
    return {
        "title": title or f"{target_role or 'Tailored'} Resume",
        "type": "AI Generated",
        "status": "Draft",
        "personal_info": {
            "first_name": user.first_name,
            "last_name": user.last_name,
            "email": user.email,
            "phone": user.phone,
            "linkedin": (user.social_links or {}).get("linkedin"),
            "github": (user.social_links or {}).get("github"),
            "portfolio": (user.social_links or {}).get("portfolio"),
        },
        "summary": str(content.get("summary") or ""),
        "experience": _with_display_order(content.get("experience")),
        "education": _with_display_order(content.get("education")),
        "projects": _with_display_order(content.get("projects")),
        "skills": {
            "technical": _with_display_order(skills.get("technical")),
            "soft": [str(s) for s in skills.get("soft") or []],
            "languages": skills.get("languages") or [],
        },
        "ai_generation": {
            "is_ai_generated": True,
            "base_job_description": jd,
            "target_role": target_role,
            "model": settings.bedrock_llm_model_id,
            "generated_at": utcnow().isoformat(),
        },
    }
