import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from jobtracker.database import get_db
from jobtracker.dependencies import get_current_user_full_access
from jobtracker.core.clock import utcnow
from jobtracker.core.errors import AppError, NotFoundError, ValidationError
from jobtracker.models.resume import Resume
from jobtracker.models.user import User
from jobtracker.repos import job_application_repo, resume_repo
from jobtracker.schemas.common import ApiResponse, Page, PageParams, ok, pagination
from jobtracker.schemas.resume import (
    CoverLetterRequest,
    CoverLetterResponse,
    InterviewQuestion,
    InterviewQuestionsRequest,
    JobFitRequest,
    JobFitResponse,
    PdfRenderRequest,
    PublicResumeResponse,
    ResumeCreate,
    ResumeGenerateRequest,
    ResumeResponse,
    ResumeSummary,
    ResumeUpdate,
    ResumeVersionCreate,
    VisibilityUpdate,
)
from jobtracker.services import llm_client, resume_versioning
from jobtracker.services.ai_resume_service import build_resume_fields, profile_for_prompt
from jobtracker.services.resume_latex import render_resume_pdf

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/resumes", tags=["resumes"])


def _resume_to_response(resume: Resume, now=None) -> ResumeResponse:
    now = now or utcnow()
    return ResumeResponse.model_validate(resume).model_copy(
        update={
            "completeness_score": resume_versioning.completeness_score(resume),
            "total_experience_years": resume_versioning.total_experience_years(resume, now),
            "needs_update": resume_versioning.needs_update(resume, now),
        }
    )


def _get_owned(db: Session, resume_id: str, user: User) -> Resume:
    resume = resume_repo.get_by_id(db, resume_id, user.id)
    if not resume:
        raise NotFoundError("Resume not found")
    return resume


def _job_context(db: Session, user: User, job_application_id: str | None) -> dict:
    if not job_application_id:
        return {}
    job = job_application_repo.get_by_id(db, job_application_id, user.id)
    if not job:
        raise NotFoundError("Job application not found")
    return {"job_title": job.job_title, "company": job.company, "job_description": job.job_description or ""}


@router.get("", response_model=ApiResponse[Page[ResumeSummary]])
def list_resumes(
    status_filter: str | None = Query(None, alias="status"),
    resume_type: str | None = None,
    page: PageParams = Depends(pagination),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    items, total = resume_repo.list_for_user(
        db, user.id, status=status_filter, resume_type=resume_type, offset=page.offset, limit=page.limit
    )
    return ok(page.wrap([ResumeSummary.model_validate(r) for r in items], total))


@router.post("", response_model=ApiResponse[ResumeResponse], status_code=status.HTTP_201_CREATED)
def create_resume(
    data: ResumeCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    fields = data.to_record_fields()
    fields.setdefault("is_public", data.is_public)
    resume = resume_repo.create(db, user.id, fields)
    logger.info("Resume created: user=%s resume=%s", user.id, resume.id)
    return ok(_resume_to_response(resume), "Resume created")


@router.post("/generate", response_model=ApiResponse[ResumeResponse], status_code=status.HTTP_201_CREATED)
def generate_resume(
    data: ResumeGenerateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    """AI-tailored resume from the user's profile. Nothing is stored when generation fails."""
    fields = build_resume_fields(user, data.job_description, data.target_role, data.title)
    try:
        resume = resume_repo.create(db, user.id, fields)
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.exception("Storing generated resume failed for user=%s: %s", user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to save generated resume") from e
    logger.info("AI resume stored: user=%s resume=%s", user.id, resume.id)
    return ok(_resume_to_response(resume), "Resume generated")


@router.post("/cover-letter", response_model=ApiResponse[CoverLetterResponse])
def cover_letter(
    data: CoverLetterRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    context = _job_context(db, user, data.job_application_id)
    job_title = data.job_title or context.get("job_title")
    company = data.company or context.get("company")
    job_description = data.job_description or context.get("job_description") or ""
    content = llm_client.generate_cover_letter(profile_for_prompt(user), job_title, company, job_description, data.tone)
    return ok(CoverLetterResponse(job_title=job_title, company=company, tone=data.tone, content=content))


@router.post("/job-fit", response_model=ApiResponse[JobFitResponse])
def job_fit(
    data: JobFitRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    job_description = data.job_description or _job_context(db, user, data.job_application_id).get("job_description")
    if not job_description:
        raise ValidationError("The job application has no description to compare against")
    return ok(JobFitResponse(**llm_client.analyze_job_fit(profile_for_prompt(user), job_description)))


@router.post("/interview-questions", response_model=ApiResponse[list[InterviewQuestion]])
def interview_questions(
    data: InterviewQuestionsRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    context = _job_context(db, user, data.job_application_id)
    job_title = data.job_title or context.get("job_title")
    job_description = data.job_description or context.get("job_description") or ""
    questions = llm_client.generate_interview_questions(job_title, job_description, data.count)
    return ok([InterviewQuestion(**q) for q in questions])


@router.get("/shared/{share_token}", response_model=ApiResponse[PublicResumeResponse])
def shared_resume(share_token: str, db: Session = Depends(get_db)):
    """Public read through a share link. No authentication."""
    resume = resume_repo.get_public_by_share_token(db, share_token)
    if not resume:
        raise NotFoundError("Resume not found")
    resume = resume_repo.record_view(db, resume)
    return ok(PublicResumeResponse.model_validate(resume))


@router.get("/{resume_id}", response_model=ApiResponse[ResumeResponse])
def get_resume(
    resume_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    return ok(_resume_to_response(_get_owned(db, resume_id, user)))


@router.put("/{resume_id}", response_model=ApiResponse[ResumeResponse])
def update_resume(
    resume_id: str,
    data: ResumeUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    resume = resume_repo.update(db, _get_owned(db, resume_id, user), data.to_record_fields())
    return ok(_resume_to_response(resume), "Resume updated")


@router.delete("/{resume_id}", response_model=ApiResponse[dict])
def delete_resume(
    resume_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    resume_repo.delete(db, _get_owned(db, resume_id, user))
    logger.info("Resume deleted: user=%s resume=%s", user.id, resume_id)
    return ok({"id": resume_id, "deleted": True}, "Resume deleted")


@router.post("/{resume_id}/versions", response_model=ApiResponse[ResumeResponse], status_code=status.HTTP_201_CREATED)
def create_version(
    resume_id: str,
    data: ResumeVersionCreate | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    parent = _get_owned(db, resume_id, user)
    changes = data.changes.to_record_fields() if data and data.changes else None
    child = resume_repo.create_version(db, parent, new_title=data.title if data else None, changes=changes)
    return ok(_resume_to_response(child), f"Version {child.version} created")


@router.post("/{resume_id}/clone", response_model=ApiResponse[ResumeResponse], status_code=status.HTTP_201_CREATED)
def clone_resume(
    resume_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    copy_ = resume_repo.clone(db, _get_owned(db, resume_id, user))
    return ok(_resume_to_response(copy_), "Resume cloned")


@router.patch("/{resume_id}/visibility", response_model=ApiResponse[ResumeResponse])
def set_visibility(
    resume_id: str,
    data: VisibilityUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    resume = resume_repo.set_visibility(db, _get_owned(db, resume_id, user), data.is_public)
    if resume.is_public:
        resume = resume_repo.record_share(db, resume)
    return ok(_resume_to_response(resume), "Resume is now public" if resume.is_public else "Resume is now private")


@router.post("/{resume_id}/pdf")
def render_pdf(
    resume_id: str,
    data: PdfRenderRequest | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    """Render the resume through LaTeX and stream the PDF back."""
    resume = _get_owned(db, resume_id, user)
    pdf = render_resume_pdf(resume, data.model_dump(exclude_none=True) if data else None)
    resume = resume_repo.record_pdf(db, resume, len(pdf))
    filename = resume.files["pdf"]["filename"]
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
