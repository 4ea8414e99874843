import logging
from datetime import datetime

from sqlalchemy.orm import Session

from jobtracker.models.resume import Resume
from jobtracker.repos import analytics_repo
from jobtracker.repos.scoped import ScopedRepository
from jobtracker.services import resume_versioning

logger = logging.getLogger(__name__)

PROTECTED_FIELDS = {
    "id",
    "user_id",
    "version",
    "parent_resume_id",
    "share_token",
    "is_public",
    "files",
    "view_count",
    "download_count",
    "share_count",
    "applications_used",
}


def _scoped(db: Session, user_id: str) -> ScopedRepository:
    return ScopedRepository(db, Resume, user_id)


def _save(db: Session, resume: Resume) -> Resume:
    resume_versioning.sort_sections(resume)
    analytics_repo.mark_stale(db, resume.user_id)
    db.commit()
    db.refresh(resume)
    return resume


def create(db: Session, user_id: str, fields: dict) -> Resume:
    resume = Resume(**{k: v for k, v in fields.items() if k not in PROTECTED_FIELDS})
    resume.version = "1.0"
    resume_versioning.set_visibility(resume, fields.get("is_public", False))
    _scoped(db, user_id).add(resume)
    return _save(db, resume)


def get_by_id(db: Session, resume_id: str, user_id: str) -> Resume | None:
    return _scoped(db, user_id).get(resume_id)


def get_latest_by_user(db: Session, user_id: str) -> Resume | None:
    return _scoped(db, user_id).query().order_by(Resume.created_at.desc()).first()


def get_public_by_share_token(db: Session, share_token: str) -> Resume | None:
    """Lookup for public links: the token itself is the credential, so no owner filter applies."""
    if not share_token:
        return None
    return db.query(Resume).filter(Resume.share_token == share_token, Resume.is_public.is_(True)).first()


def list_for_user(
    db: Session,
    user_id: str,
    *,
    status: str | None = None,
    resume_type: str | None = None,
    offset: int = 0,
    limit: int = 10,
) -> tuple[list[Resume], int]:
    criteria = []
    if status:
        criteria.append(Resume.status == status)
    if resume_type:
        criteria.append(Resume.type == resume_type)
    scoped = _scoped(db, user_id)
    total = scoped.count(*criteria)
    items = scoped.list(*criteria, order_by=[Resume.updated_at.desc(), Resume.created_at.desc()], offset=offset, limit=limit)
    return items, total


def list_all(db: Session, user_id: str) -> list[Resume]:
    return _scoped(db, user_id).list()


def count_for_user(db: Session, user_id: str) -> int:
    return _scoped(db, user_id).count()


def update(db: Session, resume: Resume, fields: dict) -> Resume:
    for key, value in fields.items():
        if key in PROTECTED_FIELDS:
            continue
        setattr(resume, key, value)
    if "is_public" in fields:
        resume_versioning.set_visibility(resume, fields["is_public"])
    return _save(db, resume)


def set_visibility(db: Session, resume: Resume, is_public: bool) -> Resume:
    resume_versioning.set_visibility(resume, is_public)
    analytics_repo.mark_stale(db, resume.user_id)
    db.commit()
    db.refresh(resume)
    return resume


def create_version(db: Session, resume: Resume, new_title: str | None = None, changes: dict | None = None) -> Resume:
    child = resume_versioning.create_version(resume, new_title=new_title, changes=changes)
    _scoped(db, resume.user_id).add(child)
    _save(db, child)
    logger.info("Resume version created: parent=%s child=%s version=%s", resume.id, child.id, child.version)
    return child


def clone(db: Session, resume: Resume) -> Resume:
    copy_ = resume_versioning.clone(resume)
    _scoped(db, resume.user_id).add(copy_)
    return _save(db, copy_)


def record_view(db: Session, resume: Resume, now: datetime | None = None) -> Resume:
    resume_versioning.record_view(resume, now=now)
    db.commit()
    db.refresh(resume)
    return resume


def record_pdf(db: Session, resume: Resume, size: int, now: datetime | None = None) -> Resume:
    filename = f"resume_{resume.id}_v{resume.version}.pdf"
    resume_versioning.record_file(resume, "pdf", filename, size, now=now)
    resume_versioning.record_download(resume, now=now)
    db.commit()
    db.refresh(resume)
    return resume


def record_share(db: Session, resume: Resume) -> Resume:
    resume_versioning.record_share(resume)
    db.commit()
    db.refresh(resume)
    return resume


def delete(db: Session, resume: Resume) -> None:
    user_id = resume.user_id
    _scoped(db, user_id).delete(resume)
    analytics_repo.mark_stale(db, user_id)
    db.commit()
