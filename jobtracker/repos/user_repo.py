import logging
from datetime import datetime

from sqlalchemy.orm import Session

from jobtracker.core.clock import as_utc, utcnow
from jobtracker.core.errors import DuplicateError, OAuthError
from jobtracker.core.security import hash_password, generate_id
from jobtracker.models.user import User

logger = logging.getLogger(__name__)

PROFILE_FIELDS = {
    "first_name",
    "last_name",
    "phone",
    "headline",
    "summary",
    "address",
    "social_links",
    "skills",
    "experience",
    "education",
    "certifications",
}
PROVIDER_ID_FIELDS = {"google": "google_id", "linkedin": "linkedin_id"}


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def get_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == _normalize_email(email)).first()


def get_by_id(db: Session, user_id: str) -> User | None:
    return db.query(User).filter(User.id == user_id).first()


def get_by_provider_id(db: Session, provider: str, provider_id: str) -> User | None:
    column = getattr(User, PROVIDER_ID_FIELDS[provider])
    return db.query(User).filter(column == provider_id).first()


def list_active(db: Session) -> list[User]:
    return db.query(User).filter(User.account_status == "Active").order_by(User.created_at.asc()).all()


def create(
    db: Session,
    email: str,
    password: str | None,
    *,
    first_name: str = "",
    last_name: str = "",
) -> User:
    if get_by_email(db, email):
        raise DuplicateError("Email already registered", errors=[{"field": "email", "message": "already registered"}])
    user = User(
        id=generate_id(),
        email=_normalize_email(email),
        password_hash=hash_password(password) if password else None,
        first_name=first_name or "",
        last_name=last_name or "",
        preferences=default_preferences(),
        integrations={},
        account_status="Active",
        subscription_type="Free",
        login_count=0,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def default_preferences() -> dict:
    return {
        "job_alerts": True,
        "email_notifications": True,
        "reminder_frequency": "Weekly",
        "preferred_job_types": [],
        "preferred_locations": [],
        "expected_salary": None,
        "experience_level": None,
    }


def update(
    db: Session,
    user_id: str,
    *,
    email: str | None = None,
    password_hash: str | None = None,
    account_status: str | None = None,
) -> User | None:
    user = get_by_id(db, user_id)
    if not user:
        return None
    if email is not None:
        user.email = _normalize_email(email)
    if password_hash is not None:
        user.password_hash = password_hash
    if account_status is not None:
        user.account_status = account_status
    db.commit()
    db.refresh(user)
    return user


def update_profile(db: Session, user: User, fields: dict) -> User:
    for key, value in fields.items():
        if key in PROFILE_FIELDS:
            setattr(user, key, value)
    db.commit()
    db.refresh(user)
    return user


def update_preferences(db: Session, user: User, fields: dict) -> User:
    preferences = dict(user.preferences or default_preferences())
    preferences.update(fields)
    user.preferences = preferences
    db.commit()
    db.refresh(user)
    return user


def record_login(db: Session, user: User, now: datetime | None = None) -> User:
    user.last_login_at = now or utcnow()
    user.login_count = (user.login_count or 0) + 1
    db.commit()
    db.refresh(user)
    return user


def set_temp_password(
    db: Session, user_id: str, temp_password_hash: str, expires_at: datetime
) -> User | None:
    user = get_by_id(db, user_id)
    if not user:
        return None
    user.temp_password_hash = temp_password_hash
    user.temp_password_expires_at = expires_at
    db.commit()
    db.refresh(user)
    return user


def clear_temp_password(db: Session, user_id: str) -> User | None:
    user = get_by_id(db, user_id)
    if not user:
        return None
    user.temp_password_hash = None
    user.temp_password_expires_at = None
    db.commit()
    db.refresh(user)
    return user


def is_temp_password_mode(user: User) -> bool:
    """True if user is logged in with temp password (must change password)."""
    if not user.temp_password_hash or not user.temp_password_expires_at:
        return False
    return as_utc(user.temp_password_expires_at) > utcnow()


def has_premium_features(user: User, now: datetime | None = None) -> bool:
    now = now or utcnow()
    if user.subscription_type == "Free":
        return False
    expires = as_utc(user.subscription_expires)
    return expires is None or expires > now


def upsert_oauth_user(db: Session, provider: str, profile) -> tuple[User, bool]:
    """
    Find or create the account behind an OAuth login.

    Matches by provider id first, then links an existing account with the
    same email, else creates a new one. Returns (user, created).
    """
    id_field = PROVIDER_ID_FIELDS[provider]
    user = get_by_provider_id(db, provider, profile.id)
    created = False
    if user is None and profile.email:
        user = get_by_email(db, profile.email)
        if user is not None:
            setattr(user, id_field, profile.id)
            logger.info("Linked %s identity to existing account %s", provider, user.email)
    if user is None:
        if not profile.email:
            raise OAuthError(f"{provider} did not return an email address")
        first, _, last = (profile.display_name or "").partition(" ")
        user = User(
            id=generate_id(),
            email=_normalize_email(profile.email),
            password_hash=None,
            first_name=first,
            last_name=last,
            preferences=default_preferences(),
            integrations={},
            account_status="Active",
            subscription_type="Free",
            login_count=0,
        )
        setattr(user, id_field, profile.id)
        db.add(user)
        created = True
    integrations = dict(user.integrations or {})
    integrations[provider] = {
        "connected": True,
        "access_token": profile.access_token,
        "refresh_token": profile.refresh_token,
        "connected_at": utcnow().isoformat(),
    }
    user.integrations = integrations
    db.commit()
    db.refresh(user)
    return user, created


def delete_user(db: Session, user_id: str) -> bool:
    """Delete the user with every job, reminder, resume and analytics row in one transaction."""
    user = get_by_id(db, user_id)
    if not user:
        return False
    db.delete(user)
    db.commit()
    return True
