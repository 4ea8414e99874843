import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from jobtracker.database import get_db
from jobtracker.dependencies import get_current_user_full_access
from jobtracker.core.errors import AppError
from jobtracker.models.user import User
from jobtracker.repos.user_repo import delete_user, update_preferences, update_profile
from jobtracker.schemas.common import ApiResponse, ok
from jobtracker.schemas.user import (
    PreferencesUpdate,
    ProfileExperience,
    ProfileResponse,
    ProfileUpdate,
    SkillsUpdate,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/users", tags=["users"])


def _profile(user: User) -> ProfileResponse:
    connected = sorted(p for p, v in (user.integrations or {}).items() if (v or {}).get("connected"))
    return ProfileResponse.model_validate(user).model_copy(update={"connected_providers": connected})


@router.get("/profile", response_model=ApiResponse[ProfileResponse])
def get_profile(user: User = Depends(get_current_user_full_access)):
    return ok(_profile(user))


@router.put("/profile", response_model=ApiResponse[ProfileResponse])
def put_profile(
    data: ProfileUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    try:
        user = update_profile(db, user, data.to_record_fields())
        return ok(_profile(user), "Profile updated")
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.exception("Profile update failed for user=%s: %s", user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update profile") from e


@router.put("/skills", response_model=ApiResponse[ProfileResponse])
def put_skills(
    data: SkillsUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    user = update_profile(db, user, {"skills": [s.model_dump(mode="json") for s in data.skills]})
    return ok(_profile(user), "Skills updated")


@router.post("/experience", response_model=ApiResponse[ProfileResponse], status_code=status.HTTP_201_CREATED)
def add_experience(
    data: ProfileExperience,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    """Prepend one experience entry; newest first."""
    experience = [data.model_dump(mode="json")] + list(user.experience or [])
    user = update_profile(db, user, {"experience": experience})
    return ok(_profile(user), "Experience added")


@router.put("/preferences", response_model=ApiResponse[ProfileResponse])
def put_preferences(
    data: PreferencesUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    user = update_preferences(db, user, data.model_dump(mode="json", exclude_unset=True))
    return ok(_profile(user), "Preferences updated")


@router.delete("/account", response_model=ApiResponse[dict])
def delete_account(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    """Hard delete: jobs, history, reminders, resumes and analytics go with the account."""
    try:
        email = user.email
        delete_user(db, user.id)
        logger.info("Account deleted: %s", email)
        return ok({}, "Account deleted")
    except Exception as e:
        logger.exception("Account delete failed for user=%s: %s", user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to delete account") from e
