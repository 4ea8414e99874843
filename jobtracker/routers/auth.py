import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from jobtracker.database import get_db
from jobtracker.dependencies import get_current_user, get_current_user_full_access
from jobtracker.config import settings
from jobtracker.core.clock import as_utc, utcnow
from jobtracker.core.errors import AppError, AuthError, DuplicateError, OAuthError
from jobtracker.schemas.auth import (
    UserRegister,
    UserLogin,
    Token,
    UserResponse,
    AccountUpdate,
    ForgotPasswordRequest,
    ChangePasswordRequest,
)
from jobtracker.schemas.common import ApiResponse, ok
from jobtracker.core.security import verify_password, create_access_token, hash_password, generate_temp_password
from jobtracker.repos.user_repo import (
    get_by_email,
    get_by_id,
    create as create_user,
    update as update_user,
    record_login,
    set_temp_password,
    clear_temp_password,
    is_temp_password_mode,
    has_premium_features,
    upsert_oauth_user,
)
from jobtracker.repos.resume_repo import get_latest_by_user
from jobtracker.services import email_service
from jobtracker.services.oauth_client import exchange_code
from jobtracker.models.user import User

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])
TEMP_PASSWORD_EXPIRY_MINUTES = 10
FORGOT_PASSWORD_MESSAGE = "If an account exists, a temporary password has been generated. Check your email."


def _user_to_response(user: User, has_resume: bool) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        first_name=user.first_name or "",
        last_name=user.last_name or "",
        account_status=user.account_status,
        subscription_type=user.subscription_type,
        has_resume=has_resume,
        has_premium=has_premium_features(user),
        requires_password_change=is_temp_password_mode(user),
    )


def _token_for(db: Session, user: User) -> Token:
    has_resume = get_latest_by_user(db, user.id) is not None
    return Token(access_token=create_access_token(user.id), user=_user_to_response(user, has_resume))


@router.post("/register", response_model=ApiResponse[Token], status_code=status.HTTP_201_CREATED)
def register(data: UserRegister, db: Session = Depends(get_db)):
    try:
        user = create_user(db, data.email, data.password, first_name=data.first_name, last_name=data.last_name)
        logger.info("User registered: %s", user.email)
        token = _token_for(db, user)
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.exception("Register failed for email=%s: %s", data.email, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Registration failed") from e
    email_service.notify_welcome(user)
    return ok(token, "User registered successfully")


@router.post("/login", response_model=ApiResponse[Token])
def login(data: UserLogin, db: Session = Depends(get_db)):
    try:
        user = get_by_email(db, data.email)
        if not user:
            raise AuthError("Invalid email or password")
        if user.account_status != "Active":
            raise AuthError("Account is not active")
        # Temp password first (expires in 10 min)
        used_temp = False
        if user.temp_password_hash and user.temp_password_expires_at:
            if as_utc(user.temp_password_expires_at) > utcnow():
                used_temp = verify_password(data.password, user.temp_password_hash)
        if not used_temp and not verify_password(data.password, user.password_hash):
            raise AuthError("Invalid email or password")
        user = record_login(db, user)
        logger.info("User logged in%s: %s", " with temp password" if used_temp else "", user.email)
        return ok(_token_for(db, user), "Login successful")
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.exception("Login failed for email=%s: %s", data.email, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Login failed") from e


@router.get("/oauth/{provider}/callback", response_model=ApiResponse[Token])
def oauth_callback(
    provider: str,
    code: str | None = Query(None),
    error: str | None = Query(None),
    db: Session = Depends(get_db),
):
    """Finish a Google/LinkedIn sign-in: exchange the code, then find, link or create the account."""
    if error or not code:
        raise OAuthError(f"{provider} sign-in was cancelled or failed: {error or 'missing code'}")
    profile = exchange_code(provider, code)
    try:
        user, created = upsert_oauth_user(db, provider, profile)
        if user.account_status != "Active":
            raise AuthError("Account is not active")
        user = record_login(db, user)
        token = _token_for(db, user)
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.exception("OAuth login failed for provider=%s: %s", provider, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Sign-in failed") from e
    logger.info("User signed in with %s: %s (new=%s)", provider, user.email, created)
    if created:
        email_service.notify_welcome(user)
    return ok(token, "Login successful")


@router.post("/forgot-password", response_model=ApiResponse[dict])
def forgot_password(data: ForgotPasswordRequest, db: Session = Depends(get_db)):
    """Generate a temporary password (expires in 10 min)."""
    try:
        user = get_by_email(db, data.email)
        if not user:
            # Don't reveal whether email exists
            return ok({}, FORGOT_PASSWORD_MESSAGE)
        temp_pw = generate_temp_password()
        expires_at = utcnow() + timedelta(minutes=TEMP_PASSWORD_EXPIRY_MINUTES)
        set_temp_password(db, user.id, hash_password(temp_pw), expires_at)
        logger.info("Temp password generated for %s, expires in %d min", user.email, TEMP_PASSWORD_EXPIRY_MINUTES)
    except Exception as e:
        logger.exception("Forgot-password flow failed for email=%s: %s", data.email, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to process request") from e
    email_service.notify_temp_password(user.email, temp_pw, TEMP_PASSWORD_EXPIRY_MINUTES)
    if settings.expose_temp_password_in_response:
        return ok(
            {"temp_password": temp_pw, "expires_in_minutes": TEMP_PASSWORD_EXPIRY_MINUTES},
            "Temporary password generated. Use it to log in, then change your password.",
        )
    return ok({}, FORGOT_PASSWORD_MESSAGE)


@router.post("/change-password", response_model=ApiResponse[Token])
def change_password(
    data: ChangePasswordRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Change password. Required when logged in with temporary password. Clears temp password after success."""
    try:
        if not is_temp_password_mode(user):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Use Profile to change password when logged in normally",
            )
        update_user(db, user.id, password_hash=hash_password(data.new_password))
        clear_temp_password(db, user.id)
        user = get_by_id(db, user.id)
        logger.info("Password changed after temp login: %s", user.email)
        return ok(_token_for(db, user), "Password changed")
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.exception("Change-password failed for user=%s: %s", user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to change password") from e


@router.get("/me", response_model=ApiResponse[UserResponse])
def get_me(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    has_resume = get_latest_by_user(db, user.id) is not None
    return ok(_user_to_response(user, has_resume))


@router.patch("/me", response_model=ApiResponse[UserResponse])
def update_account(
    data: AccountUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    try:
        if data.email is not None and data.email.lower() != user.email:
            if get_by_email(db, data.email):
                raise DuplicateError("Email already in use", errors=[{"field": "email", "message": "already in use"}])
            update_user(db, user.id, email=data.email)

        if data.new_password is not None:
            if not verify_password(data.current_password, user.password_hash):
                raise AuthError("Current password is incorrect")
            update_user(db, user.id, password_hash=hash_password(data.new_password))

        user = get_by_id(db, user.id)
        has_resume = get_latest_by_user(db, user.id) is not None
        return ok(_user_to_response(user, has_resume), "Account updated")
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.exception("Account update failed for user=%s: %s", user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update account") from e
