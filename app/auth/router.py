"""
UserDesk - Authentication Router

Account endpoints, mounted at the application root.

Endpoints:
    POST /check-email        - Whether an email is already registered
    POST /register           - Multipart registration (optional profileImage)
    POST /login              - Email/password login -> session cookie
    POST /logout             - Clear the session cookie
    GET  /me                 - Current user profile
    GET  /auth/verify        - Session check for the frontend
    POST /forgot-password    - Three-step reset with an emailed one-time code
    POST /reset-password     - Change password (old password required)
    POST /update-profile     - Multipart profile edit (optional profileImage)
    PUT  /delete             - Soft-delete own account
"""
from fastapi import APIRouter, Depends, File, HTTPException, Request, Response, UploadFile, status
from sqlalchemy.orm import Session
from typing import Optional
import logging

from ..database import get_db
from ..rate_limit import limiter, RATE_LIMIT_AUTH, RATE_LIMIT_GENERAL, RATE_LIMIT_READ
from ..query_helpers import get_active_user_by_email
from ..schemas import MessageResponse
from ..services.accounts import create_account, update_account
from ..services.activity import record_activity
from ..services.email_service import email_service
from ..services.storage import S3ImageStorage, StorageError, get_image_storage
from .codes import OneTimeCodeStore, get_reset_code_store
from .dependencies import (
    clear_session_cookie,
    get_current_user,
    get_session_token,
    set_session_cookie,
)
from .forms import profile_update_form, registration_form
from .models import User
from .schemas import (
    EmailCheck, ForgotPasswordRequest, LoginRequest, PasswordChange,
    ProfileResponse, ProfileUpdate, RegisterResponse, SessionCheck,
    UserCreate, UserResponse,
)
from .service import auth_service, AuthServiceError

logger = logging.getLogger("userdesk.auth")
router = APIRouter()


def _as_http_error(exc: Exception) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=str(exc))


# -----------------------------------------------------------------------------
# Registration & Login
# -----------------------------------------------------------------------------

@router.post("/check-email")
@limiter.limit(RATE_LIMIT_AUTH)
def check_email(
    request: Request,
    data: EmailCheck,
    db: Session = Depends(get_db),
):
    """Report whether an account (in any status) uses this email."""
    exists = auth_service.get_user_by_email(data.email.strip(), db) is not None
    return {"exists": exists}


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMIT_AUTH)
async def register(
    request: Request,
    user_data: UserCreate = Depends(registration_form),
    profile_image: Optional[UploadFile] = File(None, alias="profileImage"),
    db: Session = Depends(get_db),
    storage: S3ImageStorage = Depends(get_image_storage),
):
    """
    Register a new account.

    Multipart fields: firstName, lastName, email, password, phone, location,
    optional profileImage file. New accounts are always active users.
    """
    try:
        user = await create_account(db, request, storage, user_data, profile_image)
    except (AuthServiceError, StorageError) as e:
        raise _as_http_error(e)

    return RegisterResponse(user=UserResponse.model_validate(user))


@router.post("/login", response_model=UserResponse)
@limiter.limit(RATE_LIMIT_AUTH)
def login(
    request: Request,
    response: Response,
    credentials: LoginRequest,
    db: Session = Depends(get_db),
):
    """
    Login with email and password.

    Only active accounts may log in. On success the session token is set as
    an httpOnly cookie and the profile is returned.
    """
    try:
        user = auth_service.authenticate_user(credentials.email.strip(), credentials.password, db)
    except AuthServiceError as e:
        raise _as_http_error(e)

    token, _ = auth_service.create_session_token(user)
    set_session_cookie(response, token)

    record_activity(db, request, actor_id=user.id, action="Login", description="Successfully logged in")
    return UserResponse.model_validate(user)


@router.post("/logout")
@limiter.limit(RATE_LIMIT_GENERAL)
def logout(
    request: Request,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Log the logout and clear the session cookie."""
    record_activity(
        db, request,
        actor_id=current_user.id,
        action="Logout",
        description="User manually logged out",
    )
    clear_session_cookie(response)
    return {"status": "success", "message": "Logged out"}


# -----------------------------------------------------------------------------
# Session
# -----------------------------------------------------------------------------

@router.get("/me", response_model=ProfileResponse)
@limiter.limit(RATE_LIMIT_READ)
def get_me(
    request: Request,
    current_user: User = Depends(get_current_user),
):
    """Get the current user's profile."""
    return ProfileResponse(user=UserResponse.model_validate(current_user))


@router.get("/auth/verify", response_model=SessionCheck)
@limiter.limit(RATE_LIMIT_READ)
def verify_session(
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Check the session cookie without requiring it.

    401 when the cookie is missing or invalid, 404 when its account is no
    longer active.
    """
    token = get_session_token(request)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    user_id = auth_service.decode_session_token(token)
    if user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    user = db.query(User).filter(User.id == user_id, User.status == "active").first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    return SessionCheck.model_validate(user)


# -----------------------------------------------------------------------------
# Password Management
# -----------------------------------------------------------------------------

@router.post("/forgot-password", response_model=MessageResponse)
@limiter.limit(RATE_LIMIT_AUTH)
async def forgot_password(
    request: Request,
    data: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    codes: OneTimeCodeStore = Depends(get_reset_code_store),
):
    """
    Reset a forgotten password in three steps.

    step 1: email a 4-digit code
    step 2: verify the code
    step 3: set the new password (requires a verified code)
    """
    email = data.email.strip()
    user = get_active_user_by_email(db, email)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    if data.step == 1:
        if not email_service.is_configured():
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Email service is not configured",
            )
        codes.purge_expired()
        code = codes.issue(email)
        sent = await email_service.send_password_reset_code(
            to_email=user.email, code=code, user_name=user.first_name
        )
        if not sent:
            codes.consume(email)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to send OTP",
            )
        return MessageResponse(message="OTP sent successfully")

    if data.step == 2:
        if not codes.verify(email, data.otp or ""):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid OTP")
        return MessageResponse(message="OTP verified")

    if data.step == 3:
        if not codes.is_verified(email):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="OTP not verified")
        if not data.password or data.password != data.confirm_password:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Passwords do not match")
        if auth_service.verify_password(data.password, user.hashed_password):
            raise HTTPException(
                status_code=status.HTTP_402_PAYMENT_REQUIRED,
                detail="New password must be different from the current password",
            )

        auth_service.update_password(user, data.password, db)
        codes.consume(email)
        record_activity(
            db, request,
            actor_id=user.id,
            action="Login",
            description="Changed password through forgot password",
        )
        return MessageResponse(message="Password reset successful")

    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid step")


@router.post("/reset-password", response_model=MessageResponse)
@limiter.limit(RATE_LIMIT_AUTH)
def reset_password(
    request: Request,
    data: PasswordChange,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Change the current user's password."""
    if data.new_password != data.confirm_password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="New passwords do not match")

    if not auth_service.verify_password(data.old_password, current_user.hashed_password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Old password is incorrect")

    auth_service.update_password(current_user, data.new_password, db)
    record_activity(db, request, actor_id=current_user.id, action="Update", description="Updated password")
    return MessageResponse(message="Password updated successfully")


# -----------------------------------------------------------------------------
# Profile
# -----------------------------------------------------------------------------

@router.post("/update-profile", response_model=ProfileResponse)
@limiter.limit(RATE_LIMIT_GENERAL)
async def update_profile(
    request: Request,
    changes: ProfileUpdate = Depends(profile_update_form),
    profile_image: Optional[UploadFile] = File(None, alias="profileImage"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: S3ImageStorage = Depends(get_image_storage),
):
    """Update own names, email, location and phone number, and optionally the profile image."""
    try:
        user = await update_account(
            db, storage, current_user,
            changes.model_dump(),
            profile_image,
        )
    except (AuthServiceError, StorageError) as e:
        raise _as_http_error(e)

    record_activity(db, request, actor_id=user.id, action="Update", description="Updated profile details")
    return ProfileResponse(user=UserResponse.model_validate(user))


@router.put("/delete", response_model=MessageResponse)
@limiter.limit(RATE_LIMIT_GENERAL)
def delete_account(
    request: Request,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Soft-delete the current account and end the session."""
    record_activity(db, request, actor_id=current_user.id, action="Delete", description="Deleted account")
    auth_service.soft_delete(current_user, db)
    clear_session_cookie(response)
    return MessageResponse(message="Account soft-deleted successfully")
