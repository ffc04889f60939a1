"""
UserDesk - Account creation and profile edits shared by the self-service and
admin routes.
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import Request, UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from ..auth.models import User
from ..auth.schemas import UserCreate
from ..auth.service import AuthServiceError, auth_service
from .activity import record_activity
from .storage import S3ImageStorage, store_uploaded_image

logger = logging.getLogger("userdesk.auth")


def ensure_email_available(db: Session, email: str, user: Optional[User] = None) -> None:
    """
    Raises:
        AuthServiceError: 409 if another account already uses email
    """
    existing = auth_service.get_user_by_email(email, db)
    if existing and (user is None or existing.id != user.id):
        raise AuthServiceError("Email already exists", status_code=409)


async def create_account(
    db: Session,
    request: Request,
    storage: S3ImageStorage,
    data: UserCreate,
    profile_image: Optional[UploadFile] = None,
    actor: Optional[User] = None,
) -> User:
    """
    Create an account, store its profile image and log the creation.

    actor is the admin creating the account; self-registration logs the new
    user as its own actor.

    Raises:
        AuthServiceError: 409 on a duplicate email
        StorageError: If the image is rejected or cannot be stored
    """
    # Checked before the upload so a duplicate never leaves an orphaned object
    ensure_email_available(db, data.email)
    img_url = await store_uploaded_image(profile_image, storage)

    user = auth_service.create_user(
        db,
        first_name=data.first_name,
        last_name=data.last_name,
        email=data.email,
        password=data.password,
        phone_no=data.phone,
        location=data.location,
        role=data.role,
        status=data.status,
        img_url=img_url,
    )
    record_activity(
        db, request,
        actor_id=actor.id if actor else user.id,
        action="Create",
        description="Created new user",
        target_user_id=user.id,
    )
    return user


async def update_account(
    db: Session,
    storage: S3ImageStorage,
    user: User,
    changes: dict,
    profile_image: Optional[UploadFile] = None,
) -> User:
    """
    Apply field changes and an optional new profile image to user.

    Raises:
        AuthServiceError: 409 if the new email belongs to another account
        StorageError: If the image is rejected or cannot be stored
    """
    if "email" in changes:
        ensure_email_available(db, changes["email"], user)

    new_image = await store_uploaded_image(profile_image, storage)
    previous_image = user.img_url

    for field, value in changes.items():
        setattr(user, field, value)
    if new_image:
        user.img_url = new_image
    user.updated_at = datetime.utcnow()
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        if new_image:
            await run_in_threadpool(storage.delete_image, new_image)
        raise
    db.refresh(user)

    # Only once the row points at the new object
    if new_image and previous_image:
        await run_in_threadpool(storage.delete_image, previous_image)

    logger.info("Updated account %s (%s)", user.id, ", ".join(sorted(changes)))
    return user
