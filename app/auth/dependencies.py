"""
UserDesk - Authentication Dependencies

FastAPI dependencies for route protection and user injection.

Usage in routers:
    from ..auth.dependencies import get_current_user, get_current_admin_user

    @router.get("/protected")
    def protected_route(current_user: User = Depends(get_current_user)):
        return {"user_id": current_user.id}

Dependency hierarchy:
    get_current_user        - Session cookie must be valid and the account active
    get_current_admin_user  - Adds: account role must be "admin"

The session token travels in an httpOnly cookie (settings.auth.cookie_name).
"""
from typing import Optional
from fastapi import Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session
import logging

from ..database import get_db
from ..config import settings
from .models import User
from .service import auth_service

logger = logging.getLogger("userdesk.auth")


# -----------------------------------------------------------------------------
# Session Cookie
# -----------------------------------------------------------------------------

def get_session_token(request: Request) -> Optional[str]:
    """Read the session token from the request cookies."""
    return request.cookies.get(settings.auth.cookie_name)


def set_session_cookie(response: Response, token: str) -> None:
    """Attach the session cookie to a response."""
    response.set_cookie(
        key=settings.auth.cookie_name,
        value=token,
        max_age=settings.auth.session_expire_minutes * 60,
        path="/",
        httponly=True,
        secure=settings.auth.cookie_secure,
        samesite="strict",
    )


def clear_session_cookie(response: Response) -> None:
    """Expire the session cookie on the client."""
    response.delete_cookie(
        key=settings.auth.cookie_name,
        path="/",
        httponly=True,
        secure=settings.auth.cookie_secure,
        samesite="strict",
    )


def _resolve_session_user(token: Optional[str], db: Session) -> Optional[User]:
    """
    Decode the session token and load its user.

    Raises:
        HTTPException: 401 if the token is missing or invalid
    """
    if not token:
        logger.debug("No session cookie provided")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )

    user_id = auth_service.decode_session_token(token)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        )

    return db.query(User).filter(User.id == user_id, User.status == "active").first()


# -----------------------------------------------------------------------------
# Core Authentication Dependencies
# -----------------------------------------------------------------------------

async def get_current_user(
    request: Request,
    db: Session = Depends(get_db)
) -> User:
    """
    Get the current authenticated user from the session cookie.

    Returns:
        User: The authenticated, active user

    Raises:
        HTTPException: 401 if not authenticated or token invalid,
                       403 if the account is inactive or deleted
    """
    user = _resolve_session_user(get_session_token(request), db)
    if not user:
        logger.warning("Session token valid but no active user behind it")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied (user inactive or deleted)",
        )
    return user


async def get_current_admin_user(
    request: Request,
    db: Session = Depends(get_db)
) -> User:
    """
    Get the current user and require the admin role.

    Raises:
        HTTPException: 401 if not authenticated, 403 if not an active admin
    """
    user = _resolve_session_user(get_session_token(request), db)
    if not user or not user.is_admin:
        logger.warning("Non-admin session attempted admin access")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access only",
        )
    return user

