"""
UserDesk - Authentication Module

Cookie-based session authentication, registration and password reset.

The router lives in app.auth.router and is mounted by app.main.

Usage:
    from app.auth import get_current_user, get_current_admin_user
    from app.auth import auth_service, User

    @router.get("/protected")
    def protected_route(current_user: User = Depends(get_current_user)):
        return {"user_id": current_user.id}

Configuration (environment variables):
    USERDESK_SECRET_KEY=<key>             - Session token signing key (required in production)
    USERDESK_SESSION_EXPIRE_MINUTES=1440
    USERDESK_COOKIE_SECURE=true
"""

# Models
from .models import User

# Service
from .service import auth_service, AuthServiceError

# Dependencies (for use in routers)
from .dependencies import (
    get_current_user,
    get_current_admin_user,
)

__all__ = [
    # Models
    "User",
    # Service
    "auth_service",
    "AuthServiceError",
    # Dependencies
    "get_current_user",
    "get_current_admin_user",
]
