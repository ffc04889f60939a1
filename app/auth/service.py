"""
UserDesk - Authentication Service

Core authentication logic including password hashing, session token handling,
and account management.

Features:
- Bcrypt password hashing
- Signed session tokens (JWT) carried in an httpOnly cookie
- User creation and authentication
- Password changes and soft deletion
"""
from datetime import datetime, timedelta
from typing import Optional, Tuple
import logging

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from ..config import settings
from .models import User

logger = logging.getLogger("userdesk.auth")


class AuthServiceError(Exception):
    """Custom exception for authentication errors."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class AuthService:
    """
    Authentication service for user management and session tokens.

    Provides:
    - Password hashing with bcrypt
    - Session token creation/validation
    - User creation and authentication
    """

    def __init__(self):
        """Initialize auth service with password context."""
        self._pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=settings.auth.bcrypt_rounds,
        )

    # -------------------------------------------------------------------------
    # Password Hashing
    # -------------------------------------------------------------------------

    def hash_password(self, password: str) -> str:
        """Hash a password using bcrypt."""
        return self._pwd_context.hash(password)

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """
        Verify a password against its hash.

        Args:
            plain_password: Plain text password to verify
            hashed_password: Previously hashed password

        Returns:
            True if password matches, False otherwise (including malformed hashes)
        """
        if not hashed_password:
            return False
        try:
            return self._pwd_context.verify(plain_password, hashed_password)
        except (ValueError, TypeError) as e:
            logger.error("Password verification failed: %s", e)
            return False

    # -------------------------------------------------------------------------
    # Session Tokens
    # -------------------------------------------------------------------------

    def create_session_token(
        self,
        user: User,
        expires_delta: Optional[timedelta] = None
    ) -> Tuple[str, datetime]:
        """
        Create a signed session token for the cookie.

        Args:
            user: User to create token for
            expires_delta: Optional custom expiration time

        Returns:
            Tuple of (token_string, expiration_datetime)
        """
        expire = datetime.utcnow() + (
            expires_delta or timedelta(minutes=settings.auth.session_expire_minutes)
        )
        payload = {
            "sub": str(user.id),
            "exp": expire,
            "iat": datetime.utcnow(),
            "type": "session",
        }
        token = jwt.encode(payload, settings.auth.secret_key, algorithm=settings.auth.algorithm)
        logger.debug("Created session token for user %s", user.id)
        return token, expire

    def decode_session_token(self, token: str) -> Optional[int]:
        """
        Verify a session token.

        Returns:
            The user id it was issued for, or None if invalid/expired
        """
        try:
            payload = jwt.decode(
                token,
                settings.auth.secret_key,
                algorithms=[settings.auth.algorithm]
            )
        except JWTError as e:
            logger.debug("Session token verification failed: %s", e)
            return None

        if payload.get("type") != "session":
            logger.warning("Token is not a session token")
            return None

        try:
            return int(payload.get("sub"))
        except (TypeError, ValueError):
            logger.warning("Session token missing subject")
            return None

    # -------------------------------------------------------------------------
    # User Management
    # -------------------------------------------------------------------------

    def create_user(
        self,
        db: Session,
        *,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        phone_no: str,
        location: str,
        role: str = "user",
        status: str = "active",
        img_url: Optional[str] = None,
    ) -> User:
        """
        Create a new user with email/password.

        Raises:
            AuthServiceError: 409 if the email is already registered
        """
        if self.get_user_by_email(email, db):
            raise AuthServiceError("Email already exists", status_code=409)

        user = User(
            first_name=first_name,
            last_name=last_name,
            email=email,
            phone_no=phone_no,
            location=location,
            hashed_password=self.hash_password(password),
            role=role,
            status=status,
            img_url=img_url or None,
        )
        db.add(user)
        db.commit()
        db.refresh(user)

        logger.info("Created new user: %s (%s)", user.id, email)
        return user

    def authenticate_user(self, email: str, password: str, db: Session) -> User:
        """
        Authenticate an active user by email and password.

        Raises:
            AuthServiceError: 401 if no active account exists, 400 on a wrong password
        """
        user = db.query(User).filter(User.email == email, User.status == "active").first()
        if not user:
            logger.debug("Active user not found: %s", email)
            raise AuthServiceError("User not found", status_code=401)

        if not self.verify_password(password, user.hashed_password):
            logger.debug("Invalid password for user: %s", email)
            raise AuthServiceError("Invalid credentials", status_code=400)

        logger.info("User authenticated: %s (%s)", user.id, email)
        return user

    def get_user_by_email(self, email: str, db: Session) -> Optional[User]:
        return db.query(User).filter(User.email == email).first()

    def update_password(self, user: User, new_password: str, db: Session) -> None:
        """Hash and store a new password."""
        user.hashed_password = self.hash_password(new_password)
        user.updated_at = datetime.utcnow()
        db.commit()
        logger.info("Password updated for user %s", user.id)

    def soft_delete(self, user: User, db: Session) -> None:
        """Mark an account deleted. The row is kept for the audit trail."""
        user.status = "delete"
        user.updated_at = datetime.utcnow()
        db.commit()
        logger.info("Soft-deleted user %s", user.id)


# Global service instance
auth_service = AuthService()
