"""
UserDesk - Application configuration.

Centralized configuration using Pydantic Settings for environment variable management.

Environment Variables:
    All settings can be overridden via environment variables with USERDESK_ prefix.

    Auth Settings:
        USERDESK_SECRET_KEY=...            - Session token signing key (required in production)
        USERDESK_COOKIE_SECURE=true        - Only send the session cookie over HTTPS
        USERDESK_OTP_EXPIRE_SECONDS=600    - Lifetime of password reset codes

    Email Settings:
        USERDESK_RESEND_API_KEY=...        - Resend HTTP API key (preferred)
        USERDESK_SMTP_HOST=...             - SMTP fallback

    Storage Settings:
        USERDESK_S3_BUCKET=...             - Bucket for profile images
        USERDESK_S3_ENDPOINT=...           - S3-compatible endpoint URL
"""
from pydantic_settings import BaseSettings
from typing import Optional


class AuthSettings(BaseSettings):
    """
    Authentication configuration settings.

    For production deployment:
        1. Generate a secret key: openssl rand -hex 32
        2. Set USERDESK_SECRET_KEY to the generated key
        3. Set USERDESK_COOKIE_SECURE=true when served over HTTPS
    """
    secret_key: str = "development-secret-key-change-in-production"
    algorithm: str = "HS256"
    session_expire_minutes: int = 60 * 24
    cookie_name: str = "token"
    cookie_secure: bool = False
    bcrypt_rounds: int = 10

    # Password reset codes
    otp_expire_seconds: int = 600
    otp_max_attempts: int = 5

    # Promoted to admin on startup if the account exists
    admin_email: Optional[str] = None

    class Config:
        env_prefix = "USERDESK_"
        env_file = ".env"
        extra = "ignore"


class EmailSettings(BaseSettings):
    """Outgoing mail configuration. Resend is used when its key is set, SMTP otherwise."""
    resend_api_key: Optional[str] = None
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_tls: bool = True
    from_email: str = "no-reply@userdesk.local"
    from_name: str = "UserDesk"

    class Config:
        env_prefix = "USERDESK_"
        env_file = ".env"
        extra = "ignore"


class StorageSettings(BaseSettings):
    """S3-compatible object storage for profile images."""
    s3_endpoint: Optional[str] = None
    s3_region: Optional[str] = None
    s3_bucket: Optional[str] = None
    s3_access_key: Optional[str] = None
    s3_secret_key: Optional[str] = None
    s3_key_prefix: str = "users"
    max_image_size: int = 5 * 1024 * 1024

    class Config:
        env_prefix = "USERDESK_"
        env_file = ".env"
        extra = "ignore"


class Settings(BaseSettings):
    """Combined application settings."""
    auth: AuthSettings = AuthSettings()
    email: EmailSettings = EmailSettings()
    storage: StorageSettings = StorageSettings()

    # CORS allowed origins (comma-separated). Credentials are allowed, so avoid "*" in production.
    allowed_origins: str = "http://localhost:3000"

    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite:///./data/userdesk.db"

    # Database connection pool (PostgreSQL only)
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 1800

    # Default account created when the users table is empty
    seed_user_enabled: bool = True
    seed_user_email: str = "user@userdesk.local"
    seed_user_password: str = "12345678"
    seed_user_first_name: str = "Default"
    seed_user_last_name: str = "User"
    seed_user_role: str = "user"
    seed_user_phone_no: str = "1234567890"
    seed_user_location: str = "Unknown"

    class Config:
        env_prefix = "USERDESK_"
        env_file = ".env"
        extra = "ignore"


# Global settings instance
settings = Settings()
