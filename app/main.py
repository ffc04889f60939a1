"""
UserDesk - FastAPI application entry point.

User authentication and administration API: registration, cookie sessions,
password reset, profile editing, admin user management and an activity log.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from contextlib import asynccontextmanager
from datetime import datetime
import logging
import os

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .config import settings
from .rate_limit import limiter
from .database import SessionLocal
from .auth.router import router as auth_router
from .routers import admin, activity
from .auth.models import User
from .auth.service import auth_service

# --- Logging Configuration ---
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("userdesk")

VERSION = "0.1.0"


def setup_database():
    """Create tables if fresh DB, run migrations if existing."""
    import subprocess
    from sqlalchemy import inspect as sa_inspect
    from .database import engine, init_db

    inspector = sa_inspect(engine)
    existing = inspector.get_table_names()

    if "users" not in existing:
        logger.info("Fresh database - creating all tables...")
        init_db()
        subprocess.run(["alembic", "stamp", "head"], check=True)
        logger.info("Tables created and alembic stamped to head.")
    else:
        logger.info("Existing database - running migrations...")
        subprocess.run(["alembic", "upgrade", "head"], check=True)
        logger.info("Migrations complete.")


def seed_default_user():
    """Create the configured default account if there are no users at all."""
    if not settings.seed_user_enabled:
        return
    db = SessionLocal()
    try:
        if db.query(User.id).first():
            return
        auth_service.create_user(
            db,
            first_name=settings.seed_user_first_name,
            last_name=settings.seed_user_last_name,
            email=settings.seed_user_email,
            password=settings.seed_user_password,
            phone_no=settings.seed_user_phone_no,
            location=settings.seed_user_location,
            role=settings.seed_user_role,
        )
        logger.info("Seeded default user %s", settings.seed_user_email)
    finally:
        db.close()


def bootstrap_admin():
    """Promote user to admin if USERDESK_ADMIN_EMAIL is set."""
    if not settings.auth.admin_email:
        return
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == settings.auth.admin_email).first()
        if user and not user.is_admin:
            user.role = "admin"
            db.commit()
            logger.info("Bootstrapped admin: %s", user.email)
        elif not user:
            logger.warning(
                "USERDESK_ADMIN_EMAIL=%s but no user found with that email",
                settings.auth.admin_email,
            )
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup."""
    logger.info("Starting UserDesk application...")
    if settings.database_url.startswith("sqlite:///./data/"):
        os.makedirs("data", exist_ok=True)
    setup_database()
    seed_default_user()
    bootstrap_admin()
    logger.info("UserDesk ready!")
    yield
    logger.info("Shutting down UserDesk...")


app = FastAPI(
    title="UserDesk",
    description="User authentication and administration API with an activity audit trail",
    version=VERSION,
    lifespan=lifespan
)

# --- Rate Limiting ---
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# --- Security Headers Middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        return response


# --- Middleware ---
# Parse allowed origins from config
_allowed_origins = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router, tags=["auth"])
app.include_router(admin.router, prefix="/admin", tags=["admin"])
app.include_router(activity.router, prefix="/admin/activity", tags=["activity"])


@app.get("/api/health", tags=["system"])
async def health_check():
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy",
        "version": VERSION,
        "timestamp": datetime.utcnow().isoformat()
    }
