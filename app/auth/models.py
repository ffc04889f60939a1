"""
UserDesk - Authentication Models

SQLAlchemy model for user accounts.
"""
from sqlalchemy import Column, Integer, String, DateTime
from datetime import datetime

from ..database import Base


USER_ROLES = ("user", "admin")
USER_STATUSES = ("active", "inActive", "delete")


class User(Base):
    """
    User account.

    Deleting an account is a soft delete: status becomes "delete" and the
    row stays so that its activity log remains resolvable.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    phone_no = Column(String, nullable=False)
    location = Column(String, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(String, nullable=False, default="user", index=True)
    status = Column(String, nullable=False, default="active", index=True)
    img_url = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_active(self) -> bool:
        return self.status == "active"
