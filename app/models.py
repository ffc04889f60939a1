"""
UserDesk - Database Models

Activity log model. The User model lives in app.auth.models.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from datetime import datetime

from .database import Base


class ActivityLog(Base):
    """
    Audit trail entry.

    user_id is the account that performed the action; target_user_id is the
    account the action was performed on (equal to user_id for self-service
    actions such as login or profile updates).
    """
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)
    time = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    action = Column(String, nullable=False)
    description = Column(String, nullable=False)
    ip_address = Column(String, nullable=False)
    device = Column(String, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    target_user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
