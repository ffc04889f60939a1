"""
UserDesk - Activity log writer.

Every state-changing account operation leaves one ActivityLog row recording
who did what to whom, from which address and device.
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import Request
from sqlalchemy.orm import Session

from ..models import ActivityLog
from .device import get_client_device, get_client_ip

logger = logging.getLogger("userdesk.activity")


def record_activity(
    db: Session,
    request: Request,
    *,
    actor_id: int,
    action: str,
    description: str,
    target_user_id: Optional[int] = None,
) -> ActivityLog:
    """
    Persist an activity log entry for the current request.

    Args:
        db: Database session
        request: Incoming request (source of IP address and User-Agent)
        actor_id: User performing the action
        action: Short action label, e.g. "Login" or "Deleted user"
        description: Human readable description
        target_user_id: User the action applies to (defaults to the actor)
    """
    entry = ActivityLog(
        time=datetime.utcnow(),
        action=action,
        description=description,
        ip_address=get_client_ip(request),
        device=get_client_device(request.headers.get("User-Agent")),
        user_id=actor_id,
        target_user_id=target_user_id if target_user_id is not None else actor_id,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)

    logger.info(
        "Activity %r by user %s on user %s from %s",
        action, actor_id, entry.target_user_id, entry.ip_address,
    )
    return entry
