"""
UserDesk - Activity Log API

GET /admin/activity/{user_id} - Paginated audit trail of everything done to
one user. Each entry carries a summary of the user who performed it.
"""
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
import logging

from ..database import get_db
from ..auth.dependencies import get_current_admin_user
from ..auth.models import User
from ..auth.schemas import UserResponse, UserSummary
from ..models import ActivityLog
from ..query_helpers import ACTIVITY_QUERY_FIELDS, get_user_or_404, listing_request
from ..rate_limit import limiter, RATE_LIMIT_ADMIN
from ..schemas import ActivityListResponse, ActivityLogResponse
from ..services.query_pipeline import QueryExecutionError, QueryRequest, execute
from ..services.query_stores import SqlAlchemyStore

logger = logging.getLogger("userdesk.activity")
router = APIRouter()


def _with_actors(db: Session, logs) -> list:
    """Attach actor summaries, loading all actors of the page in one query."""
    actor_ids = {log.user_id for log in logs}
    actors = {}
    if actor_ids:
        actors = {u.id: u for u in db.query(User).filter(User.id.in_(actor_ids)).all()}

    entries = []
    for log in logs:
        entry = ActivityLogResponse.model_validate(log)
        actor = actors.get(log.user_id)
        if actor is not None:
            entry.user = UserSummary.model_validate(actor)
        entries.append(entry)
    return entries


@router.get("/{user_id}", response_model=ActivityListResponse)
@limiter.limit(RATE_LIMIT_ADMIN)
def user_activity(
    request: Request,
    user_id: int,
    query: QueryRequest = Depends(listing_request),
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    """
    Activity log entries whose target is user_id.

    Query params: page, limit, sortField, sortOrder (asc|desc), searchTerm
    (IP address or action).
    """
    user = get_user_or_404(db, user_id)

    try:
        result = execute(
            query,
            ACTIVITY_QUERY_FIELDS,
            SqlAlchemyStore(db, ActivityLog),
            scope={"targetUserId": user.id},
        )
    except QueryExecutionError:
        raise HTTPException(status_code=500, detail="Error fetching activity log")

    return ActivityListResponse(
        user=UserResponse.model_validate(user),
        logs=_with_actors(db, result.items),
        total_count=result.total_count,
        page=result.page,
        limit=result.limit,
    )
