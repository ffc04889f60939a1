"""
Reusable query helpers for the listing endpoints and user lookups.

Field registries declare, per entity, which public field names exist and how
they may be used by the listing pipeline.
"""
from typing import Optional

from fastapi import HTTPException, Query
from sqlalchemy.orm import Session

from .auth.models import User
from .services.query_pipeline import FieldRegistry, QueryRequest


USER_QUERY_FIELDS = FieldRegistry(
    fields={
        "id": "id",
        "firstName": "first_name",
        "lastName": "last_name",
        "email": "email",
        "phoneNo": "phone_no",
        "location": "location",
        "role": "role",
        "status": "status",
        "createdAt": "created_at",
        "updatedAt": "updated_at",
    },
    string_fields=frozenset({"firstName", "lastName", "email"}),
    searchable_fields=("firstName", "lastName", "email"),
    filter_fields=frozenset({"role", "status"}),
)

# Log entries carry their creation timestamp in `time`; `createdAt` is accepted as an alias.
ACTIVITY_QUERY_FIELDS = FieldRegistry(
    fields={
        "id": "id",
        "time": "time",
        "createdAt": "time",
        "action": "action",
        "description": "description",
        "IPAddress": "ip_address",
        "device": "device",
        "userId": "user_id",
        "targetUserId": "target_user_id",
    },
    string_fields=frozenset({"time", "action", "description", "IPAddress", "device"}),
    searchable_fields=("IPAddress", "action"),
)

LIVE_STATUSES = ("active", "inActive")


def get_user_or_404(db: Session, user_id: int, live_only: bool = False) -> User:
    """Fetch a user by id, or raise 404. live_only excludes soft-deleted accounts."""
    query = db.query(User).filter(User.id == user_id)
    if live_only:
        query = query.filter(User.status.in_(LIVE_STATUSES))
    user = query.first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def get_active_user_by_email(db: Session, email: str):
    """Return the active account registered under email, if any."""
    return db.query(User).filter(User.email == email, User.status == "active").first()


def listing_request(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    sort_field: Optional[str] = Query(None, alias="sortField"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    search_term: Optional[str] = Query(None, alias="searchTerm"),
    filter_role: Optional[str] = Query(None, alias="filterRole"),
    filter_status: Optional[str] = Query(None, alias="filterStatus"),
) -> QueryRequest:
    """
    Listing query-string parameters as a QueryRequest.

    page and limit are taken as raw strings so malformed values fall back to
    defaults instead of failing validation.
    """
    return QueryRequest.from_params(
        page=page,
        limit=limit,
        sort_field=sort_field,
        sort_order=sort_order,
        search_term=search_term,
        filters={"role": filter_role, "status": filter_status},
    )
