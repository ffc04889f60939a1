"""
UserDesk - Admin API Endpoints

User management for administrators. All endpoints require the admin role
via the get_current_admin_user dependency.

Endpoints:
    GET  /admin/users              - Paginated, searchable, sortable user listing
    GET  /admin/user/{id}          - One user
    PUT  /admin/user/edit/{id}     - Edit any field, including role and status
    PUT  /admin/user/delete/{id}   - Soft-delete an active/inActive user
    POST /admin/user/create        - Create an account on someone's behalf
"""
from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status
from sqlalchemy.orm import Session
from typing import Optional
import logging

from ..database import get_db
from ..auth.dependencies import get_current_admin_user
from ..auth.forms import admin_user_update_form, user_create_form
from ..auth.models import User
from ..auth.schemas import AdminUserUpdate, RegisterResponse, UserCreate, UserResponse
from ..auth.service import AuthServiceError, auth_service
from ..query_helpers import USER_QUERY_FIELDS, get_user_or_404, listing_request
from ..rate_limit import limiter, RATE_LIMIT_ADMIN
from ..schemas import MessageResponse, UserDetailResponse, UserListResponse
from ..services.accounts import create_account, update_account
from ..services.activity import record_activity
from ..services.query_pipeline import QueryExecutionError, QueryRequest, execute
from ..services.query_stores import SqlAlchemyStore
from ..services.storage import S3ImageStorage, StorageError, get_image_storage

logger = logging.getLogger("userdesk.admin")
router = APIRouter()


# =============================================================================
# User Listing
# =============================================================================

@router.get("/users", response_model=UserListResponse)
@limiter.limit(RATE_LIMIT_ADMIN)
def list_users(
    request: Request,
    query: QueryRequest = Depends(listing_request),
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    """
    List users with search, filters, sorting and pagination.

    Query params: page, limit, sortField, sortOrder (asc|desc), searchTerm
    (first name, last name or email), filterRole, filterStatus.
    """
    try:
        result = execute(query, USER_QUERY_FIELDS, SqlAlchemyStore(db, User))
    except QueryExecutionError:
        raise HTTPException(status_code=500, detail="Error fetching users")

    return UserListResponse(
        users=[UserResponse.model_validate(u) for u in result.items],
        total_count=result.total_count,
        page=result.page,
        limit=result.limit,
        total_pages=result.total_pages,
        cur_user=admin.id,
    )


# =============================================================================
# User Management
# =============================================================================

@router.get("/user/{user_id}", response_model=UserDetailResponse)
@limiter.limit(RATE_LIMIT_ADMIN)
def get_user_detail(
    request: Request,
    user_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    """Get one user, whatever their status."""
    user = get_user_or_404(db, user_id)
    return UserDetailResponse(user=UserResponse.model_validate(user))


@router.put("/user/edit/{user_id}", response_model=UserDetailResponse)
@limiter.limit(RATE_LIMIT_ADMIN)
async def edit_user(
    request: Request,
    user_id: int,
    changes: AdminUserUpdate = Depends(admin_user_update_form),
    profile_image: Optional[UploadFile] = File(None, alias="profileImage"),
    db: Session = Depends(get_db),
    storage: S3ImageStorage = Depends(get_image_storage),
    admin: User = Depends(get_current_admin_user),
):
    """Edit a user that has not been deleted. Multipart, like registration."""
    user = get_user_or_404(db, user_id, live_only=True)

    try:
        user = await update_account(db, storage, user, changes.model_dump(), profile_image)
    except (AuthServiceError, StorageError) as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    record_activity(
        db, request,
        actor_id=admin.id,
        action="Updated user details",
        description=f"Updated details of user ({user.email})",
        target_user_id=user.id,
    )
    logger.info("Admin %s updated user %s", admin.id, user.id)
    return UserDetailResponse(user=UserResponse.model_validate(user), message="Profile updated successfully")


@router.put("/user/delete/{user_id}", response_model=MessageResponse)
@limiter.limit(RATE_LIMIT_ADMIN)
def delete_user(
    request: Request,
    user_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    """Soft-delete an active or inactive user."""
    try:
        user = get_user_or_404(db, user_id, live_only=True)
    except HTTPException:
        raise HTTPException(status_code=404, detail="User not found or already deleted")

    auth_service.soft_delete(user, db)
    record_activity(
        db, request,
        actor_id=admin.id,
        action="Deleted user",
        description=f"Deleted user ({user.email}) by admin",
        target_user_id=user.id,
    )
    logger.info("Admin %s deleted user %s", admin.id, user.id)
    return MessageResponse(message="User deleted successfully")


@router.post("/user/create", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMIT_ADMIN)
async def create_user(
    request: Request,
    user_data: UserCreate = Depends(user_create_form),
    profile_image: Optional[UploadFile] = File(None, alias="profileImage"),
    db: Session = Depends(get_db),
    storage: S3ImageStorage = Depends(get_image_storage),
    admin: User = Depends(get_current_admin_user),
):
    """Create an account with any role and status."""
    try:
        user = await create_account(db, request, storage, user_data, profile_image, actor=admin)
    except (AuthServiceError, StorageError) as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    logger.info("Admin %s created user %s", admin.id, user.id)
    return RegisterResponse(user=UserResponse.model_validate(user))
