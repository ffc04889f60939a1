"""
UserDesk - Pydantic Schemas

Response schemas for the admin listing and activity log endpoints.
"""
from pydantic import Field
from typing import List, Optional
from datetime import datetime

from .auth.schemas import CamelModel, UserResponse, UserSummary


class ActivityLogResponse(CamelModel):
    id: int
    time: datetime
    action: str
    description: str
    ip_address: str = Field(..., alias="IPAddress")
    device: str
    user_id: int
    target_user_id: Optional[int] = None
    user: Optional[UserSummary] = None  # actor


class UserListResponse(CamelModel):
    """Paginated admin user listing."""
    users: List[UserResponse]
    total_count: int
    page: int
    limit: int
    total_pages: int
    cur_user: int


class ActivityListResponse(CamelModel):
    """Paginated activity log of one target user."""
    user: UserResponse
    logs: List[ActivityLogResponse]
    total_count: int
    page: int
    limit: int


class UserDetailResponse(CamelModel):
    user: UserResponse
    message: str = "User found"


class MessageResponse(CamelModel):
    message: str
