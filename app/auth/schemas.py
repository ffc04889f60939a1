"""
UserDesk - Authentication Schemas

Pydantic schemas for auth request/response validation. Field names are
snake_case in Python and camelCase on the wire.
"""
from pydantic import BaseModel, EmailStr, Field
from pydantic.alias_generators import to_camel
from typing import Literal, Optional
from datetime import datetime


class CamelModel(BaseModel):
    """Base schema: camelCase aliases, accepts either spelling on input."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


# -----------------------------------------------------------------------------
# User Schemas
# -----------------------------------------------------------------------------

class UserBase(CamelModel):
    """Base user schema with common fields."""
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: EmailStr
    location: str = Field(..., min_length=1)


class UserCreate(UserBase):
    """Schema for user registration (self-service or by an admin)."""
    password: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    role: Literal["user", "admin"] = "user"
    status: Literal["active", "inActive", "delete"] = "active"


class ProfileUpdate(UserBase):
    """Schema for a user editing their own profile."""
    phone_no: str = Field(..., min_length=1)


class AdminUserUpdate(CamelModel):
    """Schema for an admin editing any account."""
    first_name: str = Field(..., min_length=3, max_length=50)
    last_name: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    role: Literal["user", "admin"]
    status: Literal["active", "inActive", "delete"]
    location: str = Field(..., min_length=1)
    phone_no: str = Field(..., min_length=1)


class UserResponse(CamelModel):
    """Schema for user response (public user data)."""
    id: int
    first_name: str
    last_name: str
    email: str
    phone_no: str
    location: str
    role: str
    status: str
    img_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserSummary(CamelModel):
    """Compact user reference embedded in activity log entries."""
    id: int
    first_name: str
    last_name: str
    email: str
    role: str
    img_url: Optional[str] = None


# -----------------------------------------------------------------------------
# Request Schemas
# -----------------------------------------------------------------------------

class EmailCheck(BaseModel):
    email: str


class LoginRequest(BaseModel):
    """Schema for user login."""
    email: str
    password: str


class ForgotPasswordRequest(CamelModel):
    """
    Three-step password reset.

    step 1: send a code to email
    step 2: verify otp
    step 3: set password (must equal confirm_password)
    """
    email: str
    step: int
    otp: Optional[str] = None
    password: Optional[str] = None
    confirm_password: Optional[str] = None


class PasswordChange(CamelModel):
    """Schema for password change request."""
    old_password: str
    new_password: str = Field(..., min_length=8)
    confirm_password: str


# -----------------------------------------------------------------------------
# Responses
# -----------------------------------------------------------------------------

class RegisterResponse(BaseModel):
    """Schema for registration response."""
    status: str = "success"
    user: UserResponse


class SessionCheck(UserResponse):
    """Response of the session verification endpoint."""
    valid: bool = True


class ProfileResponse(BaseModel):
    user: UserResponse
