"""
UserDesk - Multipart form dependencies.

Registration and profile edits arrive as multipart/form-data (they may carry a
profileImage file), so their fields are read with Form() and validated against
the same pydantic schemas used elsewhere. Validation failures are reported as
400 with the first error message.
"""
from typing import Optional

from fastapi import Form, HTTPException, status
from pydantic import ValidationError

from .schemas import AdminUserUpdate, ProfileUpdate, UserCreate


def _validated(schema, **values):
    try:
        return schema(**values)
    except ValidationError as exc:
        error = exc.errors()[0]
        field = ".".join(str(part) for part in error.get("loc", ()))
        message = f"{field}: {error['msg']}" if field else error["msg"]
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


def registration_form(
    first_name: str = Form("", alias="firstName"),
    last_name: str = Form("", alias="lastName"),
    email: str = Form(""),
    password: str = Form(""),
    phone: str = Form(""),
    location: str = Form(""),
) -> UserCreate:
    """Self-service sign-up. Role and status are fixed, never read from the form."""
    return _validated(
        UserCreate,
        first_name=first_name,
        last_name=last_name,
        email=email,
        password=password,
        phone=phone,
        location=location,
        role="user",
        status="active",
    )


def user_create_form(
    first_name: str = Form("", alias="firstName"),
    last_name: str = Form("", alias="lastName"),
    email: str = Form(""),
    password: str = Form(""),
    phone: str = Form(""),
    location: str = Form(""),
    role: Optional[str] = Form(None),
    status: Optional[str] = Form(None),
) -> UserCreate:
    return _validated(
        UserCreate,
        first_name=first_name,
        last_name=last_name,
        email=email,
        password=password,
        phone=phone,
        location=location,
        role=role or "user",
        status=status or "active",
    )


def profile_update_form(
    first_name: str = Form("", alias="firstName"),
    last_name: str = Form("", alias="lastName"),
    email: str = Form(""),
    location: str = Form(""),
    phone_no: str = Form("", alias="phoneNo"),
) -> ProfileUpdate:
    return _validated(
        ProfileUpdate,
        first_name=first_name,
        last_name=last_name,
        email=email,
        location=location,
        phone_no=phone_no,
    )


def admin_user_update_form(
    first_name: str = Form("", alias="firstName"),
    last_name: str = Form("", alias="lastName"),
    email: str = Form(""),
    role: str = Form(""),
    status: str = Form(""),
    location: str = Form(""),
    phone_no: str = Form("", alias="phoneNo"),
) -> AdminUserUpdate:
    return _validated(
        AdminUserUpdate,
        first_name=first_name,
        last_name=last_name,
        email=email,
        role=role,
        status=status,
        location=location,
        phone_no=phone_no,
    )
