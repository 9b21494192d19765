"""
Pydantic schemas for User-related requests and responses.

These schemas control what user data is exposed through the API.
password_hash and the reset-token fields are NEVER included in any
response schema — this is the boundary that keeps the password
write-only.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from tours_api.models.user import UserRole


class UserResponse(BaseModel):
    """Public representation of a User (never includes password data)."""
    id: uuid.UUID
    name: str
    email: EmailStr
    photo: str | None = None
    role: UserRole
    created_at: datetime

    model_config = {"from_attributes": True}


class UserData(BaseModel):
    user: UserResponse


class UpdateMeRequest(BaseModel):
    """
    Request body for PATCH /users/updateMe.

    Only name and email can be changed here. Password fields are rejected
    by the service with a pointer to /updatePassword; anything else is
    ignored.
    """
    name: str | None = Field(default=None, min_length=1, max_length=100)
    email: EmailStr | None = None
    password: str | None = None
    password_confirm: str | None = None


class AdminUserUpdateRequest(BaseModel):
    """Request body for PATCH /users/{id} (admin only). Cannot set passwords."""
    name: str | None = Field(default=None, min_length=1, max_length=100)
    email: EmailStr | None = None
    photo: str | None = None
    role: UserRole | None = None
