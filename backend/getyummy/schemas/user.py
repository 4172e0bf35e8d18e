"""
Get Yummy Backend - User Schemas
================================

Two public shapes: `UserResponse` (what register/login and other users see,
no admin flag) and `UserProfileResponse` (the caller's own profile and the
admin listing, which include `is_admin`). Password hashes have no schema.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class UserProfileResponse(UserResponse):
    is_admin: bool


class UserEnvelope(BaseModel):
    message: str = Field(default="success")
    data: UserResponse


class UserUpdate(BaseModel):
    """Partial profile update; omitted fields keep their stored value."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[str] = Field(default=None, min_length=3, max_length=255)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v
