"""
Get Yummy Backend - Authentication Schemas
==========================================

What:  Request bodies and responses for the /auth routes.

Login delivers the tokens twice: as http-only cookies (browser clients) and
in the body as `accessToken` / `refreshToken` (bearer clients).
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from getyummy.schemas.user import UserResponse


def _normalize_email(v: str) -> str:
    v = v.strip().lower()
    if "@" not in v:
        raise ValueError("Invalid email address")
    return v


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1, max_length=128)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name must not be blank")
        return v

    normalize_email = field_validator("email")(_normalize_email)


class LoginRequest(BaseModel):
    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()


class RegisterResponse(BaseModel):
    message: str = Field(default="Account created")
    data: UserResponse


class LoginResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(default="Logged in")
    data: UserResponse
    access_token: str = Field(alias="accessToken")
    refresh_token: str = Field(alias="refreshToken")


class RefreshResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(alias="accessToken")


class ForgotPasswordRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)

    normalize_email = field_validator("email")(_normalize_email)


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str = Field(min_length=1, max_length=128)
    new_password: str = Field(alias="newPassword", max_length=128)


class TokenStatsResponse(BaseModel):
    """
    Refresh-token counts as of the call.

    active = not expired and not revoked. A row that is both expired and
    revoked is counted in `expired` and in `revoked`, so the buckets can
    sum to more than `total`.
    """
    total: int
    active: int
    expired: int
    revoked: int


class CleanupResponse(BaseModel):
    message: str
    deleted: int
