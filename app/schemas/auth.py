"""Pydantic schemas for authentication endpoints."""

from datetime import datetime
from typing import Annotated, Any

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, EmailStr, Field, StringConstraints

from app.models.user import AuthProvider, UserRole


def _strip(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


# Passwords are never trimmed; only these fields are
TrimmedEmail = Annotated[EmailStr, BeforeValidator(_strip)]
TrimmedName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=256)]


class RegisterRequest(BaseModel):
    name: TrimmedName
    email: TrimmedEmail
    password: str = Field(..., min_length=1)


class LoginRequest(BaseModel):
    email: TrimmedEmail
    password: str = Field(..., min_length=1)


class EmailRequest(BaseModel):
    """Body for resend-verification and forgot-password."""

    email: TrimmedEmail


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1, validation_alias=AliasChoices("new_password", "password"))


class UpdateProfileRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str | None = Field(default=None, min_length=1, max_length=256)
    avatar_url: str | None = Field(default=None, max_length=2048, validation_alias=AliasChoices("avatar_url", "avatarURL"))


class MessageResponse(BaseModel):
    message: str


class RegisterResponse(BaseModel):
    message: str
    tenant_id: str


class VerifyEmailResponse(BaseModel):
    message: str
    email: str
    tenant_id: str


class UserSummary(BaseModel):
    """Public fields returned on login."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    role: UserRole
    tenant_id: str


class UserResponse(UserSummary):
    """User without password hash or pending tokens."""

    avatar_url: str | None
    provider: AuthProvider
    is_verified: bool
    last_login_at: datetime | None
    created_at: datetime
    updated_at: datetime


class LoginResponse(BaseModel):
    token: str
    user: UserSummary


class SessionUser(BaseModel):
    user_id: str
    email: str
    role: UserRole
    tenant_id: str


class SessionResponse(BaseModel):
    message: str
    user: SessionUser


class ProfileResponse(BaseModel):
    message: str
    user: UserResponse
