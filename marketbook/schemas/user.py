"""User request/response schemas - API contract and validation."""

from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, EmailStr, Field, StringConstraints, field_validator

from marketbook.db.models.enums import Role
from marketbook.schemas.base import ApiModel

Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
# bcrypt accepts max 72 bytes; longer passwords are rejected here with a clear 400.
Password = Annotated[str, Field(min_length=6, max_length=72)]
# Emails are stored and compared lowercased
Email = Annotated[EmailStr, AfterValidator(str.lower)]


class UserCreate(ApiModel):
    name: Name
    email: Email
    password: Password


class AdminCreate(UserCreate):
    admin_code: str = Field(..., min_length=1)


class LoginRequest(ApiModel):
    email: Email
    password: str = Field(..., min_length=1)
    role: Role | None = None


class ProfileUpdate(ApiModel):
    """Sparse patch of the caller's own profile; absent fields are untouched."""

    name: Name | None = None
    email: Email | None = None
    bio: str | None = None
    phone: str | None = None
    location: str | None = None
    avatar: str | None = None
    password: Password | None = None

    @field_validator("name", "email", "bio", "phone", "location", "avatar", "password", mode="before")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("may not be null")
        return value


class UserResponse(ApiModel):
    id: int
    name: str
    email: str
    role: Role
    avatar: str
    created_at: datetime


class ProfileResponse(UserResponse):
    bio: str
    phone: str
    location: str


class AuthResponse(ProfileResponse):
    access_token: str
    token_type: str = "bearer"
