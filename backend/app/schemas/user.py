"""Pydantic schemas for user registration and profile API."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from app.schemas.auth import normalize_email
from app.schemas.common import CamelModel


class RegisterRequest(BaseModel):
    """Request for account registration."""

    name: str = Field(..., min_length=5, max_length=30)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)

    @field_validator("email", mode="before")
    @classmethod
    def lowercase_email(cls, v: object) -> object:
        return normalize_email(v)


class RegisteredUser(BaseModel):
    name: str
    email: str


class RegisterResponse(BaseModel):
    """Response after successful registration."""

    status: str = "success"
    data: RegisteredUser
    message: str = "Thank you for registering. Your account has been created successfully."


class UserEditRequest(BaseModel):
    """Partial profile update. At least one field is required."""

    name: str | None = Field(None, min_length=5, max_length=30)
    password: str | None = Field(None, min_length=6, max_length=128)

    @model_validator(mode="after")
    def require_one_field(self) -> "UserEditRequest":
        if self.name is None and self.password is None:
            raise ValueError("at least one of name or password is required")
        return self


class UserResponse(CamelModel):
    """Public user fields. Never includes the password hash."""

    id: UUID
    name: str
    email: str
    created_at: datetime
    updated_at: datetime


class UserEnvelope(BaseModel):
    status: str = "success"
    data: list[UserResponse]
    message: str
