"""Pydantic schemas for authentication API."""

from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator


def normalize_email(v: object) -> object:
    """Trim and lowercase an email address before it is validated."""
    if isinstance(v, str):
        return v.strip().lower()
    return v


class LoginRequest(BaseModel):
    """Request for login."""

    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)

    @field_validator("email", mode="before")
    @classmethod
    def lowercase_email(cls, v: object) -> object:
        return normalize_email(v)


class SessionUser(BaseModel):
    """Public identity returned on login."""

    id: UUID
    email: str
    name: str


class LoginResponse(BaseModel):
    """Response after successful login. The token is also set as a cookie."""

    status: str = "success"
    data: SessionUser
    token: str
    message: str = "Login Successful"


class CurrentUser(BaseModel):
    """Identity attached to an authorized request, decoded from the session token."""

    user_id: UUID
    email: str
    name: str
