"""Request/response schemas for auth endpoints."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["user", "admin"]


class UserIdentity(BaseModel):
    """Public-safe subset of a user record (never includes the password hash)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    role: str


class TokenClaims(BaseModel):
    """Identity claims carried by a session token."""

    id: int
    email: str
    role: str
    issued_at: datetime | None = None
    expires_at: datetime | None = None


class SignupRequest(BaseModel):
    """Documented shape of the sign-up body; validation happens in app.services.validation."""

    name: str = Field(..., min_length=2, max_length=255, description="Display name")
    email: str = Field(..., max_length=255, description="Email address")
    password: str = Field(..., min_length=6, max_length=128, description="Password")
    role: Role = Field(default="user", description="Account role")


class LoginRequest(BaseModel):
    """Documented shape of the login body."""

    email: str = Field(..., description="Email address")
    password: str = Field(..., min_length=1, description="Password")


class UserResponse(BaseModel):
    """Response for sign-up and login."""

    message: str
    user: UserIdentity


class MessageResponse(BaseModel):
    message: str


class FieldErrorItem(BaseModel):
    field: str
    message: str


class ErrorResponse(BaseModel):
    """Error body; details is present only for validation failures."""

    error: str
    details: list[FieldErrorItem] | None = None
