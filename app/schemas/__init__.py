"""Pydantic request/response schemas."""

from app.schemas.auth import (
    ErrorResponse,
    FieldErrorItem,
    LoginRequest,
    MessageResponse,
    SignupRequest,
    TokenClaims,
    UserIdentity,
    UserResponse,
)
from app.schemas.health import ApiInfoResponse, HealthResponse

__all__ = [
    "ApiInfoResponse",
    "ErrorResponse",
    "FieldErrorItem",
    "HealthResponse",
    "LoginRequest",
    "MessageResponse",
    "SignupRequest",
    "TokenClaims",
    "UserIdentity",
    "UserResponse",
]
