"""Sign-up, login, logout and session lookup endpoints."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.cookies import clear_session_cookie, get_session_cookie, set_session_cookie
from app.core.database import get_db
from app.core.errors import ErrorKind, Failure, TokenError
from app.core.security import create_access_token, decode_access_token
from app.schemas.auth import (
    ErrorResponse,
    LoginRequest,
    MessageResponse,
    SignupRequest,
    TokenClaims,
    UserIdentity,
    UserResponse,
)
from app.services import auth as auth_service
from app.services.validation import (
    FieldError,
    format_field_errors,
    validate_login,
    validate_signup,
)

logger = logging.getLogger(__name__)

router = APIRouter()
bearer = HTTPBearer(auto_error=False)

INTERNAL_ERROR = "Internal server error"

# Single place where failure kinds become HTTP responses.
ERROR_RESPONSES: dict[ErrorKind, tuple[int, str]] = {
    ErrorKind.VALIDATION: (status.HTTP_400_BAD_REQUEST, "Validation failed"),
    ErrorKind.CONFLICT: (status.HTTP_409_CONFLICT, "User already exists"),
    ErrorKind.AUTHENTICATION: (status.HTTP_401_UNAUTHORIZED, "invalid credentials"),
    ErrorKind.TOKEN: (status.HTTP_401_UNAUTHORIZED, "Not authenticated"),
    ErrorKind.HASHING: (status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR),
    ErrorKind.STORE: (status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR),
}

_unmapped = set(ErrorKind) - set(ERROR_RESPONSES)
if _unmapped:
    raise RuntimeError(f"ErrorKind values without an HTTP mapping: {sorted(k.value for k in _unmapped)}")

ERROR_DOCS: dict[int | str, dict[str, Any]] = {
    code: {"model": ErrorResponse} for code, _ in ERROR_RESPONSES.values()
}


def get_app_settings(request: Request) -> Settings:
    """Settings of the running application (set by create_app)."""
    return request.app.state.settings


def _no_store(response: JSONResponse) -> JSONResponse:
    response.headers["Cache-Control"] = "no-store"
    return response


def error_response(kind: ErrorKind, details: list[FieldError] | None = None) -> JSONResponse:
    """Public error body for a failure kind. Never includes internal detail."""
    status_code, message = ERROR_RESPONSES[kind]
    content: dict[str, Any] = {"error": message}
    if details:
        content["details"] = [{"field": e.field, "message": e.message} for e in details]
    return _no_store(JSONResponse(status_code=status_code, content=content))


def failure_response(failure: Failure, event: str) -> JSONResponse:
    status_code, _ = ERROR_RESPONSES[failure.kind]
    log = logger.error if status_code >= 500 else logger.info
    log("event=%s status=%s kind=%s detail=%s", event, status_code, failure.kind.value, failure.detail)
    return error_response(failure.kind)


def _session_response(
    status_code: int,
    message: str,
    identity: UserIdentity,
    settings: Settings,
) -> JSONResponse:
    """Sign a token for the identity and return it as the session cookie."""
    token = create_access_token(
        TokenClaims(id=identity.id, email=identity.email, role=identity.role),
        settings,
    )
    response = JSONResponse(
        status_code=status_code,
        content=UserResponse(message=message, user=identity).model_dump(),
    )
    set_session_cookie(response, token, settings)
    return _no_store(response)


@router.post(
    "/sign-up",
    status_code=status.HTTP_201_CREATED,
    response_model=UserResponse,
    responses=ERROR_DOCS,
    openapi_extra={
        "requestBody": {
            "content": {"application/json": {"schema": SignupRequest.model_json_schema()}}
        }
    },
)
def sign_up(
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    body: Annotated[Any, Body()] = None,
) -> JSONResponse:
    """
    Register a user and start a session.
    201 with the new identity, 400 on invalid input, 409 if the email is taken.
    """
    signup, errors = validate_signup(body)
    if signup is None:
        logger.info("event=signup status=400 errors=%s", format_field_errors(errors))
        return error_response(ErrorKind.VALIDATION, errors)

    try:
        result = auth_service.create_user(
            db,
            signup.name,
            signup.email,
            signup.password,
            signup.role,
            rounds=settings.BCRYPT_ROUNDS,
        )
        if isinstance(result, Failure):
            return failure_response(result, "signup")
        return _session_response(status.HTTP_201_CREATED, "User registered", result.value, settings)
    except Exception:
        logger.exception("event=signup status=500 kind=unexpected")
        return _no_store(JSONResponse(status_code=500, content={"error": INTERNAL_ERROR}))


@router.post(
    "/login",
    response_model=UserResponse,
    responses=ERROR_DOCS,
    openapi_extra={
        "requestBody": {
            "content": {"application/json": {"schema": LoginRequest.model_json_schema()}}
        }
    },
)
def login(
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    body: Annotated[Any, Body()] = None,
) -> JSONResponse:
    """
    Check email and password and start a session.
    Unknown email and wrong password both return the same 401 body.
    """
    credentials, errors = validate_login(body)
    if credentials is None:
        logger.info("event=login status=400 errors=%s", format_field_errors(errors))
        return error_response(ErrorKind.VALIDATION, errors)

    try:
        result = auth_service.authenticate_user(
            db,
            credentials.email,
            credentials.password,
            rounds=settings.BCRYPT_ROUNDS,
        )
        if isinstance(result, Failure):
            return failure_response(result, "login")
        return _session_response(
            status.HTTP_200_OK, "User signed in successfully", result.value, settings
        )
    except Exception:
        logger.exception("event=login status=500 kind=unexpected")
        return _no_store(JSONResponse(status_code=500, content={"error": INTERNAL_ERROR}))


@router.post("/logout", response_model=MessageResponse)
def logout(settings: Annotated[Settings, Depends(get_app_settings)]) -> JSONResponse:
    """Clear the session cookie. Succeeds whether or not a session exists."""
    response = JSONResponse(content={"message": "User signed out successfully"})
    clear_session_cookie(response, settings)
    logger.info("event=logout status=200")
    return _no_store(response)


def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer)],
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> UserIdentity:
    """Dependency: identity of the session cookie (or Bearer token) holder. Raises 401 otherwise."""
    token = get_session_cookie(request, settings)
    if token is None and credentials is not None:
        token = credentials.credentials
    _, message = ERROR_RESPONSES[ErrorKind.TOKEN]
    if token is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=message)
    try:
        claims = decode_access_token(token, settings)
    except TokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=message)

    result = auth_service.get_user_by_id(db, claims.id)
    if isinstance(result, Failure):
        status_code, public = ERROR_RESPONSES[result.kind]
        logger.info("event=session status=%s detail=%s", status_code, result.detail)
        raise HTTPException(status_code=status_code, detail=public)
    return result.value


@router.get("/me", response_model=UserIdentity, responses=ERROR_DOCS)
def me(current_user: Annotated[UserIdentity, Depends(get_current_user)]) -> UserIdentity:
    """Return the identity behind the current session."""
    return current_user
