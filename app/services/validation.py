"""Input validation for auth request bodies, independent of the web framework."""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from email_validator import EmailNotValidError, validate_email

NAME_MIN_LEN = 2
NAME_MAX_LEN = 255
EMAIL_MAX_LEN = 255
PASSWORD_MIN_LEN = 6
PASSWORD_MAX_LEN = 128
ROLES = ("user", "admin")
DEFAULT_ROLE = "user"


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


@dataclass(frozen=True)
class SignupInput:
    name: str
    email: str
    password: str
    role: str


@dataclass(frozen=True)
class LoginInput:
    email: str
    password: str


def normalize_email(email: str) -> str:
    """Trim and lower-case an address; lookups and storage both use this form."""
    return email.strip().lower()


def format_field_errors(errors: list[FieldError]) -> str:
    """Join field errors into one line for logs."""
    return ", ".join(f"{e.field}: {e.message}" for e in errors)


def _check_email(body: Mapping[str, Any], errors: list[FieldError]) -> str | None:
    raw = body.get("email")
    if not isinstance(raw, str):
        errors.append(FieldError("email", "Email is required"))
        return None
    email = normalize_email(raw)
    if len(email) > EMAIL_MAX_LEN:
        errors.append(FieldError("email", f"Email must be at most {EMAIL_MAX_LEN} characters"))
        return None
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        errors.append(FieldError("email", "Invalid email address"))
        return None
    return email


def validate_signup(body: Any) -> tuple[SignupInput | None, list[FieldError]]:
    """
    Validate a sign-up body.

    Returns (input, []) on success or (None, errors) listing every bad field.
    """
    if not isinstance(body, Mapping):
        return None, [FieldError("body", "Request body must be a JSON object")]

    errors: list[FieldError] = []

    name = body.get("name")
    if not isinstance(name, str):
        errors.append(FieldError("name", "Name is required"))
    else:
        name = name.strip()
        if not (NAME_MIN_LEN <= len(name) <= NAME_MAX_LEN):
            errors.append(
                FieldError(
                    "name",
                    f"Name must be between {NAME_MIN_LEN} and {NAME_MAX_LEN} characters",
                )
            )

    email = _check_email(body, errors)

    password = body.get("password")
    if not isinstance(password, str):
        errors.append(FieldError("password", "Password is required"))
    elif not (PASSWORD_MIN_LEN <= len(password) <= PASSWORD_MAX_LEN):
        errors.append(
            FieldError(
                "password",
                f"Password must be between {PASSWORD_MIN_LEN} and {PASSWORD_MAX_LEN} characters",
            )
        )

    role = body.get("role")
    if role is None:
        role = DEFAULT_ROLE
    elif role not in ROLES:
        errors.append(FieldError("role", f"Role must be one of: {', '.join(ROLES)}"))

    if errors:
        return None, errors
    return SignupInput(name=name, email=email, password=password, role=role), []


def validate_login(body: Any) -> tuple[LoginInput | None, list[FieldError]]:
    """Validate a login body. Password only needs to be present here."""
    if not isinstance(body, Mapping):
        return None, [FieldError("body", "Request body must be a JSON object")]

    errors: list[FieldError] = []
    email = _check_email(body, errors)

    password = body.get("password")
    if not isinstance(password, str) or not password:
        errors.append(FieldError("password", "Password is required"))

    if errors:
        return None, errors
    return LoginInput(email=email, password=password), []
