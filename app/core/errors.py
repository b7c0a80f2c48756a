"""Error kinds, typed exceptions and tagged service results for the auth flow."""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Failure categories; the HTTP layer maps each one to a status code."""

    VALIDATION = "validation"
    CONFLICT = "conflict"
    AUTHENTICATION = "authentication"
    TOKEN = "token"
    HASHING = "hashing"
    STORE = "store"


class AuthError(Exception):
    """
    Base class for failures raised below the service layer.

    Services catch these and return a Failure; validation, conflict, credential
    and store failures are only ever reported as Failure values.
    """

    kind: ErrorKind

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class TokenError(AuthError):
    """Session token is malformed, tampered with or expired."""

    kind = ErrorKind.TOKEN


class HashingError(AuthError):
    kind = ErrorKind.HASHING


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T


@dataclass(frozen=True)
class Failure:
    """
    Failed service call.

    detail is internal text for logs; callers must not return it to clients.
    """

    kind: ErrorKind
    detail: str

    @classmethod
    def from_error(cls, error: AuthError) -> "Failure":
        return cls(kind=error.kind, detail=error.message)
