"""Password hashing and JWT creation/verification for authentication."""

import base64
import hashlib
import logging
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
import jwt

from app.core.config import Settings
from app.core.errors import HashingError, TokenError
from app.schemas.auth import TokenClaims

logger = logging.getLogger(__name__)

# bcrypt only reads the first 72 bytes of its input.
BCRYPT_MAX_BYTES = 72


def _password_bytes(plain_password: str) -> bytes:
    """
    Encode a password for bcrypt.

    Inputs longer than 72 bytes are reduced to a base64 SHA-256 digest so that
    every byte of the password affects the hash instead of being truncated.
    """
    pw_bytes = plain_password.encode("utf-8")
    if len(pw_bytes) <= BCRYPT_MAX_BYTES:
        return pw_bytes
    return base64.b64encode(hashlib.sha256(pw_bytes).digest())


def hash_password(plain_password: str, rounds: int) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    try:
        salt = bcrypt.gensalt(rounds=rounds)
        return bcrypt.hashpw(_password_bytes(plain_password), salt).decode("utf-8")
    except (ValueError, TypeError) as e:
        raise HashingError(f"password hashing failed: {e}") from e


def verify_password(plain_password: str, hashed: str) -> bool:
    """
    Verify a plain password against a stored hash.

    bcrypt.checkpw compares in constant time. A malformed stored hash raises
    HashingError rather than reading as a mismatch.
    """
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), hashed.encode("utf-8"))
    except (ValueError, TypeError) as e:
        raise HashingError(f"password verification failed: {e}") from e


def create_access_token(
    claims: TokenClaims,
    settings: Settings,
    now: datetime | None = None,
) -> str:
    """Create a signed JWT carrying id, email, role plus iat and exp."""
    issued_at = now or datetime.now(UTC)
    expire = issued_at + timedelta(seconds=settings.token_ttl_seconds)
    payload: dict[str, Any] = {
        "sub": str(claims.id),
        "id": claims.id,
        "email": claims.email,
        "role": claims.role,
        "iat": issued_at,
        "exp": expire,
    }
    return jwt.encode(
        payload,
        settings.JWT_SECRET.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
    )


def decode_access_token(token: str, settings: Settings) -> TokenClaims:
    """
    Decode and validate a JWT; return its identity claims.
    Raises TokenError on a bad signature, malformed token or expiry.
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET.get_secret_value(),
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["exp", "iat"]},
        )
    except jwt.ExpiredSignatureError as e:
        logger.info("Token rejected: reason=expired")
        raise TokenError("token expired") from e
    except jwt.PyJWTError as e:
        logger.warning("Token rejected: reason=invalid error=%s", type(e).__name__)
        raise TokenError("token invalid") from e

    try:
        return TokenClaims(
            id=payload["id"],
            email=payload["email"],
            role=payload["role"],
            issued_at=datetime.fromtimestamp(payload["iat"], UTC),
            expires_at=datetime.fromtimestamp(payload["exp"], UTC),
        )
    except (KeyError, TypeError, ValueError) as e:
        logger.warning("Token rejected: reason=bad_claims")
        raise TokenError("token payload invalid") from e
