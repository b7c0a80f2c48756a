"""Session cookie helpers: the signed token travels in an httpOnly cookie."""

from fastapi import Request, Response

from app.core.config import Settings

COOKIE_PATH = "/"
COOKIE_SAMESITE = "strict"


def set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    """Write the JWT as the session cookie.

    httponly: not readable from client scripts.
    secure: only sent over HTTPS in production.
    max_age: matches the token TTL so both expire together.
    """
    response.set_cookie(
        settings.COOKIE_NAME,
        value=token,
        max_age=settings.token_ttl_seconds,
        path=COOKIE_PATH,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=COOKIE_SAMESITE,
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    """Expire the session cookie. Safe to call when no cookie was ever set."""
    response.delete_cookie(
        settings.COOKIE_NAME,
        path=COOKIE_PATH,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=COOKIE_SAMESITE,
    )


def get_session_cookie(request: Request, settings: Settings) -> str | None:
    """Return the session token from the request cookies, if any."""
    token = request.cookies.get(settings.COOKIE_NAME)
    return token or None
