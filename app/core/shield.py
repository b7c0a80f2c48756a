"""
Request shield: admission control evaluated before any route handler runs.

ShieldMiddleware asks Shield.evaluate() about every request, matched route or
not. In order:
  1. A moving-window rate limit per client address, shared by all paths (429).
  2. Attack signatures in the request target and selected headers (403).
  3. Bot detection, production posture only (403). Search engine crawlers and
     link-preview fetchers are allowed by default.
"""

import logging
import re
from dataclasses import dataclass
from urllib.parse import unquote_plus

from fastapi import Request
from fastapi.responses import JSONResponse
from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from app.core.config import Settings

logger = logging.getLogger(__name__)

# Signatures of common attack payloads, matched against the decoded request target.
ATTACK_SIGNATURES: dict[str, re.Pattern[str]] = {
    "sql_injection": re.compile(
        r"(\bunion\b[\s\S]*\bselect\b)|(\bor\b\s+['\"]?\d+['\"]?\s*=\s*['\"]?\d+)"
        r"|(;\s*(drop|delete|truncate|alter)\s+\w+)|(\bsleep\s*\(\s*\d+\s*\))|('\s*--)",
        re.IGNORECASE,
    ),
    "path_traversal": re.compile(r"(\.\./|\.\.\\)|(/etc/(passwd|shadow))|(\bwin\.ini\b)", re.IGNORECASE),
    "script_injection": re.compile(r"(<\s*script\b)|(javascript\s*:)|(\bon(error|load)\s*=)", re.IGNORECASE),
    "command_injection": re.compile(
        r"((;|&&|\|\|?|`)\s*(cat|ls|wget|curl|nc|bash|sh|rm)\b)|(\$\(\s*\w+)", re.IGNORECASE
    ),
}

# Headers commonly abused to carry payloads (log4shell style lookups included).
INSPECTED_HEADERS = ("user-agent", "referer", "x-forwarded-for", "x-api-version")
JNDI_LOOKUP = re.compile(r"\$\{\s*jndi\s*:", re.IGNORECASE)

# User agent classification, checked in order.
BOT_CATEGORIES: tuple[tuple[str, re.Pattern[str]], ...] = (
    (
        "SEARCH_ENGINE",
        re.compile(
            r"googlebot|bingbot|duckduckbot|baiduspider|yandex(bot)?|slurp|applebot|petalbot",
            re.IGNORECASE,
        ),
    ),
    (
        "PREVIEW",
        re.compile(
            r"facebookexternalhit|twitterbot|slackbot|discordbot|linkedinbot|whatsapp"
            r"|telegrambot|skypeuripreview|embedly",
            re.IGNORECASE,
        ),
    ),
    (
        "AUTOMATED",
        re.compile(
            r"curl|wget|python-requests|python-urllib|aiohttp|go-http-client|java/|okhttp"
            r"|scrapy|headlesschrome|phantomjs|selenium|puppeteer|libwww-perl|httpclient",
            re.IGNORECASE,
        ),
    ),
    ("UNKNOWN", re.compile(r"bot\b|crawler|spider|scraper", re.IGNORECASE)),
)


@dataclass(frozen=True)
class ShieldDecision:
    allowed: bool
    reason: str | None = None
    status_code: int = 403


ALLOW = ShieldDecision(allowed=True)

DENIAL_MESSAGES = {403: "Forbidden", 429: "Too many requests"}


def classify_user_agent(user_agent: str | None) -> str | None:
    """Return the bot category for a user agent, or None for a regular client."""
    if not user_agent or not user_agent.strip():
        return "UNKNOWN"
    for category, pattern in BOT_CATEGORIES:
        if pattern.search(user_agent):
            return category
    return None


def match_attack_signature(text: str) -> str | None:
    """Name of the first attack signature found in text, if any."""
    if JNDI_LOOKUP.search(text):
        return "jndi_lookup"
    for name, pattern in ATTACK_SIGNATURES.items():
        if pattern.search(text):
            return name
    return None


class RateLimiter:
    """Moving-window request counter per client, held in this process's memory."""

    def __init__(self, rate: str, enabled: bool = True) -> None:
        self.enabled = enabled
        self.limit = parse(rate)
        self._window = MovingWindowRateLimiter(MemoryStorage())

    def hit(self, client: str) -> bool:
        """Count one request; False once the client is over the limit."""
        if not self.enabled:
            return True
        return self._window.hit(self.limit, client)


class Shield:
    """Rate limit, shield rules and bot detection configured from settings."""

    def __init__(self, settings: Settings) -> None:
        self.dry_run = settings.SHIELD_MODE == "dry_run"
        self.detect_bots = settings.is_production
        self.allowed_bot_categories = frozenset(settings.BOT_ALLOW_CATEGORIES)
        self.rate_limiter = RateLimiter(settings.RATE_LIMIT, settings.RATE_LIMIT_ENABLED)

    def evaluate(self, request: Request) -> ShieldDecision:
        """Decide whether the request may reach routing."""
        if not self.rate_limiter.hit(get_remote_address(request)):
            return ShieldDecision(allowed=False, reason="rate_limit", status_code=429)

        target = unquote_plus(request.url.path)
        if request.url.query:
            target += "?" + unquote_plus(request.url.query)
        signature = match_attack_signature(target)
        if signature is None:
            for header in INSPECTED_HEADERS:
                value = request.headers.get(header)
                if value and JNDI_LOOKUP.search(value):
                    signature = "jndi_lookup"
                    break
        if signature is not None:
            return ShieldDecision(allowed=False, reason=f"shield:{signature}")

        if self.detect_bots:
            category = classify_user_agent(request.headers.get("user-agent"))
            if category is not None and category not in self.allowed_bot_categories:
                return ShieldDecision(allowed=False, reason=f"bot:{category}")

        return ALLOW


class ShieldMiddleware(BaseHTTPMiddleware):
    """Deny rejected requests with 403 or 429 before routing."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        shield: Shield = request.app.state.shield
        decision = shield.evaluate(request)
        if not decision.allowed:
            client = get_remote_address(request)
            if shield.dry_run:
                logger.warning(
                    "Shield dry run: would deny path=%s client=%s reason=%s",
                    request.url.path,
                    client,
                    decision.reason,
                )
            else:
                logger.warning(
                    "Shield denied request: path=%s client=%s reason=%s",
                    request.url.path,
                    client,
                    decision.reason,
                )
                return JSONResponse(
                    status_code=decision.status_code,
                    content={"error": DENIAL_MESSAGES[decision.status_code]},
                )
        return await call_next(request)


def build_shield(settings: Settings) -> Shield:
    """Shield for one application instance, with its own rate-limit counters."""
    return Shield(settings)
