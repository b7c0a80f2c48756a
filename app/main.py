"""FastAPI application entrypoint. No business logic; only wiring and middleware."""

from dotenv import load_dotenv

load_dotenv()

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api import router as api_router
from app.api import health
from app.core.config import Settings, get_settings
from app.core.database import (
    check_db_connected,
    create_db_engine,
    create_session_factory,
    dispose_engine,
)
from app.core.logging import configure_logging, shutdown_logging
from app.core.shield import ShieldMiddleware, build_shield

logger = logging.getLogger("app.main")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup checks before yield; release the engine and log handlers after."""
    settings: Settings = app.state.settings
    logger.info("Acquisitions API starting (env=%s)", settings.APP_ENV)
    if settings.uses_insecure_jwt_secret:
        logger.warning("JWT_SECRET is the insecure default; set it before deploying")
    if not check_db_connected(app.state.engine):
        logger.warning("Database not reachable at startup; auth requests will fail until it is")

    yield

    dispose_engine(app.state.engine)
    logger.info("Acquisitions API shutdown complete")
    shutdown_logging(app.state.log_handlers)


def _security_headers(settings: Settings) -> dict[str, str]:
    headers = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "SAMEORIGIN",
        "Referrer-Policy": "no-referrer",
        "Cross-Origin-Opener-Policy": "same-origin",
        "X-DNS-Prefetch-Control": "off",
    }
    if settings.is_production:
        headers["Strict-Transport-Security"] = "max-age=15552000; includeSubDomains"
    return headers


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application with its own settings, database engine, logging and shield."""
    settings = settings or get_settings()
    log_handlers = configure_logging(settings)

    app = FastAPI(
        title="Acquisitions API",
        version=health.API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.log_handlers = log_handlers
    app.state.engine = create_db_engine(settings)
    app.state.session_factory = create_session_factory(app.state.engine)
    app.state.shield = build_shield(settings)

    # add_middleware wraps: the last one added sees the request first.
    app.add_middleware(ShieldMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    security_headers = _security_headers(settings)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        for name, value in security_headers.items():
            response.headers.setdefault(name, value)
        ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s %d %.1fms %s",
            request.method,
            request.url.path,
            response.status_code,
            ms,
            request.client.host if request.client else "unknown",
        )
        return response

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Undecodable bodies get the same 400 shape as field validation errors."""
        details = []
        for err in exc.errors():
            loc = [str(p) for p in err.get("loc", ())]
            if err.get("type") == "json_invalid":
                field = "body"
            elif loc[:1] == ["body"]:
                field = ".".join(loc[1:]) or "body"
            else:
                field = ".".join(loc)
            details.append({"field": field, "message": err.get("msg", "Invalid value")})
        return JSONResponse(
            status_code=400,
            content={"error": "Validation failed", "details": details},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    app.include_router(health.router, tags=["health"])
    app.include_router(api_router, prefix=settings.API_PREFIX)
    return app


app = create_app()
