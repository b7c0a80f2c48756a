"""Credential store connection: engine, session factory and request-scoped sessions."""

import logging
from collections.abc import Generator
from typing import Any

from fastapi import Request
from sqlalchemy import Engine, create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import Settings

logger = logging.getLogger(__name__)


def engine_options(url: str) -> dict[str, Any]:
    """Keyword arguments for create_engine, by backend."""
    if url.startswith("sqlite"):
        # Sessions are used from FastAPI's threadpool, not the creating thread.
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


def create_db_engine(settings: Settings) -> Engine:
    """Engine for settings.DATABASE_URL. Connections open lazily."""
    return create_engine(
        settings.DATABASE_URL,
        echo=settings.DEBUG,
        **engine_options(settings.DATABASE_URL),
    )


def create_session_factory(bind: Engine) -> sessionmaker[Session]:
    return sessionmaker(autocommit=False, autoflush=False, bind=bind)


def get_db(request: Request) -> Generator[Session, None, None]:
    """Dependency that yields a session from the app's own factory and closes it when done."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def check_db_connected(bind: Engine) -> bool:
    """Run a trivial query to verify the database is reachable."""
    try:
        with bind.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.warning("Database unreachable: %s", e)
        return False


def dispose_engine(bind: Engine) -> None:
    """Close pooled connections at shutdown."""
    bind.dispose()
