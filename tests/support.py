"""Shared builders for settings, in-memory databases and test clients."""

from typing import Any

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import Settings
from app.main import create_app
from app.models import Base

TEST_SECRET = "test-jwt-secret"


def make_settings(**overrides: Any) -> Settings:
    """Settings for tests: sqlite, cheap bcrypt, effectively no rate limit."""
    values: dict[str, Any] = {
        "APP_ENV": "test",
        "DB_URL": "sqlite://",
        "JWT_SECRET": TEST_SECRET,
        "BCRYPT_ROUNDS": 4,
        "RATE_LIMIT": "1000 per 1 second",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_session_factory() -> sessionmaker[Session]:
    """Fresh in-memory database with the users table created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def make_client(settings: Settings | None = None) -> tuple[TestClient, sessionmaker[Session]]:
    """App from create_app() wired to its own in-memory database with the users table."""
    app = create_app(settings or make_settings())
    session_factory = make_session_factory()
    app.state.session_factory = session_factory
    return TestClient(app), session_factory
