"""Database engine, session factory and declarative base."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Generator, Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from shiftwatch.config import get_settings

Base = declarative_base()


def _engine_kwargs(database_url: str) -> dict[str, Any]:
    settings = get_settings()
    if database_url.startswith("sqlite"):
        # In-memory SQLite must share one connection across threads
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    return {
        "pool_size": settings.database_pool_size,
        "max_overflow": settings.database_max_overflow,
        "pool_pre_ping": True,
    }


def build_engine(database_url: str | None = None):
    """Create an engine for the configured (or given) database URL."""
    url = database_url or get_settings().database_url
    return create_engine(url, **_engine_kwargs(url))


engine = build_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a request-scoped session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session for work that outlives the request, such as background tasks."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
