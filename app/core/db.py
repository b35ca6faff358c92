"""
Database session management for the portal backend.

Uses SQLAlchemy 2.x style `Session` and declarative models. A single
`Database` handle (engine + session factory) is built when the app is
created and stored on ``app.state.db``; request handlers obtain sessions
from it through the `get_db` dependency. A simple context manager is
provided to get a session in synchronous code such as scripts.
"""

from __future__ import annotations

import os
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except Exception:
        return default


def build_engine(database_url: str) -> Engine:
    if database_url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url.rstrip("/").endswith("sqlite://"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, echo=False, future=True, **kwargs)
    return create_engine(
        database_url,
        echo=False,
        future=True,
        pool_pre_ping=True,
        pool_size=_env_int("DB_POOL_SIZE", 5),
        max_overflow=_env_int("DB_MAX_OVERFLOW", 10),
        pool_recycle=_env_int("DB_POOL_RECYCLE_SEC", 1800),
        pool_timeout=_env_int("DB_POOL_TIMEOUT_SEC", 30),
    )


class Database:
    """Process-wide database handle; one per application instance."""

    def __init__(self, database_url: str) -> None:
        self.url = database_url
        self.engine = build_engine(database_url)
        self.session_factory = sessionmaker(bind=self.engine, autocommit=False, autoflush=False, future=True)

    def session(self) -> Session:
        return self.session_factory()

    def dispose(self) -> None:
        self.engine.dispose()


def get_db(request: Request) -> Iterator[Session]:
    """Yield a database session for FastAPI dependencies."""
    db = request.app.state.db.session()
    try:
        yield db
    finally:
        db.close()


class SessionContext:
    """Context manager for database sessions outside of FastAPI."""

    def __init__(self, database: Database) -> None:
        self.database = database

    def __enter__(self) -> Session:
        self.db = self.database.session()
        return self.db

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.db.close()
