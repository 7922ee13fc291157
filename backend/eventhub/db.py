# backend/eventhub/db.py
"""Database engine, session factory and base model setup."""

from __future__ import annotations

from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool


def _normalize_db_url(url: str) -> str:
    """Normalize common Postgres URLs to the psycopg2 driver form."""
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg2://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg2://", 1)
    return url


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""
    pass


class Database:
    """
    Owns one SQLAlchemy engine (and its connection pool) for the process.

    Built at startup, stored on app.state and disposed at shutdown.
    The engine's pool is thread-safe; sessions are not, so every request
    gets its own via get_db().
    """

    def __init__(self, url: str, echo: bool = False) -> None:
        self.url = _normalize_db_url(url)
        is_sqlite = self.url.startswith("sqlite")
        in_memory = self.url in ("sqlite://", "sqlite:///:memory:")

        kwargs = {}
        if in_memory:
            # one shared connection, otherwise every checkout sees an empty db
            kwargs["poolclass"] = StaticPool

        self.engine = create_engine(
            self.url,
            echo=echo,
            future=True,
            pool_pre_ping=True,
            connect_args=({} if not is_sqlite else {"check_same_thread": False}),
            **kwargs,
        )
        self.SessionLocal = sessionmaker(
            bind=self.engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True
        )

    def session(self) -> Session:
        return self.SessionLocal()

    def create_all(self) -> None:
        """Create tables directly from the models (tests, local sqlite)."""
        from . import models  # noqa: F401  registers tables on Base.metadata

        Base.metadata.create_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    FastAPI dependency that yields a session per request
    and guarantees it is closed afterwards.
    """
    db = get_database(request).session()
    try:
        yield db
    finally:
        db.close()
