"""
Database session management for Fixtura.

Provides the SQLAlchemy engine and session factory with connection
pooling configuration. Uses the settings from config.py.

Usage:
    # As a context manager (recommended for scripts and services)
    from fixtura.db import get_session

    with get_session() as session:
        engine = PhaseEngine(SqlAlchemyStore(session))
        engine.generate_fixtures(tournament_id, phase_id)
        # Commits automatically on exit, rolls back on exception
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from fixtura.config import settings


def get_engine(database_url: str | None = None) -> Engine:
    """
    Create a SQLAlchemy engine.

    The engine is configured with:
    - Connection pool for efficient reuse (server databases only; SQLite
      uses SQLAlchemy's default pool)
    - Echo mode only when LOG_LEVEL=DEBUG
    - Pre-ping to verify connections before use (handles stale connections)
    """
    url = make_url(database_url or settings.database_url)
    options: dict = {
        "pool_pre_ping": True,
        "echo": settings.log_level == "DEBUG",
    }
    if url.get_backend_name() != "sqlite":
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
    return create_engine(url, **options)


# Created on first use so importing the package never opens a connection
_engine: Engine | None = None


def _get_engine() -> Engine:
    """Get or create the singleton engine instance."""
    global _engine
    if _engine is None:
        _engine = get_engine()
        SessionLocal.configure(bind=_engine)
    return _engine


# Session factory - bound to the singleton engine on first use
SessionLocal = sessionmaker(
    autoflush=False,  # Engines flush explicitly when they need ids
    expire_on_commit=False,
)


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Automatically commits on successful exit, rolls back on exception.
    Wrap one fixture generation or one result recording per session so a
    partial delete+insert is never observed by other readers.

    Raises:
        Any exception from the database operation (after rollback)
    """
    _get_engine()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

