"""Database engine and session factory.

The engine is created on first use so that importing this module never
opens a connection or needs the PostgreSQL driver.
"""

from contextlib import contextmanager
from functools import lru_cache
from typing import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .config import settings


@lru_cache()
def get_engine() -> Engine:
    """Create (once) the engine for settings.DATABASE_URL."""
    engine_kwargs = {
        "pool_pre_ping": True,  # Verify connections before using
        "echo": False,
    }

    # Pool settings only apply to PostgreSQL (not SQLite)
    if not settings.DATABASE_URL.startswith("sqlite"):
        engine_kwargs["pool_size"] = 5
        engine_kwargs["max_overflow"] = 10

    return create_engine(settings.DATABASE_URL, **engine_kwargs)


@lru_cache()
def get_session_factory() -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=get_engine(),
    )


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Context manager for database sessions.

    Usage:
        with get_db_session() as session:
            session.execute(select(ClientRecord)).scalars().all()

    Automatically commits on success, rolls back on exception.
    """
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def check_database_connection() -> bool:
    """Run SELECT 1 against the database (health check)."""
    with get_engine().connect() as connection:
        connection.execute(text("SELECT 1"))
    return True
