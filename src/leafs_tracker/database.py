"""
Database connection and session management.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from contextlib import contextmanager
from typing import Callable, Generator, Optional
from urllib.parse import urlparse, quote, urlunparse

from .config import settings

SessionFactory = Callable[[], Session]

# Create base class for models
Base = declarative_base()


def _fix_database_url(url: str) -> str:
    """
    URL-encode the password of a database URL if it contains reserved characters.

    Args:
        url: Database URL string

    Returns:
        Database URL with the password safely encoded
    """
    try:
        parsed = urlparse(url)
        if parsed.password and any(ch in parsed.password for ch in '/=@:'):
            encoded_password = quote(parsed.password, safe='')
            netloc = f"{parsed.username}:{encoded_password}@{parsed.hostname}"
            if parsed.port:
                netloc += f":{parsed.port}"
            return urlunparse((
                parsed.scheme,
                netloc,
                parsed.path,
                parsed.params,
                parsed.query,
                parsed.fragment
            ))
        return url
    except ValueError:
        # Unparseable URL; let SQLAlchemy report it
        return url


def build_engine(url: Optional[str] = None) -> Engine:
    """
    Create an engine for the given URL (defaults to the configured database).

    SQLite connections are shared across the detail-fetch worker threads, so
    the same-thread check is disabled for them.
    """
    database_url = _fix_database_url(url or settings.database_url)
    connect_args = {}
    if database_url.startswith('sqlite'):
        connect_args['check_same_thread'] = False
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_recycle=300,
        connect_args=connect_args,
        echo=False  # Set to True for SQL query logging
    )


_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def get_engine() -> Engine:
    """Lazily create the process-wide engine."""
    global _engine
    if _engine is None:
        _engine = build_engine()
    return _engine


def get_session_factory() -> sessionmaker:
    """Lazily create the process-wide session factory."""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return _session_factory


@contextmanager
def get_db_session(session_factory: Optional[SessionFactory] = None) -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Commits on success, rolls back and re-raises on error.
    """
    factory = session_factory or get_session_factory()
    db = factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def create_tables(bind: Optional[Engine] = None):
    """
    Create all tables in the database.
    """
    # Import models so they register with Base.metadata
    from . import models  # noqa: F401
    Base.metadata.create_all(bind=bind or get_engine())


def drop_tables(bind: Optional[Engine] = None):
    """
    Drop all tables in the database.
    """
    from . import models  # noqa: F401
    Base.metadata.drop_all(bind=bind or get_engine())
