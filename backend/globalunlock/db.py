"""
Database configuration with lazy initialization.

The engine is created on first access so the app can start and answer
liveness probes while the database is still coming up.
"""
import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, declarative_base

from .core.config import settings

logger = logging.getLogger(__name__)

# Global engine instance (lazily initialized)
_engine = None
_SessionLocal = None

Base = declarative_base()


def get_engine():
    """Get or create the database engine (lazy initialization)."""
    global _engine
    if _engine is None:
        if settings.ENV.lower() in {"prod", "production"}:
            if not settings.database_url:
                raise ValueError("CRITICAL: DATABASE_URL is required in production")
            if settings.database_url.startswith("sqlite"):
                raise ValueError(
                    "CRITICAL: SQLite database is not supported in production. "
                    "Please use PostgreSQL."
                )

        db_url_safe = make_url(settings.database_url).render_as_string(hide_password=True)
        logger.info("Creating database engine for: %s", db_url_safe)

        if settings.database_url.startswith("sqlite"):
            _engine = create_engine(
                settings.database_url,
                connect_args={"check_same_thread": False},
            )
        else:
            _engine = create_engine(
                settings.database_url,
                pool_size=10,
                max_overflow=5,
                pool_pre_ping=True,
                pool_recycle=3600,
            )
    return _engine


def get_session_local():
    """Get or create the SessionLocal class."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return _SessionLocal


def get_db():
    """
    Dependency that provides a database session.
    Used by FastAPI's dependency injection.
    """
    session_class = get_session_local()
    db = session_class()
    try:
        yield db
    finally:
        db.close()
