"""
Application lifespan management for startup and shutdown events
"""
import logging
from contextlib import asynccontextmanager

from sqlalchemy import text

from .core.config import settings, validate_config
from .core.env import is_local_env

logger = logging.getLogger(__name__)


def prepare_database() -> None:
    """Create tables (dev convenience) and seed initial rows when configured."""
    from .db import Base, get_engine, get_session_local
    from . import models  # noqa: F401  register tables on Base.metadata

    engine = get_engine()
    if settings.AUTO_CREATE_TABLES:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables ensured (AUTO_CREATE_TABLES)")

    if settings.SEED_ON_STARTUP:
        from .services.seed import seed_initial_state

        db = get_session_local()()
        try:
            seed_initial_state(db)
        finally:
            db.close()


@asynccontextmanager
async def lifespan(app):
    """Manage application lifespan events"""
    logger.info("Starting Global Unlock backend...")

    validate_config()

    from .db import get_engine
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connection verified")
    except Exception as e:
        if is_local_env():
            logger.warning(f"Database connection failed in local/dev environment: {e}")
        else:
            logger.error(f"Database connection failed in production: {e}")
            raise

    prepare_database()

    logger.info("Startup complete")
    yield

    # Shutdown
    feed = getattr(app.state, "change_feed", None)
    if feed is not None and feed.subscriber_count:
        logger.info(f"Shutting down with {feed.subscriber_count} realtime subscribers open")
    logger.info("Shutdown complete")
