"""
Global Unlock backend application.

    uvicorn globalunlock.main:app --app-dir backend
"""
import logging
import sys

from dotenv import load_dotenv
from fastapi import FastAPI

# Load environment variables from .env file before settings are read
load_dotenv()

from . import __version__  # noqa: E402
from .core.config import settings  # noqa: E402
from .cors_config import configure_cors  # noqa: E402
from .exception_handlers import register_exception_handlers  # noqa: E402
from .lifespan import lifespan  # noqa: E402
from .middleware import LoggingMiddleware, RequestIDMiddleware  # noqa: E402
from .routers import admin, health, realtime, state  # noqa: E402
from .services.change_feed import ChangeFeed  # noqa: E402
from .services.mutation_service import MutationService  # noqa: E402

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

# Use a consistent logger name for all app logs
logger = logging.getLogger("globalunlock")


def create_app() -> FastAPI:
    app = FastAPI(title="Global Unlock Backend", version=__version__, lifespan=lifespan)

    change_feed = ChangeFeed(queue_size=settings.REALTIME_QUEUE_SIZE)
    app.state.change_feed = change_feed
    app.state.mutation_service = MutationService(change_feed=change_feed)

    register_exception_handlers(app)

    # Last added runs first: RequestID -> Logging -> CORS
    configure_cors(app, settings)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.include_router(health.router)
    app.include_router(state.router)
    app.include_router(admin.router)
    app.include_router(realtime.router)

    logger.info(f"Global Unlock backend {__version__} created (ENV={settings.ENV})")
    return app


app = create_app()
