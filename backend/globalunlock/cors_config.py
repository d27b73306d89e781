"""
CORS configuration.

Call `configure_cors(app, settings)` to attach CORSMiddleware. The public map
page and the admin panel may be served from different origins; the admin
panel sends its session cookie, so credentials are only allowed with an
explicit origin list.
"""
import logging
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.env import is_local_env

logger = logging.getLogger("globalunlock")

# Used when ALLOWED_ORIGINS is "*" in a local environment
DEFAULT_DEV_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",   # Vite default
    "http://localhost:8000",
]

CORS_METHODS = ["GET", "POST", "OPTIONS"]
CORS_HEADERS = ["Content-Type", "Authorization", "X-Requested-With", "X-Request-ID"]


def build_origins(settings, is_local: bool) -> List[str]:
    """Build the final list of allowed CORS origins."""
    origins = settings.allowed_origins
    if "*" in origins:
        if is_local:
            return list(DEFAULT_DEV_ORIGINS)
        # validate_config refuses this in prod; other non-local envs get nothing
        logger.warning("CORS wildcard ignored outside local environments")
        return []
    return origins


def configure_cors(app: FastAPI, settings, is_local: bool = None) -> List[str]:
    """Build the origins list, log it, and attach CORSMiddleware to the app."""
    if is_local is None:
        is_local = is_local_env()
    final_origins = build_origins(settings, is_local)
    logger.info("CORS allowed origins: %s", final_origins)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=final_origins,
        allow_credentials=True,
        allow_methods=CORS_METHODS,
        allow_headers=CORS_HEADERS,
        max_age=3600,
    )
    return final_origins
