"""
Exception handlers.

Register these on a FastAPI app instance via `register_exception_handlers(app)`.
Every error response has the admin-facing shape {"success": false, "error": message}.
"""
import logging
import traceback

from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.env import is_local_env
from .errors import MutationError

logger = logging.getLogger("globalunlock")


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


async def mutation_error_handler(request: Request, exc: MutationError):
    """Map the mutation error taxonomy onto HTTP status codes."""
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    return error_response(exc.status_code, exc.message)


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return error_response(exc.status_code, detail)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    # Query/path parameter errors (body parsing is done by the mutation service)
    errors = exc.errors()
    first = errors[0].get("msg") if errors else "Invalid request data"
    return error_response(400, first)


async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors"""
    if isinstance(exc, (HTTPException, StarletteHTTPException)):
        return await http_error_handler(request, exc)

    # Log unhandled exceptions (full traceback in logs)
    error_detail = str(exc)
    error_traceback = traceback.format_exc()
    logger.error(f"Unhandled exception: {error_detail}\n{error_traceback}", exc_info=True)

    # In production, don't leak internal error details to clients
    if is_local_env():
        return error_response(500, f"Internal server error: {error_detail}")
    return error_response(500, "Internal server error")


def register_exception_handlers(app):
    """Register all exception handlers on the given FastAPI app."""
    app.add_exception_handler(MutationError, mutation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)
