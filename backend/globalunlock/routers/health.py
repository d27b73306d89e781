"""
Liveness and readiness probes.
"""
from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from .. import __version__
from ..db import get_engine
from ..utils.log import get_logger

router = APIRouter(tags=["health"])

logger = get_logger(__name__)

SERVICE_NAME = "globalunlock-backend"


@router.get("/healthz")
async def healthz():
    """Liveness check: the HTTP server is up. Never touches the database."""
    return {
        "ok": True,
        "service": SERVICE_NAME,
        "version": __version__,
        "status": "healthy",
    }


@router.get("/readyz")
def readyz():
    """Readiness check: 200 if the database answers, 503 otherwise."""
    checks = {"database": {"status": "unknown", "error": None}}
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        checks["database"]["status"] = "ok"
    except Exception as e:
        logger.error(f"Readiness check failed: database error: {e}")
        checks["database"]["status"] = "error"
        checks["database"]["error"] = str(e)
        return JSONResponse(status_code=503, content={"ready": False, "checks": checks})

    return {"ready": True, "checks": checks}
