from ..db import get_db
from .auth import CallerIdentity, resolve_caller

__all__ = ["get_db", "CallerIdentity", "resolve_caller"]
