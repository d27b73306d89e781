"""
Authentication dependencies for the admin boundary.

Session tokens are issued elsewhere (magic-link login). This module only
answers "who is calling, and with which role". It never raises: an absent or
invalid token resolves to None and the mutation service turns that into
Unauthorized before touching any state.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import Request
from jose import JWTError

from ..core.config import settings
from ..core.security import decode_access_token

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallerIdentity:
    subject: str
    email: Optional[str]
    role: Optional[str]

    @property
    def is_admin(self) -> bool:
        return self.role == settings.ADMIN_ROLE


def _extract_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[7:]  # Remove "Bearer " prefix
    return request.cookies.get("access_token")


def _role_from_claims(payload: Dict[str, Any]) -> Optional[str]:
    # Auth providers put server-assigned roles in app_metadata; plain tokens use a top-level claim
    app_metadata = payload.get("app_metadata") or {}
    if isinstance(app_metadata, dict) and app_metadata.get("role"):
        return app_metadata["role"]
    return payload.get("role")


def identity_from_token(token: str) -> Optional[CallerIdentity]:
    try:
        payload = decode_access_token(token)
    except JWTError as e:
        logger.info(f"Rejected session token: {e}")
        return None

    subject = payload.get("sub")
    if not subject:
        logger.info("Rejected session token without subject")
        return None

    return CallerIdentity(
        subject=str(subject),
        email=payload.get("email"),
        role=_role_from_claims(payload),
    )


def resolve_caller(request: Request) -> Optional[CallerIdentity]:
    """
    FastAPI dependency: resolve the caller from the Authorization header or access_token cookie.

    Returns:
        CallerIdentity, or None when no valid session is present
    """
    token = _extract_token(request)
    if not token:
        return None
    identity = identity_from_token(token)
    if identity is not None:
        # Picked up by LoggingMiddleware
        request.state.admin_email = identity.email
    return identity
