"""
Admin Router
Country/energy mutation endpoints and the audit log listing.

Bodies are read as raw JSON and handed to the mutation service unparsed, so
the authority check always runs before any payload validation.
"""
import json
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ..db import get_db
from ..dependencies.auth import CallerIdentity, resolve_caller
from ..dependencies.services import get_mutation_service
from ..errors import Forbidden, Unauthorized
from ..schemas.admin import AuditLogEntrySchema, AuditLogPage, AuditLogResponse
from ..schemas.state import (
    CountryStateResponse,
    CountryStateSchema,
    LockerStateResponse,
    LockerStateSchema,
)
from ..services.mutation_service import MutationService
from ..services.state_queries import list_audit_entries
from ..utils.log import get_logger

router = APIRouter(prefix="/v1/admin", tags=["admin"])

logger = get_logger(__name__)


async def read_json_body(request: Request) -> Any:
    """Decoded JSON body; malformed or empty bodies become {} and fail validation later."""
    body = await request.body()
    if not body:
        return {}
    try:
        return json.loads(body)
    except (ValueError, UnicodeDecodeError):
        logger.info(f"Malformed JSON body on {request.url.path}")
        return {}


@router.post("/update-country", response_model=CountryStateResponse)
def update_country(
    payload: Any = Depends(read_json_body),
    caller: Optional[CallerIdentity] = Depends(resolve_caller),
    db: Session = Depends(get_db),
    service: MutationService = Depends(get_mutation_service),
):
    """
    Increment or set a country's activation count.

    Body: {"countryCode": "AU", "mode": "increment" | "absolute", "value": 3, "note": "..."}
    """
    row = service.apply_country_update(db, payload, caller)
    return CountryStateResponse(data=CountryStateSchema.model_validate(row))


@router.post("/update-energy", response_model=LockerStateResponse)
def update_energy(
    payload: Any = Depends(read_json_body),
    caller: Optional[CallerIdentity] = Depends(resolve_caller),
    db: Session = Depends(get_db),
    service: MutationService = Depends(get_mutation_service),
):
    """
    Increment or set global energy. Increments are refused once the locker is unlocked.

    Body: {"mode": "increment" | "absolute", "value": 10, "note": "..."}
    """
    row = service.apply_energy_update(db, payload, caller)
    return LockerStateResponse(data=LockerStateSchema.model_validate(row))


@router.get("/audit-log", response_model=AuditLogResponse)
def get_audit_log(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    caller: Optional[CallerIdentity] = Depends(resolve_caller),
    db: Session = Depends(get_db),
):
    """Newest-first audit entries. Admin only."""
    if caller is None:
        raise Unauthorized()
    if not caller.is_admin:
        raise Forbidden()

    entries, total = list_audit_entries(db, limit=limit, offset=offset)
    return AuditLogResponse(
        data=AuditLogPage(
            entries=[AuditLogEntrySchema.model_validate(e) for e in entries],
            total=total,
            limit=limit,
            offset=offset,
        )
    )
