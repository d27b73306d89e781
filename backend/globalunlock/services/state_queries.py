"""
Read-side queries for the public state endpoints and the admin audit log.
"""
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..models import AuditLogEntry, CountryState, LockerState

AUDIT_PAGE_MAX = 200


def get_locker_state(db: Session, locker_id: Optional[int] = None) -> Optional[LockerState]:
    locker_id = settings.LOCKER_ID if locker_id is None else locker_id
    return db.query(LockerState).filter(LockerState.id == locker_id).first()


def get_country_state(db: Session, country_code: str) -> Optional[CountryState]:
    return (
        db.query(CountryState)
        .filter(CountryState.country_code == country_code.upper())
        .first()
    )


def list_country_states(db: Session) -> List[CountryState]:
    return db.query(CountryState).order_by(CountryState.country_code).all()


def list_audit_entries(db: Session, limit: int = 50, offset: int = 0) -> Tuple[List[AuditLogEntry], int]:
    """Newest first. Returns (entries, total)."""
    limit = max(1, min(limit, AUDIT_PAGE_MAX))
    offset = max(0, offset)
    query = db.query(AuditLogEntry)
    total = query.count()
    entries = (
        query.order_by(AuditLogEntry.created_at.desc(), AuditLogEntry.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return entries, total
