"""
Admin Audit Log Service

Appends one AuditLogEntry per committed mutation. Writing the entry is a side
channel: it runs after the state change has committed, in its own
transaction, and a failure is logged and swallowed.
"""
from typing import Optional

from sqlalchemy.orm import Session

from ..errors import AuditWriteFailed
from ..models.audit import AuditLogEntry
from ..utils.log import get_logger

logger = get_logger(__name__)

COUNTRY_INCREMENT = "country_increment"
COUNTRY_SET = "country_set"
ENERGY_INCREMENT = "energy_increment"
ENERGY_SET = "energy_set"


def describe_country_change(mode: str, value: int) -> str:
    return f"+{value}" if mode == "increment" else f"set to {value}"


def describe_energy_change(mode: str, value: int) -> str:
    return f"+{value}%" if mode == "increment" else f"set to {value}%"


class AuditWriter:
    """Best-effort audit appender."""

    def _insert(
        self,
        db: Session,
        admin_email: str,
        action_type: str,
        subject: str,
        delta_or_value: str,
        note: Optional[str],
    ) -> AuditLogEntry:
        entry = AuditLogEntry(
            admin_email=admin_email,
            action_type=action_type,
            subject=subject,
            delta_or_value=delta_or_value,
            note=note,
        )
        db.add(entry)
        db.commit()
        return entry

    def record(
        self,
        db: Session,
        admin_email: str,
        action_type: str,
        subject: str,
        delta_or_value: str,
        note: Optional[str] = None,
    ) -> Optional[AuditLogEntry]:
        """
        Append an audit entry.

        Returns:
            The stored entry, or None if the insert failed (the failure is logged).
        """
        try:
            entry = self._insert(db, admin_email, action_type, subject, delta_or_value, note)
        except Exception as e:
            db.rollback()
            failure = AuditWriteFailed(f"{action_type} on {subject}: {e}")
            logger.error(
                "[AUDIT] write failed: admin=%s action=%s subject=%s error=%s",
                admin_email,
                action_type,
                subject,
                failure,
                exc_info=True,
            )
            return None

        logger.info(
            f"[AUDIT] {action_type}: admin={admin_email}, subject={subject}, change={delta_or_value}"
        )
        return entry
