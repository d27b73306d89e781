"""
Admin Audit Log Model

One row per committed admin mutation. Append-only: nothing in the app updates
or deletes these rows.
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, Index
from ..db import Base
from .locker_state import utcnow


class AuditLogEntry(Base):
    """Admin audit log for country and energy mutations"""
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    admin_email = Column(String, nullable=False, index=True)
    action_type = Column(String, nullable=False)  # country_increment, country_set, energy_increment, energy_set
    subject = Column(String, nullable=False)  # country code or "global_energy"
    delta_or_value = Column(String, nullable=False)  # "+3", "set to 42", "+10%", "set to 100%"
    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    __table_args__ = (
        Index('ix_audit_log_subject_created', 'subject', 'created_at'),
        Index('ix_audit_log_action_created', 'action_type', 'created_at'),
    )
