"""
Global locker singleton.

Exactly one row exists (id = settings.LOCKER_ID). is_unlocked flips to true the
first time energy_percentage reaches 100 and never flips back.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, Boolean, DateTime, CheckConstraint
from ..db import Base


def utcnow():
    return datetime.now(timezone.utc)


class LockerState(Base):
    __tablename__ = "locker_state"

    id = Column(Integer, primary_key=True, autoincrement=False)
    energy_percentage = Column(Integer, nullable=False, default=0)
    is_unlocked = Column(Boolean, nullable=False, default=False)
    last_updated = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint(
            "energy_percentage >= 0 AND energy_percentage <= 100",
            name="ck_locker_state_energy_range",
        ),
    )
