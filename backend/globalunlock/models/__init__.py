"""
Models package
"""
from .locker_state import LockerState
from .country_state import CountryState
from .audit import AuditLogEntry

__all__ = [
    "LockerState",
    "CountryState",
    "AuditLogEntry",
]
