from .state import (
    LockerStateSchema,
    CountryStateSchema,
    StateSnapshot,
    LockerStateResponse,
    CountryStateResponse,
    StateSnapshotResponse,
)
from .admin import (
    CountryUpdateRequest,
    EnergyUpdateRequest,
    AuditLogEntrySchema,
    AuditLogPage,
    AuditLogResponse,
)
