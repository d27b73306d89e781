"""
Admin API Schemas
Request and response models for admin endpoints
"""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

UpdateMode = Literal["increment", "absolute"]


class CountryUpdateRequest(BaseModel):
    """Validated country update. Build through services.update_validation, not directly from request bodies."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    country_code: str = Field(..., alias="countryCode")
    mode: UpdateMode
    value: int
    note: Optional[str] = None


class EnergyUpdateRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    mode: UpdateMode
    value: int
    note: Optional[str] = None


class AuditLogEntrySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    admin_email: str
    action_type: str
    subject: str
    delta_or_value: str
    note: Optional[str]
    created_at: datetime


class AuditLogPage(BaseModel):
    entries: List[AuditLogEntrySchema]
    total: int
    limit: int
    offset: int


class AuditLogResponse(BaseModel):
    success: bool = True
    data: AuditLogPage
