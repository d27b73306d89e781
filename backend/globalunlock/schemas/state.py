"""
State Schemas
Row shapes shared by API responses, realtime events and the client store.
"""
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class LockerStateSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    energy_percentage: int
    is_unlocked: bool
    last_updated: datetime

    @field_validator("last_updated")
    @classmethod
    def _normalize_last_updated(cls, value: datetime) -> datetime:
        return _as_utc(value)


class CountryStateSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    country_code: str
    activation_count: int
    glow_band: int
    last_updated: datetime

    @field_validator("last_updated")
    @classmethod
    def _normalize_last_updated(cls, value: datetime) -> datetime:
        return _as_utc(value)


class StateSnapshot(BaseModel):
    locker: Optional[LockerStateSchema] = None
    countries: List[CountryStateSchema] = []


class LockerStateResponse(BaseModel):
    success: bool = True
    data: LockerStateSchema


class CountryStateResponse(BaseModel):
    success: bool = True
    data: CountryStateSchema


class StateSnapshotResponse(BaseModel):
    success: bool = True
    data: StateSnapshot
