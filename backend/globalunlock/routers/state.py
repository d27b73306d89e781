"""
Public state endpoints: initial page load and the client polling fallback.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..errors import NotFound
from ..schemas.state import (
    CountryStateResponse,
    CountryStateSchema,
    LockerStateResponse,
    LockerStateSchema,
    StateSnapshot,
    StateSnapshotResponse,
)
from ..services.state_queries import get_country_state, get_locker_state, list_country_states

router = APIRouter(prefix="/v1/state", tags=["state"])


@router.get("", response_model=StateSnapshotResponse)
def get_state(db: Session = Depends(get_db)):
    """Locker state plus every country row."""
    locker = get_locker_state(db)
    return StateSnapshotResponse(
        data=StateSnapshot(
            locker=LockerStateSchema.model_validate(locker) if locker else None,
            countries=[CountryStateSchema.model_validate(c) for c in list_country_states(db)],
        )
    )


@router.get("/locker", response_model=LockerStateResponse)
def get_locker(db: Session = Depends(get_db)):
    locker = get_locker_state(db)
    if locker is None:
        raise NotFound("Locker state not found")
    return LockerStateResponse(data=LockerStateSchema.model_validate(locker))


@router.get("/countries/{country_code}", response_model=CountryStateResponse)
def get_country(country_code: str, db: Session = Depends(get_db)):
    country = get_country_state(db, country_code)
    if country is None:
        raise NotFound("Country not found")
    return CountryStateResponse(data=CountryStateSchema.model_validate(country))
