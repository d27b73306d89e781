"""
Admin form previews.

Runs the same validation and derivation rules the server uses against the
store's current values, so the panel can show "AU: 4 -> 7, band 3" or
"95% -> 100%, unlocks" before submitting. Previews are never written into the
store; only the server's response is.
"""
from dataclasses import dataclass
from typing import Any, Mapping

from ..services.unlock_rules import (
    MAX_ACTIVATION_COUNT,
    clamp_energy,
    crosses_unlock_threshold,
    glow_band_of,
)
from ..services.update_validation import (
    ValidationError,
    validate_country_update,
    validate_energy_update,
)

# Quick-pick increments offered by the energy form
ENERGY_PRESETS = (1, 2, 5, 10)


@dataclass(frozen=True)
class CountryPreview:
    country_code: str
    current_count: int
    new_count: int
    current_band: int
    new_band: int


@dataclass(frozen=True)
class EnergyPreview:
    current_percentage: int
    new_percentage: int
    capped: bool
    will_unlock: bool


def preview_country_update(store, payload: Mapping[str, Any]) -> CountryPreview:
    """
    Raises:
        ValidationError: invalid payload, or the country is not in the store
    """
    request = validate_country_update(payload)
    current = store.get_country(request.country_code)
    if current is None:
        raise ValidationError("Country not found")

    if request.mode == "increment":
        new_count = current.activation_count + request.value
    else:
        new_count = request.value
    if new_count > MAX_ACTIVATION_COUNT:
        raise ValidationError(f"Activation count cannot exceed {MAX_ACTIVATION_COUNT}.")
    return CountryPreview(
        country_code=request.country_code,
        current_count=current.activation_count,
        new_count=new_count,
        current_band=current.glow_band,
        new_band=glow_band_of(new_count),
    )


def preview_energy_update(store, payload: Mapping[str, Any]) -> EnergyPreview:
    """
    Raises:
        UnlockCompleteValidationError: increment while the locker is unlocked
        ValidationError: any other invalid payload
    """
    locker = store.locker_state
    current = locker.energy_percentage if locker else 0
    is_unlocked = locker.is_unlocked if locker else False

    request = validate_energy_update(payload, is_unlocked=is_unlocked)
    if request.mode == "increment":
        raw = current + request.value
        new_percentage = clamp_energy(raw)
        capped = raw != new_percentage
    else:
        new_percentage = request.value
        capped = False

    return EnergyPreview(
        current_percentage=current,
        new_percentage=new_percentage,
        capped=capped,
        will_unlock=not is_unlocked and crosses_unlock_threshold(current, new_percentage),
    )
