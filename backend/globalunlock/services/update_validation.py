"""
Validation for admin update payloads.

Rules:
- Country code must be a 2-letter ISO code (any case, stored upper-case)
- mode and value are required; mode is "increment" or "absolute"
- value must be a whole number; it is never coerced from strings or booleans
- increment values must be positive
- absolute values must be non-negative (country) or within 0-100 (energy)
- value magnitude is capped at MAX_ACTIVATION_COUNT (the INTEGER column range)
- notes are limited to 500 characters
- energy increments are rejected once the locker is unlocked

Pure functions: no database access and no logging, so the same checks can run
in the admin client before submission and on the server before persistence.
"""
import re
from typing import Any, Mapping, Optional

from ..schemas.admin import CountryUpdateRequest, EnergyUpdateRequest
from .unlock_rules import ENERGY_MAX, ENERGY_MIN, MAX_ACTIVATION_COUNT, NOTE_MAX_LENGTH

COUNTRY_CODE_RE = re.compile(r"^[A-Za-z]{2}$")
VALID_MODES = ("increment", "absolute")


class ValidationError(ValueError):
    """Raised when an update payload violates a shape or range rule."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class UnlockCompleteValidationError(ValidationError):
    """Energy increment attempted after unlock; the caller should switch to absolute mode."""


def _require_mapping(payload: Any) -> Mapping:
    if not isinstance(payload, Mapping):
        raise ValidationError("Request body must be a JSON object.")
    return payload


def _whole_number(value: Any) -> int:
    # bool is an int subclass; True must not be read as 1
    if isinstance(value, bool):
        raise ValidationError("Value must be a valid number.")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int):
        raise ValidationError("Value must be a valid number.")
    if value > MAX_ACTIVATION_COUNT:
        raise ValidationError(f"Value must not exceed {MAX_ACTIVATION_COUNT}.")
    return value


def _validated_mode(payload: Mapping) -> str:
    mode = payload.get("mode")
    if mode not in VALID_MODES:
        raise ValidationError("Mode must be 'increment' or 'absolute'.")
    return mode


def _validated_note(payload: Mapping) -> Optional[str]:
    note = payload.get("note")
    if note is None:
        return None
    if not isinstance(note, str):
        raise ValidationError("Note must be text.")
    if len(note) > NOTE_MAX_LENGTH:
        raise ValidationError(f"Note must be {NOTE_MAX_LENGTH} characters or fewer.")
    # Empty notes are stored as NULL
    return note or None


def validate_country_update(payload: Any) -> CountryUpdateRequest:
    """
    Validate a country update payload.

    Args:
        payload: decoded request body ({countryCode, mode, value, note?})

    Returns:
        CountryUpdateRequest with the country code upper-cased

    Raises:
        ValidationError: on the first violated rule
    """
    payload = _require_mapping(payload)

    country_code = payload.get("countryCode", payload.get("country_code"))
    if not isinstance(country_code, str) or not COUNTRY_CODE_RE.match(country_code):
        raise ValidationError("Invalid country code. Must be a 2-letter ISO code.")

    if payload.get("mode") is None or payload.get("value") is None:
        raise ValidationError("Missing required fields")
    mode = _validated_mode(payload)
    value = _whole_number(payload["value"])

    if mode == "increment" and value <= 0:
        raise ValidationError("Increment value must be positive.")
    if mode == "absolute" and value < 0:
        raise ValidationError("Activation count cannot be negative.")

    return CountryUpdateRequest(
        country_code=country_code.upper(),
        mode=mode,
        value=value,
        note=_validated_note(payload),
    )


def validate_energy_update(payload: Any, is_unlocked: Optional[bool] = None) -> EnergyUpdateRequest:
    """
    Validate an energy update payload.

    Args:
        payload: decoded request body ({mode, value, note?})
        is_unlocked: current locker flag if the caller knows it; None skips the check

    Raises:
        UnlockCompleteValidationError: increment requested while unlocked
        ValidationError: any other violated rule
    """
    payload = _require_mapping(payload)

    if payload.get("mode") is None or payload.get("value") is None:
        raise ValidationError("Missing required fields")
    mode = _validated_mode(payload)

    if mode == "increment" and is_unlocked:
        raise UnlockCompleteValidationError(
            "Cannot increment energy after unlock. The locker is already unlocked."
        )

    value = _whole_number(payload["value"])

    if mode == "increment" and value <= 0:
        raise ValidationError("Increment value must be positive.")
    if mode == "absolute" and not ENERGY_MIN <= value <= ENERGY_MAX:
        raise ValidationError("Energy percentage must be between 0 and 100.")

    return EnergyUpdateRequest(mode=mode, value=value, note=_validated_note(payload))
