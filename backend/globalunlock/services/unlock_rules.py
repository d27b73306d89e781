"""
Derived display rules shared by the server and client previews.

The server's use of these functions is authoritative: whatever a client
previews, the persisted glow_band and is_unlocked values come from here.

Glow bands:
- Band 0 (Off): activation_count = 0
- Band 1 (Warm): activation_count = 1-2
- Band 2 (Bright): activation_count = 3-5
- Band 3 (Radiant): activation_count >= 6
"""

UNLOCK_THRESHOLD = 100
ENERGY_MIN = 0
ENERGY_MAX = 100
NOTE_MAX_LENGTH = 500
# Largest value an INTEGER column holds on every supported database
MAX_ACTIVATION_COUNT = 2_147_483_647
GLOBAL_ENERGY_SUBJECT = "global_energy"

# (lowest activation count for the band, band)
GLOW_BAND_THRESHOLDS = (
    (6, 3),
    (3, 2),
    (1, 1),
    (0, 0),
)


def glow_band_of(activation_count: int) -> int:
    """
    Map an activation count to its glow band (0-3).

    Raises:
        ValueError: if activation_count is negative
    """
    if activation_count < 0:
        raise ValueError(f"activation_count must be non-negative, got {activation_count}")
    for lowest, band in GLOW_BAND_THRESHOLDS:
        if activation_count >= lowest:
            return band
    return 0


def crosses_unlock_threshold(previous: int, next: int) -> bool:
    """True iff moving from previous to next energy crosses the 100% unlock line."""
    return previous < UNLOCK_THRESHOLD <= next


def clamp_energy(value: int) -> int:
    """Cap an incremented energy value at 100."""
    return min(value, ENERGY_MAX)
