"""
Unit tests for glow band and unlock threshold rules
"""
import pytest

from globalunlock.services.unlock_rules import (
    UNLOCK_THRESHOLD,
    clamp_energy,
    crosses_unlock_threshold,
    glow_band_of,
)


class TestGlowBandOf:
    @pytest.mark.parametrize(
        "count,band",
        [(0, 0), (1, 1), (2, 1), (3, 2), (5, 2), (6, 3), (7, 3), (10_000, 3)],
    )
    def test_band_boundaries(self, count, band):
        assert glow_band_of(count) == band

    def test_negative_count_rejected(self):
        with pytest.raises(ValueError):
            glow_band_of(-1)

    def test_band_never_decreases_as_count_grows(self):
        for count in range(0, 50):
            assert glow_band_of(count) <= glow_band_of(count + 1)


class TestCrossesUnlockThreshold:
    def test_reaching_exactly_100_crosses(self):
        assert crosses_unlock_threshold(99, 100) is True

    def test_jumping_past_100_crosses(self):
        assert crosses_unlock_threshold(0, 150) is True

    def test_staying_below_does_not_cross(self):
        assert crosses_unlock_threshold(50, 99) is False

    def test_already_at_100_does_not_cross_again(self):
        assert crosses_unlock_threshold(100, 100) is False

    def test_going_down_does_not_cross(self):
        assert crosses_unlock_threshold(100, 20) is False


def test_clamp_energy_caps_at_threshold():
    assert clamp_energy(105) == UNLOCK_THRESHOLD
    assert clamp_energy(100) == 100
    assert clamp_energy(42) == 42
