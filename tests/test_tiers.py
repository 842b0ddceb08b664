"""
Tests for point tier functions.
"""

import pytest

from mealscore.points.tiers import clamp_points, resolve_points, suggest_points
from mealscore.config import MAX_POINTS, MIN_POINTS


class TestSuggestPoints:
    """Tests for suggest_points function."""

    @pytest.mark.parametrize("count", [0, 1])
    def test_solo_or_empty_earns_nothing(self, count):
        assert suggest_points(count) == 0

    @pytest.mark.parametrize("count", [2, 3, 4, 5])
    def test_small_group(self, count):
        assert suggest_points(count) == 1

    @pytest.mark.parametrize("count", [6, 7, 8])
    def test_medium_group(self, count):
        assert suggest_points(count) == 3

    @pytest.mark.parametrize("count", [9, 12, 15])
    def test_large_group(self, count):
        assert suggest_points(count) == 5

    @pytest.mark.parametrize("count", [16, 20, 100])
    def test_huge_group(self, count):
        assert suggest_points(count) == 10

    def test_negative_count_rejected(self):
        with pytest.raises(ValueError):
            suggest_points(-1)

    def test_monotonic(self):
        """Bigger dinners never suggest fewer points."""
        values = [suggest_points(n) for n in range(0, 30)]
        for i in range(len(values) - 1):
            assert values[i] <= values[i + 1]


class TestManualOverride:
    """Tests for clamp_points and resolve_points."""

    def test_below_range_clamped(self):
        assert clamp_points(-5) == 0

    def test_above_range_clamped(self):
        assert clamp_points(25) == 20

    def test_in_range_unchanged(self):
        assert clamp_points(12) == 12

    def test_bounds_kept(self):
        assert clamp_points(MIN_POINTS) == MIN_POINTS
        assert clamp_points(MAX_POINTS) == MAX_POINTS

    def test_manual_wins_over_suggestion(self):
        # 16 attendees would suggest 10
        assert resolve_points(16, manual_points=2) == 2

    def test_manual_zero_is_not_ignored(self):
        assert resolve_points(9, manual_points=0) == 0

    def test_manual_out_of_range_clamped(self):
        assert resolve_points(3, manual_points=99) == 20
        assert resolve_points(3, manual_points=-5) == 0

    def test_no_manual_uses_suggestion(self):
        assert resolve_points(7) == 3
