"""
Unit tests for the shared hour helpers.
"""

import pytest

from app.modules.shared import round_hours


class TestRoundHours:
    """Tests for round_hours."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (2.25, 2.25),
            (1.3333333, 1.33),
            (0.0075, 0.01),
            (0.125, 0.13),
            (1.999, 2.0),
            (0, 0.0),
        ],
    )
    def test_two_decimals_half_up(self, value, expected):
        assert round_hours(value) == expected

    def test_none_is_zero(self):
        assert round_hours(None) == 0.0

    def test_sum_then_round(self):
        """Totals are rounded after summing, not per term."""
        assert round_hours(0.1 + 0.2) == 0.3
