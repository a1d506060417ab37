"""
Tests for PnL math.
"""

import math

import pytest

from pnl import Side, clamp_pnl, compute_pnl_percent, leveraged_pnl


class TestComputePnl:
    """Test price-derived PnL."""

    def test_long_profit(self):
        assert compute_pnl_percent(Side.LONG, 100, 110) == pytest.approx(10.0)

    def test_short_sign_flip(self):
        """Test a SHORT loses when price rises."""
        assert compute_pnl_percent(Side.SHORT, 100, 110) == pytest.approx(-10.0)
        assert compute_pnl_percent("short", 200, 180) == pytest.approx(10.0)

    def test_unknown_side_treated_as_long(self):
        assert compute_pnl_percent(None, 100, 90) == pytest.approx(-10.0)

    @pytest.mark.parametrize("entry, exit", [
        (None, 110), (100, None), (0, 110), (-5, 110), (100, math.inf), (math.nan, 100),
    ])
    def test_invalid_prices(self, entry, exit):
        assert compute_pnl_percent(Side.LONG, entry, exit) is None

    def test_leverage_scales_computed_pnl(self):
        assert leveraged_pnl(Side.LONG, 100, 110, 10) == pytest.approx(100.0)
        assert leveraged_pnl(Side.SHORT, 100, 110, None) == pytest.approx(-10.0)
        assert leveraged_pnl(Side.LONG, None, 110, 5) is None


class TestClamp:
    """Test the sanity clamp."""

    def test_clamps_both_ends(self):
        assert clamp_pnl(12000) == 5000
        assert clamp_pnl(-9000) == -5000

    def test_in_range_unchanged(self):
        assert clamp_pnl(12.3) == pytest.approx(12.3)

    def test_custom_bound(self):
        assert clamp_pnl(150, bound=100) == 100

    @pytest.mark.parametrize("value", [None, math.nan, math.inf, "abc"])
    def test_invalid_values(self, value):
        assert clamp_pnl(value) is None


class TestSide:
    def test_parse(self):
        assert Side.parse("long") is Side.LONG
        assert Side.parse(" SHORT ") is Side.SHORT
        assert Side.parse(Side.LONG) is Side.LONG
        assert Side.parse("sideways") is None
        assert Side.parse(None) is None
