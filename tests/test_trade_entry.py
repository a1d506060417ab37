"""
Tests for the structured /addtrade path.
"""

import pytest

from pnl import Side
from trade_entry import USAGE, InvalidTradeInput, build_manual_trade


def build(**overrides):
    args = dict(trader="alice", symbol="btc", side="LONG", entry="100", exit="110", source_id="cmd:1")
    args.update(overrides)
    return build_manual_trade(**args)


class TestBuildManualTrade:
    """Test manual trade construction."""

    def test_computed_pnl(self):
        trade = build()
        assert trade.symbol == "BTC"
        assert trade.side is Side.LONG
        assert trade.leverage == 1
        assert trade.pnl_percent == pytest.approx(10.0)
        assert (trade.entry_raw, trade.exit_raw) == ("100", "110")

    def test_leverage_scales_computed_pnl(self):
        assert build(leverage=10).pnl_percent == pytest.approx(100.0)
        assert build(side="short", leverage=2).pnl_percent == pytest.approx(-20.0)

    def test_explicit_pnl_not_leveraged(self):
        assert build(leverage=10, pnl="12.3%").pnl_percent == pytest.approx(12.3)
        assert build(pnl=-4.5).pnl_percent == pytest.approx(-4.5)

    def test_suffix_prices(self):
        trade = build(entry="64.2k", exit="66k")
        assert trade.entry_price == pytest.approx(64200.0)
        assert trade.exit_raw == "66k"

    def test_numeric_prices(self):
        assert build(entry=1234.567, exit=1234.567).entry_price == pytest.approx(1234.567)

    def test_clamped(self):
        assert build(leverage=100, exit="300").pnl_percent == 5000

    def test_none_leverage_defaults_to_one(self):
        assert build(leverage=None).leverage == 1


class TestInvalidInput:
    """Test the user-facing error path."""

    @pytest.mark.parametrize("overrides", [
        {"symbol": ""},
        {"side": "flat"},
        {"entry": "abc"},
        {"exit": "-5"},
        {"entry": "0"},
        {"leverage": 0},
        {"leverage": 2.5},
        {"pnl": "lots"},
    ])
    def test_rejected_with_usage(self, overrides):
        with pytest.raises(InvalidTradeInput) as exc:
            build(**overrides)
        assert USAGE in str(exc.value)
        assert str(exc.value).startswith(exc.value.reason)

    def test_is_value_error(self):
        with pytest.raises(ValueError):
            build(side=None)
