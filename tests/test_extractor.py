"""
Tests for trade extraction from free text and Discord messages.
"""

from types import SimpleNamespace

import pytest

from extractor import (
    author_fragments,
    extract_from_message,
    extract_trade,
    find_entry_exit,
    find_leverage,
    find_side,
    find_symbol,
    gather_parts,
    trader_name,
)
from pnl import Side


def make_embed(author=None, title=None, description=None, fields=(), footer=None):
    return SimpleNamespace(
        author=SimpleNamespace(name=author),
        title=title,
        description=description,
        fields=[SimpleNamespace(name=n, value=v) for n, v in fields],
        footer=SimpleNamespace(text=footer),
    )


def make_message(content="", embeds=(), display_name="bob"):
    return SimpleNamespace(
        content=content,
        embeds=list(embeds),
        author=SimpleNamespace(display_name=display_name, name=display_name.lower(), id=42),
    )


class TestFieldFinders:
    """Test the individual field finders."""

    def test_side(self):
        assert find_side("going long here") is Side.LONG
        assert find_side("SHORT eth") is Side.SHORT
        assert find_side("longer term view") is None

    def test_leverage(self):
        assert find_leverage("BTC 10x long") == 10
        assert find_leverage("ETH 25 X") == 25
        assert find_leverage("SOL 5×") == 5
        assert find_leverage("2.5x") == 2
        assert find_leverage("0.5x") is None
        assert find_leverage("no leverage") is None

    def test_symbol_plain_and_suffixed(self):
        assert find_symbol("BTC LONG") == "BTC"
        assert find_symbol("BTCUSDT long") == "BTC"
        assert find_symbol("ETH-PERP short") == "ETH"
        assert find_symbol("SOLUSDC") == "SOL"

    def test_symbol_skips_trading_words(self):
        """Test LONG/SHORT/PNL are never taken as tickers."""
        assert find_symbol("LONG BTC 10x") == "BTC"
        assert find_symbol("SHORT PNL") is None

    def test_symbol_slash_fallback(self):
        assert find_symbol("closed my eth/usdt trade") == "ETH"

    def test_entry_exit(self):
        entry, exit, entry_raw, exit_raw = find_entry_exit("entry: 100 exit: 110")
        assert entry == pytest.approx(100.0)
        assert exit == pytest.approx(110.0)
        assert (entry_raw, exit_raw) == ("100", "110")

    def test_entry_exit_synonyms_and_suffix(self):
        entry, exit, entry_raw, exit_raw = find_entry_exit("ingang 64.2k sluit - 66k")
        assert entry == pytest.approx(64200.0)
        assert exit == pytest.approx(66000.0)
        assert exit_raw == "66k"

    def test_entry_exit_trailing_punctuation(self):
        entry, exit, entry_raw, _ = find_entry_exit("in 0.125, out 0.15.")
        assert entry == pytest.approx(0.125)
        assert exit == pytest.approx(0.15)
        assert entry_raw == "0.125"

    def test_explicit_keyword_beats_earlier_casual_one(self):
        """Test 'entry' wins over an earlier 'in <n>' in running text."""
        entry, exit, _, _ = find_entry_exit("scaled in 3 times, entry 100, closed out 2 bags, exit 110")
        assert entry == pytest.approx(100.0)
        assert exit == pytest.approx(110.0)

    def test_weaker_keyword_used_when_alone(self):
        entry, exit, _, _ = find_entry_exit("open 50 close 55")
        assert (entry, exit) == (pytest.approx(50.0), pytest.approx(55.0))

    def test_casual_in_does_not_corrupt_computed_pnl(self):
        trade = extract_trade("BTC LONG scaled in 3 times, entry 100 exit 110")
        assert trade.entry == pytest.approx(100.0)
        assert trade.pnl == pytest.approx(10.0)
        assert trade.pnl_source == "computed"


class TestPnlPriority:
    """Test the PnL strategy order."""

    def test_label_beats_computed(self):
        """Test the labeled value wins over the price-derived one."""
        trade = extract_trade("BTC LONG entry: 100 exit: 110 PnL: +12.3%")
        assert trade.side is Side.LONG
        assert trade.symbol == "BTC"
        assert trade.entry == pytest.approx(100.0)
        assert trade.exit == pytest.approx(110.0)
        assert trade.pnl == pytest.approx(12.3)
        assert trade.pnl_source == "label"

    def test_computed_short(self):
        trade = extract_trade("ETH SHORT entry 200 exit 180")
        assert trade.pnl == pytest.approx(10.0)
        assert trade.pnl_source == "computed"

    def test_computed_uses_leverage(self):
        trade = extract_trade("ETH SHORT 5x entry 200 exit 180")
        assert trade.leverage == 5
        assert trade.pnl == pytest.approx(50.0)

    def test_labeled_pnl_is_not_leveraged(self):
        trade = extract_trade("BTC LONG 10x roi: 8%")
        assert trade.pnl == pytest.approx(8.0)

    def test_author_fragment_first(self):
        trade = extract_trade("BTC LONG PnL: 5%", author_fragments=["alice +42.5%"])
        assert trade.pnl == pytest.approx(42.5)
        assert trade.pnl_source == "author"

    def test_author_fragment_out_of_range_ignored(self):
        trade = extract_trade("return 3%", author_fragments=["alice 9999%"])
        assert trade.pnl == pytest.approx(3.0)

    def test_negative_label(self):
        assert extract_trade("P&L: -4,5%").pnl == pytest.approx(-4.5)
        assert extract_trade("pnl −7%").pnl == pytest.approx(-7.0)

    def test_single_unlabeled_percent(self):
        trade = extract_trade("SOL closed in profit, +8.5% today")
        assert trade.pnl == pytest.approx(8.5)
        assert trade.pnl_source == "single_percent"

    def test_multiple_unlabeled_percents_ambiguous(self):
        assert extract_trade("up 5% then down 7%") is None

    def test_nothing_to_go_on(self):
        assert extract_trade("gm everyone") is None
        assert extract_trade("") is None

    def test_clamped(self):
        assert extract_trade("BTC LONG 100x entry 100 exit 220").pnl == 5000
        assert extract_trade("pnl -9000%").pnl == -5000

    def test_accepts_fragments(self):
        trade = extract_trade(["BTC LONG", "entry 100", "exit 105"])
        assert trade.pnl == pytest.approx(5.0)


class TestDiscordMessages:
    """Test gathering text from message content and embeds."""

    def test_gather_parts_strips_markdown(self):
        embed = make_embed(
            author="alice +3%",
            title="**BTC** LONG",
            description="```code```entry `100`",
            fields=[("Exit", "110\nok")],
            footer="via <:bot:123456>",
        )
        parts = gather_parts(make_message("hello", [embed]))
        assert parts == ["hello", "alice +3%", "BTC  LONG", "entry  100", "Exit", "110 ok", "via"]

    def test_author_fragments(self):
        message = make_message(embeds=[make_embed(author="alice +3%"), make_embed()])
        assert author_fragments(message) == ["alice +3%"]

    def test_trader_name_from_embed_author(self):
        message = make_message(embeds=[make_embed(author="alice +3.25%")])
        assert trader_name(message) == "alice"

    def test_trader_name_falls_back_to_poster(self):
        assert trader_name(make_message("BTC LONG +3%", display_name="Bob")) == "Bob"

    def test_extract_from_message_embed_author(self):
        embed = make_embed(author="carol -12.5%", title="ETH SHORT 20x", description="Entry 2500 Exit 2600")
        trade = extract_from_message(make_message(embeds=[embed]))
        assert trade.pnl == pytest.approx(-12.5)
        assert trade.symbol == "ETH"
        assert trade.side is Side.SHORT
        assert trade.leverage == 20

    def test_out_of_range_author_percent_ignored(self):
        """Test a rejected author value is not picked up again as a lone percent."""
        embed = make_embed(author="carol 9999%", title="BTC LONG")
        assert extract_from_message(make_message(embeds=[embed])) is None

    def test_lone_percent_beside_rejected_author_value(self):
        embed = make_embed(author="carol 9999%", description="ETH closed +6%")
        trade = extract_from_message(make_message(embeds=[embed]))
        assert trade.pnl == pytest.approx(6.0)
        assert trade.pnl_source == "single_percent"

    def test_extract_from_plain_chat(self):
        assert extract_from_message(make_message("who is up for lunch?")) is None
