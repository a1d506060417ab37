"""
Tests for the JSON trade store.
"""

import json
import math
from datetime import datetime, timezone

import pytest

from pnl import Side
from trade_store import JsonTradeStore, TradeRecord


class TestTradeRecord:
    """Test record invariants."""

    def test_rejects_missing_pnl(self):
        with pytest.raises(ValueError):
            TradeRecord(trader="a", pnl_percent=math.nan, timestamp=datetime.now(timezone.utc), source_id="1")

    def test_rejects_bad_leverage(self):
        with pytest.raises(ValueError):
            TradeRecord(trader="a", pnl_percent=1.0, timestamp=datetime.now(timezone.utc), source_id="1", leverage=0)

    def test_naive_timestamp_becomes_utc(self):
        t = TradeRecord(trader="a", pnl_percent=1.0, timestamp=datetime(2026, 1, 1), source_id="1")
        assert t.timestamp.tzinfo == timezone.utc

    def test_is_win(self, make_trade):
        assert make_trade(0.5).is_win
        assert not make_trade(0).is_win
        assert not make_trade(-2).is_win

    def test_dict_round_trip(self, make_trade):
        trade = make_trade(7.5, symbol="BTC", side=Side.SHORT, leverage=3, entry_raw="64.2k")
        data = trade.to_dict()
        assert data["side"] == "SHORT"
        assert TradeRecord.from_dict(json.loads(json.dumps(data))) == trade


class TestJsonTradeStore:
    """Test store persistence and queries."""

    def test_insert_is_idempotent(self, make_trade):
        store = JsonTradeStore(None)
        trade = make_trade(1, source_id="abc")
        assert store.insert(trade) is True
        assert store.insert(make_trade(99, source_id="abc")) is False
        assert len(store) == 1
        assert "abc" in store
        assert store.all()[0].pnl_percent == 1

    def test_persists_across_instances(self, tmp_path, make_trade):
        path = tmp_path / "trades.json"
        store = JsonTradeStore(path)
        store.insert(make_trade(3, "alice"))
        store.insert(make_trade(-1, "bob"))

        reloaded = JsonTradeStore(path)
        assert [t.trader for t in reloaded.all()] == ["alice", "bob"]
        assert reloaded.all() == store.all()

    def test_deferred_save(self, tmp_path, make_trade):
        path = tmp_path / "trades.json"
        store = JsonTradeStore(path)
        store.insert(make_trade(3), save=False)
        assert not path.exists()
        store.save()
        assert len(JsonTradeStore(path)) == 1

    def test_skips_unreadable_rows(self, tmp_path, make_trade):
        path = tmp_path / "trades.json"
        good = make_trade(2).to_dict()
        path.write_text(json.dumps([good, {"trader": "x"}, dict(good, pnl_percent="nan", source_id="z")]))
        store = JsonTradeStore(path)
        assert len(store) == 1

    def test_query_range(self, make_trade, now):
        store = JsonTradeStore(None)
        recent = make_trade(1, days_ago=3)
        old = make_trade(2, days_ago=30)
        store.insert(recent)
        store.insert(old)
        assert store.query_range(7, now=now) == [recent]
        assert store.query_range(None) == [recent, old]
