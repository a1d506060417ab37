"""Shared fixtures for the leaderboard bot tests."""

from datetime import datetime, timedelta, timezone

import pytest

from trade_store import TradeRecord


NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_trade():
    """Factory for TradeRecords; source ids are unique per call."""
    counter = {"n": 0}

    def _make(pnl, trader="alice", days_ago=0, **kwargs):
        counter["n"] += 1
        kwargs.setdefault("source_id", f"msg-{counter['n']}")
        kwargs.setdefault("source_link", f"https://discord.com/channels/1/2/{counter['n']}")
        return TradeRecord(
            trader=trader,
            pnl_percent=pnl,
            timestamp=NOW - timedelta(days=days_ago),
            **kwargs,
        )

    return _make
