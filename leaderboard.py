"""
Leaderboard aggregation.

Turns stored trades into ranked lists:
- Best / worst single trades (optionally within a time window)
- Summed PnL per trader
- Ready-to-render snapshots for the scheduled and on-demand posts

Everything here is pure: same trades in, same leaderboard out.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Sequence

import pandas as pd

from trade_store import TradeRecord


ORDERS = ("best", "worst")

FRAME_COLUMNS = [
    "timestamp", "trader", "symbol", "side", "leverage",
    "entry", "exit", "pnl_percent", "source_id", "link",
]


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    trade: TradeRecord


@dataclass(frozen=True)
class TraderTotal:
    rank: int
    trader: str
    total: float
    trades: int


@dataclass
class LeaderboardSection:
    """One list in a post, e.g. 'Top 25 wins'. kind is 'trades' or 'totals'."""
    title: str
    kind: str
    entries: list = field(default_factory=list)
    empty_text: str = "_No trades yet._"


@dataclass
class LeaderboardSnapshot:
    title: str
    sections: List[LeaderboardSection]
    generated_at: datetime
    marker: str


def is_excluded(trader: str, excluded: Iterable[str]) -> bool:
    """Case-insensitive exact or substring match against the denylist."""
    name = (trader or "").lower()
    for item in excluded or ():
        item = item.strip().lower()
        if item and (name == item or item in name):
            return True
    return False


def filter_window(trades: Iterable[TradeRecord], days: Optional[float], now: Optional[datetime] = None) -> List[TradeRecord]:
    """Trades with timestamp >= now - days. days=None keeps everything."""
    trades = list(trades)
    if days is None:
        return trades
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=days)
    return [t for t in trades if t.timestamp >= cutoff]


def rank_trades(
    trades: Iterable[TradeRecord],
    top_n: int,
    order: str = "best",
    window_days: Optional[float] = None,
    now: Optional[datetime] = None,
    excluded: Sequence[str] = (),
) -> List[TradeRecord]:
    """
    Top-N trades by PnL.

    The sort is stable, so trades with equal PnL keep their original
    (first-seen-first-ranked) order in both directions.
    """
    if order not in ORDERS:
        raise ValueError(f"order must be one of {ORDERS}, got {order!r}")

    pool = [t for t in filter_window(trades, window_days, now) if not is_excluded(t.trader, excluded)]
    ranked = sorted(pool, key=lambda t: t.pnl_percent, reverse=(order == "best"))
    return ranked[:max(0, top_n)]


def assign_ranks(trades: Iterable[TradeRecord]) -> List[LeaderboardEntry]:
    return [LeaderboardEntry(rank=i, trade=t) for i, t in enumerate(trades, 1)]


def trades_to_frame(trades: Iterable[TradeRecord]) -> pd.DataFrame:
    """One row per trade, in insertion order."""
    rows = [
        {
            "timestamp": t.timestamp,
            "trader": t.trader,
            "symbol": t.symbol,
            "side": t.side.value if t.side else None,
            "leverage": t.leverage,
            "entry": t.entry_price,
            "exit": t.exit_price,
            "pnl_percent": t.pnl_percent,
            "source_id": t.source_id,
            "link": t.source_link,
        }
        for t in trades
    ]
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)


def aggregate_totals(trades: Iterable[TradeRecord], excluded: Sequence[str] = ()) -> List[TraderTotal]:
    """
    Summed PnL per trader, best first.

    Grouping is on the literal display name. Ties keep the order in which
    the traders first appeared.
    """
    kept = [t for t in trades if not is_excluded(t.trader, excluded)]
    if not kept:
        return []

    df = trades_to_frame(kept)
    grouped = df.groupby("trader", sort=False)["pnl_percent"].agg(["sum", "count"])
    grouped = grouped.sort_values("sum", ascending=False, kind="stable")

    return [
        TraderTotal(rank=i, trader=str(trader), total=float(row["sum"]), trades=int(row["count"]))
        for i, (trader, row) in enumerate(grouped.iterrows(), 1)
    ]


# ==== Snapshots ====

def build_weekly_snapshot(
    trades: Iterable[TradeRecord],
    top_n: int = 10,
    days: int = 7,
    excluded: Sequence[str] = (),
    now: Optional[datetime] = None,
) -> LeaderboardSnapshot:
    """Daily post: best winning trades of the last `days` days."""
    now = now or datetime.now(timezone.utc)
    wins = [t for t in trades if t.is_win]
    best = rank_trades(wins, top_n, "best", window_days=days, now=now, excluded=excluded)

    section = LeaderboardSection(
        title=f"🏆 Top {top_n} - last {days} days",
        kind="trades",
        entries=assign_ranks(best),
        empty_text=f"_No winning trades in the last {days} days._",
    )
    return LeaderboardSnapshot(
        title=f"Weekly Top {top_n}",
        sections=[section],
        generated_at=now,
        marker="leaderboard:weekly",
    )


def build_alltime_snapshot(
    trades: Iterable[TradeRecord],
    top_n: int = 25,
    excluded: Sequence[str] = (),
    now: Optional[datetime] = None,
) -> LeaderboardSnapshot:
    """Weekly post: all-time best wins and worst losses."""
    now = now or datetime.now(timezone.utc)
    trades = list(trades)
    wins = [t for t in trades if t.is_win]
    losses = [t for t in trades if t.pnl_percent < 0]

    sections = [
        LeaderboardSection(
            title=f"📈 Top {top_n} wins (all-time)",
            kind="trades",
            entries=assign_ranks(rank_trades(wins, top_n, "best", excluded=excluded)),
            empty_text="_No winning trades yet._",
        ),
        LeaderboardSection(
            title=f"📉 Top {top_n} losses (all-time)",
            kind="trades",
            entries=assign_ranks(rank_trades(losses, top_n, "worst", excluded=excluded)),
            empty_text="_No losing trades yet._",
        ),
    ]
    return LeaderboardSnapshot(
        title=f"All-time Top {top_n}",
        sections=sections,
        generated_at=now,
        marker="leaderboard:alltime",
    )


def build_totals_snapshot(
    trades: Iterable[TradeRecord],
    excluded: Sequence[str] = (),
    now: Optional[datetime] = None,
) -> LeaderboardSnapshot:
    """Total +/- PnL % per trader, best to worst."""
    now = now or datetime.now(timezone.utc)
    section = LeaderboardSection(
        title="💰 Total PnL % per trader",
        kind="totals",
        entries=aggregate_totals(trades, excluded=excluded),
        empty_text="_No traders yet._",
    )
    return LeaderboardSnapshot(
        title="Trader totals",
        sections=[section],
        generated_at=now,
        marker="leaderboard:totals",
    )
