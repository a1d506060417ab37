# trade_store.py
"""
Durable trade log for the leaderboard bot.

Every parsed trade becomes one immutable TradeRecord. Records are kept in a
JSON file (trades.json by default) so leaderboards survive restarts.

Features:
- Append-only: records are never edited or deleted
- Idempotent inserts keyed by source id (Discord message id), so a
  history backfill can be re-run safely
- Time-windowed queries for the weekly leaderboard
"""

from __future__ import annotations

import json
import math
import os
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from pnl import Side


DEFAULT_STORE_FILE = Path("trades.json")


@dataclass(frozen=True)
class TradeRecord:
    """One reported trade. pnl_percent is always finite and already clamped."""
    trader: str
    pnl_percent: float
    timestamp: datetime
    source_id: str
    source_link: Optional[str] = None
    symbol: Optional[str] = None
    side: Optional[Side] = None
    leverage: Optional[int] = None
    entry_price: Optional[float] = None
    exit_price: Optional[float] = None
    entry_raw: Optional[str] = None
    exit_raw: Optional[str] = None

    def __post_init__(self):
        if self.pnl_percent is None or not math.isfinite(self.pnl_percent):
            raise ValueError(f"Trade {self.source_id} has no valid PnL")
        if self.leverage is not None and (not isinstance(self.leverage, int) or self.leverage < 1):
            raise ValueError(f"Trade {self.source_id} has invalid leverage {self.leverage!r}")
        if self.timestamp.tzinfo is None:
            object.__setattr__(self, "timestamp", self.timestamp.replace(tzinfo=timezone.utc))

    @property
    def is_win(self) -> bool:
        return self.pnl_percent > 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        data["side"] = self.side.value if self.side else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TradeRecord":
        return cls(
            trader=data["trader"],
            pnl_percent=float(data["pnl_percent"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            source_id=str(data["source_id"]),
            source_link=data.get("source_link"),
            symbol=data.get("symbol"),
            side=Side.parse(data.get("side")),
            leverage=data.get("leverage"),
            entry_price=data.get("entry_price"),
            exit_price=data.get("exit_price"),
            entry_raw=data.get("entry_raw"),
            exit_raw=data.get("exit_raw"),
        )


class JsonTradeStore:
    """
    Trade store persisted as a JSON list.

    Pass path=None for a purely in-memory store.
    """

    def __init__(self, path: Optional[Path] = DEFAULT_STORE_FILE):
        self.path = Path(path) if path is not None else None
        self._trades: List[TradeRecord] = []
        self._ids: set = set()
        self.load()

    def __len__(self) -> int:
        return len(self._trades)

    def __contains__(self, source_id) -> bool:
        return str(source_id) in self._ids

    def __iter__(self) -> Iterator[TradeRecord]:
        return iter(list(self._trades))

    def insert(self, trade: TradeRecord, save: bool = True) -> bool:
        """
        Append a trade.

        Args:
            trade: The record to store
            save: Write the file right away (bulk callers save once at the end)

        Returns:
            True if stored, False if a trade from the same source already exists
        """
        if trade.source_id in self._ids:
            return False
        self._trades.append(trade)
        self._ids.add(trade.source_id)
        if save:
            self.save()
        return True

    def all(self) -> List[TradeRecord]:
        """All trades in insertion order."""
        return list(self._trades)

    def query_range(self, days: Optional[float] = None, now: Optional[datetime] = None) -> List[TradeRecord]:
        """Trades from the last `days` days (all trades when days is None)."""
        if days is None:
            return self.all()
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(days=days)
        return [t for t in self._trades if t.timestamp >= cutoff]

    def save(self) -> None:
        """Write all trades to disk (atomic replace)."""
        if self.path is None:
            return
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump([t.to_dict() for t in self._trades], f, indent=2)
            os.replace(tmp, self.path)
        except OSError as e:
            print(f"[store] Error saving trades to {self.path}: {e}")
            raise

    def load(self) -> int:
        """
        Load trades from disk.

        Returns:
            Number of trades restored
        """
        if self.path is None or not self.path.exists():
            return 0

        with open(self.path, "r", encoding="utf-8") as f:
            rows = json.load(f)

        for row in rows:
            try:
                trade = TradeRecord.from_dict(row)
            except (KeyError, TypeError, ValueError) as e:
                print(f"[store] Skipping unreadable trade {row.get('source_id', '?')}: {e}")
                continue
            if trade.source_id in self._ids:
                continue
            self._trades.append(trade)
            self._ids.add(trade.source_id)

        print(f"[store] Restored {len(self._trades)} trades from {self.path}")
        return len(self._trades)
