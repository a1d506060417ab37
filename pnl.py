"""
PnL math for reported trades.

Price-derived PnL is scaled by leverage. A PnL the trader wrote down
themselves is taken at face value and never multiplied.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Optional


PNL_CLAMP_PCT = 5000.0


class Side(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"

    @classmethod
    def parse(cls, value) -> Optional["Side"]:
        """Accept 'long', 'SHORT', Side.LONG, ... Returns None when unknown."""
        if value is None:
            return None
        if isinstance(value, Side):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return None


def _is_positive(value) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value) and value > 0


def compute_pnl_percent(side, entry, exit) -> Optional[float]:
    """
    Percentage return from entry to exit.

    SHORT positions profit when price falls, so the change is negated.
    Returns None unless both prices are finite and positive.
    """
    if not (_is_positive(entry) and _is_positive(exit)):
        return None

    change = (exit - entry) / entry
    if Side.parse(side) == Side.SHORT:
        change = -change
    return change * 100


def leveraged_pnl(side, entry, exit, leverage: Optional[int] = None) -> Optional[float]:
    """Price-derived PnL multiplied by leverage (1 when absent)."""
    pnl = compute_pnl_percent(side, entry, exit)
    if pnl is None:
        return None
    return pnl * (leverage or 1)


def clamp_pnl(value, bound: float = PNL_CLAMP_PCT) -> Optional[float]:
    """Clamp into [-bound, bound]. None and non-finite values give None."""
    if value is None:
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return max(-bound, min(bound, value))
