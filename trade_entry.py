"""
Structured trade entry (the /addtrade slash command).

Unlike passive scanning, bad input here is reported back to the user with
the expected argument shape.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Optional

from normalize import parse_amount
from pnl import PNL_CLAMP_PCT, Side, clamp_pnl, leveraged_pnl
from trade_store import TradeRecord


USAGE = (
    "Invalid input, expected format: /addtrade symbol:<BTC> side:<LONG|SHORT> "
    "entry:<price> exit:<price> [leverage:<int>] [pnl:<percent>]"
)


class InvalidTradeInput(ValueError):
    """Raised when /addtrade arguments cannot describe a trade."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"{reason}\n{USAGE}")


def _parse_price(name: str, raw) -> float:
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        value = float(raw)
    else:
        value = parse_amount(str(raw or "").strip())
    if value is None or not math.isfinite(value) or value <= 0:
        raise InvalidTradeInput(f"`{name}` must be a positive number, got `{raw}`.")
    return value


def build_manual_trade(
    trader: str,
    symbol: str,
    side,
    entry,
    exit,
    source_id: str,
    leverage: Optional[int] = 1,
    pnl=None,
    source_link: Optional[str] = None,
    timestamp: Optional[datetime] = None,
    clamp: float = PNL_CLAMP_PCT,
) -> TradeRecord:
    """
    Build a TradeRecord from explicit command arguments.

    The PnL is computed from prices and multiplied by leverage, unless an
    explicit pnl override is given, which is used as-is.
    """
    symbol = (symbol or "").strip().upper().lstrip("$")
    if not symbol:
        raise InvalidTradeInput("`symbol` is required.")

    parsed_side = Side.parse(side)
    if parsed_side is None:
        raise InvalidTradeInput(f"`side` must be LONG or SHORT, got `{side}`.")

    entry_price = _parse_price("entry", entry)
    exit_price = _parse_price("exit", exit)

    if leverage is None:
        leverage = 1
    if isinstance(leverage, bool) or not isinstance(leverage, int) or leverage < 1:
        raise InvalidTradeInput(f"`leverage` must be a whole number of at least 1, got `{leverage}`.")

    if isinstance(pnl, (int, float)) and not isinstance(pnl, bool):
        value = float(pnl)
    elif pnl is not None:
        value = parse_amount(str(pnl).strip().rstrip("%"))
        if value is None:
            raise InvalidTradeInput(f"`pnl` must be a percentage, got `{pnl}`.")
    else:
        value = leveraged_pnl(parsed_side, entry_price, exit_price, leverage)

    value = clamp_pnl(value, clamp)
    if value is None:
        raise InvalidTradeInput("Could not compute a PnL from these prices.")

    return TradeRecord(
        trader=trader,
        pnl_percent=value,
        timestamp=timestamp or datetime.now(timezone.utc),
        source_id=str(source_id),
        source_link=source_link,
        symbol=symbol,
        side=parsed_side,
        leverage=leverage,
        entry_price=entry_price,
        exit_price=exit_price,
        entry_raw=str(entry).strip(),
        exit_raw=str(exit).strip(),
    )
