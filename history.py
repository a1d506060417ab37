"""
Channel history scanning.

Rebuilds trade records from messages already posted in the trade-log
channel. The scan pages through history newest to oldest with a pause
between pages, and stops at a message cap, a time budget or a cutoff date.
Re-running it is safe: the store ignores messages it has already seen.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime
from typing import AsyncIterator, Optional

from extractor import extract_from_message, trader_name
from pnl import PNL_CLAMP_PCT
from trade_store import JsonTradeStore, TradeRecord


DEFAULT_PAGE_SIZE = 100


@dataclass
class BackfillResult:
    scanned: int = 0
    added: int = 0
    duplicates: int = 0
    not_trades: int = 0
    stopped_early: bool = False

    def summary(self) -> str:
        text = (
            f"Scanned {self.scanned} messages: {self.added} new trades, "
            f"{self.duplicates} already known, {self.not_trades} not trades."
        )
        if self.stopped_early:
            text += " Stopped at the scan limit; run again to continue."
        return text


def _positive(value) -> Optional[float]:
    return value if value is not None and value > 0 else None


def message_to_trade(message, clamp: float = PNL_CLAMP_PCT) -> Optional[TradeRecord]:
    """TradeRecord for a message, or None when the message is not a trade report."""
    partial = extract_from_message(message, clamp)
    if partial is None:
        return None

    return TradeRecord(
        trader=trader_name(message),
        pnl_percent=partial.pnl,
        timestamp=message.created_at,
        source_id=str(message.id),
        source_link=getattr(message, "jump_url", None),
        symbol=partial.symbol,
        side=partial.side,
        leverage=partial.leverage,
        entry_price=_positive(partial.entry),
        exit_price=_positive(partial.exit),
        entry_raw=partial.entry_raw,
        exit_raw=partial.exit_raw,
    )


async def iter_messages(
    channel,
    limit: Optional[int] = None,
    before=None,
    since: Optional[datetime] = None,
    page_size: int = DEFAULT_PAGE_SIZE,
    page_delay: float = 1.0,
    deadline: Optional[float] = None,
) -> AsyncIterator:
    """
    Yield channel messages newest to oldest.

    Args:
        channel: Anything with a discord.py style history(limit=, before=)
        limit: Max messages to yield (None = no cap)
        before: Start below this message / snowflake
        since: Stop at the first message older than this
        page_size: Messages per history request
        page_delay: Seconds to sleep between requests
        deadline: Seconds after which to stop paging
    """
    fetched = 0
    cursor = before
    started = time.monotonic()

    while True:
        if limit is not None and fetched >= limit:
            return
        if deadline is not None and time.monotonic() - started >= deadline:
            print(f"[history] Time budget of {deadline:.0f}s used up after {fetched} messages")
            return

        size = page_size if limit is None else min(page_size, limit - fetched)
        page = [m async for m in channel.history(limit=size, before=cursor)]
        if not page:
            return

        for message in page:
            if since is not None and message.created_at < since:
                return
            yield message
            fetched += 1

        if len(page) < size:
            return
        cursor = page[-1]
        await asyncio.sleep(page_delay)


async def backfill(
    channel,
    store: JsonTradeStore,
    since: Optional[datetime] = None,
    max_messages: Optional[int] = None,
    page_delay: float = 1.0,
    time_budget: Optional[float] = None,
    ignore_author_id: Optional[int] = None,
    clamp: float = PNL_CLAMP_PCT,
) -> BackfillResult:
    """
    Scan a channel's history into the store.

    Fetch errors propagate to the caller; whatever was stored before the
    error stays stored.
    """
    result = BackfillResult()
    started = time.monotonic()

    try:
        async for message in iter_messages(
            channel,
            limit=max_messages,
            since=since,
            page_delay=page_delay,
            deadline=time_budget,
        ):
            result.scanned += 1
            if result.scanned % 500 == 0:
                print(f"[backfill] Scanned {result.scanned} messages ({result.added} new trades)")
                store.save()

            author = getattr(message, "author", None)
            if ignore_author_id is not None and getattr(author, "id", None) == ignore_author_id:
                result.not_trades += 1
                continue

            trade = message_to_trade(message, clamp)
            if trade is None:
                result.not_trades += 1
            elif store.insert(trade, save=False):
                result.added += 1
            else:
                result.duplicates += 1
    finally:
        if result.added:
            store.save()

    if max_messages is not None and result.scanned >= max_messages:
        result.stopped_early = True
    if time_budget is not None and time.monotonic() - started >= time_budget:
        result.stopped_early = True

    print(f"[backfill] Done. {result.summary()}")
    return result


def report_backfill_error(task: asyncio.Task) -> None:
    """Done-callback for backfills nobody awaits (e.g. the startup scan)."""
    if task.cancelled():
        print("[backfill] Cancelled")
        return
    error = task.exception()
    if error is not None:
        print(f"[backfill] Error: {type(error).__name__}: {error}")
