"""
Discord embed output for the leaderboard bot.

Provides embeds for:
- Leaderboard posts (one embed per list, all lists in one message)
- Trade confirmations for /addtrade

Discord caps the combined size of all embeds in one message, so the lists
posted together share a single character budget.
"""

from __future__ import annotations

from typing import List, Optional

import discord

from formatting import render_sections
from leaderboard import LeaderboardSnapshot
from pnl import Side
from trade_store import TradeRecord


COLOR_LONG = 0x00C853
COLOR_SHORT = 0xFF1744
COLOR_NEUTRAL = 0x607D8B
COLOR_GOLD = 0xFFC107

EMBED_TITLE_LIMIT = 256
EMBED_DESCRIPTION_LIMIT = 4096
EMBED_TOTAL_LIMIT = 6000
EMBED_SAFETY_MARGIN = 100


def leaderboard_footer(snapshot: LeaderboardSnapshot) -> str:
    """The marker in the footer lets the publisher find earlier pins of the same board."""
    stamp = snapshot.generated_at.strftime("%Y-%m-%d %H:%M UTC")
    return f"{snapshot.marker} • updated {stamp}"


def create_leaderboard_embeds(snapshot: LeaderboardSnapshot) -> List[discord.Embed]:
    """
    One embed per section, sized to fit a single message.

    Args:
        snapshot: Leaderboard to render

    Returns:
        List of discord.Embed objects to send together
    """
    titles = [s.title[:EMBED_TITLE_LIMIT] for s in snapshot.sections]
    footer = leaderboard_footer(snapshot)

    budget = EMBED_TOTAL_LIMIT - sum(len(t) for t in titles) - len(footer) - EMBED_SAFETY_MARGIN
    bodies = render_sections(
        snapshot.sections,
        budget,
        per_section_limit=EMBED_DESCRIPTION_LIMIT,
        with_titles=False,
    )

    embeds: List[discord.Embed] = []
    for title, body in zip(titles, bodies):
        embeds.append(discord.Embed(
            title=title,
            description=body or None,
            color=COLOR_GOLD,
        ))

    if embeds:
        embeds[-1].set_footer(text=footer)
        embeds[-1].timestamp = snapshot.generated_at
    return embeds


def embeds_size(embeds: List[discord.Embed]) -> int:
    """Combined character count as Discord measures it for one message."""
    return sum(len(e) for e in embeds)


def create_trade_logged_embed(trade: TradeRecord, note: Optional[str] = None) -> discord.Embed:
    """Confirmation embed for a manually added trade."""
    is_short = trade.side == Side.SHORT
    emoji = "🔴" if is_short else "🟢"
    color = COLOR_SHORT if is_short else COLOR_LONG
    if trade.side is None:
        color = COLOR_NEUTRAL

    symbol = trade.symbol or "?"
    side = trade.side.value if trade.side else ""
    title = f"{emoji} {symbol} {side}".strip()

    embed = discord.Embed(
        title=title,
        description=note or f"Trade logged for **{trade.trader}**.",
        color=color,
        timestamp=trade.timestamp,
    )

    levels = []
    if trade.entry_raw:
        levels.append(f"**Entry:** {trade.entry_raw}")
    if trade.exit_raw:
        levels.append(f"**Exit:** {trade.exit_raw}")
    levels.append(f"**Leverage:** {trade.leverage or 1}x")
    embed.add_field(name="Levels", value="\n".join(levels), inline=False)

    embed.add_field(name="PnL", value=f"**{trade.pnl_percent:+.2f}%**", inline=True)
    embed.set_footer(text=f"Trade ID: {trade.source_id}")
    return embed
