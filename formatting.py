"""
Leaderboard text formatting for Discord.

Provides:
- One-line rows for trades and trader totals
- Size-bounded rendering: a list always fits its character budget,
  dropping links first, then rows, then hard-truncating
- Budget sharing across several lists posted in one message
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from leaderboard import LeaderboardEntry, LeaderboardSection, TraderTotal


MEDALS = {1: "🥇", 2: "🥈", 3: "🥉"}
ROW_SHRINK_FACTOR = 0.9


@dataclass(frozen=True)
class FormattedRow:
    text: str
    link: Optional[str] = None

    def render(self, with_link: bool = True) -> str:
        if with_link and self.link:
            return f"{self.text} · [post]({self.link})"
        return self.text


def _rank_label(rank: int) -> str:
    return MEDALS.get(rank, f"**{rank}.**")


def _fmt_pct(value: float) -> str:
    return f"{value:+.2f}%"


def format_trade_row(entry: LeaderboardEntry) -> FormattedRow:
    """
    Example:
        🥇 alice · BTC LONG 10x · `100 → 110` · **+12.30%**
    """
    t = entry.trade
    parts = [f"{_rank_label(entry.rank)} {t.trader}"]

    desc = " ".join(
        p for p in (
            t.symbol,
            t.side.value if t.side else None,
            f"{t.leverage}x" if t.leverage and t.leverage > 1 else None,
        ) if p
    )
    if desc:
        parts.append(desc)

    if t.entry_raw and t.exit_raw:
        parts.append(f"`{t.entry_raw} → {t.exit_raw}`")

    parts.append(f"**{_fmt_pct(t.pnl_percent)}**")
    return FormattedRow(text=" · ".join(parts), link=t.source_link)


def format_total_row(total: TraderTotal) -> FormattedRow:
    noun = "trade" if total.trades == 1 else "trades"
    return FormattedRow(
        text=f"{_rank_label(total.rank)} {total.trader} · **{_fmt_pct(total.total)}** ({total.trades} {noun})"
    )


def section_rows(section: LeaderboardSection) -> List[FormattedRow]:
    if section.kind == "totals":
        return [format_total_row(t) for t in section.entries]
    return [format_trade_row(e) for e in section.entries]


def _truncate(text: str, max_len: int) -> str:
    """Truncate text to max length."""
    if len(text) <= max_len:
        return text
    if max_len <= 3:
        return text[:max_len]
    return text[:max_len-3] + "..."


def _render(title: Optional[str], rows: Sequence[FormattedRow], count: int, with_links: bool) -> str:
    lines: List[str] = [title] if title else []
    lines.extend(row.render(with_links) for row in rows[:count])
    return "\n".join(lines)


def render_bounded(
    rows: Sequence[FormattedRow],
    title: Optional[str],
    max_chars: int,
    empty_text: str = "_No trades yet._",
) -> str:
    """
    Render rows under a title without exceeding max_chars.

    Degradation order:
      1. all rows with links
      2. all rows without links
      3. ~10% fewer rows per step (links stay off)
      4. hard truncation
    Never raises; returns "" only when max_chars <= 0.
    """
    if max_chars <= 0:
        return ""

    if not rows:
        text = f"{title}\n{empty_text}" if title else empty_text
        return _truncate(text, max_chars)

    count = len(rows)
    text = _render(title, rows, count, with_links=True)
    if len(text) <= max_chars:
        return text

    text = _render(title, rows, count, with_links=False)
    if len(text) <= max_chars:
        return text

    while count > 1:
        count = min(count - 1, int(count * ROW_SHRINK_FACTOR))
        count = max(count, 1)
        text = _render(title, rows, count, with_links=False)
        if len(text) <= max_chars:
            return text

    return _truncate(text, max_chars)


def render_sections(
    sections: Sequence[LeaderboardSection],
    total_budget: int,
    per_section_limit: Optional[int] = None,
    with_titles: bool = True,
) -> List[str]:
    """
    Render several lists that share one size ceiling.

    Each section gets an equal share of what is still left, so budget a
    short list does not use flows on to the lists after it.
    """
    rendered: List[str] = []
    remaining = max(0, total_budget)

    for i, section in enumerate(sections):
        share = remaining // (len(sections) - i)
        if per_section_limit is not None:
            share = min(share, per_section_limit)

        text = render_bounded(
            section_rows(section),
            section.title if with_titles else None,
            share,
            empty_text=section.empty_text,
        )
        remaining -= len(text)
        rendered.append(text)

    return rendered
