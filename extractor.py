"""
Trade extraction from free-text reports.

Reads side, symbol, entry/exit, leverage and PnL out of loosely written
trade posts such as:

    "BTC LONG 10x entry: 100 exit: 110 PnL: +12.3%"
    "ETH SHORT entry 200 exit 180"
    embed author "alice +4.2%"  (trade-sharing apps)

PnL is resolved through PNL_STRATEGIES in order; the first one that finds
a value wins. Adding a new text convention means appending one function.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Pattern, Sequence, Tuple, Union

from normalize import SIGN_CLASS, normalize_number, parse_amount
from pnl import PNL_CLAMP_PCT, Side, clamp_pnl, leveraged_pnl


SIDE_RE = re.compile(r"\b(LONG|SHORT)\b", re.IGNORECASE)
LEVERAGE_RE = re.compile(r"(?<![\d.,])(\d+(?:[.,]\d+)?)\s*[x×](?![A-Za-z])", re.IGNORECASE)
SYMBOL_RE = re.compile(r"\b([A-Z]{2,12})(?:-?PERP|USDT|USDC|USD)?\b")
SLASH_SYMBOL_RE = re.compile(r"\b([A-Za-z]{2,12})/[A-Za-z]{2,6}\b")
QUOTE_SUFFIX_RE = re.compile(r"(USDT|USDC|USD)$")

_PRICE = r"(" + SIGN_CLASS + r"?\$?\d[\d.,]*[kK]?)"


def _level_patterns(*keywords: str) -> List[Pattern[str]]:
    return [
        re.compile(r"\b(?:" + keyword + r")\b\s*[:\-]?\s*" + _PRICE, re.IGNORECASE)
        for keyword in keywords
    ]


# Strongest keyword first: an explicit "entry" beats a casual "in"
ENTRY_PATTERNS = _level_patterns("entry", "ingang", "open", "in")
EXIT_PATTERNS = _level_patterns("exit", "close|sluit", "out")

_PERCENT = r"(" + SIGN_CLASS + r"?[\d.,]+)\s*%"
PERCENT_RE = re.compile(_PERCENT)
LABELED_PNL_RE = re.compile(
    r"(?<![\w&])(?:pnl|p&l|roi|return)\b\s*(?:[:=]|-(?=\s))?\s*" + _PERCENT,
    re.IGNORECASE,
)

# Uppercase words that show up in trade posts but are never tickers
NOT_SYMBOLS = frozenset({
    "LONG", "SHORT", "PNL", "ROI", "TP", "SL", "BE", "ENTRY", "EXIT",
    "CLOSE", "CLOSED", "OPEN", "IN", "OUT", "USD", "USDT", "USDC", "PERP",
    "WIN", "LOSS", "PROFIT", "TRADE", "RESULT", "DCA", "SPOT", "LEV",
})

_CODE_BLOCK_RE = re.compile(r"```.*?```", re.DOTALL)
_CUSTOM_EMOJI_RE = re.compile(r"<a?:[A-Za-z0-9_]+:\d+>")
_NEWLINES_RE = re.compile(r"\n+")


@dataclass
class PartialTrade:
    """Whatever could be read from a post. pnl is always set on returned objects."""
    side: Optional[Side] = None
    symbol: Optional[str] = None
    entry: Optional[float] = None
    exit: Optional[float] = None
    entry_raw: Optional[str] = None
    exit_raw: Optional[str] = None
    leverage: Optional[int] = None
    pnl: Optional[float] = None
    pnl_source: Optional[str] = None


# ==== Field finders ====

def find_side(text: str) -> Optional[Side]:
    m = SIDE_RE.search(text)
    return Side(m.group(1).upper()) if m else None


def find_leverage(text: str) -> Optional[int]:
    m = LEVERAGE_RE.search(text)
    if not m:
        return None
    value = normalize_number(m.group(1))
    if value is None or value < 1:
        return None
    return int(value)


def find_symbol(text: str) -> Optional[str]:
    """First uppercase ticker, quote suffix stripped; BASE/QUOTE as fallback."""
    for m in SYMBOL_RE.finditer(text):
        token = m.group(1)
        stripped = QUOTE_SUFFIX_RE.sub("", token)
        if not stripped or stripped in NOT_SYMBOLS or token in NOT_SYMBOLS:
            continue
        return stripped

    for m in SLASH_SYMBOL_RE.finditer(text):
        base = m.group(1).upper()
        if base not in NOT_SYMBOLS:
            return base
    return None


def _clean_raw(raw: str) -> str:
    return raw.rstrip(".,")


def find_entry_exit(text: str) -> Tuple[Optional[float], Optional[float], Optional[str], Optional[str]]:
    """Returns (entry, exit, entry_raw, exit_raw)."""
    entry_raw = _first_level(ENTRY_PATTERNS, text)
    exit_raw = _first_level(EXIT_PATTERNS, text)
    entry = parse_amount(entry_raw) if entry_raw else None
    exit = parse_amount(exit_raw) if exit_raw else None
    return entry, exit, entry_raw, exit_raw


def _first_level(patterns: Sequence[Pattern[str]], text: str) -> Optional[str]:
    for pattern in patterns:
        m = pattern.search(text)
        if m:
            return _clean_raw(m.group(1))
    return None


def find_percentages(text: str) -> List[float]:
    values = []
    for m in PERCENT_RE.finditer(text):
        value = normalize_number(m.group(1))
        if value is not None:
            values.append(value)
    return values


# ==== PnL strategies ====

@dataclass
class PnlContext:
    text: str
    author_fragments: Sequence[str]
    trade: PartialTrade
    clamp: float = PNL_CLAMP_PCT


def pnl_from_author(ctx: PnlContext) -> Optional[float]:
    """'name +4.2%' convention used by trade-sharing embeds."""
    for fragment in ctx.author_fragments:
        m = PERCENT_RE.search(fragment or "")
        if not m:
            continue
        value = normalize_number(m.group(1))
        if value is not None and abs(value) <= ctx.clamp:
            return value
    return None


def pnl_from_label(ctx: PnlContext) -> Optional[float]:
    m = LABELED_PNL_RE.search(ctx.text)
    return normalize_number(m.group(1)) if m else None


def pnl_from_single_percent(ctx: PnlContext) -> Optional[float]:
    """
    Only an unambiguous lone percentage counts.

    Author-name percentages are also part of the text. Reaching this point
    means the author strategy rejected them, so they are not counted again.
    """
    values = find_percentages(ctx.text)
    for fragment in ctx.author_fragments:
        for rejected in find_percentages(fragment or ""):
            if rejected in values:
                values.remove(rejected)
    return values[0] if len(values) == 1 else None


def pnl_from_prices(ctx: PnlContext) -> Optional[float]:
    t = ctx.trade
    if t.side is None:
        return None
    return leveraged_pnl(t.side, t.entry, t.exit, t.leverage)


PNL_STRATEGIES: List[Tuple[str, Callable[[PnlContext], Optional[float]]]] = [
    ("author", pnl_from_author),
    ("label", pnl_from_label),
    ("single_percent", pnl_from_single_percent),
    ("computed", pnl_from_prices),
]


def resolve_pnl(ctx: PnlContext) -> Tuple[Optional[float], Optional[str]]:
    for tag, strategy in PNL_STRATEGIES:
        value = strategy(ctx)
        if value is not None:
            return value, tag
    return None, None


def extract_trade(
    text: Union[str, Sequence[str]],
    author_fragments: Sequence[str] = (),
    clamp: float = PNL_CLAMP_PCT,
) -> Optional[PartialTrade]:
    """
    Extract a trade from text (a string or a list of text fragments).

    Returns None when no PnL can be established - most messages are
    simply not trade reports.
    """
    if not isinstance(text, str):
        text = " ".join(part for part in text if part)
    if not text and not author_fragments:
        return None

    entry, exit, entry_raw, exit_raw = find_entry_exit(text)
    trade = PartialTrade(
        side=find_side(text),
        symbol=find_symbol(text),
        entry=entry,
        exit=exit,
        entry_raw=entry_raw,
        exit_raw=exit_raw,
        leverage=find_leverage(text),
    )

    pnl, source = resolve_pnl(PnlContext(text, author_fragments, trade, clamp))
    pnl = clamp_pnl(pnl, clamp)
    if pnl is None:
        return None

    trade.pnl = pnl
    trade.pnl_source = source
    return trade


# ==== Discord messages ====

def _clean_part(text: str) -> str:
    text = _CODE_BLOCK_RE.sub(" ", text)
    text = text.replace("`", " ").replace("**", " ")
    text = _CUSTOM_EMOJI_RE.sub(" ", text)
    text = _NEWLINES_RE.sub(" ", text)
    return text.strip()


def author_fragments(message) -> List[str]:
    """Embed author names, the usual home of 'name +x.xx%'."""
    names = []
    for embed in getattr(message, "embeds", None) or []:
        name = getattr(getattr(embed, "author", None), "name", None)
        if name:
            names.append(_clean_part(name))
    return names


def gather_parts(message) -> List[str]:
    """All readable text of a message: content plus every embed text slot."""
    parts = []
    if getattr(message, "content", None):
        parts.append(message.content)

    for embed in getattr(message, "embeds", None) or []:
        parts.append(getattr(getattr(embed, "author", None), "name", None))
        parts.append(getattr(embed, "title", None))
        parts.append(getattr(embed, "description", None))
        for field in getattr(embed, "fields", None) or []:
            parts.append(getattr(field, "name", None))
            parts.append(getattr(field, "value", None))
        parts.append(getattr(getattr(embed, "footer", None), "text", None))

    cleaned = [_clean_part(p) for p in parts if p]
    return [p for p in cleaned if p]


def trader_name(message) -> str:
    """Embed author name without its percentage, else the poster's display name."""
    for fragment in author_fragments(message):
        name = PERCENT_RE.sub("", fragment).strip(" -|:·•")
        if name:
            return name

    author = getattr(message, "author", None)
    return (
        getattr(author, "display_name", None)
        or getattr(author, "name", None)
        or "unknown"
    )


def extract_from_message(message, clamp: float = PNL_CLAMP_PCT) -> Optional[PartialTrade]:
    return extract_trade(gather_parts(message), author_fragments(message), clamp)
