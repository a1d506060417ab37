"""
Number normalization for trade reports.

Traders type numbers every way imaginable:
- "1.234" or "1_234" (thousands grouping)
- "12,5" (comma decimal)
- "$100", "€ 2.500"
- "12.5k" (thousands suffix)
- "−3" (unicode minus) or "–3" (en-dash)

Everything here turns those strings into plain floats.
"""

from __future__ import annotations

import math
import re
from typing import Optional


MINUS_SIGNS = "−–"
SIGN_CLASS = r"[+\-−–]"

_WHITESPACE_RE = re.compile(r"\s+")
_QUOTES_RE = re.compile(r"[’‘‚]")
_CURRENCY_RE = re.compile(r"[€$]")
_GROUPING_RE = re.compile(r"(?<=\d)[._](?=\d{3}\b)")
_BARE_ZERO_RE = re.compile(r"(?:^|[^\d])0$")
_LEADING_FLOAT_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
_SUFFIX_RE = re.compile(r"^(" + SIGN_CLASS + r"?\d+(?:[.,]\d+)?)[kK]$")


def _drop_grouping(match: re.Match) -> str:
    # "0.125" is a decimal, not 125
    if _BARE_ZERO_RE.search(match.string[:match.start()]):
        return match.group(0)
    return ""


def normalize_number(raw) -> Optional[float]:
    """
    Canonicalize a loosely typed number into a float.

    Returns None when nothing numeric (and finite) can be read.
    """
    if raw is None:
        return None

    s = _WHITESPACE_RE.sub("", str(raw))
    s = _QUOTES_RE.sub("'", s)
    s = _CURRENCY_RE.sub("", s)
    for ch in MINUS_SIGNS:
        s = s.replace(ch, "-")
    s = _GROUPING_RE.sub(_drop_grouping, s)
    s = s.replace(",", ".", 1)

    m = _LEADING_FLOAT_RE.match(s)
    if not m:
        return None
    try:
        value = float(m.group(0))
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def format_number(value: float) -> str:
    """Render a float without a trailing '.0' for whole numbers."""
    if value.is_integer():
        return str(int(value))
    return repr(value)


def expand_suffix(raw):
    """
    Expand a trailing k/K suffix: "12.5k" -> "12500", "-3k" -> "-3000".

    Anything that is not a plain (optionally signed) number with a k suffix
    is returned unchanged.
    """
    if not isinstance(raw, str):
        return raw
    m = _SUFFIX_RE.match(raw.strip())
    if not m:
        return raw
    base = normalize_number(m.group(1))
    if base is None:
        return raw
    return format_number(round(base * 1000, 9))


def parse_amount(raw) -> Optional[float]:
    """Suffix expansion followed by normalization. "$64.2k" -> 64200.0"""
    if isinstance(raw, str):
        raw = _CURRENCY_RE.sub("", raw).strip()
    return normalize_number(expand_suffix(raw))
