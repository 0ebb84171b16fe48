"""
Trading pair names.

Configured pairs look like `BTCUSDT` or `btc/usdt`. The quote currency is
found either after a separator or as a known suffix, longest match first
(`FDUSD` before `USD`).
"""
from __future__ import annotations

import re
from typing import NamedTuple

KNOWN_QUOTES: tuple[str, ...] = tuple(
    sorted({"USDT", "USDC", "BUSD", "FDUSD", "TUSD", "DAI", "USD", "EUR", "TRY", "BTC", "ETH", "BNB"},
           key=lambda q: (-len(q), q))
)

_RENAMED = {"XBT": "BTC", "XETH": "ETH", "BCC": "BCH"}
_SEPARATOR_RE = re.compile(r"[/\-_:]+")
_JUNK_RE = re.compile(r"[^A-Z0-9/\-_:]")


class Pair(NamedTuple):
    asset: str
    quote: str

    def __str__(self) -> str:
        return f"{self.asset}{self.quote}"


def _canon(code: str) -> str:
    return _RENAMED.get(code, code)


def parse_pair(symbol: str) -> Pair:
    """`Pair("", "")` for empty input, `Pair(asset, "")` when no quote is recognised."""
    s = _JUNK_RE.sub("", (symbol or "").strip().upper())
    parts = [p for p in _SEPARATOR_RE.split(s) if p]
    if not parts:
        return Pair("", "")

    if len(parts) > 1 and _canon(parts[-1]) in KNOWN_QUOTES:
        return Pair(_canon("".join(parts[:-1])), _canon(parts[-1]))

    joined = "".join(parts)
    for quote in KNOWN_QUOTES:
        if len(joined) > len(quote) and joined.endswith(quote):
            return Pair(_canon(joined[: -len(quote)]), quote)
    return Pair(_canon(joined), "")


def split(symbol: str) -> tuple[str, str]:
    """(asset, quote) of a pair: split("BTCUSDT") == ("BTC", "USDT")."""
    pair = parse_pair(symbol)
    return pair.asset, pair.quote


def normalize_pair(symbol: str) -> str:
    """Exchange-style pair without separators: 'btc/usdt' -> 'BTCUSDT'."""
    return str(parse_pair(symbol))
