"""
Grammar for the order commands.

    /buy  <PAIR> <AMOUNT>[%]
    /sell <PAIR> <AMOUNT>[%]

PAIR is one or more ASCII word characters, AMOUNT is an unsigned integer or
decimal (no sign, no exponent). A trailing '%' glued to the amount switches
to percent-of-position sizing. Nothing may follow the amount.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from crypto_control_bot.core.types.trading import ParsedOrderIntent, Side, SizingMode
from crypto_control_bot.utils.exceptions import ParseError, ValidationError

_DIGITS = frozenset("0123456789")


@dataclass(frozen=True)
class OrderGrammar:
    keyword: str
    side: Side
    usage: str


@dataclass(frozen=True)
class _Tokens:
    pair: str
    amount: str
    percent: bool


def _is_word(token: str) -> bool:
    return bool(token) and all(ch.isascii() and (ch.isalnum() or ch == "_") for ch in token)


def _is_number(token: str) -> bool:
    whole, dot, frac = token.partition(".")
    if not whole or not set(whole) <= _DIGITS:
        return False
    if dot:
        return bool(frac) and set(frac) <= _DIGITS
    return True


class OrderCommandParser:
    """Turns '/buy btcusdt 50%' into a ParsedOrderIntent."""

    def __init__(self) -> None:
        self._grammars: dict[Side, OrderGrammar] = {
            Side.BUY: OrderGrammar(
                keyword="buy",
                side=Side.BUY,
                usage="Invalid command.\nExamples of usage:\n`/buy BTCUSDT 100`\n\n`/buy BTCUSDT 50%`",
            ),
            Side.SELL: OrderGrammar(
                keyword="sell",
                side=Side.SELL,
                usage="Invalid command.\nExample of usage:\n`/sell BTCUSDT 100`\n\n`/sell BTCUSDT 50%`",
            ),
        }

    def usage(self, side: Side) -> str:
        return self._grammars[side].usage

    def parse(self, side: Side, text: str) -> ParsedOrderIntent:
        """
        Raises ParseError (with the usage text) when `text` is not a sentence of
        the grammar, ValidationError when the amount is not strictly positive.
        """
        grammar = self._grammars[side]
        tokens = self._match(grammar, text)
        try:
            amount = Decimal(tokens.amount)
        except InvalidOperation as exc:
            raise ParseError(f"bad amount {tokens.amount!r}", usage=grammar.usage) from exc

        if amount <= 0:
            raise ValidationError("Invalid amount")

        return ParsedOrderIntent(
            side=grammar.side,
            pair=tokens.pair.upper(),
            amount=amount,
            sizing_mode=SizingMode.PERCENT_OF_POSITION if tokens.percent else SizingMode.ABSOLUTE,
        )

    def _match(self, grammar: OrderGrammar, text: str) -> _Tokens:
        parts = (text or "").split()
        if len(parts) != 3:
            raise ParseError(f"expected 3 tokens, got {len(parts)}", usage=grammar.usage)

        keyword, pair, amount = parts
        if keyword.lower().split("@", 1)[0] != f"/{grammar.keyword}":
            raise ParseError(f"unexpected keyword {keyword!r}", usage=grammar.usage)
        if not _is_word(pair):
            raise ParseError(f"bad pair {pair!r}", usage=grammar.usage)

        percent = amount.endswith("%")
        if percent:
            amount = amount[:-1]
        if not _is_number(amount):
            raise ParseError(f"bad amount {amount!r}", usage=grammar.usage)

        return _Tokens(pair=pair, amount=amount, percent=percent)
