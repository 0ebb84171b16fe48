"""
Decimal helpers for order sizing and balance reports.

Amounts typed by operators and quantities returned by the engine are kept as
Decimal end to end; floats only appear at the engine boundary and are
converted with `dec()`.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Union

NumberLike = Union[Decimal, int, float, str]

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def dec(x: NumberLike) -> Decimal:
    """
    Convert to Decimal.

    - Decimal -> as is
    - float -> via str() so 0.1 stays 0.1
    - int -> exact
    - str -> parsed; raises InvalidOperation on garbage, never returns NaN/Inf
    """
    if isinstance(x, Decimal):
        d = x
    elif isinstance(x, float):
        d = Decimal(repr(x))
    elif isinstance(x, int):
        return Decimal(x)
    else:
        d = Decimal(str(x).strip())
    if not d.is_finite():
        raise InvalidOperation(f"not a finite number: {x!r}")
    return d


def pct_of(value: NumberLike, percent: NumberLike) -> Decimal:
    """`percent`% of `value`: pct_of(1.5, 50) == 0.75."""
    return dec(value) * dec(percent) / HUNDRED
