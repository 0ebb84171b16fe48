from decimal import Decimal, InvalidOperation

import pytest

from crypto_control_bot.utils.decimal import dec, pct_of


def test_dec_keeps_float_text():
    assert dec(0.1) == Decimal("0.1")
    assert dec(" 12.50 ") == Decimal("12.50")
    assert dec(3) == Decimal(3)


@pytest.mark.parametrize("bad", ["NaN", "inf", "abc"])
def test_dec_rejects_non_finite(bad):
    with pytest.raises(InvalidOperation):
        dec(bad)


def test_pct_of():
    assert pct_of("1.5", 50) == Decimal("0.75")
    assert pct_of(1000, "12.5") == Decimal("125")
