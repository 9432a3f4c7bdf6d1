"""Integer-cent money arithmetic.

Amounts are whole cents (``int``); rates are ``Decimal`` fractions such as
``Decimal("0.15")``. Rounding is half-up to the cent.
"""

from decimal import Decimal, ROUND_HALF_UP

_CENT = Decimal("1")


def line_total_cents(quantity: int, unit_price_cents: int) -> int:
    return quantity * unit_price_cents


def apply_rate(amount_cents: int, rate: Decimal) -> int:
    """Return ``amount_cents * rate`` rounded half-up to a whole cent."""
    return int((Decimal(amount_cents) * Decimal(rate)).quantize(_CENT, rounding=ROUND_HALF_UP))
