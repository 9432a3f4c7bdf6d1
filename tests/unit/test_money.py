"""Unit tests for integer-cent money helpers."""

from decimal import Decimal

from casehub.services.money import apply_rate, line_total_cents


def test_line_total_is_exact():
    assert line_total_cents(10, 1250) == 12500
    assert line_total_cents(1, 0) == 0


def test_apply_rate_rounds_half_up():
    assert apply_rate(18000, Decimal("0.15")) == 2700
    # 333 * 0.15 = 49.95
    assert apply_rate(333, Decimal("0.15")) == 50
    # 10 * 0.05 = 0.5
    assert apply_rate(10, Decimal("0.05")) == 1
    assert apply_rate(9, Decimal("0.05")) == 0


def test_zero_rate():
    assert apply_rate(12345, Decimal("0")) == 0
