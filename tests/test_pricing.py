from decimal import Decimal

import pytest

from pricing import PriceLine, from_cents, price_lines, tax_cents, to_cents


def test_pizza_with_one_addon_scenario():
    result = price_lines([PriceLine(Decimal("16.00"), 2, 1)], Decimal("2.00"), Decimal("0.08"))

    assert result.line_totals == (Decimal("36.00"),)
    assert result.subtotal == Decimal("36.00")
    assert result.tax == Decimal("2.88")
    assert result.total == Decimal("38.88")


def test_multiple_lines_are_summed_before_tax():
    result = price_lines(
        [
            PriceLine(Decimal("18.50"), 1, 0),
            PriceLine(Decimal("9.50"), 2, 2),
        ]
    )

    assert result.line_totals == (Decimal("18.50"), Decimal("27.00"))
    assert result.subtotal == Decimal("45.50")
    assert result.tax == Decimal("3.64")
    assert result.total == Decimal("49.14")


def test_empty_cart_prices_to_zero():
    result = price_lines([])

    assert result.subtotal == Decimal("0.00")
    assert result.tax == Decimal("0.00")
    assert result.total == Decimal("0.00")


def test_no_float_drift_on_small_amounts():
    result = price_lines([PriceLine(Decimal("0.10"), 3)], tax_rate=Decimal("0"))

    assert result.total == Decimal("0.30")
    assert str(result.total) == "0.30"


def test_tax_rounds_half_up_to_the_cent():
    assert tax_cents(10, 500) == 1
    assert tax_cents(9, 500) == 0
    assert price_lines([PriceLine(Decimal("0.10"), 1)], tax_rate=Decimal("0.05")).tax == Decimal("0.01")


def test_cents_conversion():
    assert to_cents(Decimal("16.00")) == 1600
    assert to_cents(Decimal("0.015")) == 2
    assert from_cents(3888) == Decimal("38.88")


def test_same_input_same_output():
    lines = [PriceLine(Decimal("12.00"), 3, 2), PriceLine(Decimal("16.00"), 1, 0)]

    assert price_lines(lines) == price_lines(list(lines))


@pytest.mark.parametrize("line", [PriceLine(Decimal("1.00"), 0), PriceLine(Decimal("-1.00"), 1)])
def test_invalid_lines_are_rejected(line):
    with pytest.raises(ValueError):
        price_lines([line])
