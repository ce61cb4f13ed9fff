"""
Pricing engine.

Pure functions over integer cents. Decimal values only appear at the edges:
unit prices and configuration come in as Decimal, results go out as Decimal
quantized to two places.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, NamedTuple, Tuple

DEFAULT_ADDON_SURCHARGE = Decimal("2.00")
DEFAULT_TAX_RATE = Decimal("0.08")

CENT = Decimal("0.01")
BASIS_POINTS = 10000


class PriceLine(NamedTuple):
    unit_price: Decimal
    quantity: int
    addons_count: int = 0


@dataclass(frozen=True)
class PriceBreakdown:
    line_totals: Tuple[Decimal, ...]
    subtotal: Decimal
    tax: Decimal
    total: Decimal


def to_cents(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(CENT)


def rate_to_basis_points(rate: Decimal) -> int:
    return int((Decimal(rate) * BASIS_POINTS).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def line_total_cents(unit_cents: int, quantity: int, addons_count: int, surcharge_cents: int) -> int:
    if quantity < 1:
        raise ValueError("quantity must be at least 1")
    if unit_cents < 0 or addons_count < 0:
        raise ValueError("price and addon count must not be negative")
    return (unit_cents + addons_count * surcharge_cents) * quantity


def tax_cents(subtotal_cents: int, tax_bps: int) -> int:
    # round half up to the cent
    return (subtotal_cents * tax_bps + BASIS_POINTS // 2) // BASIS_POINTS


def price_lines(
    lines: Iterable[PriceLine],
    addon_surcharge: Decimal = DEFAULT_ADDON_SURCHARGE,
    tax_rate: Decimal = DEFAULT_TAX_RATE,
) -> PriceBreakdown:
    surcharge_cents = to_cents(addon_surcharge)
    tax_bps = rate_to_basis_points(tax_rate)

    totals: List[int] = [
        line_total_cents(to_cents(line.unit_price), line.quantity, line.addons_count, surcharge_cents)
        for line in lines
    ]
    subtotal = sum(totals)
    tax = tax_cents(subtotal, tax_bps)
    return PriceBreakdown(
        line_totals=tuple(from_cents(c) for c in totals),
        subtotal=from_cents(subtotal),
        tax=from_cents(tax),
        total=from_cents(subtotal + tax),
    )
