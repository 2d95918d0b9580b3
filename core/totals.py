"""
Derived document totals.

Totals are always computed here from their components. Clients send the
components only; the stored total is never an independent source of truth.
Amounts are Decimal with two places, matching NUMERIC(12,2) columns.
"""

from decimal import Decimal, ROUND_HALF_UP

_CENT = Decimal("0.01")


def to_money(value: Decimal | int | str) -> Decimal:
    """Quantize to cents, rounding half away from zero."""
    return Decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP)


def tax_from_rate(subtotal: Decimal, tax_rate: Decimal) -> Decimal:
    """
    Tax for a percentage rate.

    Args:
        subtotal: Pre-tax amount
        tax_rate: Percentage, e.g. Decimal("8.25") for 8.25%
    """
    return to_money(Decimal(subtotal) * Decimal(tax_rate) / Decimal(100))


def rated_totals(subtotal: Decimal, tax_rate: Decimal) -> tuple[Decimal, Decimal, Decimal]:
    """(subtotal, tax_amount, total_amount) for rate-taxed documents (estimates, invoices)."""
    subtotal = to_money(subtotal)
    tax_amount = tax_from_rate(subtotal, tax_rate)
    return subtotal, tax_amount, subtotal + tax_amount


def summed_total(*components: Decimal) -> Decimal:
    """Total of amount components (work order costs, purchase order subtotal + tax)."""
    return sum((to_money(c) for c in components), Decimal("0.00"))
