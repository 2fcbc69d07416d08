"""
Cross-field arithmetic checks for invoices.

Derived amounts (line totals, VAT, invoice totals) are compared after rounding
both sides to cents, and may differ by at most one cent.
"""

import math
from typing import List

TOLERANCE = 0.01
# Absorbs binary floating point error in the difference of two cent values.
FLOAT_EPSILON = 1e-9

LINE_ITEM_TOTAL_MESSAGE = (
    'Line item calculation inconsistent: quantity × unit_price should equal total'
)
VAT_AMOUNT_MESSAGE = (
    'VAT calculation inconsistent: subtotal × vat_rate / 100 should equal vat_amount'
)
INVOICE_TOTAL_MESSAGE = (
    'Total calculation inconsistent: subtotal + vat_amount should equal total_amount'
)


def round_to_cents(value: float) -> float:
    # Halves round upwards, so 0.125 -> 0.13 and -0.125 -> -0.12.
    scaled = value * 100 + 0.5
    if not math.isfinite(scaled):
        return scaled
    return math.floor(scaled) / 100


def amounts_agree(expected: float, actual: float) -> bool:
    """
    True when the cent-rounded amounts differ by at most one cent.

    The comparison allows ``FLOAT_EPSILON`` on top of the one-cent tolerance,
    so a difference of exactly one cent passes even when binary floating
    point makes it come out slightly above 0.01 (``1.02 - 1.01``). A strict
    ``> 0.01`` comparison would reject such pairs.
    """
    return abs(round_to_cents(expected) - round_to_cents(actual)) <= TOLERANCE + FLOAT_EPSILON


def line_item_total_consistent(quantity: float, unit_price: float, total: float) -> bool:
    return amounts_agree(quantity * unit_price, total)


def vat_amount_consistent(subtotal: float, vat_rate: float, vat_amount: float) -> bool:
    return amounts_agree(subtotal * vat_rate / 100, vat_amount)


def invoice_total_consistent(subtotal: float, vat_amount: float, total_amount: float) -> bool:
    return amounts_agree(subtotal + vat_amount, total_amount)


def check_invoice_amounts(
    subtotal: float, vat_rate: float, vat_amount: float, total_amount: float
) -> List[str]:
    """Return the calculation errors for an invoice's four amounts, VAT first."""
    errors = []
    if not vat_amount_consistent(subtotal, vat_rate, vat_amount):
        errors.append(VAT_AMOUNT_MESSAGE)
    if not invoice_total_consistent(subtotal, vat_amount, total_amount):
        errors.append(INVOICE_TOTAL_MESSAGE)
    return errors


__all__ = [
    'TOLERANCE',
    'LINE_ITEM_TOTAL_MESSAGE',
    'VAT_AMOUNT_MESSAGE',
    'INVOICE_TOTAL_MESSAGE',
    'round_to_cents',
    'amounts_agree',
    'line_item_total_consistent',
    'vat_amount_consistent',
    'invoice_total_consistent',
    'check_invoice_amounts',
]
