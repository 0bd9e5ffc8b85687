"""
Currency helpers.

All money in the ledger is a Decimal. Equality and zero checks use a fixed
tolerance of one cent so that unrounded divisions (e.g. 100 / 3) still
balance at the public boundary.
"""

from decimal import ROUND_HALF_UP, Decimal

CURRENCY_TOLERANCE = Decimal("0.01")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def is_zero(amount: Decimal) -> bool:
    """True if the amount is within one cent of zero."""
    return abs(amount) <= CURRENCY_TOLERANCE


def amounts_match(left: Decimal, right: Decimal) -> bool:
    """True if two amounts differ by at most one cent."""
    return abs(left - right) <= CURRENCY_TOLERANCE


def round_to_cents(amount: Decimal) -> Decimal:
    """Round for display. Never used inside balance arithmetic."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)
