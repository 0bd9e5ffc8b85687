"""
Ledger engine package.

Pure functions over explicit inputs: no I/O, no shared state apart from
the optional BalanceCache.
"""

from household_ledger.engine.balances import compute_group_balances, user_balance
from household_ledger.engine.cache import BalanceCache
from household_ledger.engine.debts import debts_involving, resolve_debts
from household_ledger.engine.settlement import record_payment, select_discharged_shares
from household_ledger.engine.shares import ShareCalculator, compute_shares, normalize_currency

__all__ = [
    "BalanceCache",
    "ShareCalculator",
    "compute_group_balances",
    "compute_shares",
    "debts_involving",
    "normalize_currency",
    "record_payment",
    "resolve_debts",
    "select_discharged_shares",
    "user_balance",
]
