"""
Household Ledger - Source Package

The expense-sharing ledger and settlement engine of a household-finance
backend: cost splitting, group balances and debt simplification.

DESIGN PRINCIPLES:
1. Balances are a projection, never a stored running total
2. Fail early, fail visibly
3. No silent corrections
4. Every mutation must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Household Ledger Team"
