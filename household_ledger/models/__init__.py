"""
Data Models Package

This package contains all Pydantic models used in the Household Ledger.
All events and projections flowing through the ledger conform to these
schemas.
"""

from household_ledger.models.expense import (
    DEFAULT_CURRENCY,
    BySharesSplit,
    DebtSummary,
    EqualSplit,
    ExactSplit,
    Expense,
    ExpenseCreation,
    ExpenseFilter,
    ExpenseInfo,
    ExpenseShare,
    ExpenseShareInfo,
    GroupBalance,
    Payment,
    PercentageSplit,
    SettleDebt,
    SplitPolicy,
    UserBalance,
    utc_now,
)
from household_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from household_ledger.models.money import (
    CURRENCY_TOLERANCE,
    amounts_match,
    is_zero,
    round_to_cents,
)

__all__ = [
    # Expense models
    "DEFAULT_CURRENCY",
    "BySharesSplit",
    "DebtSummary",
    "EqualSplit",
    "ExactSplit",
    "Expense",
    "ExpenseCreation",
    "ExpenseFilter",
    "ExpenseInfo",
    "ExpenseShare",
    "ExpenseShareInfo",
    "GroupBalance",
    "Payment",
    "PercentageSplit",
    "SettleDebt",
    "SplitPolicy",
    "UserBalance",
    "utc_now",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Money helpers
    "CURRENCY_TOLERANCE",
    "amounts_match",
    "is_zero",
    "round_to_cents",
]
