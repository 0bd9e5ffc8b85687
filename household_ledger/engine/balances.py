"""
Balance Ledger

Projects a group's expenses, shares and payments into one net balance per
user. The projection is a single commutative pass, so the order of the
input lists does not change the result.

Sign convention (positive = the group owes this user):
- paying an expense is money in for the payer
- a share is money out for its holder
- a payment made is money in for the payer and money out for the payee,
  so a debtor who pays a creditor moves both of them toward zero
"""

from decimal import Decimal
from typing import Iterable
from uuid import UUID

from household_ledger.errors import CurrencyMismatchError
from household_ledger.models.expense import (
    DEFAULT_CURRENCY,
    Expense,
    ExpenseShare,
    GroupBalance,
    Payment,
    UserBalance,
)


def compute_group_balances(
    group_id: UUID,
    expenses: Iterable[Expense],
    shares: Iterable[ExpenseShare],
    payments: Iterable[Payment],
    default_currency: str = DEFAULT_CURRENCY,
) -> GroupBalance:
    """
    Aggregate a snapshot of ledger events into a GroupBalance.

    Events belonging to other groups are ignored. Balances are ordered by
    user id so that repeated calls on the same snapshot are identical.

    Raises:
        CurrencyMismatchError: if the group's events use several currencies
    """
    running: dict[UUID, Decimal] = {}
    currencies: set[str] = set()
    expense_ids: set[UUID] = set()

    def add(user_id: UUID, amount: Decimal) -> None:
        running[user_id] = running.get(user_id, Decimal("0")) + amount

    for expense in expenses:
        if expense.group_id != group_id:
            continue
        expense_ids.add(expense.id)
        currencies.add(expense.currency)
        add(expense.paid_by, expense.amount)

    for share in shares:
        if share.expense_id not in expense_ids:
            continue
        add(share.user_id, -share.amount)

    for payment in payments:
        if payment.group_id != group_id:
            continue
        currencies.add(payment.currency)
        add(payment.from_user, payment.amount)
        add(payment.to_user, -payment.amount)

    if len(currencies) > 1:
        raise CurrencyMismatchError(
            f"Group {group_id} mixes currencies: {', '.join(sorted(currencies))}"
        )
    currency = currencies.pop() if currencies else default_currency

    return GroupBalance(
        group_id=group_id,
        currency=currency,
        balances=[
            UserBalance(user_id=user_id, net_balance=running[user_id])
            for user_id in sorted(running, key=str)
        ],
    )


def user_balance(group_balance: GroupBalance, user_id: UUID) -> Decimal:
    """A single user's net balance; zero for users without activity."""
    return group_balance.balance_for(user_id)
