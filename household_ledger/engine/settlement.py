"""
Settlement Recording

Builds the Payment event for a real-world transfer. It only checks that
the data is well-formed; whether the money actually moved is the caller's
concern.

A payment does NOT settle any ExpenseShare by itself. Shares are marked
settled only when the caller names the expenses the payment discharges
(see select_discharged_shares).
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Sequence
from uuid import UUID

from household_ledger.errors import (
    InvalidDischargeError,
    NonPositivePaymentError,
    SelfPaymentError,
)
from household_ledger.models.expense import Expense, ExpenseShare, Payment, utc_now
from household_ledger.models.money import round_to_cents


def record_payment(
    group_id: UUID,
    from_user: UUID,
    to_user: UUID,
    amount: Decimal,
    currency: str,
    description: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Payment:
    """
    Validate and build a Payment from debtor (from_user) to creditor (to_user).

    Raises:
        NonPositivePaymentError: amount <= 0
        SelfPaymentError: from_user == to_user
    """
    if amount <= 0:
        raise NonPositivePaymentError("Settlement amount must be positive")
    if from_user == to_user:
        raise SelfPaymentError("A user cannot settle a debt with themselves")

    currency = currency.strip().upper()
    return Payment(
        group_id=group_id,
        from_user=from_user,
        to_user=to_user,
        amount=amount,
        currency=currency,
        description=description or f"Debt settlement: {round_to_cents(amount)} {currency}",
        created_at=now or utc_now(),
    )


def select_discharged_shares(
    group_id: UUID,
    debtor_id: UUID,
    creditor_id: UUID,
    expense_ids: Sequence[UUID],
    expenses: Iterable[Expense],
    shares: Iterable[ExpenseShare],
) -> list[ExpenseShare]:
    """
    Resolve the debtor's shares a settlement discharges.

    Each named expense must belong to the group, have been paid by the
    creditor, and hold an unsettled share of the debtor.

    Returns the shares with is_settled=True, in the order given.

    Raises:
        InvalidDischargeError: if any named expense does not qualify
    """
    if len(set(expense_ids)) != len(expense_ids):
        raise InvalidDischargeError("An expense is named more than once")

    by_id = {expense.id: expense for expense in expenses if expense.group_id == group_id}
    debtor_shares = {
        share.expense_id: share for share in shares if share.user_id == debtor_id
    }

    discharged = []
    for expense_id in expense_ids:
        expense = by_id.get(expense_id)
        if expense is None:
            raise InvalidDischargeError(f"Expense {expense_id} is not part of this group")
        if expense.paid_by != creditor_id:
            raise InvalidDischargeError(
                f"Expense {expense_id} was not paid by the creditor"
            )
        share = debtor_shares.get(expense_id)
        if share is None:
            raise InvalidDischargeError(
                f"The debtor holds no share of expense {expense_id}"
            )
        if share.is_settled:
            raise InvalidDischargeError(
                f"The debtor's share of expense {expense_id} is already settled"
            )
        discharged.append(share.model_copy(update={"is_settled": True}))

    return discharged
