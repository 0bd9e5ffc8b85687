"""
Debt Resolution

Reduces a group's net balances to a short list of debtor -> creditor
transfers using greedy largest-first matching:

1. creditors are users above +0.01, debtors are users below -0.01
2. the largest creditor is matched with the largest debtor
3. the smaller of the two amounts is transferred
4. whoever still has more than a cent left goes back into the queue

Ties are broken by user id, so identical balances always produce the same
transfers in the same order. The result has at most n - 1 transfers for n
users with a non-zero balance. It is a good minimization, not a proven
minimum.
"""

import heapq
from decimal import Decimal
from uuid import UUID

from household_ledger.errors import LedgerConsistencyError
from household_ledger.models.expense import DebtSummary, GroupBalance
from household_ledger.models.money import CURRENCY_TOLERANCE


def _largest_first(entries: list[tuple[Decimal, UUID]]) -> list[tuple[Decimal, str, UUID]]:
    # heapq is a min-heap: negate amounts, tie-break on the id string
    heap = [(-amount, str(user_id), user_id) for amount, user_id in entries]
    heapq.heapify(heap)
    return heap


def resolve_debts(group_balance: GroupBalance) -> list[DebtSummary]:
    """
    Compute the transfers that bring every balance in the group to zero.

    Raises:
        LedgerConsistencyError: if the balances do not sum to zero. This is
            a broken ledger, never something to normalize away.
    """
    if not group_balance.is_balanced:
        raise LedgerConsistencyError(
            f"Balances of group {group_balance.group_id} sum to "
            f"{group_balance.total}, expected 0"
        )

    creditors = _largest_first([
        (b.net_balance, b.user_id)
        for b in group_balance.balances
        if b.net_balance > CURRENCY_TOLERANCE
    ])
    debtors = _largest_first([
        (-b.net_balance, b.user_id)
        for b in group_balance.balances
        if b.net_balance < -CURRENCY_TOLERANCE
    ])

    transfers = []
    while creditors and debtors:
        neg_credit, creditor_key, creditor_id = heapq.heappop(creditors)
        neg_debt, debtor_key, debtor_id = heapq.heappop(debtors)
        credit, debt = -neg_credit, -neg_debt

        amount = min(credit, debt)
        transfers.append(DebtSummary(
            creditor_id=creditor_id,
            debtor_id=debtor_id,
            amount=amount,
            currency=group_balance.currency,
        ))

        credit -= amount
        debt -= amount
        if credit > CURRENCY_TOLERANCE:
            heapq.heappush(creditors, (-credit, creditor_key, creditor_id))
        if debt > CURRENCY_TOLERANCE:
            heapq.heappush(debtors, (-debt, debtor_key, debtor_id))

    return transfers


def debts_involving(debts: list[DebtSummary], user_id: UUID) -> list[DebtSummary]:
    """Transfers where the user pays or gets paid."""
    return [
        debt for debt in debts
        if debt.debtor_id == user_id or debt.creditor_id == user_id
    ]
