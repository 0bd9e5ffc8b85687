"""
In-Memory Storage Implementation

DESIGN DECISION: Each store instance owns its data and its lock. There is
no module-level state, so two stores never share events and tests can
build a fresh one per case.

Every write validates first and mutates second, inside one critical
section. That is what makes expense + shares (and payment + discharged
shares) atomic for concurrent readers.

TRADEOFFS:
- Data is lost when the process exits
- Filtering happens in Python, which is fine for household-sized groups
"""

from collections import defaultdict
from decimal import Decimal
from threading import Lock
from typing import Iterable, Optional, Sequence
from uuid import UUID

from household_ledger.models.audit import AuditEvent
from household_ledger.models.expense import (
    Expense,
    ExpenseFilter,
    ExpenseShare,
    Payment,
)
from household_ledger.models.money import amounts_match
from household_ledger.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    IntegrityError,
    LedgerStorageInterface,
    NotFoundError,
    UserDirectoryInterface,
)


class InMemoryLedgerStorage(LedgerStorageInterface):
    """
    In-memory ledger store.

    Expenses and payments keep insertion order; shares are grouped by
    expense id.
    """

    def __init__(self):
        self._lock = Lock()
        self._expenses: dict[UUID, Expense] = {}
        self._shares: dict[UUID, list[ExpenseShare]] = {}
        self._payments: dict[UUID, Payment] = {}

    def _check_share_set(self, expense: Expense, shares: Sequence[ExpenseShare]) -> None:
        users = set()
        for share in shares:
            if share.expense_id != expense.id:
                raise IntegrityError(
                    f"Share for user {share.user_id} references expense "
                    f"{share.expense_id}, not {expense.id}"
                )
            if share.user_id in users:
                raise IntegrityError(
                    f"User {share.user_id} has more than one share of expense {expense.id}"
                )
            users.add(share.user_id)

        total = sum((share.amount for share in shares), Decimal("0"))
        if not amounts_match(total, expense.amount):
            raise IntegrityError(
                f"Shares of expense {expense.id} sum to {total}, not {expense.amount}"
            )

    async def persist_expense_and_shares(
        self,
        expense: Expense,
        shares: Sequence[ExpenseShare],
    ) -> bool:
        self._check_share_set(expense, shares)
        with self._lock:
            if expense.id in self._expenses:
                raise DuplicateError(f"Expense already exists: {expense.id}")
            self._expenses[expense.id] = expense
            self._shares[expense.id] = list(shares)
        return True

    async def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        with self._lock:
            return self._expenses.get(expense_id)

    async def get_expense_shares(self, expense_id: UUID) -> list[ExpenseShare]:
        with self._lock:
            return list(self._shares.get(expense_id, []))

    async def delete_expense_and_shares(
        self,
        expense_id: UUID,
    ) -> tuple[Expense, list[ExpenseShare]]:
        with self._lock:
            if expense_id not in self._expenses:
                raise NotFoundError(f"Expense not found: {expense_id}")
            expense = self._expenses.pop(expense_id)
            shares = self._shares.pop(expense_id, [])
        return expense, shares

    async def list_expenses(self, group_id: UUID) -> list[Expense]:
        with self._lock:
            return [e for e in self._expenses.values() if e.group_id == group_id]

    async def list_shares_for_expenses(
        self,
        expense_ids: Iterable[UUID],
    ) -> list[ExpenseShare]:
        with self._lock:
            result = []
            for expense_id in expense_ids:
                result.extend(self._shares.get(expense_id, []))
            return result

    async def search_expenses(self, expense_filter: ExpenseFilter) -> list[Expense]:
        with self._lock:
            matches = [
                expense for expense in self._expenses.values()
                if self._matches(expense, expense_filter)
            ]

        matches.sort(key=lambda e: (e.date, e.created_at), reverse=True)
        start = expense_filter.offset
        return matches[start:start + expense_filter.limit]

    def _matches(self, expense: Expense, f: ExpenseFilter) -> bool:
        """Filter check. Caller holds the lock."""
        if f.group_id and expense.group_id != f.group_id:
            return False
        if f.paid_by and expense.paid_by != f.paid_by:
            return False
        if f.category and (expense.category or "").lower() != f.category.lower():
            return False
        if f.date_from and expense.date.date() < f.date_from:
            return False
        if f.date_to and expense.date.date() > f.date_to:
            return False
        if f.involving_user:
            holders = {share.user_id for share in self._shares.get(expense.id, [])}
            if f.involving_user != expense.paid_by and f.involving_user not in holders:
                return False
        return True

    async def persist_payment(
        self,
        payment: Payment,
        discharged_shares: Sequence[ExpenseShare] = (),
    ) -> bool:
        with self._lock:
            if payment.id in self._payments:
                raise DuplicateError(f"Payment already exists: {payment.id}")

            # Validate every share update before touching anything
            positions = []
            for share in discharged_shares:
                existing = self._shares.get(share.expense_id, [])
                index = next(
                    (i for i, s in enumerate(existing) if s.user_id == share.user_id),
                    None,
                )
                if index is None:
                    raise NotFoundError(
                        f"No share of expense {share.expense_id} for user {share.user_id}"
                    )
                positions.append((share.expense_id, index))

            for (expense_id, index), share in zip(positions, discharged_shares):
                current = self._shares[expense_id][index]
                self._shares[expense_id][index] = current.model_copy(
                    update={"is_settled": share.is_settled}
                )
            self._payments[payment.id] = payment
        return True

    async def list_payments(self, group_id: UUID) -> list[Payment]:
        with self._lock:
            return [p for p in self._payments.values() if p.group_id == group_id]

    async def list_group_ids_for_user(self, user_id: UUID) -> list[UUID]:
        with self._lock:
            groups = []
            for expense in self._expenses.values():
                holders = {share.user_id for share in self._shares.get(expense.id, [])}
                if user_id == expense.paid_by or user_id in holders:
                    groups.append(expense.group_id)
            for payment in self._payments.values():
                if user_id in (payment.from_user, payment.to_user):
                    groups.append(payment.group_id)
        return list(dict.fromkeys(groups))


class InMemoryUserDirectory(UserDirectoryInterface):
    """Display names held in a dict."""

    def __init__(self, names: Optional[dict[UUID, str]] = None):
        self._names = dict(names or {})

    def add_user(self, user_id: UUID, username: str) -> None:
        self._names[user_id] = username

    async def resolve_username(self, user_id: UUID) -> Optional[str]:
        return self._names.get(user_id)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log held in a list."""

    def __init__(self):
        self._lock = Lock()
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        with self._lock:
            self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        with self._lock:
            return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        with self._lock:
            return [
                e for e in self._events
                if e.entity_type == entity_type and e.entity_id == entity_id
            ]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        with self._lock:
            return list(reversed(self._events))[:limit]

    def count_by_type(self) -> dict[str, int]:
        """Event counts per type, for health pages and tests."""
        counts: dict[str, int] = defaultdict(int)
        with self._lock:
            for event in self._events:
                counts[event.event_type.value] += 1
        return dict(counts)
