"""
Abstract Storage Interface

DESIGN DECISION: The ledger depends on abstract storage ports, never on a
concrete store. This allows us to:
1. Use the in-memory store for tests and demos
2. Plug in a SQL store without touching the engine
3. Layer caching on top of the balance projection

The interface is intentionally small: just the reads the balance
projection needs and the writes that must be atomic.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional, Sequence
from uuid import UUID

from household_ledger.models.audit import AuditEvent
from household_ledger.models.expense import (
    Expense,
    ExpenseFilter,
    ExpenseShare,
    Payment,
)


class LedgerStorageInterface(ABC):
    """
    Abstract interface for ledger event storage.

    CRITICAL: An expense and its shares are written and deleted together.
    A reader must never observe one without the other.
    """

    @abstractmethod
    async def persist_expense_and_shares(
        self,
        expense: Expense,
        shares: Sequence[ExpenseShare],
    ) -> bool:
        """
        Atomically save an expense together with its shares.

        Args:
            expense: The expense to save
            shares: Its shares; every share must reference expense.id

        Returns:
            True if saved successfully

        Raises:
            IntegrityError: If a share references another expense, a user
                appears twice, or the shares do not add up to the amount
            DuplicateError: If the expense already exists
        """
        pass

    @abstractmethod
    async def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        """
        Retrieve an expense by its ID.

        Returns:
            The expense if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_expense_shares(self, expense_id: UUID) -> list[ExpenseShare]:
        """Shares of one expense (empty if the expense does not exist)."""
        pass

    @abstractmethod
    async def delete_expense_and_shares(
        self,
        expense_id: UUID,
    ) -> tuple[Expense, list[ExpenseShare]]:
        """
        Atomically delete an expense and all of its shares.

        Returns:
            The deleted expense and shares

        Raises:
            NotFoundError: If the expense doesn't exist
        """
        pass

    @abstractmethod
    async def list_expenses(self, group_id: UUID) -> list[Expense]:
        """All expenses of a group."""
        pass

    @abstractmethod
    async def list_shares_for_expenses(
        self,
        expense_ids: Iterable[UUID],
    ) -> list[ExpenseShare]:
        """All shares belonging to the given expenses."""
        pass

    @abstractmethod
    async def search_expenses(self, expense_filter: ExpenseFilter) -> list[Expense]:
        """
        List expenses matching a filter, newest first.

        Args:
            expense_filter: Group, payer, participant, category and date
                filters plus limit/offset pagination

        Returns:
            List of matching expenses
        """
        pass

    @abstractmethod
    async def persist_payment(
        self,
        payment: Payment,
        discharged_shares: Sequence[ExpenseShare] = (),
    ) -> bool:
        """
        Append a payment, optionally marking shares it discharges as settled.

        Payments are append-only. The payment and the share updates are
        applied together or not at all.

        Raises:
            DuplicateError: If the payment already exists
            NotFoundError: If a discharged share doesn't exist
        """
        pass

    @abstractmethod
    async def list_payments(self, group_id: UUID) -> list[Payment]:
        """All payments of a group."""
        pass

    @abstractmethod
    async def list_group_ids_for_user(self, user_id: UUID) -> list[UUID]:
        """Groups in which the user has any ledger activity."""
        pass


class UserDirectoryInterface(ABC):
    """
    Display-name lookup.

    Names are presentation only. Balances never depend on them.
    """

    @abstractmethod
    async def resolve_username(self, user_id: UUID) -> Optional[str]:
        """The user's display name, or None if unknown."""
        pass

    async def resolve_usernames(self, user_ids: Iterable[UUID]) -> dict[UUID, str]:
        """Resolve several users; unknown users are left out."""
        names = {}
        for user_id in set(user_ids):
            name = await self.resolve_username(user_id)
            if name:
                names[user_id] = name
        return names


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one settle request).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class IntegrityError(StorageError):
    """A write would break a ledger invariant."""
    pass
