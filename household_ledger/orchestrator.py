"""
Main Orchestrator for the Household Ledger

This module ties the pure ledger engine to the storage ports and defines
the caller-facing operations:
1. Expenses (request -> validate -> split -> persist atomically)
2. Balances and settlement (events -> balances -> debts -> payments)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is persisted unless the whole request validated
- An expense and its shares are handed to storage as one unit
- Every write invalidates the cached projection of its group
- Every mutation and every rejection is audited

Errors are never swallowed here: validation, consistency and storage
errors are audited and re-raised unchanged for the caller to map.
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID

from household_ledger.audit import AuditLogger, create_correlation_id, set_log_level
from household_ledger.config import get_settings
from household_ledger.engine import (
    BalanceCache,
    ShareCalculator,
    compute_group_balances,
    debts_involving,
    record_payment,
    resolve_debts,
    select_discharged_shares,
)
from household_ledger.errors import LedgerConsistencyError, SettlementError, SplitError
from household_ledger.models.expense import (
    DEFAULT_CURRENCY,
    DebtSummary,
    Expense,
    ExpenseCreation,
    ExpenseFilter,
    ExpenseInfo,
    GroupBalance,
    Payment,
    SettleDebt,
)
from household_ledger.services.storage import (
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    InMemoryUserDirectory,
    LedgerStorageInterface,
    StorageError,
    UserDirectoryInterface,
)


async def _resolve_names(
    directory: Optional[UserDirectoryInterface],
    user_ids,
) -> dict[UUID, str]:
    if directory is None:
        return {}
    return await directory.resolve_usernames(user_ids)


class ExpenseFlow:
    """
    Orchestrates expense recording and lookup.

    Flow for a new expense:
    1. Validate the request and compute shares (ShareCalculator)
    2. Persist expense + shares in one atomic store call
    3. Invalidate the group's cached balances
    4. Audit and return the expense with display names
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        directory: Optional[UserDirectoryInterface] = None,
        calculator: Optional[ShareCalculator] = None,
        cache: Optional[BalanceCache] = None,
        audit_logger: Optional[AuditLogger] = None,
        page_size: int = 50,
    ):
        self._storage = storage
        self._directory = directory
        self._calculator = calculator or ShareCalculator()
        self._cache = cache
        self._audit_logger = audit_logger
        self._page_size = page_size

    async def create_expense(
        self,
        creation: ExpenseCreation,
        created_by: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> ExpenseInfo:
        """
        Record an expense and its shares.

        Raises:
            SplitError: if the request is invalid (nothing is persisted)
            StorageError: if the atomic write fails
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            expense, shares = self._calculator.build(creation, created_by)
        except SplitError as e:
            if self._audit_logger:
                await self._audit_logger.log_expense_rejected(
                    group_id=creation.group_id,
                    error_code=e.code,
                    reason=e.message,
                    created_by=created_by,
                    correlation_id=correlation_id,
                )
            raise

        try:
            await self._storage.persist_expense_and_shares(expense, shares)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_storage_error(
                    operation="persist_expense_and_shares",
                    error_message=str(e),
                    group_id=expense.group_id,
                    correlation_id=correlation_id,
                )
            raise

        if self._cache is not None:
            self._cache.invalidate(expense.group_id)

        if self._audit_logger:
            await self._audit_logger.log_expense_created(
                expense_id=expense.id,
                group_id=expense.group_id,
                amount=expense.amount,
                currency=expense.currency,
                split_kind=creation.split.kind,
                participant_count=len(shares),
                created_by=created_by,
                correlation_id=correlation_id,
            )

        names = await _resolve_names(
            self._directory,
            [expense.paid_by, expense.created_by] + [s.user_id for s in shares],
        )
        return ExpenseInfo.build(expense, shares, names)

    async def get_expense(self, expense_id: UUID) -> Optional[ExpenseInfo]:
        """An expense with its shares, or None if it doesn't exist."""
        expense = await self._storage.get_expense(expense_id)
        if expense is None:
            return None
        return (await self._to_infos([expense]))[0]

    async def list_group_expenses(
        self,
        group_id: UUID,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[ExpenseInfo]:
        """A page of a group's expenses, newest first."""
        return await self.search_expenses(ExpenseFilter(
            group_id=group_id,
            limit=limit or self._page_size,
            offset=offset,
        ))

    async def search_expenses(self, expense_filter: ExpenseFilter) -> list[ExpenseInfo]:
        expenses = await self._storage.search_expenses(expense_filter)
        return await self._to_infos(expenses)

    async def delete_expense(
        self,
        expense_id: UUID,
        deleted_by: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Delete an expense together with its shares.

        Raises:
            NotFoundError: if the expense doesn't exist
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            expense, shares = await self._storage.delete_expense_and_shares(expense_id)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_storage_error(
                    operation="delete_expense_and_shares",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._cache is not None:
            self._cache.invalidate(expense.group_id)

        if self._audit_logger:
            await self._audit_logger.log_expense_deleted(
                expense_id=expense.id,
                group_id=expense.group_id,
                share_count=len(shares),
                deleted_by=deleted_by,
                correlation_id=correlation_id,
            )

    async def _to_infos(self, expenses: list[Expense]) -> list[ExpenseInfo]:
        shares = await self._storage.list_shares_for_expenses([e.id for e in expenses])
        by_expense: dict[UUID, list] = {e.id: [] for e in expenses}
        for share in shares:
            by_expense[share.expense_id].append(share)

        user_ids = {s.user_id for s in shares}
        for expense in expenses:
            user_ids.update((expense.paid_by, expense.created_by))
        names = await _resolve_names(self._directory, user_ids)

        return [ExpenseInfo.build(e, by_expense[e.id], names) for e in expenses]


class BalanceFlow:
    """
    Orchestrates balance projection, debt resolution and settlement.

    Balances are recomputed from the stored events on every query unless
    the cache holds a projection no write has invalidated since.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        directory: Optional[UserDirectoryInterface] = None,
        cache: Optional[BalanceCache] = None,
        audit_logger: Optional[AuditLogger] = None,
        default_currency: str = DEFAULT_CURRENCY,
    ):
        self._storage = storage
        self._directory = directory
        self._cache = cache
        self._audit_logger = audit_logger
        self._default_currency = default_currency

    async def _project(
        self,
        group_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> GroupBalance:
        """Compute (or fetch) the group's balances, without display names."""
        if self._cache is not None:
            cached = self._cache.get(group_id)
            if cached is not None:
                return cached
            generation = self._cache.generation(group_id)

        expenses = await self._storage.list_expenses(group_id)
        shares = await self._storage.list_shares_for_expenses([e.id for e in expenses])
        payments = await self._storage.list_payments(group_id)

        try:
            balance = compute_group_balances(
                group_id,
                expenses,
                shares,
                payments,
                default_currency=self._default_currency,
            )
        except LedgerConsistencyError as e:
            await self._report_inconsistency(group_id, e, correlation_id)
            raise

        if self._cache is not None:
            self._cache.put(group_id, balance, generation)
        return balance

    async def _report_inconsistency(
        self,
        group_id: UUID,
        error: LedgerConsistencyError,
        correlation_id: Optional[UUID],
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_ledger_inconsistent(
                group_id=group_id,
                error_code=error.code,
                error_message=error.message,
                correlation_id=correlation_id,
            )

    async def get_group_balances(self, group_id: UUID) -> GroupBalance:
        """Net balance of every user with activity in the group."""
        balance = await self._project(group_id)
        names = await _resolve_names(self._directory, [b.user_id for b in balance.balances])
        return balance.with_usernames(names)

    async def get_user_balance(self, user_id: UUID, group_id: UUID) -> Decimal:
        balance = await self._project(group_id)
        return balance.balance_for(user_id)

    async def get_debt_summary(self, group_id: UUID) -> list[DebtSummary]:
        """
        Recommended transfers that would settle the whole group.

        Raises:
            LedgerConsistencyError: if the group's balances don't sum to zero
        """
        balance = await self._project(group_id)
        try:
            debts = resolve_debts(balance)
        except LedgerConsistencyError as e:
            await self._report_inconsistency(group_id, e, None)
            raise

        user_ids = {d.creditor_id for d in debts} | {d.debtor_id for d in debts}
        names = await _resolve_names(self._directory, user_ids)
        return [debt.with_usernames(names) for debt in debts]

    async def get_user_debts(self, user_id: UUID) -> list[DebtSummary]:
        """Transfers involving the user, across all of the user's groups."""
        result = []
        for group_id in await self._storage.list_group_ids_for_user(user_id):
            result.extend(debts_involving(await self.get_debt_summary(group_id), user_id))
        return result

    async def settle_debt(
        self,
        group_id: UUID,
        settle: SettleDebt,
        settled_by: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> Payment:
        """
        Record that the debtor paid the creditor.

        The payment is in the group's currency. Shares are marked settled
        only for the expenses listed in settle.discharged_expense_ids.

        Raises:
            SettlementError: if the settlement is invalid (nothing is persisted)
            StorageError: if the write fails
        """
        correlation_id = correlation_id or create_correlation_id()
        balance = await self._project(group_id, correlation_id)

        try:
            payment = record_payment(
                group_id=group_id,
                from_user=settle.debtor_id,
                to_user=settle.creditor_id,
                amount=settle.amount,
                currency=balance.currency,
            )
            discharged = []
            if settle.discharged_expense_ids:
                expenses = await self._storage.list_expenses(group_id)
                shares = await self._storage.list_shares_for_expenses(
                    settle.discharged_expense_ids
                )
                discharged = select_discharged_shares(
                    group_id=group_id,
                    debtor_id=settle.debtor_id,
                    creditor_id=settle.creditor_id,
                    expense_ids=settle.discharged_expense_ids,
                    expenses=expenses,
                    shares=shares,
                )
        except SettlementError as e:
            if self._audit_logger:
                await self._audit_logger.log_settlement_rejected(
                    group_id=group_id,
                    error_code=e.code,
                    reason=e.message,
                    settled_by=settled_by,
                    correlation_id=correlation_id,
                )
            raise

        try:
            await self._storage.persist_payment(payment, discharged)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_storage_error(
                    operation="persist_payment",
                    error_message=str(e),
                    group_id=group_id,
                    correlation_id=correlation_id,
                )
            raise

        if self._cache is not None:
            self._cache.invalidate(group_id)

        if self._audit_logger:
            await self._audit_logger.log_payment_recorded(
                payment_id=payment.id,
                group_id=group_id,
                from_user=payment.from_user,
                to_user=payment.to_user,
                amount=payment.amount,
                currency=payment.currency,
                settled_by=settled_by,
                correlation_id=correlation_id,
            )
            if discharged:
                await self._audit_logger.log_shares_settled(
                    payment_id=payment.id,
                    group_id=group_id,
                    debtor_id=settle.debtor_id,
                    expense_ids=[s.expense_id for s in discharged],
                    correlation_id=correlation_id,
                )

        return payment


def create_app_components(
    storage: Optional[LedgerStorageInterface] = None,
    directory: Optional[UserDirectoryInterface] = None,
) -> tuple[ExpenseFlow, BalanceFlow, LedgerStorageInterface]:
    """
    Factory function to create all application components.

    Args:
        storage: Ledger store. Defaults to a fresh in-memory store.
        directory: Username lookup. Defaults to an empty in-memory directory.

    Returns:
        (expense_flow, balance_flow, storage)
    """
    settings = get_settings()
    ledger_settings = settings.ledger
    app_settings = settings.app

    storage = storage or InMemoryLedgerStorage()
    directory = directory or InMemoryUserDirectory()
    set_log_level(app_settings.debug_mode)

    cache = BalanceCache() if ledger_settings.balance_cache_enabled else None
    audit_logger = None
    if app_settings.audit_enabled:
        audit_logger = AuditLogger(
            InMemoryAuditStorage(),
            environment=app_settings.app_environment,
        )

    expense_flow = ExpenseFlow(
        storage=storage,
        directory=directory,
        calculator=ShareCalculator(
            default_currency=ledger_settings.default_currency,
            max_amount=ledger_settings.max_expense_amount,
        ),
        cache=cache,
        audit_logger=audit_logger,
        page_size=ledger_settings.default_page_size,
    )

    balance_flow = BalanceFlow(
        storage=storage,
        directory=directory,
        cache=cache,
        audit_logger=audit_logger,
        default_currency=ledger_settings.default_currency,
    )

    return expense_flow, balance_flow, storage
