"""
Audit Logger

DESIGN DECISION: Every ledger mutation and every rejected request is
logged. Balances are projections over the event set, so the audit trail is
how we explain a surprising balance after the fact.

The audit logger:
- Is async so it sits naturally in the async flows
- Gracefully handles storage failures (never fails the ledger operation)
- Supports correlation IDs to trace the events of one request
"""

import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from household_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from household_ledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence), if configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
        environment: Optional[str] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
            environment: Stamped on every event that has none.
        """
        self._storage = storage
        self._environment = environment
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        if self._environment and event.environment is None:
            event = event.model_copy(update={"environment": self._environment})

        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_expense_created(
        self,
        expense_id: UUID,
        group_id: UUID,
        amount: Decimal,
        currency: str,
        split_kind: str,
        participant_count: int,
        created_by: UUID,
        correlation_id: UUID,
    ) -> None:
        """Log a recorded expense."""
        event = AuditEventBuilder.expense_created(
            expense_id=expense_id,
            group_id=group_id,
            amount=amount,
            currency=currency,
            split_kind=split_kind,
            participant_count=participant_count,
            created_by=created_by,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_expense_rejected(
        self,
        group_id: UUID,
        error_code: str,
        reason: str,
        created_by: UUID,
        correlation_id: UUID,
    ) -> None:
        """Log an expense request that failed validation."""
        event = AuditEventBuilder.expense_rejected(
            group_id=group_id,
            error_code=error_code,
            reason=reason,
            created_by=created_by,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_expense_deleted(
        self,
        expense_id: UUID,
        group_id: UUID,
        share_count: int,
        deleted_by: UUID,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.expense_deleted(
            expense_id=expense_id,
            group_id=group_id,
            share_count=share_count,
            deleted_by=deleted_by,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_payment_recorded(
        self,
        payment_id: UUID,
        group_id: UUID,
        from_user: UUID,
        to_user: UUID,
        amount: Decimal,
        currency: str,
        settled_by: UUID,
        correlation_id: UUID,
    ) -> None:
        """Log a recorded settlement payment."""
        event = AuditEventBuilder.payment_recorded(
            payment_id=payment_id,
            group_id=group_id,
            from_user=from_user,
            to_user=to_user,
            amount=amount,
            currency=currency,
            settled_by=settled_by,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_settlement_rejected(
        self,
        group_id: UUID,
        error_code: str,
        reason: str,
        settled_by: UUID,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.settlement_rejected(
            group_id=group_id,
            error_code=error_code,
            reason=reason,
            settled_by=settled_by,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_shares_settled(
        self,
        payment_id: UUID,
        group_id: UUID,
        debtor_id: UUID,
        expense_ids: list[UUID],
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.shares_settled(
            payment_id=payment_id,
            group_id=group_id,
            debtor_id=debtor_id,
            expense_ids=expense_ids,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_ledger_inconsistent(
        self,
        group_id: UUID,
        error_code: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a group whose events fail the conservation check."""
        event = AuditEventBuilder.ledger_inconsistent(
            group_id=group_id,
            error_code=error_code,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        group_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a failed store round-trip."""
        event = AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            group_id=group_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a request and pass it through all
    subsequent operations.
    """
    return uuid4()


def set_log_level(debug: bool) -> None:
    """DEBUG for the whole package in debug mode, INFO otherwise."""
    logging.getLogger("household_ledger").setLevel(logging.DEBUG if debug else logging.INFO)
