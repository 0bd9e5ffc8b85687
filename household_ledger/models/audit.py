"""
Audit Models for the Household Ledger

Every mutation of the ledger, and every rejected request, is logged for
audit purposes. This provides:
1. Traceability of who recorded which expense or payment
2. Debugging information when a balance looks wrong
3. The ability to reconstruct history, since balances are projections

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from household_ledger.models.expense import utc_now


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Expenses
    EXPENSE_CREATED = "expense_created"
    EXPENSE_REJECTED = "expense_rejected"
    EXPENSE_DELETED = "expense_deleted"

    # Settlements
    PAYMENT_RECORDED = "payment_recorded"
    SETTLEMENT_REJECTED = "settlement_rejected"
    SHARES_SETTLED = "shares_settled"

    # Projections
    LEDGER_INCONSISTENT = "ledger_inconsistent"

    # System events
    STORAGE_ERROR = "storage_error"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every ledger mutation creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'payment', 'group')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )
    group_id: Optional[UUID] = Field(
        default=None,
        description="Group the event belongs to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events of one request"
    )

    actor_id: Optional[UUID] = Field(
        default=None,
        description="User who triggered the event"
    )
    environment: Optional[str] = Field(
        default=None,
        description="Deployment that produced the event (APP_ENVIRONMENT)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "group_id": str(self.group_id) if self.group_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "actor_id": str(self.actor_id) if self.actor_id else None,
            "environment": self.environment,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_created(expense_id, group_id, ...)
        event = AuditEventBuilder.payment_recorded(payment_id, group_id, ...)
    """

    @staticmethod
    def expense_created(
        expense_id: UUID,
        group_id: UUID,
        amount: Decimal,
        currency: str,
        split_kind: str,
        participant_count: int,
        created_by: UUID,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_CREATED,
            entity_type="expense",
            entity_id=expense_id,
            group_id=group_id,
            correlation_id=correlation_id,
            actor_id=created_by,
            description=f"Expense recorded: {amount} {currency} ({split_kind} split)",
            details={
                "amount": str(amount),
                "currency": currency,
                "split_kind": split_kind,
                "participant_count": participant_count,
            },
        )

    @staticmethod
    def expense_rejected(
        group_id: UUID,
        error_code: str,
        reason: str,
        created_by: UUID,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="group",
            entity_id=group_id,
            group_id=group_id,
            correlation_id=correlation_id,
            actor_id=created_by,
            description=f"Expense rejected: {reason}",
            error_code=error_code,
            error_message=reason,
        )

    @staticmethod
    def expense_deleted(
        expense_id: UUID,
        group_id: UUID,
        share_count: int,
        deleted_by: UUID,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            entity_type="expense",
            entity_id=expense_id,
            group_id=group_id,
            correlation_id=correlation_id,
            actor_id=deleted_by,
            description="Expense deleted with its shares",
            details={
                "share_count": share_count,
            },
        )

    @staticmethod
    def payment_recorded(
        payment_id: UUID,
        group_id: UUID,
        from_user: UUID,
        to_user: UUID,
        amount: Decimal,
        currency: str,
        settled_by: UUID,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_RECORDED,
            entity_type="payment",
            entity_id=payment_id,
            group_id=group_id,
            correlation_id=correlation_id,
            actor_id=settled_by,
            description=f"Payment recorded: {amount} {currency}",
            details={
                "from_user": str(from_user),
                "to_user": str(to_user),
                "amount": str(amount),
                "currency": currency,
            },
        )

    @staticmethod
    def settlement_rejected(
        group_id: UUID,
        error_code: str,
        reason: str,
        settled_by: UUID,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="group",
            entity_id=group_id,
            group_id=group_id,
            correlation_id=correlation_id,
            actor_id=settled_by,
            description=f"Settlement rejected: {reason}",
            error_code=error_code,
            error_message=reason,
        )

    @staticmethod
    def shares_settled(
        payment_id: UUID,
        group_id: UUID,
        debtor_id: UUID,
        expense_ids: list[UUID],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SHARES_SETTLED,
            entity_type="payment",
            entity_id=payment_id,
            group_id=group_id,
            correlation_id=correlation_id,
            description=f"{len(expense_ids)} share(s) marked settled",
            details={
                "debtor_id": str(debtor_id),
                "expense_ids": [str(expense_id) for expense_id in expense_ids],
            },
        )

    @staticmethod
    def ledger_inconsistent(
        group_id: UUID,
        error_code: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_INCONSISTENT,
            severity=AuditSeverity.ERROR,
            entity_type="group",
            entity_id=group_id,
            group_id=group_id,
            correlation_id=correlation_id,
            description="Group ledger failed its consistency check",
            error_code=error_code,
            error_message=error_message,
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        group_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            group_id=group_id,
            correlation_id=correlation_id,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={
                "operation": operation,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
