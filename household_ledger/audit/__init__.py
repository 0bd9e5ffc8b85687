"""Audit logging package."""

from household_ledger.audit.logger import AuditLogger, create_correlation_id, set_log_level

__all__ = ["AuditLogger", "create_correlation_id", "set_log_level"]
