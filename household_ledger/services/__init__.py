"""Services package."""

from household_ledger.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    InMemoryUserDirectory,
    IntegrityError,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
    UserDirectoryInterface,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "DuplicateError",
    "InMemoryAuditStorage",
    "InMemoryLedgerStorage",
    "InMemoryUserDirectory",
    "IntegrityError",
    "LedgerStorageInterface",
    "NotFoundError",
    "StorageError",
    "UserDirectoryInterface",
]
