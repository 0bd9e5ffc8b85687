"""
Storage Services Package

Provides abstract interfaces and the in-memory implementation of the
ledger's storage ports. Any other backend implements the same interfaces.
"""

from household_ledger.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    IntegrityError,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
    UserDirectoryInterface,
)
from household_ledger.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    InMemoryUserDirectory,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "LedgerStorageInterface",
    "UserDirectoryInterface",
    # Exceptions
    "DuplicateError",
    "IntegrityError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryLedgerStorage",
    "InMemoryUserDirectory",
]
