"""
Storage Services Package

Provides the abstract read interface for the external data store and an
in-memory implementation.
"""

from settlesmart.services.storage.interface import (
    AuditStorageInterface,
    ExpenseSnapshotSource,
    NotFoundError,
    StorageError,
)
from settlesmart.services.storage.memory import InMemoryStorage

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ExpenseSnapshotSource",
    # Exceptions
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryStorage",
]
