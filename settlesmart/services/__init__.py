"""Services package."""

from settlesmart.services.storage import (
    AuditStorageInterface,
    ExpenseSnapshotSource,
    InMemoryStorage,
    NotFoundError,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "ExpenseSnapshotSource",
    "InMemoryStorage",
    "NotFoundError",
    "StorageError",
]
