"""
Abstract Storage Interface

DESIGN DECISION: The document store that owns expenses and users is an
external collaborator. We define the read side we need as an interface so:
1. The balance engine never learns how records are fetched
2. In-memory storage can stand in for tests
3. The embedding application can plug in its own store

The balance engine only ever READS expenses. Writes (creating expenses,
marking them settled) belong to the embedding application.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from settlesmart.models.audit import AuditEvent
from settlesmart.models.expense import Expense, Group, Participant


class ExpenseSnapshotSource(ABC):
    """
    Read-only source of the records balances are computed from.

    Implementations must return records in a stable order: that order
    becomes the participant order the settlement sweep follows.
    """

    @abstractmethod
    async def list_expenses(self) -> list[Expense]:
        """
        Return every expense visible to the caller.

        Returns:
            Expenses in storage order
        """
        pass

    @abstractmethod
    async def list_participants(self) -> list[Participant]:
        """
        Return every known participant record.

        Returns:
            Participants in storage order
        """
        pass

    @abstractmethod
    async def list_groups(self) -> list[Group]:
        """Return every group."""
        pass

    @abstractmethod
    async def get_group(self, group_id: str) -> Optional[Group]:
        """
        Retrieve a group by its ID.

        Returns:
            The group if found, None otherwise
        """
        pass


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
        Get all events for a correlation ID (e.g., one dashboard refresh).

        Returns:
            List of related events in chronological order
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
