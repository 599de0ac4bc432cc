"""
In-Memory Storage

Backs both storage interfaces with plain lists. Used by the test suite and
by embedding applications that already hold their records in memory (a UI
state container, a request-scoped cache).

Records are copied on the way in and handed out as new lists, so callers
can't mutate the stored snapshot through a returned list.
"""

from typing import Iterable, Optional
from uuid import UUID

from settlesmart.models.audit import AuditEvent
from settlesmart.models.expense import Expense, Group, Participant
from settlesmart.services.storage.interface import (
    AuditStorageInterface,
    ExpenseSnapshotSource,
)


class InMemoryStorage(ExpenseSnapshotSource, AuditStorageInterface):
    """Snapshot source and audit sink over in-process lists."""

    def __init__(
        self,
        expenses: Optional[Iterable[Expense]] = None,
        participants: Optional[Iterable[Participant]] = None,
        groups: Optional[Iterable[Group]] = None,
    ):
        self._expenses = list(expenses or [])
        self._participants = list(participants or [])
        self._groups = list(groups or [])
        self._events: list[AuditEvent] = []

    # =========================================================================
    # SNAPSHOT SOURCE
    # =========================================================================

    async def list_expenses(self) -> list[Expense]:
        return list(self._expenses)

    async def list_participants(self) -> list[Participant]:
        return list(self._participants)

    async def list_groups(self) -> list[Group]:
        return list(self._groups)

    async def get_group(self, group_id: str) -> Optional[Group]:
        for group in self._groups:
            if group.id == group_id:
                return group
        return None

    def replace_expenses(self, expenses: Iterable[Expense]) -> None:
        """Swap in a new snapshot (simulates the external store changing)."""
        self._expenses = list(expenses)

    # =========================================================================
    # AUDIT SINK
    # =========================================================================

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
