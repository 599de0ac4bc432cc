"""
Balance Service Orchestrator

This module ties together storage, the balance engine and the audit trail.
It defines the end-to-end flow every consumer uses:

    load snapshot → build view → compute → audit → return

DESIGN DECISION: The orchestrator is the only async layer. It fetches one
snapshot from the external store and hands it to the pure, synchronous
balance engine. Nothing is cached: every call reflects the store as it is
now, and the embedding application decides when to call again.

Errors from the engine and from the source are audited and RE-RAISED. A
rejected expense, a broken invariant or a failed fetch is never turned into
a best-effort answer.
"""

from datetime import date
from typing import Callable, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel, Field

from settlesmart.audit import AuditLogger, create_correlation_id
from settlesmart.balances import (
    BalanceInvariantViolated,
    MalformedExpense,
    ScopedBalanceView,
    UnknownParticipant,
    resolve_settlements,
    trust_score,
)
from settlesmart.config import get_settings
from settlesmart.models.balance import (
    BalanceSnapshot,
    DashboardTotals,
    GroupBalanceSummary,
    PairwiseSummary,
    SettlementResolution,
    TimelinePoint,
)
from settlesmart.models.expense import Expense, Group, Participant
from settlesmart.services.storage import (
    AuditStorageInterface,
    ExpenseSnapshotSource,
    InMemoryStorage,
    NotFoundError,
    StorageError,
)


T = TypeVar("T")


class LedgerSnapshot(BaseModel):
    """Everything one computation needs, fetched in one go."""

    expenses: list[Expense] = Field(default_factory=list)
    participants: list[Participant] = Field(default_factory=list)
    groups: list[Group] = Field(default_factory=list)

    @property
    def participant_ids(self) -> list[str]:
        return [p.id for p in self.participants]

    @property
    def directory(self) -> dict[str, Participant]:
        return {p.id: p for p in self.participants}

    def view(self) -> ScopedBalanceView:
        """Known participants first (storage order), then ids seen only in expenses."""
        return ScopedBalanceView(self.expenses, self.participant_ids)


class BalanceService:
    """
    Serves balance queries for the presentation layer.

    Flow per call:
    1. Load a snapshot from the source
    2. Run the requested view on it
    3. Audit the outcome (success or failure)
    """

    def __init__(
        self,
        source: ExpenseSnapshotSource,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._source = source
        self._audit_logger = audit_logger

    async def load_snapshot(self, correlation_id: Optional[UUID] = None) -> LedgerSnapshot:
        """
        Fetch expenses, participants and groups from the source.

        Raises:
            StorageError: The source failed. Audited as a system error.
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            snapshot = LedgerSnapshot(
                expenses=await self._source.list_expenses(),
                participants=await self._source.list_participants(),
                groups=await self._source.list_groups(),
            )
        except StorageError as e:
            await self._log_storage_failure(e, "load_snapshot", correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_snapshot_loaded(
                expense_count=len(snapshot.expenses),
                participant_count=len(snapshot.participants),
                correlation_id=correlation_id,
            )
        return snapshot

    async def _log_storage_failure(
        self,
        error: StorageError,
        operation: str,
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_error(
                error_type=type(error).__name__,
                error_message=str(error),
                details={"operation": operation},
                correlation_id=correlation_id,
            )

    async def _audited(self, correlation_id: UUID, compute: Callable[[], T]) -> T:
        """Run a computation; audit engine errors and re-raise them."""
        try:
            return compute()
        except MalformedExpense as e:
            if self._audit_logger:
                await self._audit_logger.log_malformed_expense(
                    expense_id=e.expense_id,
                    issues=[issue.model_dump() for issue in e.issues],
                    correlation_id=correlation_id,
                )
            raise
        except UnknownParticipant as e:
            if self._audit_logger:
                await self._audit_logger.log_unknown_participant(
                    participant_id=e.participant_id,
                    correlation_id=correlation_id,
                )
            raise
        except BalanceInvariantViolated as e:
            if self._audit_logger:
                await self._audit_logger.log_invariant_violated(
                    error_message=str(e),
                    details={
                        "total": str(e.total) if e.total is not None else None,
                        "residual": {k: str(v) for k, v in e.residual.items()},
                    },
                    correlation_id=correlation_id,
                )
            raise

    async def global_balances(self, correlation_id: Optional[UUID] = None) -> BalanceSnapshot:
        """Balances and settlements across every unsettled expense."""
        correlation_id = correlation_id or create_correlation_id()
        ledger = await self.load_snapshot(correlation_id)

        result = await self._audited(correlation_id, lambda: ledger.view().global_view())

        if self._audit_logger:
            await self._audit_logger.log_balances_computed(
                participant_count=len(result.balances),
                settlement_count=len(result.settlements),
                correlation_id=correlation_id,
            )
        return result

    async def dashboard(
        self,
        participant_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> DashboardTotals:
        """Headline totals for one participant."""
        correlation_id = correlation_id or create_correlation_id()
        ledger = await self.load_snapshot(correlation_id)

        totals = await self._audited(
            correlation_id,
            lambda: ledger.view().dashboard(participant_id),
        )

        if self._audit_logger:
            await self._audit_logger.log_view_computed(
                scope="dashboard",
                entity_id=participant_id,
                details={
                    "owed_to_user": str(totals.total_owed_to_user),
                    "owed_by_user": str(totals.total_owed_by_user),
                },
                correlation_id=correlation_id,
            )
        return totals

    async def group_summary(
        self,
        group_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> GroupBalanceSummary:
        """
        Balances for one group, with the group's members as the universe.

        Raises:
            NotFoundError: The group doesn't exist.
            StorageError: The source failed.
        """
        correlation_id = correlation_id or create_correlation_id()
        try:
            group = await self._source.get_group(group_id)
        except StorageError as e:
            await self._log_storage_failure(e, "get_group", correlation_id)
            raise
        if group is None:
            raise NotFoundError(f"Group {group_id} not found")

        ledger = await self.load_snapshot(correlation_id)
        members = list(group.members) or None

        summary = await self._audited(
            correlation_id,
            lambda: ledger.view().group_view(group_id, members),
        )

        if self._audit_logger:
            await self._audit_logger.log_view_computed(
                scope="group",
                entity_id=group_id,
                details={
                    "expense_count": summary.expense_count,
                    "settlement_count": len(summary.settlements),
                    "remaining": str(summary.remaining),
                },
                correlation_id=correlation_id,
            )
        return summary

    async def pairwise(
        self,
        participant_a: str,
        participant_b: str,
        correlation_id: Optional[UUID] = None,
    ) -> PairwiseSummary:
        """Relationship analytics for two participants."""
        correlation_id = correlation_id or create_correlation_id()
        ledger = await self.load_snapshot(correlation_id)

        summary = await self._audited(
            correlation_id,
            lambda: ledger.view().pairwise_view(participant_a, participant_b),
        )

        if self._audit_logger:
            await self._audit_logger.log_view_computed(
                scope="pair",
                entity_id=f"{participant_a}:{participant_b}",
                details={
                    "expense_count": summary.expense_count,
                    "net_balance": str(summary.net_balance),
                },
                correlation_id=correlation_id,
            )
        return summary

    async def timeline(
        self,
        participant_id: str,
        days: Optional[int] = None,
        end: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[TimelinePoint]:
        """Daily net position for the balance trend chart."""
        correlation_id = correlation_id or create_correlation_id()
        ledger = await self.load_snapshot(correlation_id)

        points = await self._audited(
            correlation_id,
            lambda: ledger.view().timeline(participant_id, days=days, end=end),
        )

        if self._audit_logger:
            await self._audit_logger.log_view_computed(
                scope="timeline",
                entity_id=participant_id,
                details={"days": len(points)},
                correlation_id=correlation_id,
            )
        return points

    async def resolved_settlements(
        self,
        strict: Optional[bool] = None,
        correlation_id: Optional[UUID] = None,
    ) -> SettlementResolution:
        """
        Global settlements with participant records attached.

        Args:
            strict: Raise on unknown ids (default from settings). When False,
                    unresolvable settlements are returned as orphaned and audited.
        """
        correlation_id = correlation_id or create_correlation_id()
        if strict is None:
            strict = get_settings().balance.strict_participants
        ledger = await self.load_snapshot(correlation_id)

        resolution = await self._audited(
            correlation_id,
            lambda: resolve_settlements(
                ledger.view().global_view().settlements,
                ledger.directory,
                strict=strict,
            ),
        )

        if resolution.has_orphans and self._audit_logger:
            orphan_ids = sorted({
                pid
                for s in resolution.orphaned
                for pid in (s.from_id, s.to_id)
                if pid not in ledger.directory
            })
            await self._audit_logger.log_orphaned_settlements(
                count=len(resolution.orphaned),
                participant_ids=orphan_ids,
                correlation_id=correlation_id,
            )
        return resolution

    async def trust_score(
        self,
        participant_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> int:
        """Repayment reliability score for one participant."""
        correlation_id = correlation_id or create_correlation_id()
        ledger = await self.load_snapshot(correlation_id)

        def compute() -> int:
            balance = ledger.view().global_view().balance_of(participant_id)
            return trust_score(ledger.expenses, participant_id, balance=balance)

        score = await self._audited(correlation_id, compute)

        if self._audit_logger:
            await self._audit_logger.log_view_computed(
                scope="trust_score",
                entity_id=participant_id,
                details={"score": score},
                correlation_id=correlation_id,
            )
        return score


def create_balance_service(
    source: Optional[ExpenseSnapshotSource] = None,
    audit: bool = True,
) -> BalanceService:
    """
    Factory function to create a BalanceService.

    Args:
        source: Snapshot source. Defaults to an empty InMemoryStorage.
        audit: Whether to attach an AuditLogger. When the source also
               implements audit storage, events are persisted there.
    """
    source = source or InMemoryStorage()
    audit_logger = None
    if audit:
        audit_storage = source if isinstance(source, AuditStorageInterface) else None
        audit_logger = AuditLogger(audit_storage)
    return BalanceService(source, audit_logger)
