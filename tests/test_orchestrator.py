"""
Tests for the balance service orchestrator.

The service is async; each test drives it with asyncio.run against an
InMemoryStorage that doubles as the audit sink.
"""

import asyncio
from decimal import Decimal
from uuid import uuid4

import pytest

from settlesmart.balances import MalformedExpense, UnknownParticipant
from settlesmart.models.audit import AuditEventType
from settlesmart.models.expense import Expense, Group, Participant
from settlesmart.orchestrator import BalanceService, create_balance_service
from settlesmart.services.storage import InMemoryStorage, NotFoundError, StorageError


def d(value):
    return Decimal(str(value))


def expense(amount, payer, participants, **kwargs):
    return Expense(amount=d(amount), payer_id=payer, participants=tuple(participants), **kwargs)


@pytest.fixture
def storage():
    return InMemoryStorage(
        expenses=[expense(100, "A", ["A", "B"], group_id="trip")],
        participants=[
            Participant(id="A", name="Ann"),
            Participant(id="B", name="Ben"),
            Participant(id="C", name="Cat"),
        ],
        groups=[Group(id="trip", name="Lisbon", members=("A", "B"))],
    )


@pytest.fixture
def service(storage):
    return create_balance_service(storage)


def event_types(storage, correlation_id):
    events = asyncio.run(storage.get_events_by_correlation_id(correlation_id))
    return [e.event_type for e in events]


class TestGlobalBalances:

    def test_known_participants_lead_the_universe(self, service):
        snapshot = asyncio.run(service.global_balances())
        assert snapshot.balances == {"A": d(50), "B": d(-50), "C": d(0)}
        assert [(s.from_id, s.to_id, s.amount) for s in snapshot.settlements] == [
            ("B", "A", d(50)),
        ]

    def test_events_share_the_correlation_id(self, service, storage):
        correlation_id = uuid4()
        asyncio.run(service.global_balances(correlation_id))
        assert event_types(storage, correlation_id) == [
            AuditEventType.SNAPSHOT_LOADED,
            AuditEventType.BALANCES_COMPUTED,
        ]

    def test_every_call_reads_the_current_store(self, service, storage):
        """Test nothing is cached between calls."""
        asyncio.run(service.global_balances())
        storage.replace_expenses([expense(30, "C", ["A", "B", "C"])])
        snapshot = asyncio.run(service.global_balances())
        assert snapshot.balances == {"A": d(-10), "B": d(-10), "C": d(20)}


class TestScopedViews:

    def test_dashboard(self, service):
        totals = asyncio.run(service.dashboard("A"))
        assert totals.total_owed_to_user == d(50)
        assert totals.net_balance == d(50)

    def test_group_summary_uses_members(self, service):
        summary = asyncio.run(service.group_summary("trip"))
        assert list(summary.member_balances) == ["A", "B"]
        assert summary.remaining == d(50)
        assert summary.progress == d(0)

    def test_missing_group_raises(self, service):
        with pytest.raises(NotFoundError):
            asyncio.run(service.group_summary("nope"))

    def test_pairwise(self, service):
        summary = asyncio.run(service.pairwise("A", "B"))
        assert summary.expense_count == 1
        assert summary.who_pays_more == "A"

    def test_timeline_length(self, service):
        points = asyncio.run(service.timeline("A", days=7))
        assert len(points) == 7

    def test_trust_score_defaults_to_base(self, service):
        assert asyncio.run(service.trust_score("B")) == 70

    def test_trust_score_is_audited(self, service, storage):
        correlation_id = uuid4()
        asyncio.run(service.trust_score("B", correlation_id))
        assert event_types(storage, correlation_id) == [
            AuditEventType.SNAPSHOT_LOADED,
            AuditEventType.VIEW_COMPUTED,
        ]


class UnreachableStore(InMemoryStorage):
    """Audit sink works, the expense source does not."""

    async def list_expenses(self):
        raise StorageError("expense store unreachable")


class TestSourceFailures:

    def test_storage_failure_is_audited_and_raised(self):
        storage = UnreachableStore()
        service = create_balance_service(storage)
        correlation_id = uuid4()

        with pytest.raises(StorageError):
            asyncio.run(service.global_balances(correlation_id))

        events = asyncio.run(storage.get_events_by_correlation_id(correlation_id))
        assert [e.event_type for e in events] == [AuditEventType.SYSTEM_ERROR]
        assert events[0].error_code == "StorageError"
        assert events[0].details == {"operation": "load_snapshot"}


class TestErrorsAreAuditedAndRaised:

    def test_malformed_expense(self, service, storage):
        storage.replace_expenses([expense(10, "A", [], id="broken")])
        correlation_id = uuid4()
        with pytest.raises(MalformedExpense):
            asyncio.run(service.global_balances(correlation_id))
        assert AuditEventType.MALFORMED_EXPENSE_REJECTED in event_types(storage, correlation_id)

    def test_non_member_in_group_expense(self, service, storage):
        storage.replace_expenses([expense(10, "C", ["A"], group_id="trip")])
        correlation_id = uuid4()
        with pytest.raises(UnknownParticipant):
            asyncio.run(service.group_summary("trip", correlation_id))
        assert AuditEventType.UNKNOWN_PARTICIPANT in event_types(storage, correlation_id)


class TestResolvedSettlements:

    def test_resolved_names(self, service):
        resolution = asyncio.run(service.resolved_settlements())
        assert resolution.resolved[0].from_participant.name == "Ben"
        assert not resolution.has_orphans

    def test_strict_resolution_raises_for_unknown_ids(self, service, storage):
        storage.replace_expenses([expense(20, "A", ["ghost"])])
        with pytest.raises(UnknownParticipant):
            asyncio.run(service.resolved_settlements(strict=True))

    def test_lenient_resolution_reports_orphans(self, service, storage):
        storage.replace_expenses([expense(20, "A", ["ghost"])])
        correlation_id = uuid4()
        resolution = asyncio.run(service.resolved_settlements(strict=False, correlation_id=correlation_id))
        assert resolution.orphaned[0].from_id == "ghost"
        assert AuditEventType.ORPHANED_SETTLEMENTS in event_types(storage, correlation_id)

        event = asyncio.run(storage.get_recent_events(limit=1))[0]
        assert event.details["participant_ids"] == ["ghost"]


def test_service_without_audit_logger(storage):
    service = BalanceService(storage)
    snapshot = asyncio.run(service.global_balances())
    assert snapshot.balances["A"] == d(50)
    assert asyncio.run(storage.get_recent_events()) == []
