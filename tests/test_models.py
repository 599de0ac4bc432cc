"""
Tests for SettleSmart

Test strategy:
1. Unit tests for individual components (models, validator, engine)
2. Flow tests for the service layer against in-memory storage
3. No external services anywhere
"""

import pytest
from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from settlesmart.models.expense import (
    Expense,
    ExpenseStatus,
    Group,
    Participant,
    SplitType,
    ValidationIssue,
    ValidationResult,
)
from settlesmart.models.balance import (
    BalanceSnapshot,
    Settlement,
    SettlementResolution,
)
from settlesmart.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestExpenseModels:
    """Tests for expense-related Pydantic models."""

    def test_expense_defaults(self):
        """Test Expense defaults to an unsettled equal split."""
        expense = Expense(amount=Decimal("100"), payer_id="A", participants=("A", "B"))
        assert expense.split_type == SplitType.EQUAL
        assert expense.status == ExpenseStatus.UNSETTLED
        assert expense.group_id is None
        assert expense.category == "Other"
        assert expense.is_settled is False
        assert expense.id

    def test_expense_is_immutable(self):
        """Test that expenses can't be modified after creation."""
        expense = Expense(amount=Decimal("100"), payer_id="A", participants=("A", "B"))
        with pytest.raises(ValidationError):
            expense.amount = Decimal("200")

    def test_expense_accepts_string_amount(self):
        """Test amounts are parsed into Decimal without float drift."""
        expense = Expense(amount="0.10", payer_id="A", participants=["A"])
        assert expense.amount == Decimal("0.10")
        assert expense.participants == ("A",)

    def test_expense_requires_payer(self):
        """Test that a payer is structurally required."""
        with pytest.raises(ValidationError):
            Expense(amount=Decimal("10"), payer_id="", participants=("A",))

    def test_expense_allows_empty_participants_until_validation(self):
        """Test empty splits construct; the validator rejects them later."""
        expense = Expense(amount=Decimal("10"), payer_id="A", participants=())
        assert expense.participants == ()

    def test_involved_ids_order(self):
        """Test involved ids list payer first, then participants, then share keys."""
        expense = Expense(
            amount=Decimal("90"),
            payer_id="A",
            participants=("B", "C", "A"),
        )
        assert expense.involved_ids() == ["A", "B", "C"]

    def test_involves(self):
        expense = Expense(amount=Decimal("90"), payer_id="A", participants=("B",))
        assert expense.involves("A")
        assert expense.involves("B")
        assert not expense.involves("C")

    def test_participant_initials(self):
        """Test initials come from the first two name parts."""
        assert Participant(id="u1", name="ada lovelace byron").initials == "AL"
        assert Participant(id="u2", name="Grace").initials == "G"

    def test_group_members_are_ordered(self):
        group = Group(id="g1", name="Trip", members=["C", "A", "B"])
        assert group.members == ("C", "A", "B")


class TestBalanceModels:
    """Tests for derived balance models."""

    def test_settlement_serialises_with_from_and_to(self):
        """Test Settlement dumps as from/to when using aliases."""
        settlement = Settlement(from_id="B", to_id="A", amount=Decimal("50"))
        dumped = settlement.model_dump(by_alias=True)
        assert dumped == {"from": "B", "to": "A", "amount": Decimal("50")}

    def test_settlement_accepts_alias_input(self):
        settlement = Settlement.model_validate({"from": "B", "to": "A", "amount": "5"})
        assert settlement.from_id == "B"
        assert settlement.to_id == "A"

    def test_settlement_rejects_non_positive_amount(self):
        """Test that zero or negative settlements are rejected."""
        with pytest.raises(ValidationError):
            Settlement(from_id="B", to_id="A", amount=Decimal("0"))

    def test_settlement_equality(self):
        a = Settlement(from_id="B", to_id="A", amount=Decimal("50"))
        b = Settlement(from_id="B", to_id="A", amount=Decimal("50"))
        assert a == b

    def test_snapshot_totals(self):
        """Test owed-to/owed-by sums over settlements."""
        snapshot = BalanceSnapshot(
            balances={"A": Decimal("80"), "B": Decimal("-30"), "C": Decimal("-50")},
            settlements=[
                Settlement(from_id="B", to_id="A", amount=Decimal("30")),
                Settlement(from_id="C", to_id="A", amount=Decimal("50")),
            ],
        )
        assert snapshot.total_owed_to("A") == Decimal("80")
        assert snapshot.total_owed_by("A") == Decimal("0")
        assert snapshot.total_owed_by("C") == Decimal("50")
        assert snapshot.net_for("B") == Decimal("-30")
        assert snapshot.balance_of("Z") == Decimal("0")

    def test_resolution_has_orphans(self):
        resolution = SettlementResolution(
            orphaned=[Settlement(from_id="X", to_id="A", amount=Decimal("1"))]
        )
        assert resolution.has_orphans is True
        assert SettlementResolution().has_orphans is False


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            expense_id="e1",
            issues=[
                ValidationIssue(
                    field="participants",
                    issue_type="missing",
                    message="No participants",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1
        assert result.is_valid is False

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            expense_id="e1",
            issues=[
                ValidationIssue(
                    field="unequal_shares",
                    issue_type="zero_share",
                    message="C owes nothing",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0
        assert result.is_valid is True

    def test_validation_issue_rejects_unknown_severity(self):
        with pytest.raises(ValidationError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.BALANCES_COMPUTED,
            description="Computed balances",
        )
        assert event.event_type == AuditEventType.BALANCES_COMPUTED
        assert event.severity == AuditSeverity.INFO
        assert isinstance(event.timestamp, datetime)

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.VIEW_COMPUTED,
            entity_type="group",
            entity_id="g1",
            description="Computed group view",
            details={"expense_count": 3},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "view_computed"
        assert log_dict["entity_id"] == "g1"
        assert log_dict["details"]["expense_count"] == 3

    def test_builder_malformed_expense(self):
        """Test AuditEventBuilder.malformed_expense."""
        correlation_id = uuid4()
        event = AuditEventBuilder.malformed_expense(
            expense_id="e1",
            issues=[{"field": "participants"}],
            correlation_id=correlation_id,
        )
        assert event.event_type == AuditEventType.MALFORMED_EXPENSE_REJECTED
        assert event.severity == AuditSeverity.WARNING
        assert event.entity_id == "e1"
        assert event.correlation_id == correlation_id

    def test_builder_invariant_violated_is_critical(self):
        event = AuditEventBuilder.invariant_violated(
            error_message="sum is 5",
            details={"total": "5"},
            correlation_id=uuid4(),
        )
        assert event.severity == AuditSeverity.CRITICAL
        assert event.error_code == "BalanceInvariantViolated"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
