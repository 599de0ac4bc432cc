"""
Expense Validation

DESIGN DECISION: Every expense is validated before any arithmetic happens.
An expense with no participants, a non-positive amount or shares that don't
add up can't be folded into balances without breaking the conservation law,
so it must be rejected rather than skipped.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them; the balance engine turns errors into MalformedExpense.
"""

from decimal import Decimal
from typing import Optional

from settlesmart.config import get_settings
from settlesmart.models.expense import (
    Expense,
    SplitType,
    ValidationIssue,
    ValidationResult,
)


class ExpenseValidator:
    """
    Validates expenses for use in balance computations.

    Errors block computation. Warnings describe legal but unusual input
    (a participant with no explicit share owes nothing, for example).
    """

    def __init__(self, epsilon: Optional[Decimal] = None):
        """
        Initialize validator.

        Args:
            epsilon: Tolerance for share sums. Defaults to the configured epsilon.
        """
        self._epsilon = epsilon if epsilon is not None else get_settings().balance.epsilon

    @property
    def epsilon(self) -> Decimal:
        return self._epsilon

    def validate(self, expense: Expense) -> ValidationResult:
        """Run every check and collect all issues (does not stop at the first)."""
        issues = []
        issues.extend(self._validate_amount(expense))
        issues.extend(self._validate_participants(expense))
        issues.extend(self._validate_shares(expense))
        issues.extend(self._validate_settlement_dates(expense))
        return ValidationResult(expense_id=expense.id, issues=issues)

    def _validate_amount(self, expense: Expense) -> list[ValidationIssue]:
        if not expense.amount.is_finite():
            return [ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message=f"Amount must be a finite number, got {expense.amount}",
                severity="error",
            )]
        if expense.amount <= 0:
            return [ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message=f"Amount must be greater than zero, got {expense.amount}",
                severity="error",
                suggested_fix="Record refunds as a separate expense paid the other way",
            )]
        return []

    def _validate_participants(self, expense: Expense) -> list[ValidationIssue]:
        issues = []

        if not expense.participants:
            issues.append(ValidationIssue(
                field="participants",
                issue_type="missing",
                message="Expense has no participants to split the cost with",
                severity="error",
                suggested_fix="Add at least one participant",
            ))
            return issues

        duplicates = sorted({
            p for p in expense.participants if expense.participants.count(p) > 1
        })
        if duplicates:
            issues.append(ValidationIssue(
                field="participants",
                issue_type="duplicate",
                message=f"Participants listed more than once: {', '.join(duplicates)}",
                severity="error",
            ))

        if any(not p for p in expense.participants):
            issues.append(ValidationIssue(
                field="participants",
                issue_type="invalid_value",
                message="Participant ids must be non-empty",
                severity="error",
            ))

        return issues

    def _validate_shares(self, expense: Expense) -> list[ValidationIssue]:
        issues = []
        shares = expense.unequal_shares or {}

        if expense.split_type == SplitType.EQUAL:
            if shares:
                issues.append(ValidationIssue(
                    field="unequal_shares",
                    issue_type="unexpected",
                    message="Explicit shares were given for an equal split",
                    severity="error",
                    suggested_fix="Use an unequal split or drop the shares",
                ))
            return issues

        if not shares:
            issues.append(ValidationIssue(
                field="unequal_shares",
                issue_type="missing",
                message="Unequal split has no shares",
                severity="error",
            ))
            return issues

        listed = set(expense.participants)
        strangers = [p for p in shares if p not in listed]
        if strangers:
            issues.append(ValidationIssue(
                field="unequal_shares",
                issue_type="unknown_participant",
                message=f"Shares given for non-participants: {', '.join(strangers)}",
                severity="error",
                suggested_fix="Add them to the participant list",
            ))

        negative = [p for p, share in shares.items() if not share.is_finite() or share < 0]
        if negative:
            issues.append(ValidationIssue(
                field="unequal_shares",
                issue_type="invalid_value",
                message=f"Shares must be finite and non-negative: {', '.join(negative)}",
                severity="error",
            ))
            return issues

        total = sum(shares.values(), Decimal(0))
        if expense.amount.is_finite() and abs(total - expense.amount) > self._epsilon:
            issues.append(ValidationIssue(
                field="unequal_shares",
                issue_type="share_mismatch",
                message=f"Shares sum to {total} but the amount is {expense.amount}",
                severity="error",
                suggested_fix="Adjust the shares so they add up to the amount",
            ))

        unshared = [p for p in expense.participants if p not in shares]
        if unshared:
            issues.append(ValidationIssue(
                field="unequal_shares",
                issue_type="zero_share",
                message=f"Participants without a share owe nothing: {', '.join(unshared)}",
                severity="warning",
            ))

        return issues

    def _validate_settlement_dates(self, expense: Expense) -> list[ValidationIssue]:
        if expense.settled_at is None:
            return []
        if expense.settled_at.date() < expense.date.date():
            return [ValidationIssue(
                field="settled_at",
                issue_type="inconsistent",
                message="Expense was marked settled before it happened",
                severity="warning",
            )]
        return []
