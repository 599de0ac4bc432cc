"""
Balance Engine Errors

Two kinds of failure exist and they mean different things:
- MalformedExpense / UnknownParticipant: the caller handed us bad data.
- BalanceInvariantViolated: our own arithmetic is wrong. That is a defect.

None of these are retried; the same input reproduces the same error.
"""

from decimal import Decimal
from typing import Optional

from settlesmart.models.expense import ValidationIssue


class BalanceError(Exception):
    """Base exception for balance computations."""
    pass


class MalformedExpense(BalanceError):
    """An expense failed validation and was not processed."""

    def __init__(
        self,
        expense_id: Optional[str],
        issues: list[ValidationIssue],
    ):
        self.expense_id = expense_id
        self.issues = issues
        reasons = "; ".join(issue.message for issue in issues) or "invalid expense"
        super().__init__(f"Malformed expense {expense_id}: {reasons}")


class UnknownParticipant(BalanceError):
    """An id is missing from the caller-supplied participant set."""

    def __init__(self, participant_id: str, context: str = ""):
        self.participant_id = participant_id
        message = f"Unknown participant '{participant_id}'"
        if context:
            message = f"{message} ({context})"
        super().__init__(message)


class BalanceInvariantViolated(BalanceError):
    """
    Conservation or settlement soundness does not hold.

    This signals an implementation bug (or hand-built balances that don't
    sum to zero), never a data-entry problem.
    """

    def __init__(
        self,
        message: str,
        total: Optional[Decimal] = None,
        residual: Optional[dict[str, Decimal]] = None,
    ):
        self.total = total
        self.residual = residual or {}
        super().__init__(message)
