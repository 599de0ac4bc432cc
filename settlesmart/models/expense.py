"""
Core Data Models for SettleSmart

These models define the schemas for the records the balance engine consumes.
They are designed to:
1. Enforce type safety at runtime
2. Be immutable once created
3. Carry money as Decimal, never as binary floats

DESIGN DECISION: Structural problems (wrong types, missing payer) fail at
model construction with a pydantic ValidationError. Semantic problems
(empty split, shares that don't add up) are allowed through here and are
rejected by ExpenseValidator when a computation starts, so the caller gets
a MalformedExpense naming the exact expense.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS
# =============================================================================

class SplitType(str, Enum):
    """How an expense's cost is divided among its participants."""
    EQUAL = "equal"
    UNEQUAL = "unequal"


class ExpenseStatus(str, Enum):
    """
    Settlement status of an expense.

    CRITICAL: Only the external settle-up workflow flips this.
    The balance engine reads it and never writes it.
    """
    UNSETTLED = "unsettled"
    SETTLED = "settled"


# =============================================================================
# PARTICIPANTS & GROUPS
# =============================================================================

class Participant(BaseModel):
    """
    Display record for a participant id.

    The engine only ever needs the id; name and email belong to the
    profile service and are attached after simplification.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = Field(default=None, max_length=320)

    @property
    def initials(self) -> str:
        parts = self.name.split()
        return "".join(part[0] for part in parts[:2]).upper()


class Group(BaseModel):
    """A named set of members that expenses can be scoped to."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    members: tuple[str, ...] = Field(
        default_factory=tuple,
        description="Member participant ids, in display order"
    )


# =============================================================================
# EXPENSE
# =============================================================================

class Expense(BaseModel):
    """
    A single shared expense.

    The payer fronted `amount`; `participants` share the cost according to
    `split_type`. The payer may or may not be one of the participants.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Unique expense ID"
    )
    description: str = Field(
        default="",
        max_length=500,
    )
    amount: Decimal = Field(
        ...,
        description="Amount fronted by the payer (single implicit currency)"
    )
    payer_id: str = Field(
        ...,
        min_length=1,
        description="Participant who paid"
    )
    split_type: SplitType = Field(
        default=SplitType.EQUAL,
    )
    participants: tuple[str, ...] = Field(
        default_factory=tuple,
        description="Participants sharing the cost, in entry order"
    )
    unequal_shares: Optional[dict[str, Decimal]] = Field(
        default=None,
        description="Explicit share per participant (unequal splits only)"
    )
    group_id: Optional[str] = Field(
        default=None,
        description="Group scope; None for personal expenses"
    )
    date: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the expense happened (temporal views only)"
    )
    category: str = Field(
        default="Other",
        max_length=100,
    )
    status: ExpenseStatus = Field(
        default=ExpenseStatus.UNSETTLED,
    )
    settled_at: Optional[datetime] = Field(
        default=None,
        description="Set by the settle-up workflow"
    )
    is_recurring: bool = False

    @property
    def is_settled(self) -> bool:
        return self.status == ExpenseStatus.SETTLED

    def involved_ids(self) -> list[str]:
        """Payer, then split participants, then share keys; first appearance wins."""
        seen: dict[str, None] = {self.payer_id: None}
        for participant_id in self.participants:
            seen.setdefault(participant_id, None)
        for participant_id in self.unequal_shares or {}:
            seen.setdefault(participant_id, None)
        return list(seen)

    def involves(self, participant_id: str) -> bool:
        """True if the participant paid for or shares this expense."""
        return participant_id == self.payer_id or participant_id in self.participants


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'share_mismatch')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """Result of validating one expense."""

    expense_id: str
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def is_valid(self) -> bool:
        return not self.has_errors
