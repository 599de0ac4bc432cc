"""
Data Models Package

This package contains all Pydantic models used by SettleSmart.
Expenses come in, balance and settlement records go out.
"""

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
    DashboardTotals,
    FinancialStandings,
    GroupBalanceSummary,
    GroupSpending,
    PairwiseSummary,
    ResolvedSettlement,
    Settlement,
    SettlementResolution,
    TimelinePoint,
)
from settlesmart.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Expense models
    "Expense",
    "ExpenseStatus",
    "Group",
    "Participant",
    "SplitType",
    "ValidationIssue",
    "ValidationResult",
    # Balance models
    "BalanceSnapshot",
    "DashboardTotals",
    "FinancialStandings",
    "GroupBalanceSummary",
    "GroupSpending",
    "PairwiseSummary",
    "ResolvedSettlement",
    "Settlement",
    "SettlementResolution",
    "TimelinePoint",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
