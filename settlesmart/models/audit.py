"""
Audit Models for SettleSmart

Every balance computation the service layer runs is logged for audit purposes.
This provides:
1. Traceability of which snapshot produced which numbers
2. Debugging information when an invariant breaks
3. A record of every rejected expense

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Snapshot loading
    SNAPSHOT_LOADED = "snapshot_loaded"

    # Computation
    BALANCES_COMPUTED = "balances_computed"
    VIEW_COMPUTED = "view_computed"

    # Rejections and defects
    MALFORMED_EXPENSE_REJECTED = "malformed_expense_rejected"
    UNKNOWN_PARTICIPANT = "unknown_participant"
    ORPHANED_SETTLEMENTS = "orphaned_settlements"
    INVARIANT_VIOLATED = "invariant_violated"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'group', 'pair')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one dashboard refresh)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.snapshot_loaded(12, 4, correlation_id)
        event = AuditEventBuilder.view_computed("group", "g1", {...}, correlation_id)
    """

    @staticmethod
    def snapshot_loaded(
        expense_count: int,
        participant_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_LOADED,
            entity_type="snapshot",
            correlation_id=correlation_id,
            description=f"Loaded {expense_count} expenses for {participant_count} participants",
            details={
                "expense_count": expense_count,
                "participant_count": participant_count,
            },
        )

    @staticmethod
    def balances_computed(
        participant_count: int,
        settlement_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCES_COMPUTED,
            entity_type="snapshot",
            correlation_id=correlation_id,
            description=f"Computed {settlement_count} settlements across {participant_count} participants",
            details={
                "participant_count": participant_count,
                "settlement_count": settlement_count,
            },
        )

    @staticmethod
    def view_computed(
        scope: str,
        entity_id: Optional[str],
        details: dict[str, Any],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VIEW_COMPUTED,
            entity_type=scope,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Computed {scope} view",
            details=details,
        )

    @staticmethod
    def malformed_expense(
        expense_id: Optional[str],
        issues: list[dict],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MALFORMED_EXPENSE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense rejected with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def unknown_participant(
        participant_id: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.UNKNOWN_PARTICIPANT,
            severity=AuditSeverity.WARNING,
            entity_type="participant",
            entity_id=participant_id,
            correlation_id=correlation_id,
            description=f"Participant '{participant_id}' is not in the known participant set",
        )

    @staticmethod
    def orphaned_settlements(
        count: int,
        participant_ids: list[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ORPHANED_SETTLEMENTS,
            severity=AuditSeverity.WARNING,
            entity_type="settlement",
            correlation_id=correlation_id,
            description=f"{count} settlements reference unresolvable participants",
            details={"participant_ids": participant_ids},
        )

    @staticmethod
    def invariant_violated(
        error_message: str,
        details: dict[str, Any],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVARIANT_VIOLATED,
            severity=AuditSeverity.CRITICAL,
            entity_type="snapshot",
            correlation_id=correlation_id,
            description="Balance invariant violated",
            details=details,
            error_code="BalanceInvariantViolated",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"System error: {error_type}",
            details=details or {},
            error_code=error_type,
            error_message=error_message,
        )
