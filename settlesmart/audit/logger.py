"""
Audit Logger

DESIGN DECISION: Every balance computation the service layer runs is logged.
This provides:
1. Traceability from a displayed number back to the snapshot behind it
2. A loud record of rejected expenses and broken invariants

The audit logger:
- Is async so it can sit inside the embedding application's event loop
- Gracefully handles storage failures (never crashes the caller)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from settlesmart.config import get_settings
from settlesmart.models.audit import AuditEvent, AuditEventBuilder
from settlesmart.services.storage import AuditStorageInterface


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure structlog for JSON output through the stdlib logging module.

    Called once on import with the configured level; call again to change it.
    """
    level = level or get_settings().app.log_level
    logging.basicConfig(format="%(message)s", level=getattr(logging, level))
    logging.getLogger().setLevel(getattr(logging, level))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit storage backend, if one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("settlesmart.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_snapshot_loaded(
        self,
        expense_count: int,
        participant_count: int,
        correlation_id: UUID,
    ) -> None:
        """Log a snapshot load."""
        await self.log(AuditEventBuilder.snapshot_loaded(
            expense_count=expense_count,
            participant_count=participant_count,
            correlation_id=correlation_id,
        ))

    async def log_balances_computed(
        self,
        participant_count: int,
        settlement_count: int,
        correlation_id: UUID,
    ) -> None:
        """Log a global netting pass."""
        await self.log(AuditEventBuilder.balances_computed(
            participant_count=participant_count,
            settlement_count=settlement_count,
            correlation_id=correlation_id,
        ))

    async def log_view_computed(
        self,
        scope: str,
        entity_id: Optional[str],
        details: dict[str, Any],
        correlation_id: UUID,
    ) -> None:
        """Log a scoped view computation."""
        await self.log(AuditEventBuilder.view_computed(
            scope=scope,
            entity_id=entity_id,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_malformed_expense(
        self,
        expense_id: Optional[str],
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        """Log a rejected expense."""
        await self.log(AuditEventBuilder.malformed_expense(
            expense_id=expense_id,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_unknown_participant(
        self,
        participant_id: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.unknown_participant(
            participant_id=participant_id,
            correlation_id=correlation_id,
        ))

    async def log_orphaned_settlements(
        self,
        count: int,
        participant_ids: list[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.orphaned_settlements(
            count=count,
            participant_ids=participant_ids,
            correlation_id=correlation_id,
        ))

    async def log_invariant_violated(
        self,
        error_message: str,
        details: dict[str, Any],
        correlation_id: UUID,
    ) -> None:
        """Log a broken balance invariant. This is always a defect."""
        await self.log(AuditEventBuilder.invariant_violated(
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new request (e.g., a dashboard refresh).
    Pass it through all subsequent operations.
    """
    return uuid4()
