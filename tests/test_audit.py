"""Tests for the audit logger."""

import asyncio
from uuid import uuid4

import pytest

from settlesmart.audit import AuditLogger, create_correlation_id
from settlesmart.models.audit import AuditEventBuilder, AuditEventType, AuditSeverity
from settlesmart.services.storage import InMemoryStorage, StorageError


class FailingStorage(InMemoryStorage):
    async def append_event(self, event):
        raise StorageError("sink unavailable")


class TestAuditLogger:

    def test_persists_to_storage(self):
        storage = InMemoryStorage()
        logger = AuditLogger(storage)
        correlation_id = create_correlation_id()

        asyncio.run(logger.log_snapshot_loaded(3, 2, correlation_id))

        events = asyncio.run(storage.get_events_by_correlation_id(correlation_id))
        assert len(events) == 1
        assert events[0].event_type == AuditEventType.SNAPSHOT_LOADED

    def test_storage_failure_never_raises(self):
        """Test a broken sink doesn't take the computation down with it."""
        logger = AuditLogger(FailingStorage())
        event = AuditEventBuilder.system_error("Boom", "it broke", correlation_id=uuid4())
        assert asyncio.run(logger.log(event)) is False

    def test_without_storage_logs_locally(self):
        event = AuditEventBuilder.snapshot_loaded(0, 0, uuid4())
        assert asyncio.run(AuditLogger().log(event)) is True

    def test_invariant_violation_is_critical(self):
        storage = InMemoryStorage()
        correlation_id = uuid4()
        asyncio.run(AuditLogger(storage).log_invariant_violated(
            "balances sum to 1",
            {"total": "1"},
            correlation_id,
        ))
        event = asyncio.run(storage.get_recent_events())[0]
        assert event.severity == AuditSeverity.CRITICAL
        assert event.error_code == "BalanceInvariantViolated"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
