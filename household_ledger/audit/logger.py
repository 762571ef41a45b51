"""
Audit Logger

Every ledger computation is logged: what was computed for which household,
and why a computation failed.

The audit logger:
- Is async so it can write to remote audit storage
- Never fails the computation if storage fails
- Supports correlation IDs to trace the events of one request
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from household_ledger.models.audit import AuditEvent, AuditEventBuilder
from household_ledger.sources.interface import AuditStorageInterface


# Configure structlog for local logging
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


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when one is configured
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
        self._logger = structlog.get_logger(__name__)

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
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
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

    async def log_source_loaded(
        self,
        house_id: str,
        member_count: int,
        event_count: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.source_loaded(
            house_id=house_id,
            member_count=member_count,
            event_count=event_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_source_failed(
        self,
        house_id: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.source_failed(
            house_id=house_id,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_balances_computed(
        self,
        house_id: Optional[str],
        member_count: int,
        event_count: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.balances_computed(
            house_id=house_id,
            member_count=member_count,
            event_count=event_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_settlement_planned(
        self,
        house_id: Optional[str],
        transfer_count: int,
        total_amount: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.settlement_planned(
            house_id=house_id,
            transfer_count=transfer_count,
            total_amount=total_amount,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_periods_accrued(
        self,
        house_id: Optional[str],
        target_month: str,
        month_count: int,
        remaining_fund: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.periods_accrued(
            house_id=house_id,
            target_month=target_month,
            month_count=month_count,
            remaining_fund=remaining_fund,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        house_id: Optional[str],
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.validation_failed(
            house_id=house_id,
            issues=issues,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_invariant_violated(
        self,
        house_id: Optional[str],
        invariant: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.invariant_violated(
            house_id=house_id,
            invariant=invariant,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a request (e.g., a dashboard refresh) and
    pass it through every step.
    """
    return uuid4()
