"""
Audit Models for the Household Ledger

Every ledger computation is recorded so a household can later see which
balances and settlement plans were produced, and why a computation failed.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Loading
    SOURCE_LOADED = "source_loaded"
    SOURCE_FAILED = "source_failed"

    # Computation
    BALANCES_COMPUTED = "balances_computed"
    SETTLEMENT_PLANNED = "settlement_planned"
    PERIODS_ACCRUED = "periods_accrued"

    # Failures
    VALIDATION_FAILED = "validation_failed"
    INVARIANT_VIOLATED = "invariant_violated"
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

    # Context - which household is this about?
    house_id: Optional[str] = Field(
        default=None,
        description="Household the computation ran for"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one settlement request)"
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
            "house_id": self.house_id,
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
        event = AuditEventBuilder.balances_computed(house_id, 4, 12, correlation_id)
        event = AuditEventBuilder.settlement_planned(house_id, 2, "30.00", correlation_id)
    """

    @staticmethod
    def source_loaded(
        house_id: str,
        member_count: int,
        event_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SOURCE_LOADED,
            severity=AuditSeverity.DEBUG,
            house_id=house_id,
            correlation_id=correlation_id,
            description=f"Loaded {event_count} events for {member_count} members",
            details={
                "member_count": member_count,
                "event_count": event_count,
            },
        )

    @staticmethod
    def source_failed(
        house_id: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SOURCE_FAILED,
            severity=AuditSeverity.ERROR,
            house_id=house_id,
            correlation_id=correlation_id,
            description="Could not load household data",
            error_message=error_message,
        )

    @staticmethod
    def balances_computed(
        house_id: Optional[str],
        member_count: int,
        event_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCES_COMPUTED,
            house_id=house_id,
            correlation_id=correlation_id,
            description=f"Balances computed for {member_count} members from {event_count} events",
            details={
                "member_count": member_count,
                "event_count": event_count,
            },
        )

    @staticmethod
    def settlement_planned(
        house_id: Optional[str],
        transfer_count: int,
        total_amount: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENT_PLANNED,
            house_id=house_id,
            correlation_id=correlation_id,
            description=f"Settlement plan with {transfer_count} transfers",
            details={
                "transfer_count": transfer_count,
                "total_amount": total_amount,
            },
        )

    @staticmethod
    def periods_accrued(
        house_id: Optional[str],
        target_month: str,
        month_count: int,
        remaining_fund: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERIODS_ACCRUED,
            house_id=house_id,
            correlation_id=correlation_id,
            description=f"Fund accounting for {target_month} over {month_count} months",
            details={
                "target_month": target_month,
                "month_count": month_count,
                "remaining_fund": remaining_fund,
            },
        )

    @staticmethod
    def validation_failed(
        house_id: Optional[str],
        issues: list[dict],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            house_id=house_id,
            correlation_id=correlation_id,
            description=f"Event validation failed with {len(issues)} issues",
            details={
                "issues": issues,
            },
        )

    @staticmethod
    def invariant_violated(
        house_id: Optional[str],
        invariant: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVARIANT_VIOLATED,
            severity=AuditSeverity.CRITICAL,
            house_id=house_id,
            correlation_id=correlation_id,
            description=f"Ledger invariant violated: {invariant}",
            error_code=invariant,
            error_message=error_message,
            details=details or {},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
