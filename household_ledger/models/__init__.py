"""
Data Models Package

This package contains all Pydantic models used by the household ledger.
Everything the engine consumes or returns conforms to these schemas.
"""

from household_ledger.models.events import (
    Contributor,
    DepositStatus,
    ExpenseCategory,
    FinancialEvent,
    FundDeposit,
    HouseConfig,
    HouseType,
    LedgerEvent,
    MealRecord,
    MealSlot,
    MealSlots,
    Member,
    MemberMealPreference,
    PaymentMethod,
    Purchase,
    SettlementPayment,
    parse_event,
    parse_events,
)
from household_ledger.models.results import (
    HouseAccountingSummary,
    LedgerErrorKind,
    LedgerReport,
    MemberAccounting,
    MonthlyRollup,
    NetBalance,
    PeriodAccountingResult,
    Transfer,
    ValidationIssue,
)
from household_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Household and event models
    "Contributor",
    "DepositStatus",
    "ExpenseCategory",
    "FinancialEvent",
    "FundDeposit",
    "HouseConfig",
    "HouseType",
    "LedgerEvent",
    "MealRecord",
    "MealSlot",
    "MealSlots",
    "Member",
    "MemberMealPreference",
    "PaymentMethod",
    "Purchase",
    "SettlementPayment",
    "parse_event",
    "parse_events",
    # Result models
    "HouseAccountingSummary",
    "LedgerErrorKind",
    "LedgerReport",
    "MemberAccounting",
    "MonthlyRollup",
    "NetBalance",
    "PeriodAccountingResult",
    "Transfer",
    "ValidationIssue",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
