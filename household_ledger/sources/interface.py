"""
Abstract Data Source Interfaces

DESIGN DECISION: The ledger engine never reads or writes storage itself.
The caller-side flow loads a household through these interfaces, so:
1. The document store can be swapped without touching the engine
2. Tests use in-memory sources
3. Key normalization and other data hygiene stay in the source

Each method returns the FULL relevant history; there is no pagination.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from household_ledger.models.audit import AuditEvent
from household_ledger.models.events import (
    FundDeposit,
    HouseConfig,
    MealRecord,
    Member,
    MemberMealPreference,
    Purchase,
    SettlementPayment,
)


class HouseholdDataSource(ABC):
    """
    Abstract interface for loading a household's ledger inputs.

    Any persistence implementation must provide these methods.
    """

    @abstractmethod
    async def get_house(self, house_id: str) -> HouseConfig:
        """
        Load household configuration.

        Raises:
            HouseholdNotFoundError: If the household does not exist
        """
        pass

    @abstractmethod
    async def list_members(self, house_id: str) -> list[Member]:
        """Current roster, in display order."""
        pass

    @abstractmethod
    async def list_purchases(self, house_id: str) -> list[Purchase]:
        pass

    @abstractmethod
    async def list_settlement_payments(self, house_id: str) -> list[SettlementPayment]:
        """Approved settlement payments only."""
        pass

    @abstractmethod
    async def list_fund_deposits(self, house_id: str) -> list[FundDeposit]:
        """All deposits, whatever their status; the engine filters to approved."""
        pass

    @abstractmethod
    async def list_meal_records(self, house_id: str) -> list[MealRecord]:
        pass

    @abstractmethod
    async def list_meal_preferences(self, house_id: str) -> list[MemberMealPreference]:
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one settlement request).

        Returns:
            List of related events in chronological order
        """
        pass


class SourceError(Exception):
    """Base exception for data source operations."""
    pass


class HouseholdNotFoundError(SourceError):
    """Household does not exist in the source."""

    def __init__(self, house_id: str):
        self.house_id = house_id
        super().__init__(f"Household not found: {house_id}")
