"""
In-Memory Data Sources

Dictionary-backed implementations of the source interfaces, for tests and
for callers that already hold a household's data.
"""

from dataclasses import dataclass, field
from typing import Iterable
from uuid import UUID

from household_ledger.models.audit import AuditEvent
from household_ledger.models.events import (
    FundDeposit,
    HouseConfig,
    LedgerEvent,
    MealRecord,
    Member,
    MemberMealPreference,
    Purchase,
    SettlementPayment,
)
from household_ledger.sources.interface import (
    AuditStorageInterface,
    HouseholdDataSource,
    HouseholdNotFoundError,
)


@dataclass
class HouseholdRecord:
    """Everything stored for one household."""
    house: HouseConfig
    members: list[Member] = field(default_factory=list)
    events: list[LedgerEvent] = field(default_factory=list)

    def of_type(self, event_type: type) -> list:
        return [event for event in self.events if isinstance(event, event_type)]


class InMemoryHouseholdSource(HouseholdDataSource):
    """Household source over plain Python collections."""

    def __init__(self):
        self._households: dict[str, HouseholdRecord] = {}

    def add_household(
        self,
        house: HouseConfig,
        members: Iterable[Member] = (),
        events: Iterable[LedgerEvent] = (),
    ) -> None:
        """Register (or replace) a household; house.house_id is required."""
        if not house.house_id:
            raise ValueError("An in-memory household needs a house_id")
        self._households[house.house_id] = HouseholdRecord(
            house=house,
            members=list(members),
            events=list(events),
        )

    def add_events(self, house_id: str, events: Iterable[LedgerEvent]) -> None:
        self._get(house_id).events.extend(events)

    def _get(self, house_id: str) -> HouseholdRecord:
        try:
            return self._households[house_id]
        except KeyError:
            raise HouseholdNotFoundError(house_id) from None

    async def get_house(self, house_id: str) -> HouseConfig:
        return self._get(house_id).house

    async def list_members(self, house_id: str) -> list[Member]:
        return list(self._get(house_id).members)

    async def list_purchases(self, house_id: str) -> list[Purchase]:
        return self._get(house_id).of_type(Purchase)

    async def list_settlement_payments(self, house_id: str) -> list[SettlementPayment]:
        return self._get(house_id).of_type(SettlementPayment)

    async def list_fund_deposits(self, house_id: str) -> list[FundDeposit]:
        return self._get(house_id).of_type(FundDeposit)

    async def list_meal_records(self, house_id: str) -> list[MealRecord]:
        return self._get(house_id).of_type(MealRecord)

    async def list_meal_preferences(self, house_id: str) -> list[MemberMealPreference]:
        return self._get(house_id).of_type(MemberMealPreference)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log held in a list."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        matching = [e for e in self.events if e.correlation_id == correlation_id]
        return sorted(matching, key=lambda e: e.timestamp)
