"""
Household and Financial Event Models

These models describe everything the ledger engine consumes:
1. The member roster and household configuration
2. The five kinds of financial events recorded by a household

DESIGN DECISION: Events form a discriminated union on the ``kind`` field.
Documents coming from the persistence layer are parsed into exactly one
event type, and the engine matches on the concrete class.

IMPORTANT: These models only check shape and types. Sign and consistency
rules (positive amounts, no self-transfers, contributor totals) are checked
by ``household_ledger.validation.EventValidator`` so a malformed event can
still be constructed, identified and reported back to the caller.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Iterable, Literal, Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class HouseType(str, Enum):
    """
    Household variants.

    Only MEALS_AND_EXPENSES households track fund deposits, rent and meals.
    """
    EXPENSES = "expenses"
    MEALS_AND_EXPENSES = "meals_and_expenses"


class ExpenseCategory(str, Enum):
    """Purchase categories used by the monthly fund accounting."""
    GROCERIES = "groceries"
    UTILITIES = "utilities"
    WAGE = "wage"
    OTHER = "other"


class DepositStatus(str, Enum):
    """
    Fund deposit approval status.

    CRITICAL: Only APPROVED deposits ever reach a balance.
    """
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class MealSlot(str, Enum):
    """Meal slots of a day, in serving order."""
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"


class PaymentMethod(str, Enum):
    """How a settlement payment was made."""
    CASH = "cash"
    BANK = "bank"


# =============================================================================
# HOUSEHOLD MODELS
# =============================================================================

class Member(BaseModel):
    """
    A household member.

    The handle is opaque (usually the account email) and never changes.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    handle: str = Field(
        ...,
        min_length=1,
        description="Unique, immutable member identifier"
    )
    name: Optional[str] = Field(
        default=None,
        max_length=200,
        description="Display name"
    )
    monthly_rent: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Fixed monthly rent charged in meal-tracking households"
    )


class HouseConfig(BaseModel):
    """Household-level settings the engine needs."""
    model_config = ConfigDict(frozen=True)

    house_id: Optional[str] = None
    house_type: HouseType = HouseType.EXPENSES
    meals_per_day: Optional[Literal[2, 3]] = Field(
        default=None,
        description="Meals served per day; unset falls back to the configured default"
    )
    currency: Optional[str] = Field(
        default=None,
        max_length=3,
        description="ISO currency code, for display only"
    )

    @property
    def is_meal_tracking(self) -> bool:
        return self.house_type == HouseType.MEALS_AND_EXPENSES


# =============================================================================
# FINANCIAL EVENTS
# =============================================================================

class LedgerEvent(BaseModel):
    """Base for every financial event."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Identifier used when reporting problems with this event"
    )


class Contributor(BaseModel):
    """One member's contribution towards a purchase."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    member: str = Field(..., min_length=1)
    amount: Decimal


class Purchase(LedgerEvent):
    """
    A shared purchase.

    Contributors record who actually put money in. Any part of the total
    not covered by contributors is attributed to the payer.
    """
    kind: Literal["purchase"] = "purchase"

    payer: str = Field(..., min_length=1)
    total_amount: Decimal
    contributors: tuple[Contributor, ...] = ()
    occurred_at: date
    category: ExpenseCategory = ExpenseCategory.GROCERIES
    description: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("category", mode="before")
    @classmethod
    def default_category(cls, v: Any) -> Any:
        """Unset or empty categories count as groceries."""
        if v is None or v == "":
            return ExpenseCategory.GROCERIES
        return v

    @property
    def contributed_total(self) -> Decimal:
        return sum((c.amount for c in self.contributors), Decimal("0"))


class SettlementPayment(LedgerEvent):
    """An approved payment from one member directly to another."""
    kind: Literal["settlement_payment"] = "settlement_payment"

    payer: str = Field(..., min_length=1)
    payee: str = Field(..., min_length=1)
    amount: Decimal
    occurred_at: date
    method: Optional[PaymentMethod] = None


class FundDeposit(LedgerEvent):
    """Money a member put into the shared household fund."""
    kind: Literal["fund_deposit"] = "fund_deposit"

    member: str = Field(..., min_length=1)
    amount: Decimal
    occurred_at: date
    status: DepositStatus = DepositStatus.PENDING

    @property
    def is_approved(self) -> bool:
        return self.status == DepositStatus.APPROVED


class MealSlots(BaseModel):
    """Explicit per-slot overrides for one member on one day."""
    model_config = ConfigDict(frozen=True)

    breakfast: Optional[bool] = None
    lunch: Optional[bool] = None
    dinner: Optional[bool] = None

    def get(self, slot: MealSlot) -> Optional[bool]:
        return getattr(self, slot.value)


class MealRecord(LedgerEvent):
    """
    Per-day meal overrides.

    A missing member or slot means "no override": the slot is eligible
    unless a standing preference says otherwise.
    """
    kind: Literal["meal_record"] = "meal_record"

    meal_date: date
    per_member_slots: dict[str, MealSlots] = Field(default_factory=dict)


class MemberMealPreference(LedgerEvent):
    """A member's standing meal opt-out."""
    kind: Literal["meal_preference"] = "meal_preference"

    member: str = Field(..., min_length=1)
    meals_enabled: bool = True
    off_from_date: Optional[date] = None


FinancialEvent = Annotated[
    Union[Purchase, SettlementPayment, FundDeposit, MealRecord, MemberMealPreference],
    Field(discriminator="kind"),
]

_event_adapter: TypeAdapter[FinancialEvent] = TypeAdapter(FinancialEvent)


def parse_event(payload: dict[str, Any]) -> FinancialEvent:
    """
    Parse one persistence-layer document into a typed event.

    Raises pydantic.ValidationError if the document has an unknown ``kind``
    or the wrong shape.
    """
    return _event_adapter.validate_python(payload)


def parse_events(payloads: Iterable[dict[str, Any]]) -> list[FinancialEvent]:
    """Parse a batch of documents, preserving their order."""
    return [parse_event(payload) for payload in payloads]
