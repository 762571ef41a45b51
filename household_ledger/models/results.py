"""
Result Models for the Ledger Engine

Everything the engine hands back to the presentation layer:
- Settlement transfers
- Monthly fund accounting (per member, per month and household totals)
- Validation issues
- The LedgerReport envelope returned by the caller-side flow

CRITICAL: Amounts are exact Decimals. Rounding and currency formatting
belong to whoever displays them.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


ZERO = Decimal("0")

# member handle -> signed balance; positive means the household owes them
NetBalance = dict[str, Decimal]


# =============================================================================
# SETTLEMENT
# =============================================================================

class Transfer(BaseModel):
    """
    One payment in a settlement plan.

    Serialized with the keys ``from``, ``to`` and ``amount``.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_member: str = Field(..., min_length=1, alias="from")
    to_member: str = Field(..., min_length=1, alias="to")
    amount: Decimal = Field(..., gt=0)

    @model_validator(mode="after")
    def validate_parties(self) -> "Transfer":
        if self.from_member == self.to_member:
            raise ValueError("Transfer cannot be from a member to themselves")
        return self


# =============================================================================
# PERIOD ACCOUNTING
# =============================================================================

class MemberAccounting(BaseModel):
    """Running fund figures for one member."""
    model_config = ConfigDict(frozen=True)

    deposits: Decimal = ZERO
    rent: Decimal = ZERO
    utilities: Decimal = ZERO
    wage: Decimal = ZERO
    meal_count: int = Field(default=0, ge=0)
    meal_cost: Decimal = ZERO
    settlements: Decimal = Field(
        default=ZERO,
        description="Net effect of settlement payments (paid minus received)"
    )

    @property
    def total_charges(self) -> Decimal:
        return self.rent + self.utilities + self.wage + self.meal_cost

    @property
    def fund_balance(self) -> Decimal:
        """Member's standing against the shared fund (positive = in credit)."""
        return self.deposits + self.settlements - self.total_charges

    def plus(self, other: "MemberAccounting") -> "MemberAccounting":
        """Return the field-wise sum of two accountings."""
        return MemberAccounting(
            deposits=self.deposits + other.deposits,
            rent=self.rent + other.rent,
            utilities=self.utilities + other.utilities,
            wage=self.wage + other.wage,
            meal_count=self.meal_count + other.meal_count,
            meal_cost=self.meal_cost + other.meal_cost,
            settlements=self.settlements + other.settlements,
        )


class MonthlyRollup(BaseModel):
    """Household figures for one calendar month."""
    model_config = ConfigDict(frozen=True)

    month: str = Field(..., pattern=r"^\d{4}-(0[1-9]|1[0-2])$")
    deposits: Decimal = ZERO
    rent: Decimal = ZERO
    utilities: Decimal = ZERO
    wage: Decimal = ZERO
    groceries: Decimal = ZERO
    meal_count: int = Field(default=0, ge=0)
    meal_unit_price: Decimal = ZERO
    members: dict[str, MemberAccounting] = Field(default_factory=dict)

    @property
    def total_costs(self) -> Decimal:
        return self.rent + self.utilities + self.wage + self.groceries

    @property
    def net_change(self) -> Decimal:
        """Deposits minus everything the month drew from the fund."""
        return self.deposits - self.total_costs


class HouseAccountingSummary(BaseModel):
    """Household-level totals across every processed month."""
    model_config = ConfigDict(frozen=True)

    total_deposits: Decimal = ZERO
    total_rent: Decimal = ZERO
    total_utilities: Decimal = ZERO
    total_wages: Decimal = ZERO
    total_groceries: Decimal = ZERO
    total_meals: int = Field(default=0, ge=0)
    cost_per_meal: Decimal = ZERO
    previous_periods_remaining: Decimal = Field(
        default=ZERO,
        description="Fund surplus/deficit carried from months before the target month"
    )
    remaining_fund: Decimal = ZERO


class PeriodAccountingResult(BaseModel):
    """Output of the period accountant for one target month."""
    model_config = ConfigDict(frozen=True)

    target_month: str
    months: list[str] = Field(default_factory=list)
    members: dict[str, MemberAccounting] = Field(default_factory=dict)
    periods: list[MonthlyRollup] = Field(default_factory=list)
    summary: HouseAccountingSummary = Field(default_factory=HouseAccountingSummary)

    def period(self, month: str) -> Optional[MonthlyRollup]:
        """Get the rollup for a month, if it was processed."""
        for rollup in self.periods:
            if rollup.month == month:
                return rollup
        return None


# =============================================================================
# VALIDATION
# =============================================================================

class ValidationIssue(BaseModel):
    """A single problem found with an event."""
    model_config = ConfigDict(frozen=True)

    event_id: Optional[UUID] = Field(
        default=None,
        description="Offending event, when the issue concerns one"
    )
    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'non_positive_amount', 'self_transfer')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning)$",
        description="Issue severity"
    )

    @property
    def is_error(self) -> bool:
        return self.severity == "error"


# =============================================================================
# FLOW RESULT
# =============================================================================

class LedgerErrorKind(str, Enum):
    """Why a computation failed."""
    VALIDATION = "validation"
    INVARIANT = "invariant"
    SOURCE = "source"


class LedgerReport(BaseModel):
    """
    Result of one caller-side ledger computation.

    Failures are reported here instead of raised, so request handlers can
    answer "could not compute balances" without leaking internals.
    """

    house_id: Optional[str] = None
    correlation_id: Optional[UUID] = None
    computed_at: datetime = Field(
        default_factory=datetime.utcnow
    )

    # Success/failure
    success: bool
    error_kind: Optional[LedgerErrorKind] = None
    error_message: Optional[str] = None
    issues: list[ValidationIssue] = Field(default_factory=list)

    # Payload (whichever the computation produced)
    balances: Optional[NetBalance] = None
    transfers: list[Transfer] = Field(default_factory=list)
    accounting: Optional[PeriodAccountingResult] = None

    @property
    def has_errors(self) -> bool:
        return any(issue.is_error for issue in self.issues)

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if not issue.is_error]
