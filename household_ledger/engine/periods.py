"""
Period Accountant

Monthly fund accounting for meal-tracking households.

Members pay into a shared fund; rent, utilities, wages and groceries are
drawn from it. Groceries are charged per meal eaten, everything else is
split evenly (rent is each member's own fixed amount). Because the fund is
a running pool, the report for a month replays every earlier month:

    for each month touched by an event, up to the target month:
        count eligible meals for every day that has passed
        add approved deposits, rent, and the month's purchases by category
        meal unit price = groceries / meals eaten that month
        charge each member their share
        months before the target carry their surplus/deficit forward

    remaining fund = all deposits - all rent, utilities, wages, groceries

Settlement payments are not costs. They move between members and show up
in each member's ``settlements`` figure only.
"""

import calendar
import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence, Union

import structlog

from household_ledger.config import get_settings
from household_ledger.errors import ValidationError
from household_ledger.engine.meals import MealEligibilityResolver
from household_ledger.models.events import (
    ExpenseCategory,
    FundDeposit,
    HouseConfig,
    LedgerEvent,
    MealRecord,
    Member,
    MemberMealPreference,
    Purchase,
    SettlementPayment,
)
from household_ledger.models.results import (
    ZERO,
    HouseAccountingSummary,
    MemberAccounting,
    MonthlyRollup,
    PeriodAccountingResult,
    ValidationIssue,
)
from household_ledger.validation import EventValidator


logger = structlog.get_logger(__name__)

_MONTH_PATTERN = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")


# =============================================================================
# MONTH HELPERS
# =============================================================================

def month_key(day: date) -> str:
    """Calendar month of a date as "YYYY-MM"."""
    return f"{day.year:04d}-{day.month:02d}"


def parse_month(value: Union[str, date]) -> str:
    """
    Normalize a month given as "YYYY-MM" or as any date within it.

    Raises:
        ValidationError: If the string is not a valid "YYYY-MM" month
    """
    if isinstance(value, date):
        return month_key(value)
    if not _MONTH_PATTERN.match(value):
        raise ValidationError(
            f"Invalid month {value!r}, expected YYYY-MM",
            issues=[ValidationIssue(
                field="target_month",
                issue_type="invalid_format",
                message=f"Month must look like 2024-03 (got {value!r})",
                severity="error",
            )],
        )
    return value


def days_in_month(month: str) -> list[date]:
    """Every date of a "YYYY-MM" month, in order."""
    year, month_number = (int(part) for part in parse_month(month).split("-"))
    _, last_day = calendar.monthrange(year, month_number)
    return [date(year, month_number, day) for day in range(1, last_day + 1)]


# =============================================================================
# MONTH BUCKETS
# =============================================================================

@dataclass
class _MonthEvents:
    """Events that fall into one calendar month."""
    purchases: list[Purchase] = field(default_factory=list)
    settlements: list[SettlementPayment] = field(default_factory=list)
    deposits: list[FundDeposit] = field(default_factory=list)


def _bucket_by_month(
    events: Iterable[LedgerEvent],
    validator: EventValidator,
) -> tuple[dict[str, _MonthEvents], list[MealRecord], list[MemberMealPreference]]:
    buckets: dict[str, _MonthEvents] = {}
    meal_records: list[MealRecord] = []
    preferences: list[MemberMealPreference] = []

    def bucket(day: date) -> _MonthEvents:
        return buckets.setdefault(month_key(day), _MonthEvents())

    for event in events:
        validator.check(event)

        if isinstance(event, Purchase):
            bucket(event.occurred_at).purchases.append(event)
        elif isinstance(event, SettlementPayment):
            bucket(event.occurred_at).settlements.append(event)
        elif isinstance(event, FundDeposit):
            # Pending and rejected deposits never touch the fund
            if event.is_approved:
                bucket(event.occurred_at).deposits.append(event)
        elif isinstance(event, MealRecord):
            bucket(event.meal_date)
            meal_records.append(event)
        elif isinstance(event, MemberMealPreference):
            preferences.append(event)
        else:
            raise ValidationError(
                f"Unsupported event type: {type(event).__name__}",
                event=event,
            )

    return buckets, meal_records, preferences


# =============================================================================
# ACCOUNTING
# =============================================================================

def _count_month_meals(
    month: str,
    roster: Sequence[str],
    resolver: MealEligibilityResolver,
    meals_per_day: int,
    as_of: date,
) -> dict[str, int]:
    counts = {handle: 0 for handle in roster}
    for day in days_in_month(month):
        if day > as_of:
            break
        for handle in roster:
            counts[handle] += resolver.count_meals(handle, day, meals_per_day)
    return counts


def _accrue_month(
    month: str,
    members: Sequence[Member],
    month_events: _MonthEvents,
    meal_counts: dict[str, int],
) -> MonthlyRollup:
    """Account for a single month."""
    roster = [member.handle for member in members]
    member_count = len(roster)

    deposits: dict[str, Decimal] = {}
    for deposit in month_events.deposits:
        deposits[deposit.member] = deposits.get(deposit.member, ZERO) + deposit.amount

    settlements: dict[str, Decimal] = {}
    for payment in month_events.settlements:
        settlements[payment.payer] = settlements.get(payment.payer, ZERO) + payment.amount
        settlements[payment.payee] = settlements.get(payment.payee, ZERO) - payment.amount

    groceries = ZERO
    utilities = ZERO
    wage = ZERO
    for purchase in month_events.purchases:
        if purchase.category == ExpenseCategory.GROCERIES:
            groceries += purchase.total_amount
        elif purchase.category == ExpenseCategory.WAGE:
            wage += purchase.total_amount
        else:
            # utilities and other
            utilities += purchase.total_amount

    total_meals = sum(meal_counts.values())
    meal_unit_price = groceries / total_meals if total_meals > 0 else ZERO
    utility_share = utilities / member_count if member_count > 0 else ZERO
    wage_share = wage / member_count if member_count > 0 else ZERO

    accounts: dict[str, MemberAccounting] = {}
    for member in members:
        count = meal_counts.get(member.handle, 0)
        accounts[member.handle] = MemberAccounting(
            deposits=deposits.get(member.handle, ZERO),
            rent=member.monthly_rent,
            utilities=utility_share,
            wage=wage_share,
            meal_count=count,
            meal_cost=count * meal_unit_price,
            settlements=settlements.get(member.handle, ZERO),
        )

    # Former members still have their deposits and payments on record
    for handle in list(deposits) + list(settlements):
        if handle not in accounts:
            accounts[handle] = MemberAccounting(
                deposits=deposits.get(handle, ZERO),
                settlements=settlements.get(handle, ZERO),
            )

    return MonthlyRollup(
        month=month,
        deposits=sum(deposits.values(), ZERO),
        rent=sum((member.monthly_rent for member in members), ZERO),
        utilities=utilities,
        wage=wage,
        groceries=groceries,
        meal_count=total_meals,
        meal_unit_price=meal_unit_price,
        members=accounts,
    )


def accrue_periods(
    house: HouseConfig,
    members: Sequence[Member],
    events: Iterable[LedgerEvent],
    target_month: Union[str, date],
    as_of: Optional[date] = None,
    tolerance: Optional[Decimal] = None,
) -> PeriodAccountingResult:
    """
    Compute fund accounting for a meal-tracking household up to a month.

    Args:
        house: Household configuration (must be meal-tracking)
        members: Current household roster, with monthly rent
        events: Purchases, settlement payments, fund deposits, meal
                records and meal preferences, in any order
        target_month: Month to report on, "YYYY-MM" or a date within it
        as_of: Last day whose meals count; defaults to today
        tolerance: Validation tolerance; defaults to the configured value

    Returns:
        Per-member totals, per-month rollups and a household summary

    Raises:
        ValidationError: If an event or the target month is malformed
    """
    target = parse_month(target_month)

    if not house.is_meal_tracking:
        logger.warning(
            "period_accounting_skipped",
            house_id=house.house_id,
            house_type=house.house_type.value,
        )
        return PeriodAccountingResult(target_month=target)

    settings = get_settings().ledger
    if tolerance is None:
        tolerance = settings.balance_tolerance
    if as_of is None:
        as_of = date.today()
    meals_per_day = house.meals_per_day or settings.default_meals_per_day

    validator = EventValidator(tolerance=tolerance)
    buckets, meal_records, preferences = _bucket_by_month(events, validator)
    buckets.setdefault(target, _MonthEvents())
    resolver = MealEligibilityResolver(preferences, meal_records)
    roster = [member.handle for member in members]

    totals: dict[str, MemberAccounting] = {handle: MemberAccounting() for handle in roster}
    periods: list[MonthlyRollup] = []
    previous_remaining = ZERO

    for month in sorted(buckets):
        if month > target:
            break

        meal_counts = _count_month_meals(month, roster, resolver, meals_per_day, as_of)
        rollup = _accrue_month(month, members, buckets[month], meal_counts)
        periods.append(rollup)

        for handle, account in rollup.members.items():
            totals[handle] = totals.get(handle, MemberAccounting()).plus(account)

        if month < target:
            previous_remaining += rollup.net_change

    total_deposits = sum((rollup.deposits for rollup in periods), ZERO)
    total_rent = sum((rollup.rent for rollup in periods), ZERO)
    total_utilities = sum((rollup.utilities for rollup in periods), ZERO)
    total_wages = sum((rollup.wage for rollup in periods), ZERO)
    total_groceries = sum((rollup.groceries for rollup in periods), ZERO)
    total_meals = sum(rollup.meal_count for rollup in periods)

    summary = HouseAccountingSummary(
        total_deposits=total_deposits,
        total_rent=total_rent,
        total_utilities=total_utilities,
        total_wages=total_wages,
        total_groceries=total_groceries,
        total_meals=total_meals,
        cost_per_meal=total_groceries / total_meals if total_meals > 0 else ZERO,
        previous_periods_remaining=previous_remaining,
        remaining_fund=total_deposits - (
            total_rent + total_utilities + total_wages + total_groceries
        ),
    )

    logger.debug(
        "periods_accrued",
        house_id=house.house_id,
        target_month=target,
        month_count=len(periods),
        total_meals=total_meals,
    )

    return PeriodAccountingResult(
        target_month=target,
        months=[rollup.month for rollup in periods],
        members=totals,
        periods=periods,
        summary=summary,
    )
