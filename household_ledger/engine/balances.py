"""
Balance Accumulator

Folds a household's financial events into one signed balance per member.
Positive means the household owes the member; negative means the member
owes the household.

Rules per event:
- Purchase: every contributor is credited what they put in, anything the
  contributors did not cover is credited to the payer, and the total is
  then charged equally to every member of the current roster.
- SettlementPayment: the payer is credited and the payee debited, which
  cancels the debt the payment settled.
- FundDeposit: credited to the depositor, but only in meal-tracking
  households and only once approved.
- Meal records and preferences do not move money here; rent, meals and
  category splits are the period accountant's job.

GUARANTEES:
- Members referenced by events but missing from the roster are still
  tracked, so expenses from members who have left stay attributable.
- Every event is validated first; nothing is clamped or corrected.
- The result sums to zero (or to the credited deposits in meal-tracking
  households) within tolerance, or InvariantViolation is raised. Purchase
  remainders within tolerance are credited to nobody, so they are added to
  the expected sum rather than counted as drift.
"""

from decimal import Decimal
from typing import Iterable, Optional, Sequence

import structlog

from household_ledger.config import get_settings
from household_ledger.errors import InvariantViolation, ValidationError
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
from household_ledger.models.results import ZERO, NetBalance, ValidationIssue
from household_ledger.validation import EventValidator


logger = structlog.get_logger(__name__)


def _credit(balances: NetBalance, member: str, amount: Decimal) -> None:
    balances[member] = balances.get(member, ZERO) + amount


def _debit(balances: NetBalance, member: str, amount: Decimal) -> None:
    balances[member] = balances.get(member, ZERO) - amount


def apply_purchase(
    balances: NetBalance,
    purchase: Purchase,
    roster: Sequence[str],
    tolerance: Decimal,
) -> Decimal:
    """
    Credit contributors (and the uncovered remainder to the payer), then split equally.

    Returns how far the purchase moves the balance sum away from zero. This
    is non-zero only when the remainder is within tolerance and so is not
    credited to anyone.
    """
    if not roster:
        raise ValidationError(
            f"Purchase {purchase.event_id} cannot be split across an empty roster",
            event=purchase,
            issues=[ValidationIssue(
                event_id=purchase.event_id,
                field="members",
                issue_type="empty_roster",
                message="A purchase needs at least one household member to share it",
                severity="error",
            )],
        )

    for contributor in purchase.contributors:
        _credit(balances, contributor.member, contributor.amount)

    remainder = purchase.total_amount - purchase.contributed_total
    share = purchase.total_amount / len(roster)
    for handle in roster:
        _debit(balances, handle, share)

    if remainder > tolerance:
        _credit(balances, purchase.payer, remainder)
        return ZERO
    return -remainder


def apply_settlement(balances: NetBalance, payment: SettlementPayment) -> None:
    """Cancel the settled debt: payer moves up, payee moves down."""
    _credit(balances, payment.payer, payment.amount)
    _debit(balances, payment.payee, payment.amount)


def compute_balances(
    members: Sequence[Member],
    events: Iterable[LedgerEvent],
    house: Optional[HouseConfig] = None,
    tolerance: Optional[Decimal] = None,
) -> NetBalance:
    """
    Compute each member's net balance from a household's events.

    Args:
        members: Current household roster
        events: Every relevant event, in any order
        house: Household configuration; defaults to a plain expenses household
        tolerance: Settled-amount tolerance; defaults to the configured value

    Returns:
        Ordered map of member handle to balance (roster first, then any
        member first seen in an event)

    Raises:
        ValidationError: If an event is malformed
        InvariantViolation: If the balances do not add up
    """
    if tolerance is None:
        tolerance = get_settings().ledger.balance_tolerance
    house = house or HouseConfig()
    validator = EventValidator(tolerance=tolerance)

    roster = [member.handle for member in members]
    balances: NetBalance = {handle: ZERO for handle in roster}
    credited_deposits = ZERO
    # Remainders within tolerance are credited to nobody
    uncredited = ZERO
    event_count = 0

    for event in events:
        event_count += 1
        validator.check(event)

        if isinstance(event, Purchase):
            uncredited += apply_purchase(balances, event, roster, tolerance)
        elif isinstance(event, SettlementPayment):
            apply_settlement(balances, event)
        elif isinstance(event, FundDeposit):
            if house.is_meal_tracking and event.is_approved:
                _credit(balances, event.member, event.amount)
                credited_deposits += event.amount
        elif isinstance(event, (MealRecord, MemberMealPreference)):
            continue
        else:
            raise ValidationError(
                f"Unsupported event type: {type(event).__name__}",
                event=event,
            )

    total = sum(balances.values(), ZERO)
    expected = credited_deposits + uncredited
    drift = total - expected
    if abs(drift) > tolerance:
        raise InvariantViolation(
            "zero_sum",
            f"Balances sum to {total}, expected {expected}",
            details={
                "total": str(total),
                "expected": str(expected),
                "drift": str(drift),
            },
        )

    logger.debug(
        "balances_computed",
        member_count=len(balances),
        event_count=event_count,
        meal_tracking=house.is_meal_tracking,
    )
    return balances
