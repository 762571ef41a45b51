"""
Two-Stage Event Validation

STAGE 1 - SCHEMA VALIDATION:
- Types, required fields, event kind
- Done by the pydantic models when an event is constructed or parsed

STAGE 2 - SEMANTIC VALIDATION (this module):
- Amounts that must be positive
- Settlement payments to oneself
- Purchase contributions adding up to more than the purchase
- Meal opt-outs that can never take effect

IMPORTANT: Validation NEVER silently fixes issues.
It reports them, and the engine refuses to compute on error-level issues.
"""

from decimal import Decimal
from typing import Iterable, Optional

from household_ledger.config import get_settings
from household_ledger.errors import ValidationError
from household_ledger.models.events import (
    FundDeposit,
    LedgerEvent,
    MemberMealPreference,
    Purchase,
    SettlementPayment,
)
from household_ledger.models.results import ValidationIssue


class EventValidator:
    """
    Semantic validator for financial events.

    One instance can be reused across any number of events.
    """

    def __init__(self, tolerance: Optional[Decimal] = None):
        """
        Initialize validator.

        Args:
            tolerance: How far contributions may exceed a purchase total
                       before it is an error. Defaults to the configured
                       balance tolerance.
        """
        if tolerance is None:
            tolerance = get_settings().ledger.balance_tolerance
        self._tolerance = tolerance

    def _positive_amount(
        self,
        event: LedgerEvent,
        field: str,
        amount: Decimal,
    ) -> list[ValidationIssue]:
        if amount > 0:
            return []
        return [ValidationIssue(
            event_id=event.event_id,
            field=field,
            issue_type="non_positive_amount",
            message=f"{field} must be greater than zero (got {amount})",
            severity="error",
        )]

    def _validate_purchase(self, event: Purchase) -> list[ValidationIssue]:
        issues = self._positive_amount(event, "total_amount", event.total_amount)

        for contributor in event.contributors:
            if contributor.amount < 0:
                issues.append(ValidationIssue(
                    event_id=event.event_id,
                    field="contributors",
                    issue_type="negative_contribution",
                    message=(
                        f"Contribution from {contributor.member} is negative "
                        f"({contributor.amount})"
                    ),
                    severity="error",
                ))

        contributed = event.contributed_total
        if contributed - event.total_amount > self._tolerance:
            issues.append(ValidationIssue(
                event_id=event.event_id,
                field="contributors",
                issue_type="contributors_exceed_total",
                message=(
                    f"Contributions ({contributed}) exceed the purchase "
                    f"total ({event.total_amount})"
                ),
                severity="error",
            ))

        return issues

    def _validate_settlement(self, event: SettlementPayment) -> list[ValidationIssue]:
        issues = self._positive_amount(event, "amount", event.amount)

        if event.payer == event.payee:
            issues.append(ValidationIssue(
                event_id=event.event_id,
                field="payee",
                issue_type="self_transfer",
                message=f"{event.payer} cannot settle a payment with themselves",
                severity="error",
            ))

        return issues

    def _validate_preference(self, event: MemberMealPreference) -> list[ValidationIssue]:
        if event.meals_enabled or event.off_from_date is not None:
            return []
        return [ValidationIssue(
            event_id=event.event_id,
            field="off_from_date",
            issue_type="opt_out_without_date",
            message=(
                f"Meals are turned off for {event.member} without a start "
                "date, so no meals are excluded"
            ),
            severity="warning",
        )]

    def validate(self, event: LedgerEvent) -> list[ValidationIssue]:
        """
        Run semantic validation on one event.

        Returns every issue found (errors and warnings).
        """
        if isinstance(event, Purchase):
            return self._validate_purchase(event)
        if isinstance(event, SettlementPayment):
            return self._validate_settlement(event)
        if isinstance(event, FundDeposit):
            return self._positive_amount(event, "amount", event.amount)
        if isinstance(event, MemberMealPreference):
            return self._validate_preference(event)
        # Meal records carry no amounts
        return []

    def check(self, event: LedgerEvent) -> list[ValidationIssue]:
        """
        Validate one event and raise if it has any error-level issue.

        Returns the (warning-only) issues otherwise.

        Raises:
            ValidationError: identifying the event and its issues
        """
        issues = self.validate(event)
        errors = [issue for issue in issues if issue.is_error]
        if errors:
            raise ValidationError(
                f"Invalid {type(event).__name__} {event.event_id}: {errors[0].message}",
                event=event,
                issues=errors,
            )
        return issues

    def validate_all(self, events: Iterable[LedgerEvent]) -> list[ValidationIssue]:
        """Validate a batch of events and collect every issue, in event order."""
        issues = []
        for event in events:
            issues.extend(self.validate(event))
        return issues

    def get_user_friendly_summary(
        self,
        issues: list[ValidationIssue],
    ) -> str:
        """
        Generate a short summary of validation results.

        This is what we show to household members.
        """
        errors = [issue for issue in issues if issue.is_error]
        warnings = [issue for issue in issues if not issue.is_error]

        if not errors and not warnings:
            return "All records look consistent."

        lines = []

        if errors:
            lines.append("Some records could not be used:")
            for issue in errors:
                lines.append(f"   • {issue.message}")

        if warnings:
            if lines:
                lines.append("")
            lines.append("Please check the following:")
            for issue in warnings:
                lines.append(f"   • {issue.message}")

        return "\n".join(lines)
