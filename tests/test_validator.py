"""
Tests for semantic event validation.
"""

import pytest
from datetime import date
from decimal import Decimal

from household_ledger.errors import ValidationError
from household_ledger.models.events import (
    Contributor,
    DepositStatus,
    FundDeposit,
    MealRecord,
    MemberMealPreference,
    Purchase,
    SettlementPayment,
)
from household_ledger.validation import EventValidator


DAY = date(2024, 3, 1)


@pytest.fixture
def validator():
    return EventValidator(tolerance=Decimal("0.000001"))


class TestPurchaseValidation:
    """Tests for purchase checks."""

    def test_valid_purchase(self, validator):
        """Test a well-formed purchase has no issues."""
        purchase = Purchase(
            payer="a",
            total_amount=Decimal("100"),
            occurred_at=DAY,
            contributors=[Contributor(member="b", amount=Decimal("40"))],
        )
        assert validator.validate(purchase) == []

    def test_zero_total(self, validator):
        """Test a zero total is an error."""
        purchase = Purchase(payer="a", total_amount=Decimal("0"), occurred_at=DAY)
        issues = validator.validate(purchase)
        assert [issue.issue_type for issue in issues] == ["non_positive_amount"]
        assert issues[0].field == "total_amount"
        assert issues[0].event_id == purchase.event_id

    def test_negative_contribution(self, validator):
        """Test negative contributions are errors."""
        purchase = Purchase(
            payer="a",
            total_amount=Decimal("10"),
            occurred_at=DAY,
            contributors=[Contributor(member="b", amount=Decimal("-1"))],
        )
        issues = validator.validate(purchase)
        assert any(issue.issue_type == "negative_contribution" for issue in issues)

    def test_zero_contribution_is_allowed(self, validator):
        """Test a zero contribution is not an error."""
        purchase = Purchase(
            payer="a",
            total_amount=Decimal("10"),
            occurred_at=DAY,
            contributors=[Contributor(member="b", amount=Decimal("0"))],
        )
        assert validator.validate(purchase) == []

    def test_contributors_exceed_total(self, validator):
        """Test contributions above the total are errors."""
        purchase = Purchase(
            payer="a",
            total_amount=Decimal("10"),
            occurred_at=DAY,
            contributors=[
                Contributor(member="a", amount=Decimal("6")),
                Contributor(member="b", amount=Decimal("6")),
            ],
        )
        issues = validator.validate(purchase)
        assert [issue.issue_type for issue in issues] == ["contributors_exceed_total"]

    def test_contributors_within_tolerance(self, validator):
        """Test rounding noise within tolerance is accepted."""
        purchase = Purchase(
            payer="a",
            total_amount=Decimal("10"),
            occurred_at=DAY,
            contributors=[Contributor(member="b", amount=Decimal("10.0000001"))],
        )
        assert validator.validate(purchase) == []


class TestOtherEventValidation:
    """Tests for settlement, deposit and meal checks."""

    def test_self_settlement(self, validator):
        """Test settling with oneself is an error."""
        payment = SettlementPayment(payer="a", payee="a", amount=Decimal("5"), occurred_at=DAY)
        issues = validator.validate(payment)
        assert [issue.issue_type for issue in issues] == ["self_transfer"]

    def test_negative_settlement(self, validator):
        """Test negative settlement amounts are errors."""
        payment = SettlementPayment(payer="a", payee="b", amount=Decimal("-5"), occurred_at=DAY)
        issues = validator.validate(payment)
        assert [issue.issue_type for issue in issues] == ["non_positive_amount"]

    def test_zero_deposit(self, validator):
        """Test zero deposits are errors whatever their status."""
        deposit = FundDeposit(
            member="a",
            amount=Decimal("0"),
            occurred_at=DAY,
            status=DepositStatus.REJECTED,
        )
        issues = validator.validate(deposit)
        assert issues[0].issue_type == "non_positive_amount"

    def test_opt_out_without_date_is_warning(self, validator):
        """Test an opt-out without a start date only warns."""
        preference = MemberMealPreference(member="a", meals_enabled=False)
        issues = validator.validate(preference)
        assert len(issues) == 1
        assert issues[0].severity == "warning"
        assert issues[0].is_error is False

    def test_meal_record_has_no_issues(self, validator):
        """Test meal records are always accepted."""
        record = MealRecord(meal_date=DAY, per_member_slots={"a": {"lunch": False}})
        assert validator.validate(record) == []


class TestCheck:
    """Tests for raising on error-level issues."""

    def test_check_raises_with_event(self, validator):
        """Test check identifies the offending event."""
        payment = SettlementPayment(payer="a", payee="a", amount=Decimal("5"), occurred_at=DAY)
        with pytest.raises(ValidationError) as exc_info:
            validator.check(payment)
        assert exc_info.value.event is payment
        assert exc_info.value.event_id == payment.event_id
        assert exc_info.value.issues[0].issue_type == "self_transfer"

    def test_check_returns_warnings(self, validator):
        """Test check lets warning-only events through."""
        preference = MemberMealPreference(member="a", meals_enabled=False)
        warnings = validator.check(preference)
        assert len(warnings) == 1

    def test_validate_all_collects_everything(self, validator):
        """Test batch validation reports every issue in event order."""
        events = [
            FundDeposit(member="a", amount=Decimal("-1"), occurred_at=DAY),
            Purchase(payer="a", total_amount=Decimal("5"), occurred_at=DAY),
            SettlementPayment(payer="b", payee="b", amount=Decimal("1"), occurred_at=DAY),
        ]
        issues = validator.validate_all(events)
        assert [issue.issue_type for issue in issues] == [
            "non_positive_amount",
            "self_transfer",
        ]


class TestUserFriendlySummary:
    """Tests for summaries shown to household members."""

    def test_clean_summary(self, validator):
        """Test summary with no issues."""
        assert validator.get_user_friendly_summary([]) == "All records look consistent."

    def test_summary_lists_errors_and_warnings(self, validator):
        """Test errors and warnings get separate sections."""
        issues = validator.validate_all([
            SettlementPayment(payer="a", payee="a", amount=Decimal("5"), occurred_at=DAY),
            MemberMealPreference(member="b", meals_enabled=False),
        ])
        summary = validator.get_user_friendly_summary(issues)
        assert "Some records could not be used:" in summary
        assert "Please check the following:" in summary
        assert "cannot settle a payment with themselves" in summary


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
