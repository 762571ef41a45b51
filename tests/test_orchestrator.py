"""
Tests for the ledger flow, audit logging and settings.

Async flows are driven with asyncio.run against in-memory sources.
"""

import asyncio
import logging
import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from household_ledger.audit import AuditLogger, create_correlation_id
from household_ledger.config.settings import LedgerSettings, validate_all_settings
from household_ledger.models.audit import AuditEventBuilder, AuditEventType
from household_ledger.models.events import (
    Contributor,
    DepositStatus,
    ExpenseCategory,
    FundDeposit,
    HouseConfig,
    HouseType,
    Member,
    Purchase,
    SettlementPayment,
)
from household_ledger.models.results import LedgerErrorKind
from household_ledger.orchestrator import LedgerFlow, create_app_components
from household_ledger.sources import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    InMemoryHouseholdSource,
)


DAY = date(2024, 3, 1)
TOL = Decimal("0.000001")


@pytest.fixture
def source():
    source = InMemoryHouseholdSource()
    source.add_household(
        HouseConfig(house_id="flat", house_type=HouseType.EXPENSES),
        members=[Member(handle="a"), Member(handle="b"), Member(handle="c")],
        events=[
            Purchase(payer="a", total_amount=Decimal("60"), occurred_at=DAY),
            Purchase(
                payer="a",
                total_amount=Decimal("30"),
                occurred_at=DAY,
                contributors=[Contributor(member="b", amount=Decimal("10"))],
            ),
        ],
    )
    source.add_household(
        HouseConfig(
            house_id="mess",
            house_type=HouseType.MEALS_AND_EXPENSES,
            meals_per_day=2,
        ),
        members=[Member(handle="a"), Member(handle="b")],
        events=[
            FundDeposit(member="a", amount=Decimal("100"), occurred_at=DAY,
                        status=DepositStatus.APPROVED),
            Purchase(payer="a", total_amount=Decimal("40"), occurred_at=DAY,
                     category=ExpenseCategory.GROCERIES),
        ],
    )
    return source


@pytest.fixture
def storage():
    return InMemoryAuditStorage()


@pytest.fixture
def flow(source, storage):
    return LedgerFlow(source=source, audit_logger=AuditLogger(storage), tolerance=TOL)


class FailingAuditStorage(AuditStorageInterface):
    """Audit storage that is always down."""

    async def append_event(self, event):
        raise RuntimeError("audit store unavailable")

    async def get_events_by_correlation_id(self, correlation_id):
        return []


class TestSettleHousehold:
    """Tests for the settlement flow."""

    def test_settle_expenses_household(self, flow):
        """Test a full load, balance and netting run."""
        report = asyncio.run(flow.settle_household("flat"))

        assert report.success is True
        assert report.house_id == "flat"
        assert report.balances == {
            "a": Decimal("50"),
            "b": Decimal("-20"),
            "c": Decimal("-30"),
        }
        assert [(t.from_member, t.to_member, t.amount) for t in report.transfers] == [
            ("c", "a", Decimal("30")),
            ("b", "a", Decimal("20")),
        ]

    def test_settle_is_audited_under_one_correlation_id(self, flow, storage):
        """Test every audit event shares the request's correlation ID."""
        correlation_id = create_correlation_id()
        asyncio.run(flow.settle_household("flat", correlation_id=correlation_id))

        events = asyncio.run(storage.get_events_by_correlation_id(correlation_id))
        assert [e.event_type for e in events] == [
            AuditEventType.SOURCE_LOADED,
            AuditEventType.BALANCES_COMPUTED,
            AuditEventType.SETTLEMENT_PLANNED,
        ]
        assert events[-1].details["transfer_count"] == 2

    def test_settle_meal_household(self, flow):
        """Test meal-tracking households report balances only."""
        report = asyncio.run(flow.settle_household("mess"))

        assert report.success is True
        assert report.balances == {"a": Decimal("120"), "b": Decimal("-20")}
        assert report.transfers == []

    def test_settled_household(self, flow, source):
        """Test paying back every debt leaves nothing to transfer."""
        source.add_events("flat", [
            SettlementPayment(payer="c", payee="a", amount=Decimal("30"), occurred_at=DAY),
            SettlementPayment(payer="b", payee="a", amount=Decimal("20"), occurred_at=DAY),
        ])
        report = asyncio.run(flow.settle_household("flat"))

        assert report.success is True
        assert report.transfers == []

    def test_unknown_household(self, flow, storage):
        """Test a missing household is a source failure."""
        report = asyncio.run(flow.settle_household("nowhere"))

        assert report.success is False
        assert report.error_kind == LedgerErrorKind.SOURCE
        assert report.house_id == "nowhere"
        assert "Household not found" in report.error_message
        assert storage.events[-1].event_type == AuditEventType.SOURCE_FAILED

    def test_no_source_configured(self):
        """Test a flow without a source reports a source failure."""
        report = asyncio.run(LedgerFlow(tolerance=TOL).settle_household("flat"))

        assert report.success is False
        assert report.error_kind == LedgerErrorKind.SOURCE

    def test_invalid_events_report_every_issue(self, flow, source, storage):
        """Test all malformed events are reported together."""
        source.add_events("flat", [
            SettlementPayment(payer="a", payee="a", amount=Decimal("5"), occurred_at=DAY),
            Purchase(payer="b", total_amount=Decimal("-3"), occurred_at=DAY),
        ])
        report = asyncio.run(flow.settle_household("flat"))

        assert report.success is False
        assert report.error_kind == LedgerErrorKind.VALIDATION
        assert sorted(issue.issue_type for issue in report.issues) == [
            "non_positive_amount",
            "self_transfer",
        ]
        assert report.balances is None
        assert storage.events[-1].event_type == AuditEventType.VALIDATION_FAILED

    def test_invariant_violation_is_reported(self, flow, storage, monkeypatch):
        """Test a plan that does not settle is reported, not returned."""
        monkeypatch.setattr(
            "household_ledger.orchestrator.net",
            lambda balances, **kwargs: [],
        )
        report = asyncio.run(flow.settle_household("flat"))

        assert report.success is False
        assert report.error_kind == LedgerErrorKind.INVARIANT
        assert report.transfers == []
        assert storage.events[-1].event_type == AuditEventType.INVARIANT_VIOLATED

    def test_small_remainders_still_settle(self):
        """Test remainders within tolerance do not make settlement fail."""
        events = [
            Purchase(
                payer="a",
                total_amount=Decimal("100.00"),
                occurred_at=DAY,
                contributors=[Contributor(member="b", amount=Decimal("99.99"))],
            )
            for _ in range(2)
        ]
        flow = LedgerFlow(tolerance=Decimal("0.01"))
        report = flow.settle(HouseConfig(), [Member(handle="a"), Member(handle="b")], events)

        assert report.success is True
        assert [(t.from_member, t.to_member, t.amount) for t in report.transfers] == [
            ("a", "b", Decimal("99.98")),
        ]

    def test_zero_tolerance_is_honored(self):
        """Test an explicit zero tolerance is not replaced by the default."""
        event = Purchase(
            payer="a",
            total_amount=Decimal("10"),
            occurred_at=DAY,
            contributors=[Contributor(member="b", amount=Decimal("10.0000001"))],
        )
        flow = LedgerFlow(tolerance=Decimal("0"))
        report = flow.settle(HouseConfig(), [Member(handle="a"), Member(handle="b")], [event])

        assert report.success is False
        assert report.error_kind == LedgerErrorKind.VALIDATION
        assert report.issues[0].issue_type == "contributors_exceed_total"


class TestAccrueHousehold:
    """Tests for the fund accounting flow."""

    def test_accrue_meal_household(self, flow, storage):
        """Test fund accounting for a meal-tracking household."""
        report = asyncio.run(
            flow.accrue_household("mess", "2024-03", as_of=date(2024, 3, 5))
        )

        assert report.success is True
        accounting = report.accounting
        assert accounting.months == ["2024-03"]
        assert accounting.summary.total_meals == 20
        assert accounting.summary.cost_per_meal == Decimal("2")
        assert accounting.summary.remaining_fund == Decimal("60")
        assert storage.events[-1].event_type == AuditEventType.PERIODS_ACCRUED
        assert storage.events[-1].details["remaining_fund"] == "60"

    def test_accrue_bad_month(self, flow):
        """Test a malformed target month is a validation failure."""
        report = asyncio.run(flow.accrue_household("mess", "March"))

        assert report.success is False
        assert report.error_kind == LedgerErrorKind.VALIDATION
        assert report.issues[0].issue_type == "invalid_format"

    def test_accrue_without_source_data(self):
        """Test the synchronous entry point on already-loaded data."""
        flow = LedgerFlow(tolerance=TOL)
        house = HouseConfig(house_id="h", house_type=HouseType.MEALS_AND_EXPENSES)
        report = flow.accrue(
            house,
            [Member(handle="a")],
            [FundDeposit(member="a", amount=Decimal("30"), occurred_at=DAY,
                         status=DepositStatus.APPROVED)],
            "2024-03",
            as_of=date(2024, 2, 28),
        )

        assert report.success is True
        assert report.accounting.summary.remaining_fund == Decimal("30")


class TestAuditLogger:
    """Tests for audit logging."""

    def test_log_persists_event(self, storage):
        """Test events reach storage."""
        logger = AuditLogger(storage)
        event = AuditEventBuilder.system_error("boom", "something broke")

        assert asyncio.run(logger.log(event)) is True
        assert storage.events == [event]

    def test_storage_failure_does_not_raise(self):
        """Test a broken audit store never fails the caller."""
        logger = AuditLogger(FailingAuditStorage())
        event = AuditEventBuilder.system_error("boom", "something broke")

        assert asyncio.run(logger.log(event)) is False

    def test_log_without_storage(self):
        """Test local-only logging succeeds."""
        logger = AuditLogger()
        event = AuditEventBuilder.system_error("boom", "something broke", correlation_id=uuid4())

        assert asyncio.run(logger.log(event)) is True

    def test_log_error(self, storage):
        """Test system errors are recorded with their type."""
        logger = AuditLogger(storage)
        asyncio.run(logger.log_error("source_timeout", "took too long", details={"seconds": 30}))

        assert storage.events[0].event_type == AuditEventType.SYSTEM_ERROR
        assert storage.events[0].error_message == "took too long"
        assert storage.events[0].details["seconds"] == 30


class TestSettingsAndFactory:
    """Tests for configuration and component wiring."""

    def test_default_tolerance(self):
        """Test the default balance tolerance."""
        assert LedgerSettings().balance_tolerance == Decimal("0.000001")

    def test_tolerance_from_environment(self, monkeypatch):
        """Test settings are read from LEDGER_ variables."""
        monkeypatch.setenv("LEDGER_BALANCE_TOLERANCE", "0.01")
        assert LedgerSettings().balance_tolerance == Decimal("0.01")

    def test_rejects_unsupported_meals_per_day(self):
        """Test meals per day must be 2 or 3."""
        with pytest.raises(ValueError):
            LedgerSettings(default_meals_per_day=4)

    def test_validate_all_settings(self):
        """Test every settings group loads."""
        results = validate_all_settings()
        assert results["ledger"] is True
        assert results["app"] is True

    def test_create_app_components(self, source):
        """Test the factory wires an audit logger by default."""
        flow, audit_logger = create_app_components(source, InMemoryAuditStorage())
        assert isinstance(flow, LedgerFlow)
        assert isinstance(audit_logger, AuditLogger)

    def test_create_app_components_without_audit(self, monkeypatch):
        """Test auditing can be switched off."""
        monkeypatch.setenv("LEDGER_AUDIT_ENABLED", "false")
        _, audit_logger = create_app_components()
        assert audit_logger is None

    def test_debug_mode_sets_log_level(self, monkeypatch, request):
        """Test debug mode turns on engine debug logging."""
        package_logger = logging.getLogger("household_ledger")
        original_level = package_logger.level
        request.addfinalizer(lambda: package_logger.setLevel(original_level))

        monkeypatch.setenv("DEBUG_MODE", "true")
        create_app_components()
        assert package_logger.level == logging.DEBUG

        monkeypatch.setenv("DEBUG_MODE", "false")
        create_app_components()
        assert package_logger.level == logging.INFO


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
