"""
Main Orchestrator for the Household Ledger

This module ties together loading, validation, the engine and auditing for
the two things callers ask for:
1. Settlement (events → balances → who pays whom)
2. Fund accounting (events → monthly rollup up to a target month)

DESIGN DECISION: The engine raises; the flow reports.
Every failure comes back as a LedgerReport with success=False and a
failure kind, so request handlers can show a generic "could not compute
balances" message without leaking internals. Nothing is retried: the
computation is deterministic, so a retry with the same input fails the
same way.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence, Union
from uuid import UUID

from household_ledger.audit import AuditLogger, create_correlation_id
from household_ledger.config import get_settings
from household_ledger.engine import (
    accrue_periods,
    apply_transfers,
    compute_balances,
    net,
)
from household_ledger.errors import InvariantViolation, LedgerError, ValidationError
from household_ledger.models.events import HouseConfig, LedgerEvent, Member
from household_ledger.models.results import (
    ZERO,
    LedgerErrorKind,
    LedgerReport,
    ValidationIssue,
)
from household_ledger.sources import (
    AuditStorageInterface,
    HouseholdDataSource,
    SourceError,
)
from household_ledger.validation import EventValidator


class LedgerFlow:
    """
    Orchestrates ledger computations for one household at a time.

    Flow:
    1. Load → roster and every event from the data source
    2. Validate → every event, collecting all issues
    3. Compute → balances and settlement, or period accounting
    4. Verify → the settlement plan really zeroes the balances
    5. Audit → record the outcome under one correlation ID
    """

    def __init__(
        self,
        source: Optional[HouseholdDataSource] = None,
        audit_logger: Optional[AuditLogger] = None,
        tolerance: Optional[Decimal] = None,
    ):
        self._source = source
        self._audit_logger = audit_logger
        if tolerance is None:
            tolerance = get_settings().ledger.balance_tolerance
        self._tolerance = tolerance
        self._validator = EventValidator(tolerance=self._tolerance)

    # -------------------------------------------------------------------------
    # Synchronous computations on already-loaded data
    # -------------------------------------------------------------------------

    def _failure(
        self,
        error: Exception,
        house: Optional[HouseConfig],
        correlation_id: Optional[UUID],
        issues: Sequence[ValidationIssue] = (),
    ) -> LedgerReport:
        if isinstance(error, ValidationError):
            kind = LedgerErrorKind.VALIDATION
            issues = list(issues) or error.issues
        elif isinstance(error, InvariantViolation):
            kind = LedgerErrorKind.INVARIANT
        else:
            kind = LedgerErrorKind.SOURCE

        return LedgerReport(
            house_id=house.house_id if house else None,
            correlation_id=correlation_id,
            success=False,
            error_kind=kind,
            error_message=str(error),
            issues=list(issues),
        )

    def _prevalidate(
        self,
        house: HouseConfig,
        events: list[LedgerEvent],
        correlation_id: Optional[UUID],
    ) -> tuple[list[ValidationIssue], Optional[LedgerReport]]:
        """Validate every event up front so all problems are reported together."""
        issues = self._validator.validate_all(events)
        if any(issue.is_error for issue in issues):
            error = ValidationError(self._validator.get_user_friendly_summary(issues))
            return issues, self._failure(error, house, correlation_id, issues)
        return issues, None

    def settle(
        self,
        house: HouseConfig,
        members: Sequence[Member],
        events: Iterable[LedgerEvent],
        correlation_id: Optional[UUID] = None,
    ) -> LedgerReport:
        """
        Compute balances and a settlement plan.

        Meal-tracking households settle against the shared fund rather
        than between members, so only their balances are reported.
        """
        events = list(events)
        issues, failed = self._prevalidate(house, events, correlation_id)
        if failed:
            return failed

        try:
            balances = compute_balances(members, events, house=house, tolerance=self._tolerance)
            transfers = []
            if not house.is_meal_tracking:
                # compute_balances has already checked the sum
                imbalance = sum(balances.values(), ZERO)
                transfers = net(
                    balances,
                    tolerance=self._tolerance,
                    allowed_residual=imbalance,
                )
                settled = apply_transfers(balances, transfers)
                unsettled = {
                    member: amount
                    for member, amount in settled.items()
                    if abs(amount) > self._tolerance
                }
                leftover = sum((abs(amount) for amount in unsettled.values()), ZERO)
                if leftover > abs(imbalance) + self._tolerance:
                    raise InvariantViolation(
                        "settlement_plan",
                        "Settlement plan does not settle every balance",
                        details={"unsettled": {m: str(a) for m, a in unsettled.items()}},
                    )
        except LedgerError as e:
            return self._failure(e, house, correlation_id)

        return LedgerReport(
            house_id=house.house_id,
            correlation_id=correlation_id,
            success=True,
            issues=issues,
            balances=balances,
            transfers=transfers,
        )

    def accrue(
        self,
        house: HouseConfig,
        members: Sequence[Member],
        events: Iterable[LedgerEvent],
        target_month: Union[str, date],
        as_of: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerReport:
        """Compute the fund accounting for a meal-tracking household."""
        events = list(events)
        issues, failed = self._prevalidate(house, events, correlation_id)
        if failed:
            return failed

        try:
            accounting = accrue_periods(
                house,
                members,
                events,
                target_month,
                as_of=as_of,
                tolerance=self._tolerance,
            )
        except LedgerError as e:
            return self._failure(e, house, correlation_id)

        return LedgerReport(
            house_id=house.house_id,
            correlation_id=correlation_id,
            success=True,
            issues=issues,
            accounting=accounting,
        )

    # -------------------------------------------------------------------------
    # Loading flows
    # -------------------------------------------------------------------------

    async def _load(
        self,
        house_id: str,
    ) -> tuple[HouseConfig, list[Member], list[LedgerEvent]]:
        if self._source is None:
            raise SourceError("No household data source configured")

        house = await self._source.get_house(house_id)
        members = await self._source.list_members(house_id)

        events: list[LedgerEvent] = []
        events.extend(await self._source.list_purchases(house_id))
        events.extend(await self._source.list_settlement_payments(house_id))
        events.extend(await self._source.list_fund_deposits(house_id))
        if house.is_meal_tracking:
            events.extend(await self._source.list_meal_records(house_id))
            events.extend(await self._source.list_meal_preferences(house_id))

        return house, members, events

    async def _load_or_report(
        self,
        house_id: str,
        correlation_id: UUID,
    ) -> tuple[Optional[tuple[HouseConfig, list[Member], list[LedgerEvent]]], Optional[LedgerReport]]:
        try:
            loaded = await self._load(house_id)
        except SourceError as e:
            if self._audit_logger:
                await self._audit_logger.log_source_failed(
                    house_id=house_id,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            report = self._failure(e, None, correlation_id)
            return None, report.model_copy(update={"house_id": house_id})

        if self._audit_logger:
            _, members, events = loaded
            await self._audit_logger.log_source_loaded(
                house_id=house_id,
                member_count=len(members),
                event_count=len(events),
                correlation_id=correlation_id,
            )
        return loaded, None

    async def _audit_failure(self, report: LedgerReport) -> None:
        if not self._audit_logger:
            return

        if report.error_kind == LedgerErrorKind.VALIDATION:
            await self._audit_logger.log_validation_failed(
                house_id=report.house_id,
                issues=[issue.model_dump(mode="json") for issue in report.issues if issue.is_error],
                correlation_id=report.correlation_id,
            )
        elif report.error_kind == LedgerErrorKind.INVARIANT:
            await self._audit_logger.log_invariant_violated(
                house_id=report.house_id,
                invariant="ledger",
                error_message=report.error_message or "",
                correlation_id=report.correlation_id,
            )

    async def settle_household(
        self,
        house_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerReport:
        """
        Load a household and compute who owes whom.

        Returns:
            LedgerReport with balances and transfers, or the failure
        """
        correlation_id = correlation_id or create_correlation_id()

        loaded, failed = await self._load_or_report(house_id, correlation_id)
        if failed:
            return failed
        house, members, events = loaded

        report = self.settle(house, members, events, correlation_id=correlation_id)
        if not report.success:
            await self._audit_failure(report)
            return report

        if self._audit_logger:
            await self._audit_logger.log_balances_computed(
                house_id=house_id,
                member_count=len(report.balances or {}),
                event_count=len(events),
                correlation_id=correlation_id,
            )
            await self._audit_logger.log_settlement_planned(
                house_id=house_id,
                transfer_count=len(report.transfers),
                total_amount=str(sum((t.amount for t in report.transfers), ZERO)),
                correlation_id=correlation_id,
            )

        return report

    async def accrue_household(
        self,
        house_id: str,
        target_month: Union[str, date],
        as_of: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerReport:
        """
        Load a meal-tracking household and compute its fund accounting.

        Returns:
            LedgerReport with the accounting, or the failure
        """
        correlation_id = correlation_id or create_correlation_id()

        loaded, failed = await self._load_or_report(house_id, correlation_id)
        if failed:
            return failed
        house, members, events = loaded

        report = self.accrue(
            house,
            members,
            events,
            target_month,
            as_of=as_of,
            correlation_id=correlation_id,
        )
        if not report.success:
            await self._audit_failure(report)
            return report

        if self._audit_logger and report.accounting is not None:
            await self._audit_logger.log_periods_accrued(
                house_id=house_id,
                target_month=report.accounting.target_month,
                month_count=len(report.accounting.months),
                remaining_fund=str(report.accounting.summary.remaining_fund),
                correlation_id=correlation_id,
            )

        return report


def create_app_components(
    source: Optional[HouseholdDataSource] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
) -> tuple[LedgerFlow, Optional[AuditLogger]]:
    """
    Factory function to create the ledger flow.

    Args:
        source: Where households are loaded from
        audit_storage: Where audit events are persisted. Without it,
                       audit events are only logged locally.

    Returns:
        (ledger_flow, audit_logger); the logger is None when auditing is
        disabled in settings
    """
    settings = get_settings()
    logging.getLogger("household_ledger").setLevel(
        logging.DEBUG if settings.app.debug_mode else logging.INFO
    )

    audit_logger = None
    if settings.ledger.audit_enabled:
        audit_logger = AuditLogger(audit_storage)

    ledger_flow = LedgerFlow(
        source=source,
        audit_logger=audit_logger,
    )

    return ledger_flow, audit_logger
