"""
Ledger Errors

Two kinds of failure can come out of the engine:

- ValidationError: an input event is malformed (non-positive amount,
  self-transfer, contributors exceeding the total). The caller supplied
  bad data; nothing is corrected silently.
- InvariantViolation: a post-condition of the computation does not hold
  (balances do not sum to zero, netting left a residual). This is a
  defect and the computation is aborted.
"""

from typing import Any, Optional, Sequence

from household_ledger.models.events import LedgerEvent
from household_ledger.models.results import ValidationIssue


class LedgerError(Exception):
    """Base exception for ledger engine errors."""
    pass


class ValidationError(LedgerError):
    """One or more events failed semantic validation."""

    def __init__(
        self,
        message: str,
        event: Optional[LedgerEvent] = None,
        issues: Sequence[ValidationIssue] = (),
    ):
        self.event = event
        self.issues = list(issues)
        super().__init__(message)

    @property
    def event_id(self):
        return self.event.event_id if self.event is not None else None


class InvariantViolation(LedgerError):
    """A ledger invariant failed to hold after computation."""

    def __init__(
        self,
        invariant: str,
        message: str,
        details: Optional[dict[str, Any]] = None,
    ):
        self.invariant = invariant
        self.details = details or {}
        super().__init__(message)
