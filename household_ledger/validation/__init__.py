"""Event validation package."""

from household_ledger.validation.validator import EventValidator

__all__ = ["EventValidator"]
