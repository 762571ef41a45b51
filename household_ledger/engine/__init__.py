"""
Ledger Engine Package

The pure computational core. Every function takes already-loaded members
and events and returns fresh values; nothing here performs I/O.
"""

from household_ledger.engine.balances import compute_balances
from household_ledger.engine.meals import (
    MealEligibilityResolver,
    is_eligible,
    meal_slots,
)
from household_ledger.engine.periods import (
    accrue_periods,
    days_in_month,
    month_key,
    parse_month,
)
from household_ledger.engine.settlement import apply_transfers, net

__all__ = [
    # Balances
    "compute_balances",
    # Settlement
    "apply_transfers",
    "net",
    # Meals
    "MealEligibilityResolver",
    "is_eligible",
    "meal_slots",
    # Periods
    "accrue_periods",
    "days_in_month",
    "month_key",
    "parse_month",
]
