"""
Meal Eligibility Resolver

Decides whether a member's meal slot on a given day counts towards the
grocery cost split. In priority order:

1. A standing opt-out (meals_enabled = False) from off_from_date onward
   makes the slot ineligible.
2. An explicit per-day override for that member and slot wins next.
3. Otherwise the slot is eligible: no record means the member ate.
"""

from datetime import date
from typing import Iterable, Optional

from household_ledger.models.events import MealRecord, MealSlot, MemberMealPreference


_TWO_MEAL_SLOTS = (MealSlot.LUNCH, MealSlot.DINNER)
_THREE_MEAL_SLOTS = (MealSlot.BREAKFAST, MealSlot.LUNCH, MealSlot.DINNER)


def meal_slots(meals_per_day: int) -> tuple[MealSlot, ...]:
    """Slots served in a household; two-meal households skip breakfast."""
    return _THREE_MEAL_SLOTS if meals_per_day == 3 else _TWO_MEAL_SLOTS


class MealEligibilityResolver:
    """
    Indexed view over a household's meal preferences and daily records.

    Build once per computation and query per member, day and slot.
    """

    def __init__(
        self,
        preferences: Iterable[MemberMealPreference] = (),
        meal_records: Iterable[MealRecord] = (),
    ):
        # The latest preference per member is the standing one
        self._preferences: dict[str, MemberMealPreference] = {}
        for preference in preferences:
            self._preferences[preference.member] = preference

        self._records: dict[date, list[MealRecord]] = {}
        for record in meal_records:
            self._records.setdefault(record.meal_date, []).append(record)

    def is_opted_out(self, member: str, on: date) -> bool:
        preference = self._preferences.get(member)
        if preference is None or preference.meals_enabled:
            return False
        return preference.off_from_date is not None and on >= preference.off_from_date

    def explicit_choice(self, member: str, on: date, slot: MealSlot) -> Optional[bool]:
        """The first explicit override recorded for this member, day and slot."""
        for record in self._records.get(on, ()):
            slots = record.per_member_slots.get(member)
            if slots is None:
                continue
            choice = slots.get(slot)
            if choice is not None:
                return choice
        return None

    def is_eligible(self, member: str, on: date, slot: MealSlot) -> bool:
        if self.is_opted_out(member, on):
            return False
        choice = self.explicit_choice(member, on, slot)
        if choice is not None:
            return choice
        return True

    def count_meals(self, member: str, on: date, meals_per_day: int = 3) -> int:
        """Number of eligible meals for a member on one day."""
        return sum(
            1 for slot in meal_slots(meals_per_day)
            if self.is_eligible(member, on, slot)
        )


def is_eligible(
    member: str,
    on: date,
    slot: MealSlot,
    preferences: Iterable[MemberMealPreference] = (),
    meal_records: Iterable[MealRecord] = (),
) -> bool:
    """
    Check a single meal slot without keeping a resolver around.

    Prefer MealEligibilityResolver when checking many slots.
    """
    return MealEligibilityResolver(preferences, meal_records).is_eligible(member, on, slot)
