"""Editing operations on a travel plan.

Every function returns a new plan and leaves its input untouched.
"""
from __future__ import annotations

import uuid

from tripz.models import (
    CostSummary,
    DestinationSuggestion,
    PackingListCategory,
    TravelPlan,
)

REFINEMENT_SEPARATOR = "\n\nAdditional Refinements:\n"


def new_activity_id() -> str:
    return str(uuid.uuid4())


def assign_activity_ids(plan: TravelPlan, keep_existing: bool = False) -> TravelPlan:
    """Give every activity an id.

    Freshly generated plans get new ids throughout; loaded plans keep the ids
    they already carry and only fill in the blanks.
    """
    plan = plan.model_copy(deep=True)
    for day in plan.itinerary:
        for activity in day.activities:
            if not (keep_existing and activity.id):
                activity.id = new_activity_id()
    return plan


def _check_day(plan: TravelPlan, day_index: int) -> None:
    if not 0 <= day_index < len(plan.itinerary):
        raise IndexError(f"Day index {day_index} out of range")


def delete_activity(plan: TravelPlan, day_index: int, activity_id: str) -> TravelPlan:
    _check_day(plan, day_index)
    plan = plan.model_copy(deep=True)
    day = plan.itinerary[day_index]
    day.activities = [a for a in day.activities if a.id != activity_id]
    return plan


def reorder_activities(
    plan: TravelPlan, day_index: int, ordered_ids: list[str]
) -> TravelPlan:
    """Put a day's activities in the order given by ``ordered_ids``.

    Raises ValueError unless ``ordered_ids`` is a permutation of the day's ids.
    """
    _check_day(plan, day_index)
    plan = plan.model_copy(deep=True)
    day = plan.itinerary[day_index]
    by_id = {a.id: a for a in day.activities}
    if sorted(ordered_ids) != sorted(by_id) or len(by_id) != len(day.activities):
        raise ValueError("Activity ids do not match the day's activities")
    day.activities = [by_id[activity_id] for activity_id in ordered_ids]
    return plan


def combine_notes(original: str, refinement: str) -> str:
    return REFINEMENT_SEPARATOR.join(n for n in (original, refinement) if n)


def set_packing_list(plan: TravelPlan, categories: list[PackingListCategory]) -> TravelPlan:
    # A new list invalidates whatever was ticked off before
    return plan.model_copy(
        update={"packing_list": categories, "checked_packing_items": {}}, deep=True
    )


def toggle_packing_item(plan: TravelPlan, item: str) -> TravelPlan:
    checked = dict(plan.checked_packing_items)
    checked[item] = not checked.get(item, False)
    return plan.model_copy(update={"checked_packing_items": checked}, deep=True)


def add_packing_item(plan: TravelPlan, category_name: str, item: str) -> TravelPlan:
    """Add ``item`` to a category. Items already present anywhere are ignored."""
    if not plan.packing_list:
        return plan
    if any(item in category.items for category in plan.packing_list):
        return plan
    plan = plan.model_copy(deep=True)
    for category in plan.packing_list:
        if category.category_name == category_name:
            category.items = sorted([*category.items, item])
    return plan


def estimate_trip_cost(destination: DestinationSuggestion, days: int) -> int:
    """Prorate the destination's 7-day estimate to ``days``."""
    if destination.average_cost <= 0:
        return 0
    return round(destination.average_cost / 7 * days)


def cost_summary(plan: TravelPlan, destination: DestinationSuggestion) -> CostSummary:
    accommodation = sum(c.estimated_cost for c in plan.city_accommodation_costs or [])
    activities = sum(
        activity.average_cost
        for day in plan.itinerary
        for activity in day.activities
    )
    # Assume the cheapest option on every travel day
    travel = sum(
        min(option.cost for option in day.travel_info.options)
        for day in plan.itinerary
        if day.travel_info and day.travel_info.options
    )
    food = round(destination.cost_breakdown.food / 7 * len(plan.itinerary))
    return CostSummary(
        accommodation=accommodation,
        activities=activities,
        travel=travel,
        food=food,
        grand_total=accommodation + activities + travel + food,
    )
