from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ItineraryStyle = Literal["Mixed", "Touristy", "Off-beat"]
ActivityType = Literal["Touristy", "Off-beat"]


class CamelModel(BaseModel):
    """Base for everything that crosses the wire or lands in a saved file.

    Serializes with camelCase keys and accepts either casing on input.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        serialize_by_alias=True,
    )


class CostBreakdown(CamelModel):
    accommodation: float = 0
    food: float = 0
    activities: float = 0


class CountryInfo(CamelModel):
    """Result of a direct country lookup."""

    description: str
    visa_info: str = Field(
        description=(
            "Visa requirements for Indian citizens, including e-visa or "
            "visa on arrival details."
        )
    )
    average_cost: float = Field(
        description="Estimated 7-day cost in USD for a solo traveler."
    )
    cost_breakdown: CostBreakdown


class DestinationSuggestion(CamelModel):
    name: str = Field(description="The name of the country.")
    country: str = Field(description="The name of the country.")
    description: str
    visa_info: str
    average_cost: float = Field(
        description="Estimated 7-day cost in USD for a solo traveler."
    )
    cost_breakdown: CostBreakdown


class DestinationSuggestions(CamelModel):
    """Structured output wrapper for a list of suggestions."""

    suggestions: list[DestinationSuggestion]


class ItineraryActivity(CamelModel):
    id: str = ""  # assigned by the app, never by the model
    name: str
    description: str
    type: ActivityType
    link: str = Field(
        description=(
            "A valid, working URL for booking or information from a reputable "
            "site like TripAdvisor about the activity."
        )
    )
    average_cost: float = Field(
        description="Estimated cost per person in USD. Must be the sum of the breakdown."
    )
    cost_breakdown: CostBreakdown


class TravelOption(CamelModel):
    mode: str
    duration: str = ""
    cost: float = 0


class TravelInfo(CamelModel):
    from_city: str = Field(alias="from")
    to_city: str = Field(alias="to")
    options: list[TravelOption] = Field(default_factory=list)


class DailyPlan(CamelModel):
    day: int
    title: str
    activities: list[ItineraryActivity]
    keep_in_mind: str = Field(
        description=(
            "A bulleted markdown list of dos and don'ts and warnings about "
            "local scams relevant to the day's activities."
        )
    )
    city: str | None = None
    travel_info: TravelInfo | None = None


class OfficialLink(CamelModel):
    title: str
    url: str


class CityAccommodationCost(CamelModel):
    city: str
    nights: int = 0
    estimated_cost: float = 0


class PackingListCategory(CamelModel):
    category_name: str
    items: list[str] = Field(default_factory=list)


class PackingList(CamelModel):
    """Structured output wrapper for a packing list."""

    categories: list[PackingListCategory]


class TravelPlan(CamelModel):
    itinerary: list[DailyPlan]
    optimization_suggestions: str = ""
    official_links: list[OfficialLink] = Field(default_factory=list)
    city_accommodation_costs: list[CityAccommodationCost] | None = None
    packing_list: list[PackingListCategory] | None = None
    checked_packing_items: dict[str, bool] = Field(default_factory=dict)


class SavedPlan(CamelModel):
    """The persisted plan file."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    plan: TravelPlan
    destination: DestinationSuggestion
    saved_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CostSummary(CamelModel):
    accommodation: float = 0
    activities: float = 0
    travel: float = 0
    food: float = 0
    grand_total: float = 0


# ---------------------------------------------------------------------------
# Request / response bodies
# ---------------------------------------------------------------------------
class SuggestionRequest(CamelModel):
    budget: str = "Mid-range"
    time_of_year: str = "Any time"
    continent: str = "Any"
    country: str = ""


class SuggestionResponse(CamelModel):
    destination: DestinationSuggestion | None = None
    suggestions: list[DestinationSuggestion] = Field(default_factory=list)


class PlanRequest(CamelModel):
    destination: DestinationSuggestion
    duration: int = Field(default=7, ge=0, description="0 lets the model decide.")
    style: ItineraryStyle = "Mixed"
    notes: str = ""


class RebuildRequest(CamelModel):
    destination: DestinationSuggestion
    plan: TravelPlan
    style: ItineraryStyle = "Mixed"
    notes: str = ""
    refinement_notes: str = ""


class PlanBody(CamelModel):
    """A plan together with the destination it belongs to."""

    destination: DestinationSuggestion
    plan: TravelPlan


class SavePlanRequest(PlanBody):
    name: str = ""


class DeleteActivityRequest(CamelModel):
    plan: TravelPlan
    day_index: int
    activity_id: str


class ReorderActivitiesRequest(CamelModel):
    plan: TravelPlan
    day_index: int
    activity_ids: list[str]


class TogglePackingItemRequest(CamelModel):
    plan: TravelPlan
    item: str


class AddPackingItemRequest(CamelModel):
    plan: TravelPlan
    category_name: str
    item: str = Field(min_length=1)
