from __future__ import annotations

import os

from dotenv import load_dotenv
load_dotenv()

import logfire
logfire.configure(
    service_name="tripz-mcp",
    environment=os.environ.get("RAILWAY_ENVIRONMENT", "development"),
    send_to_logfire="if-token-present",
)
logfire.instrument_pydantic_ai()
logfire.instrument_httpx()

from fastmcp import FastMCP

from tripz.itinerary import estimate_trip_cost
from tripz.models import (
    CostBreakdown,
    DestinationSuggestion,
    ItineraryActivity,
    ItineraryStyle,
    TravelPlan,
)
from tripz.planner import PlannerError, TripPlanner
from tripz.response_cache import default_cache

mcp = FastMCP(name="tripz")
cache = default_cache()
cache.sweep()
planner = TripPlanner(cache)


def format_destination(destination: DestinationSuggestion) -> str:
    breakdown = destination.cost_breakdown
    return (
        f"- **{destination.name}**\n"
        f"  {destination.description}\n"
        f"  Visa: {destination.visa_info}\n"
        f"  7-day cost: ${destination.average_cost:,.0f} "
        f"(stay ${breakdown.accommodation:,.0f}, food ${breakdown.food:,.0f}, "
        f"activities ${breakdown.activities:,.0f})"
    )


def format_plan(country: str, plan: TravelPlan) -> str:
    lines = [f"# {len(plan.itinerary)} days in {country}"]
    for day in plan.itinerary:
        lines.append(f"\n## Day {day.day}: {day.title}")
        for activity in day.activities:
            lines.append(
                f"- **{activity.name}** ({activity.type}, ${activity.average_cost:,.0f}): "
                f"{activity.description} [{activity.link}]"
            )
        if day.keep_in_mind:
            lines.append(f"\nKeep in mind:\n{day.keep_in_mind}")
    if plan.optimization_suggestions:
        lines.append(f"\n## Optimization tips\n\n{plan.optimization_suggestions}")
    if plan.official_links:
        lines.append("\n## Official links\n")
        lines.extend(f"- [{link.title}]({link.url})" for link in plan.official_links)
    return "\n".join(lines)


@mcp.tool()
async def suggest_destinations(
    budget: str = "Mid-range",
    time_of_year: str = "Any time",
    continent: str = "Any",
) -> str:
    """Suggest 7-8 countries for a budget, season and (optionally) continent.

    Start here when the traveller has not picked a country yet. Each entry
    includes a description, visa notes for Indian citizens and a 7-day cost
    estimate. Pass a chosen name to plan_trip.

    Args:
        budget: e.g. "Budget", "Mid-range", "Luxury".
        time_of_year: Month or season of travel.
        continent: Continent to search in, or "Any".
    """
    try:
        suggestions = await planner.get_travel_suggestions(budget, time_of_year, continent)
    except PlannerError as e:
        return str(e)
    if not suggestions:
        return "No destinations were suggested."
    return "\n\n".join(format_destination(s) for s in suggestions)


@mcp.tool()
async def destination_info(country: str) -> str:
    """Describe a specific country: why visit, visa notes and typical cost.

    Args:
        country: The country the traveller already has in mind.
    """
    try:
        destination = await planner.select_destination("", "", "Any", country)
    except PlannerError as e:
        return str(e)
    return format_destination(destination)


@mcp.tool()
async def plan_trip(
    country: str,
    duration: int = 7,
    style: ItineraryStyle = "Mixed",
    notes: str = "",
) -> str:
    """Build a day-by-day itinerary for a country as markdown.

    Args:
        country: Destination country.
        duration: Trip length in days. Use 0 to let the planner decide and
            include travel between cities.
        style: "Mixed", "Touristy" or "Off-beat".
        notes: Free-form preferences to take into account.
    """
    try:
        if duration == 0:
            plan = await planner.get_comprehensive_travel_plan(country, style, notes)
        else:
            plan = await planner.get_travel_plan(country, duration, style, notes)
    except PlannerError as e:
        return str(e)
    return format_plan(country, plan)


@mcp.tool()
async def packing_list(country: str, duration: int = 7, activities: list[str] | None = None) -> str:
    """Generate a categorized packing list.

    Args:
        country: Destination country.
        duration: Trip length in days.
        activities: Names of planned activities, if known.
    """
    planned = [
        ItineraryActivity(
            name=name,
            description=name,
            type="Touristy",
            link="",
            average_cost=0,
            cost_breakdown=CostBreakdown(),
        )
        for name in activities or []
    ]
    try:
        categories = await planner.get_packing_list(country, duration, planned)
    except PlannerError as e:
        return str(e)
    return "\n\n".join(
        f"**{c.category_name}**\n" + "\n".join(f"- {item}" for item in c.items)
        for c in categories
    )


@mcp.tool()
def trip_cost_estimate(average_cost: float, days: int) -> str:
    """Prorate a destination's 7-day cost estimate to a trip of ``days`` days.

    Args:
        average_cost: The 7-day estimate returned by destination_info.
        days: Planned trip length.
    """
    destination = DestinationSuggestion(
        name="", country="", description="", visa_info="",
        average_cost=average_cost, cost_breakdown=CostBreakdown(),
    )
    return f"Estimated cost for {days} days: ${estimate_trip_cost(destination, days):,}"


def main():
    mcp.run()


if __name__ == "__main__":
    main()
