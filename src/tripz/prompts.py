"""Prompt templates for the travel-planning agents."""
from __future__ import annotations

import json

from tripz.models import DailyPlan, ItineraryActivity, ItineraryStyle

SYSTEM_PROMPT = (
    "You are an expert travel agent and itinerary planner. Always answer with "
    "data that matches the requested structure exactly. All costs are in USD."
)

COST_RULES = (
    "A cost breakdown into 'accommodation', 'food', and 'activities'. For most "
    "activities, 'accommodation' will be 0. Include 'food' costs only if it's a "
    "primary part of the experience (like a food tour). 'activities' should be "
    "the ticket/entrance fee. The total 'averageCost' must be the sum of the "
    "breakdown. If an activity is free, all cost values should be 0."
)

LINK_RULES = (
    "A **valid, working URL from TripAdvisor** for the specific activity. If a "
    "TripAdvisor link is absolutely not available, you may use a link from "
    "Viator or GetYourGuide. Do not use any other sources like blogs, "
    "government sites, or Google Maps."
)

KEEP_IN_MIND_RULES = (
    "For each day, provide a \"Keep in Mind\" section: a short, bulleted list of "
    "crucial advice including at least one \"Do\", one \"Don't\", and a warning "
    "about a specific, relevant scam if common. Use markdown bullet points "
    "(e.g. `* Do try the local street food...`)."
)

_DESTINATION_COST = (
    "An estimated average cost in USD for a solo traveler for a 7-day trip. "
    "This should include mid-range (3-4 star) hotels, daily meals, and one "
    "tourist activity per day. Provide only a single number for the cost. Also "
    "provide a breakdown of this 7-day cost into 'accommodation', 'food', and "
    "'activities'."
)


def style_instruction(style: ItineraryStyle) -> str:
    if style == "Touristy":
        return "The itinerary should focus exclusively on popular, well-known tourist attractions."
    if style == "Off-beat":
        return (
            "The itinerary should focus exclusively on unique, off-the-beaten-path "
            "experiences and local secrets."
        )
    return (
        "The itinerary should include a good mix of both popular tourist "
        "attractions and off-beat local experiences."
    )


def user_requests(notes: str) -> str:
    if not notes.strip():
        return ""
    return (
        "*   **User Requests:** Please carefully consider and incorporate the "
        f'following user preferences into the itinerary: "{notes}"'
    )


def country_info_prompt(country: str) -> str:
    return (
        f'For the country "{country}", provide:\n'
        "1. A short, compelling description of why it's a good travel "
        "destination (2-3 sentences).\n"
        "2. A summary of visa requirements for Indian citizens. Specifically "
        "mention if an e-visa or visa on arrival is available.\n"
        f"3. {_DESTINATION_COST}"
    )


def suggestions_prompt(budget: str, time_of_year: str, continent: str) -> str:
    where = "" if continent == "Any" else f" within {continent}"
    return (
        f"Based on a {budget} budget and traveling during {time_of_year}, "
        f"suggest 7-8 countries to visit{where}. For each country, provide:\n"
        "1. Its name.\n"
        "2. A short, compelling description (2-3 sentences).\n"
        "3. A summary of visa requirements for Indian citizens (mention "
        "e-visa/visa on arrival).\n"
        f"4. {_DESTINATION_COST}"
    )


def offbeat_suggestions_prompt() -> str:
    return (
        "Suggest 6 lesser-known countries that most travellers overlook but "
        "that reward a visit: places with distinctive culture, landscapes or "
        "food and comparatively few tourists. Avoid the usual top-20 "
        "destinations. For each country, provide:\n"
        "1. Its name.\n"
        "2. A short, compelling description (2-3 sentences) of what makes it "
        "special.\n"
        "3. A summary of visa requirements for Indian citizens (mention "
        "e-visa/visa on arrival).\n"
        f"4. {_DESTINATION_COST}"
    )


def travel_plan_prompt(
    country: str, duration: int, style: ItineraryStyle, notes: str
) -> str:
    return f"""You are an expert travel planner specializing in {country}.
Your task is to create a highly optimized and logical travel itinerary.

**Instructions:**

1.  **Generate Itinerary:** Create a day-by-day plan for a {duration}-day trip.
    *   **Style:** {style_instruction(style)}
    *   **Daily Structure:** For each day, provide a day number, a creative title, and a list of 2-4 activities.
    *   **Activity Details:** For each activity, you **must** provide:
        1.  Its name.
        2.  A short description (1-2 sentences).
        3.  Classification as 'Touristy' or 'Off-beat'.
        4.  {LINK_RULES}
        5.  An estimated average cost per person in USD.
        6.  {COST_RULES}
    *   **Logical Flow:** Ensure daily activities are geographically grouped.
    *   **Keep in Mind Section:** {KEEP_IN_MIND_RULES}
    {user_requests(notes)}

2.  **Provide Official Links:** List up to 4 highly relevant official tourism links for {country} (e.g., national tourism board, national parks). For each, provide a concise title and the full URL.

3.  **Review and Optimize:** Write a summary of optimization suggestions (e.g., best order to visit attractions, morning/afternoon splits)."""


def comprehensive_plan_prompt(country: str, style: ItineraryStyle, notes: str) -> str:
    return f"""You are an expert travel planner specializing in {country}.
The traveller has not fixed a trip length. Decide the ideal number of days to
see the best of {country} without rushing, and plan a multi-city route.

**Instructions:**

1.  **Choose Duration and Route:** Pick the cities to visit and the number of nights in each.
2.  **Generate Itinerary:** Create a day-by-day plan covering the whole trip.
    *   **Style:** {style_instruction(style)}
    *   **Daily Structure:** For each day, provide a day number, the city, a creative title, and a list of 2-4 activities.
    *   **Activity Details:** For each activity provide its name, a short description, its classification as 'Touristy' or 'Off-beat', an estimated average cost per person, and:
        *   {LINK_RULES}
        *   {COST_RULES}
    *   **Travel Days:** On days where the traveller moves between cities, fill `travelInfo` with the origin, destination and 2-3 transport options (mode, duration, cost per person in USD).
    *   **Keep in Mind Section:** {KEEP_IN_MIND_RULES}
    {user_requests(notes)}

3.  **Accommodation:** For each city, give the number of nights and the estimated total mid-range accommodation cost for a solo traveller in `cityAccommodationCosts`.

4.  **Provide Official Links:** List up to 4 highly relevant official tourism links for {country}.

5.  **Review and Optimize:** Write a summary of optimization suggestions."""


def _activity_payload(activity: ItineraryActivity) -> dict:
    return activity.model_dump(mode="json", exclude={"id"})


def rebuild_plan_prompt(
    country: str,
    duration: int,
    style: ItineraryStyle,
    existing_days: list[DailyPlan],
    notes: str,
) -> str:
    # The model only needs the activities, not the old day structure
    activities = [
        _activity_payload(activity)
        for day in existing_days
        for activity in day.activities
    ]
    activity_json = json.dumps(activities, indent=2)
    return f"""You are an expert travel planner specializing in {country}.
A user has modified their itinerary and wants you to re-optimize it.

**Instructions:**

1.  **Rebuild Itinerary:** The user has provided the following list of activities they want to do. Create a new, optimized {duration}-day itinerary using **only** these activities. Do not add or remove any activities from this list.
    *   **User's Selected Activities:**
        ```json
{activity_json}
        ```
    *   **Style:** {style_instruction(style)}
    *   **Logic:** Group the activities logically and geographically for each day into a {duration}-day plan.
    *   **Structure:** For each day, provide a day number, a creative title, and the list of activities. For each activity, retain its original details. If an activity is missing a link, you **must** find a valid one. {LINK_RULES} Ensure the cost breakdown rules are followed (e.g., 'accommodation' is usually 0, 'averageCost' is the sum of the breakdown).
    *   **Keep in Mind Section:** Based on the newly arranged activities for each day, generate a *new* "Keep in Mind" section with relevant dos, don'ts, and scam warnings. Use markdown for bullet points.
    {user_requests(notes)}

2.  **Provide Official Links:** List up to 4 highly relevant official tourism links for {country}.

3.  **Review and Optimize:** Write a *new* summary of optimization suggestions based on the rebuilt itinerary."""


def packing_list_prompt(
    country: str, duration: int, activities: list[ItineraryActivity]
) -> str:
    names = "\n".join(f"- {a.name}: {a.description}" for a in activities)
    return (
        f"Create a practical packing list for a {duration}-day trip to {country}. "
        "The traveller will do the following activities:\n"
        f"{names}\n\n"
        "Group the items into 4-7 categories (for example 'Clothing', "
        "'Toiletries', 'Electronics', 'Documents', 'Activity Gear'). Keep item "
        "names short, avoid duplicates across categories, and include anything "
        "specific to the activities or local climate."
    )
