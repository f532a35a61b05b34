from __future__ import annotations

import hashlib
import logging
import os
import re
from typing import Literal, TypeVar

from pydantic import BaseModel, ValidationError
from pydantic_ai import Agent
from pydantic_ai.models import Model

from tripz import prompts
from tripz.itinerary import assign_activity_ids
from tripz.models import (
    CostBreakdown,
    CountryInfo,
    DailyPlan,
    DestinationSuggestion,
    DestinationSuggestions,
    ItineraryActivity,
    ItineraryStyle,
    PackingList,
    PackingListCategory,
    TravelPlan,
)
from tripz.response_cache import ResponseCache, make_key

log = logging.getLogger(__name__)

DEFAULT_MODEL = os.environ.get("TRIPZ_MODEL", "google-gla:gemini-2.5-flash")

QUOTA_MESSAGE = (
    "You have exceeded the AI service quota. Please wait a minute and try "
    "again, or check your plan and billing details."
)
_QUOTA_PATTERN = re.compile(r"quota|rate limit|resource exhausted", re.IGNORECASE)

ErrorKind = Literal["quota", "generic"]
OutputT = TypeVar("OutputT", bound=BaseModel)


class PlannerError(Exception):
    """A provider call failed. ``str(error)`` is safe to show to the user."""

    def __init__(self, message: str, kind: ErrorKind = "generic"):
        self.kind = kind
        super().__init__(message)


def classify_provider_error(exc: BaseException) -> ErrorKind:
    message = str(exc)
    if getattr(exc, "status_code", None) == 429 or "429" in message:
        return "quota"
    if _QUOTA_PATTERN.search(message):
        return "quota"
    return "generic"


def friendly_error_message(action: str, exc: BaseException) -> str:
    if classify_provider_error(exc) == "quota":
        return QUOTA_MESSAGE
    return f"Failed to {action}. Please check your connection and try again."


def fallback_country_info() -> CountryInfo:
    return CountryInfo(
        description="An amazing travel destination with rich culture and beautiful landscapes.",
        visa_info=(
            "Visa requirements could not be fetched. Please check official "
            "government sources."
        ),
        average_cost=0,
        cost_breakdown=CostBreakdown(),
    )


def _activities_signature(activities: list[ItineraryActivity]) -> str:
    names = "|".join(a.name.strip().lower() for a in activities)
    return hashlib.sha256(names.encode()).hexdigest()[:16]


class TripPlanner:
    """Generates suggestions, itineraries and packing lists through an LLM.

    Every call is a structured-output run: the agent's ``output_type`` is the
    result model, so the provider is asked for JSON matching its schema and
    the reply is validated before it is returned.
    """

    def __init__(
        self,
        cache: ResponseCache | None = None,
        model: Model | str | None = None,
    ):
        self.cache = cache
        self.model = model or DEFAULT_MODEL
        self._agents: dict[type[BaseModel], Agent] = {}

    def _get_agent(self, output_type: type[OutputT]) -> Agent[None, OutputT]:
        agent = self._agents.get(output_type)
        if agent is None:
            agent = Agent(
                self.model,
                output_type=output_type,
                system_prompt=prompts.SYSTEM_PROMPT,
            )
            self._agents[output_type] = agent
        return agent

    def _cached(self, cache_key: str | None, output_type: type[OutputT]) -> OutputT | None:
        if cache_key is None or self.cache is None:
            return None
        data = self.cache.get(cache_key)
        if data is None:
            return None
        try:
            return output_type.model_validate(data)
        except ValidationError:
            log.debug("Cached %s for %s failed validation", output_type.__name__, cache_key)
            return None

    async def _generate(
        self,
        action: str,
        prompt: str,
        output_type: type[OutputT],
        cache_key: str | None = None,
    ) -> OutputT:
        cached = self._cached(cache_key, output_type)
        if cached is not None:
            log.debug("Cache hit for %s", cache_key)
            return cached

        try:
            result = await self._get_agent(output_type).run(prompt)
        except Exception as exc:
            log.exception("Failed to %s", action)
            raise PlannerError(
                friendly_error_message(action, exc), classify_provider_error(exc)
            ) from exc

        output = result.output
        if cache_key is not None and self.cache is not None:
            self.cache.set(cache_key, output.model_dump(mode="json"))
        return output

    async def get_country_info(self, country: str) -> CountryInfo:
        """Describe a country the user named directly.

        Falls back to a neutral description when the provider fails for any
        reason other than quota, so the user can still go on to plan a trip.
        """
        try:
            return await self._generate(
                "fetch destination details",
                prompts.country_info_prompt(country),
                CountryInfo,
                cache_key=make_key("country", country),
            )
        except PlannerError as exc:
            if exc.kind == "quota":
                raise
            return fallback_country_info()

    async def get_travel_suggestions(
        self, budget: str, time_of_year: str, continent: str
    ) -> list[DestinationSuggestion]:
        result = await self._generate(
            "generate travel suggestions",
            prompts.suggestions_prompt(budget, time_of_year, continent),
            DestinationSuggestions,
            cache_key=make_key("suggestions", budget, time_of_year, continent),
        )
        return result.suggestions

    async def get_offbeat_suggestions(self) -> list[DestinationSuggestion]:
        result = await self._generate(
            "generate off-beat suggestions",
            prompts.offbeat_suggestions_prompt(),
            DestinationSuggestions,
        )
        return result.suggestions

    async def select_destination(
        self, budget: str, time_of_year: str, continent: str, country: str = ""
    ) -> DestinationSuggestion | list[DestinationSuggestion]:
        """Resolve the trip input form.

        A named country short-circuits to a single destination; otherwise the
        model suggests several.
        """
        country = country.strip()
        if not country:
            return await self.get_travel_suggestions(budget, time_of_year, continent)
        info = await self.get_country_info(country)
        return DestinationSuggestion(
            name=country,
            country=country,
            description=info.description,
            visa_info=info.visa_info,
            average_cost=info.average_cost,
            cost_breakdown=info.cost_breakdown,
        )

    async def get_travel_plan(
        self, country: str, duration: int, style: ItineraryStyle, notes: str = ""
    ) -> TravelPlan:
        plan = await self._generate(
            "generate a travel plan",
            prompts.travel_plan_prompt(country, duration, style, notes),
            TravelPlan,
            cache_key=make_key("plan", country, duration, style, notes),
        )
        return assign_activity_ids(plan)

    async def get_comprehensive_travel_plan(
        self, country: str, style: ItineraryStyle, notes: str = ""
    ) -> TravelPlan:
        plan = await self._generate(
            "generate a travel plan",
            prompts.comprehensive_plan_prompt(country, style, notes),
            TravelPlan,
            cache_key=make_key("comprehensive", country, style, notes),
        )
        return assign_activity_ids(plan)

    async def rebuild_travel_plan(
        self,
        country: str,
        duration: int,
        style: ItineraryStyle,
        existing_days: list[DailyPlan],
        notes: str = "",
    ) -> TravelPlan:
        plan = await self._generate(
            "rebuild the travel plan",
            prompts.rebuild_plan_prompt(country, duration, style, existing_days, notes),
            TravelPlan,
        )
        return assign_activity_ids(plan)

    async def get_packing_list(
        self, country: str, duration: int, activities: list[ItineraryActivity]
    ) -> list[PackingListCategory]:
        result = await self._generate(
            "generate packing list",
            prompts.packing_list_prompt(country, duration, activities),
            PackingList,
            cache_key=make_key(
                "packing", country, duration, _activities_signature(activities)
            ),
        )
        return result.categories
