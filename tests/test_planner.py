import asyncio

import pytest
from pydantic_ai.messages import ModelResponse, ToolCallPart
from pydantic_ai.models.function import AgentInfo, FunctionModel
from pydantic_ai.models.test import TestModel

from conftest import DESTINATION, PLAN, activity
from tripz.models import DailyPlan
from tripz.planner import (
    QUOTA_MESSAGE,
    PlannerError,
    TripPlanner,
    classify_provider_error,
    friendly_error_message,
)
from tripz.response_cache import make_key


class ScriptedModel:
    """FunctionModel wrapper that replays a payload and records prompts."""

    def __init__(self, payload=None, error=None):
        self.payload = payload
        self.error = error
        self.prompts = []
        self.model = FunctionModel(self._respond)

    def _respond(self, messages, info: AgentInfo) -> ModelResponse:
        self.prompts.append(messages[-1].parts[-1].content)
        if self.error is not None:
            raise self.error
        return ModelResponse(parts=[ToolCallPart(info.output_tools[0].name, self.payload)])

    @property
    def calls(self):
        return len(self.prompts)


def run(coro):
    return asyncio.run(coro)


@pytest.mark.parametrize(
    "message",
    [
        "status_code: 429, model_name: gemini-2.5-flash",
        "You exceeded your current QUOTA",
        "Rate limit reached for requests",
        "RESOURCE_EXHAUSTED: Resource exhausted, try later",
    ],
)
def test_quota_errors_classify_as_quota(message):
    exc = RuntimeError(message)
    assert classify_provider_error(exc) == "quota"
    assert friendly_error_message("generate a travel plan", exc) == QUOTA_MESSAGE


@pytest.mark.parametrize("message", ["Connection reset by peer", "invalid JSON", ""])
def test_other_errors_classify_as_generic(message):
    exc = RuntimeError(message)
    assert classify_provider_error(exc) == "generic"
    assert friendly_error_message("generate a travel plan", exc) == (
        "Failed to generate a travel plan. Please check your connection and try again."
    )


def test_status_code_attribute_counts_as_quota():
    exc = RuntimeError("Too many requests")
    exc.status_code = 429
    assert classify_provider_error(exc) == "quota"


def test_travel_plan_is_validated_and_gets_fresh_ids(cache):
    planner = TripPlanner(cache, model=TestModel(custom_output_args=PLAN))

    plan = run(planner.get_travel_plan("Japan", 2, "Mixed"))

    assert [d.title for d in plan.itinerary] == ["Tokyo Highlights", "Kyoto Temples"]
    ids = [a.id for d in plan.itinerary for a in d.activities]
    assert all(ids) and len(set(ids)) == len(ids)
    assert not {"a1", "a2", "b1"} & set(ids)


def test_identical_requests_hit_the_cache(cache):
    scripted = ScriptedModel({"suggestions": [DESTINATION]})
    planner = TripPlanner(cache, model=scripted.model)

    first = run(planner.get_travel_suggestions("Mid-range", "Spring", "Asia"))
    second = run(planner.get_travel_suggestions(" mid-range", "spring ", "ASIA"))

    assert scripted.calls == 1
    assert first == second
    assert first[0].name == "Japan"


def test_expired_cache_calls_the_model_again(cache, clock):
    scripted = ScriptedModel({"suggestions": [DESTINATION]})
    planner = TripPlanner(cache, model=scripted.model)

    run(planner.get_travel_suggestions("Budget", "Winter", "Any"))
    clock.advance(60 * 60 * 1000 + 1)
    run(planner.get_travel_suggestions("Budget", "Winter", "Any"))

    assert scripted.calls == 2


def test_invalid_cached_payload_is_refetched(cache):
    scripted = ScriptedModel({"suggestions": [DESTINATION]})
    planner = TripPlanner(cache, model=scripted.model)
    key = make_key("suggestions", "Budget", "Winter", "Any")
    cache.set(key, {"suggestions": [{"name": "only a name"}]})

    result = run(planner.get_travel_suggestions("Budget", "Winter", "Any"))

    assert scripted.calls == 1
    assert result[0].visa_info == "E-visa available."


def test_planner_works_without_cache():
    scripted = ScriptedModel({"suggestions": [DESTINATION]})
    planner = TripPlanner(model=scripted.model)
    run(planner.get_offbeat_suggestions())
    run(planner.get_offbeat_suggestions())
    assert scripted.calls == 2


def test_quota_failure_raises_friendly_error(cache):
    scripted = ScriptedModel(error=RuntimeError("429 RESOURCE_EXHAUSTED"))
    planner = TripPlanner(cache, model=scripted.model)

    with pytest.raises(PlannerError) as info:
        run(planner.get_travel_plan("Japan", 3, "Mixed"))

    assert info.value.kind == "quota"
    assert str(info.value) == QUOTA_MESSAGE


def test_generic_failure_hides_provider_message(cache):
    scripted = ScriptedModel(error=ConnectionError("socket closed: secret-host:443"))
    planner = TripPlanner(cache, model=scripted.model)

    with pytest.raises(PlannerError) as info:
        run(planner.get_travel_suggestions("Budget", "Summer", "Europe"))

    assert info.value.kind == "generic"
    assert "secret-host" not in str(info.value)
    assert str(info.value).startswith("Failed to generate travel suggestions.")


def test_failed_call_is_not_cached(cache, memory_store):
    scripted = ScriptedModel(error=RuntimeError("boom"))
    planner = TripPlanner(cache, model=scripted.model)
    with pytest.raises(PlannerError):
        run(planner.get_travel_plan("Japan", 3, "Mixed"))
    assert memory_store.items == {}


def test_country_info_falls_back_on_generic_error(cache):
    planner = TripPlanner(cache, model=ScriptedModel(error=RuntimeError("timeout")).model)
    destination = run(planner.select_destination("Budget", "Summer", "Any", "  Peru "))
    assert destination.name == "Peru"
    assert destination.average_cost == 0
    assert "official government sources" in destination.visa_info


def test_country_info_quota_error_propagates(cache):
    planner = TripPlanner(cache, model=ScriptedModel(error=RuntimeError("quota exceeded")).model)
    with pytest.raises(PlannerError):
        run(planner.get_country_info("Peru"))


def test_select_destination_without_country_suggests(cache):
    scripted = ScriptedModel({"suggestions": [DESTINATION, {**DESTINATION, "name": "Korea"}]})
    planner = TripPlanner(cache, model=scripted.model)
    result = run(planner.select_destination("Budget", "Autumn", "Asia", "   "))
    assert [d.name for d in result] == ["Japan", "Korea"]
    assert "within Asia" in scripted.prompts[0]


def test_rebuild_sends_only_activities_and_is_not_cached(cache, plan):
    scripted = ScriptedModel(PLAN)
    planner = TripPlanner(cache, model=scripted.model)

    run(planner.rebuild_travel_plan("Japan", 2, "Off-beat", plan.itinerary, "More food"))
    run(planner.rebuild_travel_plan("Japan", 2, "Off-beat", plan.itinerary, "More food"))

    assert scripted.calls == 2
    prompt = scripted.prompts[0]
    assert "Tea Ceremony" in prompt
    assert '"a1"' not in prompt
    assert "off-the-beaten-path" in prompt
    assert '"More food"' in prompt


def test_packing_list_cache_depends_on_activities(cache):
    scripted = ScriptedModel({"categories": [{"categoryName": "Clothing", "items": ["Socks"]}]})
    planner = TripPlanner(cache, model=scripted.model)
    day = DailyPlan.model_validate(PLAN["itinerary"][0])

    run(planner.get_packing_list("Japan", 2, day.activities))
    run(planner.get_packing_list("Japan", 2, day.activities))
    categories = run(planner.get_packing_list("Japan", 2, day.activities[:1]))

    assert scripted.calls == 2
    assert categories[0].category_name == "Clothing"


def test_comprehensive_plan_keeps_travel_info(cache):
    planner = TripPlanner(cache, model=ScriptedModel(PLAN).model)
    plan = run(planner.get_comprehensive_travel_plan("Japan", "Mixed"))
    assert plan.itinerary[1].travel_info.options[0].mode == "Shinkansen"
    assert plan.city_accommodation_costs[0].city == "Tokyo"


def test_activity_helper_matches_model_schema():
    payload = {"itinerary": [{"day": 1, "title": "t", "activities": [activity("x")], "keepInMind": ""}]}
    planner = TripPlanner(model=TestModel(custom_output_args=payload))
    plan = run(planner.rebuild_travel_plan("Japan", 1, "Mixed", [], ""))
    assert plan.itinerary[0].activities[0].link.startswith("https://")
