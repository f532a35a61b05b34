import os
import tempfile

import pytest

# Point file-backed stores somewhere disposable before any tripz module loads
os.environ.setdefault("TRIPZ_DATA_DIR", tempfile.mkdtemp(prefix="tripz-tests-"))
os.environ.setdefault("LOGFIRE_SEND_TO_LOGFIRE", "false")

from tripz.models import DestinationSuggestion, TravelPlan  # noqa: E402
from tripz.response_cache import MemoryStore, ResponseCache  # noqa: E402


class FakeClock:
    def __init__(self, now: int = 1_700_000_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def activity(name, cost=10, link=None, activity_id=""):
    return {
        "id": activity_id,
        "name": name,
        "description": f"About {name}.",
        "type": "Touristy",
        "link": link or f"https://www.tripadvisor.com/{name.replace(' ', '_')}",
        "averageCost": cost,
        "costBreakdown": {"accommodation": 0, "food": 0, "activities": cost},
    }


DESTINATION = {
    "name": "Japan",
    "country": "Japan",
    "description": "Temples, food and trains.",
    "visaInfo": "E-visa available.",
    "averageCost": 1400,
    "costBreakdown": {"accommodation": 700, "food": 350, "activities": 350},
}

PLAN = {
    "itinerary": [
        {
            "day": 1,
            "title": "Tokyo Highlights",
            "activities": [
                activity("Senso-ji", 0, activity_id="a1"),
                activity("Tsukiji Market", 25, activity_id="a2"),
                activity("Shibuya Crossing", 0, activity_id="a3"),
            ],
            "keepInMind": "* Do carry cash\n* Don't tip",
        },
        {
            "day": 2,
            "title": "Kyoto Temples",
            "activities": [
                activity("Fushimi Inari", 0, activity_id="b1"),
                activity("Tea Ceremony", 40, activity_id="b2"),
            ],
            "keepInMind": "* Do start early",
            "travelInfo": {
                "from": "Tokyo",
                "to": "Kyoto",
                "options": [
                    {"mode": "Shinkansen", "duration": "2h15m", "cost": 95},
                    {"mode": "Bus", "duration": "8h", "cost": 40},
                ],
            },
        },
    ],
    "optimizationSuggestions": "Visit temples early in the morning.",
    "officialLinks": [{"title": "JNTO", "url": "https://www.japan.travel/en/"}],
    "cityAccommodationCosts": [
        {"city": "Tokyo", "nights": 1, "estimatedCost": 120},
        {"city": "Kyoto", "nights": 1, "estimatedCost": 100},
    ],
}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def cache(memory_store, clock):
    return ResponseCache(memory_store, clock=clock)


@pytest.fixture
def destination():
    return DestinationSuggestion.model_validate(DESTINATION)


@pytest.fixture
def plan():
    return TravelPlan.model_validate(PLAN)
