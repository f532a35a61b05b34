from __future__ import annotations

import json
import os
import re
from pathlib import Path

from pydantic import ValidationError

from tripz.itinerary import assign_activity_ids
from tripz.models import DestinationSuggestion, SavedPlan, TravelPlan

_DATA_DIR = Path(os.environ.get("TRIPZ_DATA_DIR", Path(__file__).parent.parent.parent / "data"))
DEFAULT_LIBRARY_PATH = _DATA_DIR / "plans.json"


class InvalidPlanFileError(Exception):
    """Raised when a saved plan file cannot be read back."""

    def __init__(self, message: str = "Invalid itinerary file format."):
        super().__init__(message)


def plan_filename(name: str) -> str:
    sanitized = re.sub(r"[^a-z0-9\s-]", "", name, flags=re.IGNORECASE)
    sanitized = re.sub(r"\s+", "_", sanitized).lower()
    return f"{sanitized or 'itinerary'}.json"


def dump_saved_plan(
    plan: TravelPlan, destination: DestinationSuggestion, name: str
) -> tuple[str, str]:
    """Serialize a plan to the saved-file format.

    Returns ``(filename, json_text)``.
    """
    saved = SavedPlan(name=name, plan=plan, destination=destination)
    return plan_filename(name), json.dumps(saved.model_dump(mode="json"), indent=2)


def load_saved_plan(text: str | bytes) -> SavedPlan:
    """Parse a saved plan file, filling in any missing activity ids.

    Raises:
        InvalidPlanFileError: If the text is not a saved plan.
    """
    try:
        raw = json.loads(text)
    except ValueError as exc:
        raise InvalidPlanFileError("Failed to read or parse the file.") from exc

    if not isinstance(raw, dict):
        raise InvalidPlanFileError()
    plan = raw.get("plan")
    destination = raw.get("destination")
    if not isinstance(destination, dict) or not isinstance(plan, dict):
        raise InvalidPlanFileError()
    if not isinstance(plan.get("itinerary"), list):
        raise InvalidPlanFileError()

    # Older files may lack the wrapper's own fields
    raw.setdefault("name", destination.get("name", "Itinerary"))
    try:
        saved = SavedPlan.model_validate(raw)
    except ValidationError as exc:
        raise InvalidPlanFileError() from exc
    saved.plan = assign_activity_ids(saved.plan, keep_existing=True)
    return saved


class PlanLibrary:
    """Saved plans kept on disk as one JSON array."""

    def __init__(self, db_path: Path = DEFAULT_LIBRARY_PATH):
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        if not self.db_path.exists():
            self.db_path.write_text("[]")

    def _load(self) -> list[SavedPlan]:
        raw = json.loads(self.db_path.read_text())
        return [SavedPlan.model_validate(doc) for doc in raw]

    def _save(self, plans: list[SavedPlan]) -> None:
        self.db_path.write_text(
            json.dumps([p.model_dump(mode="json") for p in plans], indent=2)
        )

    def add(self, saved: SavedPlan) -> SavedPlan:
        plans = [p for p in self._load() if p.id != saved.id]
        plans.append(saved)
        self._save(plans)
        return saved

    def list_all(self) -> list[SavedPlan]:
        return self._load()

    def get(self, plan_id: str) -> SavedPlan | None:
        for saved in self._load():
            if saved.id == plan_id:
                return saved
        return None

    def delete(self, plan_id: str) -> bool:
        plans = self._load()
        remaining = [p for p in plans if p.id != plan_id]
        if len(remaining) == len(plans):
            return False
        self._save(remaining)
        return True
