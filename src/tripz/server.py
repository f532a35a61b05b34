from __future__ import annotations

import os
import re
import unicodedata
from contextlib import asynccontextmanager
from urllib.parse import quote

from dotenv import load_dotenv
load_dotenv()

import logfire
logfire.configure(
    service_name="tripz-server",
    environment=os.environ.get("RAILWAY_ENVIRONMENT", "development"),
    send_to_logfire="if-token-present",
)
logfire.instrument_pydantic_ai()
logfire.instrument_httpx()

from fastapi import FastAPI, File, HTTPException, Response, UploadFile

from tripz import itinerary
from tripz.compositor import DocumentExporter, ExportInProgressError, export_filename
from tripz.models import (
    AddPackingItemRequest,
    CostSummary,
    DeleteActivityRequest,
    DestinationSuggestion,
    PlanBody,
    PlanRequest,
    RebuildRequest,
    ReorderActivitiesRequest,
    SavedPlan,
    SavePlanRequest,
    SuggestionRequest,
    SuggestionResponse,
    TogglePackingItemRequest,
    TravelPlan,
)
from tripz.pdf_utils import get_total_pages
from tripz.plan_file import InvalidPlanFileError, PlanLibrary, dump_saved_plan, load_saved_plan
from tripz.planner import PlannerError, TripPlanner
from tripz.response_cache import default_cache

cache = default_cache()
planner = TripPlanner(cache)
library = PlanLibrary()
exporter = DocumentExporter()


@asynccontextmanager
async def lifespan(app: FastAPI):
    cache.sweep()
    yield


app = FastAPI(
    title="Tripz",
    description="AI travel planner: suggestions, itineraries and PDF export",
    lifespan=lifespan,
)
logfire.instrument_fastapi(app)


def _provider_error(exc: PlannerError) -> HTTPException:
    status = 429 if exc.kind == "quota" else 502
    return HTTPException(status_code=status, detail=str(exc))


def _plan_day(plan: TravelPlan, day_index: int) -> None:
    if not 0 <= day_index < len(plan.itinerary):
        raise HTTPException(status_code=404, detail="Day not found")


def _attachment(filename: str) -> str:
    """Content-Disposition for a download, with an ASCII fallback name."""
    fallback = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode()
    if fallback == filename:
        return f'attachment; filename="{filename}"'
    fallback = re.sub(r"-+(?=\.)|(?<=-)-+", "", fallback)
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# Destinations
# ---------------------------------------------------------------------------
@app.post("/suggestions", response_model=SuggestionResponse)
async def suggestions(request: SuggestionRequest):
    """Suggest destinations, or describe the country the user named."""
    try:
        result = await planner.select_destination(
            request.budget, request.time_of_year, request.continent, request.country
        )
    except PlannerError as e:
        raise _provider_error(e)
    if isinstance(result, DestinationSuggestion):
        return SuggestionResponse(destination=result)
    return SuggestionResponse(suggestions=result)


@app.post("/suggestions/offbeat", response_model=SuggestionResponse)
async def offbeat_suggestions():
    try:
        result = await planner.get_offbeat_suggestions()
    except PlannerError as e:
        raise _provider_error(e)
    return SuggestionResponse(suggestions=result)


@app.get("/destinations/{country}", response_model=DestinationSuggestion)
async def destination(country: str):
    try:
        return await planner.select_destination("", "", "Any", country)
    except PlannerError as e:
        raise _provider_error(e)


# ---------------------------------------------------------------------------
# Plans
# ---------------------------------------------------------------------------
@app.post("/plans", response_model=TravelPlan)
async def create_plan(request: PlanRequest):
    """Generate an itinerary. A duration of 0 lets the model pick the length."""
    name = request.destination.name
    try:
        if request.duration == 0:
            return await planner.get_comprehensive_travel_plan(name, request.style, request.notes)
        return await planner.get_travel_plan(name, request.duration, request.style, request.notes)
    except PlannerError as e:
        raise _provider_error(e)


@app.post("/plans/rebuild", response_model=TravelPlan)
async def rebuild_plan(request: RebuildRequest):
    """Re-optimize an edited plan using only the activities it still has."""
    notes = itinerary.combine_notes(request.notes, request.refinement_notes)
    try:
        return await planner.rebuild_travel_plan(
            request.destination.name,
            len(request.plan.itinerary),
            request.style,
            request.plan.itinerary,
            notes,
        )
    except PlannerError as e:
        raise _provider_error(e)


@app.post("/plans/packing-list", response_model=TravelPlan)
async def packing_list(request: PlanBody):
    plan = request.plan
    if plan.packing_list:
        return plan
    activities = [a for day in plan.itinerary for a in day.activities]
    try:
        categories = await planner.get_packing_list(
            request.destination.name, len(plan.itinerary), activities
        )
    except PlannerError as e:
        raise _provider_error(e)
    return itinerary.set_packing_list(plan, categories)


@app.post("/plans/packing-list/toggle", response_model=TravelPlan)
async def toggle_packing_item(request: TogglePackingItemRequest):
    return itinerary.toggle_packing_item(request.plan, request.item)


@app.post("/plans/packing-list/items", response_model=TravelPlan)
async def add_packing_item(request: AddPackingItemRequest):
    """Add an item to a packing category. Items already listed are ignored."""
    categories = [c.category_name for c in request.plan.packing_list or []]
    if request.category_name not in categories:
        raise HTTPException(status_code=404, detail="Packing category not found")
    return itinerary.add_packing_item(request.plan, request.category_name, request.item)


@app.post("/plans/cost-summary", response_model=CostSummary)
async def plan_cost_summary(request: PlanBody):
    return itinerary.cost_summary(request.plan, request.destination)


@app.post("/plans/activities/delete", response_model=TravelPlan)
async def delete_activity(request: DeleteActivityRequest):
    _plan_day(request.plan, request.day_index)
    return itinerary.delete_activity(request.plan, request.day_index, request.activity_id)


@app.post("/plans/activities/reorder", response_model=TravelPlan)
async def reorder_activities(request: ReorderActivitiesRequest):
    _plan_day(request.plan, request.day_index)
    try:
        return itinerary.reorder_activities(
            request.plan, request.day_index, request.activity_ids
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


# ---------------------------------------------------------------------------
# Saving, loading and export
# ---------------------------------------------------------------------------
@app.post("/plans/save")
async def save_plan(request: SavePlanRequest):
    """Download the plan as a JSON file."""
    name = request.name or f"Trip to {request.destination.name}"
    filename, text = dump_saved_plan(request.plan, request.destination, name)
    return Response(
        content=text,
        media_type="application/json",
        headers={"Content-Disposition": _attachment(filename)},
    )


@app.post("/plans/load", response_model=SavedPlan)
async def load_plan(file: UploadFile = File(...)):
    """Read back a file produced by /plans/save."""
    try:
        return load_saved_plan(await file.read())
    except InvalidPlanFileError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/plans/export")
async def export_plan(request: PlanBody):
    """Render the plan to a multi-page PDF."""
    try:
        pdf_bytes = await exporter.export_plan(request.plan, request.destination)
    except ExportInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if pdf_bytes is None:
        raise HTTPException(status_code=500, detail="Failed to generate the PDF.")
    filename = export_filename(request.destination.name)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={
            "Content-Disposition": _attachment(filename),
            "X-Total-Pages": str(get_total_pages(pdf_bytes)),
        },
    )


@app.get("/library", response_model=list[SavedPlan])
async def list_saved_plans():
    return library.list_all()


@app.post("/library", response_model=SavedPlan)
async def add_saved_plan(request: SavePlanRequest):
    name = request.name or f"Trip to {request.destination.name}"
    return library.add(SavedPlan(name=name, plan=request.plan, destination=request.destination))


@app.get("/library/{plan_id}", response_model=SavedPlan)
async def get_saved_plan(plan_id: str):
    saved = library.get(plan_id)
    if saved is None:
        raise HTTPException(status_code=404, detail="Plan not found")
    return saved


@app.delete("/library/{plan_id}")
async def delete_saved_plan(plan_id: str):
    if not library.delete(plan_id):
        raise HTTPException(status_code=404, detail="Plan not found")
    return {"status": "deleted"}


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------
@app.post("/cache/sweep")
async def sweep_cache():
    """Drop stale entries from the response cache."""
    return {"removed": cache.sweep()}


def main():
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
