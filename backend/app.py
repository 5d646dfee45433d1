"""
Trip Map Assistant: FastAPI application.

Proxies the conversational itinerary model and the Google Places /
Directions and Open-Meteo collaborators, and hosts the per-tab map
sessions that keep the chat, itinerary list and map in sync.

Run:
    python backend/app.py          # starts uvicorn with reload
    uvicorn app:app --reload       # (from the backend/ directory)

Auto-generated API docs:
    http://localhost:3000/docs      (Swagger UI)
    http://localhost:3000/redoc     (ReDoc)
"""

from __future__ import annotations

import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Optional

# ---------------------------------------------------------------------------
# Path setup: allow short imports like ``from config.settings import …``
# ---------------------------------------------------------------------------
sys.path.insert(0, os.path.dirname(__file__))

import httpx
from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from config.settings import redact_api_key, settings
from clients.errors import ExternalAPIError
from models.map_state import Coordinate
from models.plan import Plan, PlanValidationError
from schemas.api_models import (
    ChatRequest,
    ChatResponse,
    DirectionsRequest,
    HealthResponse,
    MapViewResponse,
    PlaceSearchRequest,
    PlaceSearchResponse,
    SelectDayRequest,
    SelectMarkerRequest,
    SelectSegmentRequest,
    SetPlanRequest,
    TravelModeRequest,
    WeatherRequest,
    WeatherResponse,
)
from services.directions_service import FETCH_FAILED_MESSAGE, DirectionsService
from services.geocoding_service import GeocodingService, build_photo_url
from services.itinerary_source import ItinerarySource
from services.map_controller import MapController, MarkerNotFoundError
from services.map_session_store import MapSessionStore, SessionNotFoundError
from services.marker_resolution_service import MarkerResolutionService
from services.weather_service import WeatherService
from utils.id_generator import generate_request_id

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level service instances (set during lifespan startup)
# ---------------------------------------------------------------------------
itinerary_source: Optional[ItinerarySource] = None
itinerary_source_error: Optional[str] = None
geocoding_service: Optional[GeocodingService] = None
directions_service: Optional[DirectionsService] = None
weather_service: Optional[WeatherService] = None
session_store: Optional[MapSessionStore] = None


def _build_session_store() -> MapSessionStore:
    def _factory(session_id: str) -> MapController:
        return MapController(
            resolver=MarkerResolutionService(geocoding_service),
            directions=directions_service,
            session_id=session_id,
        )
    return MapSessionStore(controller_factory=_factory)


# ---------------------------------------------------------------------------
# Lifespan: initialise / tear down services
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Initialise services on startup; clean up on shutdown."""
    global itinerary_source, itinerary_source_error
    global geocoding_service, directions_service, weather_service, session_store

    try:
        itinerary_source = ItinerarySource()
        print(f"✅ Itinerary source initialized ({itinerary_source.primary})")
    except Exception as exc:
        itinerary_source_error = str(exc)
        print(f"❌ Failed to initialize itinerary source: {exc}")

    geocoding_service = GeocodingService()
    directions_service = DirectionsService()
    weather_service = WeatherService()
    session_store = _build_session_store()

    if not geocoding_service.is_available():
        print("⚠️  Google Places not configured, markers will not resolve")
    else:
        print(f"✅ Google Places key {redact_api_key(settings.GOOGLE_PLACES_API_KEY)}")
    if not directions_service.is_available():
        print("⚠️  Google Directions not configured, route cards will show an error")

    yield  # ── application runs here ──

    logger.info("Shutting down Trip Map Assistant (%s)", settings.ENVIRONMENT)


# ---------------------------------------------------------------------------
# App creation
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Trip Map Assistant",
    version="0.1.0",
    description="Travel-planning chat with a day-by-day itinerary kept in sync with a map.",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Global exception handlers
# ---------------------------------------------------------------------------
@app.exception_handler(ExternalAPIError)
async def _external_api_error(request: Request, exc: ExternalAPIError):
    return JSONResponse(
        status_code=502,
        content={
            "success": False,
            "error": f"{exc.service} API failed: {exc.error}",
        },
    )


@app.exception_handler(SessionNotFoundError)
async def _session_not_found(request: Request, exc: SessionNotFoundError):
    return JSONResponse(
        status_code=404,
        content={"success": False, "error": f"Unknown map session: {exc.args[0]}"},
    )


@app.exception_handler(MarkerNotFoundError)
async def _marker_not_found(request: Request, exc: MarkerNotFoundError):
    return JSONResponse(
        status_code=404,
        content={"success": False, "error": str(exc)},
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

# ── Health check ────────────────────────────────────────────────

@app.get("/api/health", response_model=HealthResponse, tags=["system"])
async def health_check():
    """Return service health and configured integrations."""
    return HealthResponse(
        status="ok",
        message="backend is running",
        primary_llm=itinerary_source.primary if itinerary_source else "none",
        places_configured=bool(geocoding_service and geocoding_service.is_available()),
        directions_configured=bool(directions_service and directions_service.is_available()),
        error=itinerary_source_error,
    )


# ── Chat + itinerary ───────────────────────────────────────────

@app.post("/api/chat", response_model=ChatResponse, tags=["chat"])
async def chat(body: ChatRequest):
    """
    One conversation turn.

    Send the full dialogue history ending with the user's latest message.
    When the assistant produces an itinerary, ``plan`` is populated and
    ``content`` is a short confirmation; with ``session_id`` the plan is
    also loaded into that map session and the resulting view returned.
    """
    last = body.messages[-1] if body.messages else None
    if last is None or last.role != "user" or not last.content.strip():
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "message is required"},
        )

    if not itinerary_source:
        return JSONResponse(
            status_code=503,
            content={
                "success": False,
                "error": "Itinerary source not initialized. Check GROQ_API_KEY / GEMINI_KEY in .env",
            },
        )

    controller = session_store.get(body.session_id) if body.session_id else None
    request_id = generate_request_id()

    try:
        reply = await itinerary_source.reply(
            [m.model_dump() for m in body.messages],
            request_id=request_id,
        )
    except ExternalAPIError:
        raise
    except Exception:
        logger.error("Chat turn failed", exc_info=True, extra={"request_id": request_id})
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Failed to get AI response"},
        )

    view = None
    if reply.plan is not None and controller is not None:
        await controller.load_plan(reply.plan)
        view = controller.view()

    return ChatResponse(
        content=reply.content,
        plan=reply.plan.to_dict() if reply.plan else None,
        session_id=body.session_id,
        view=view,
    )


# ── Places proxy ───────────────────────────────────────────────

@app.post("/api/places/search", response_model=PlaceSearchResponse, tags=["places"])
async def search_places(body: PlaceSearchRequest):
    """Resolve a place name (with optional city hint) to real-world places."""
    if not body.query or not body.query.strip():
        return JSONResponse(status_code=400, content={"error": "query is required"})

    proximity = (
        Coordinate(lat=body.proximity.lat, lng=body.proximity.lng)
        if body.proximity else None
    )
    try:
        result = await geocoding_service.lookup(body.query.strip(), body.city, proximity)
    except (httpx.HTTPError, ValueError) as exc:
        logger.error(f"Error calling Google Places API: {exc}")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch places"})

    if result["status"] != "OK":
        return JSONResponse(
            status_code=400,
            content={
                "error": "Google Places status not OK",
                "status": result["status"],
                "error_message": result.get("error_message"),
                "places": [],
            },
        )

    return PlaceSearchResponse(
        places=[
            {**p, "photo_url": build_photo_url(p.get("photo_ref"), settings.PHOTO_MAX_WIDTH)}
            for p in result["places"]
        ],
    )


@app.get("/api/places/photo", tags=["places"])
async def place_photo(
    ref: Optional[str] = None,
    maxwidth: int = Query(default=settings.PHOTO_MAX_WIDTH, ge=1, le=1600),
):
    """Proxy a place photo so the API key never reaches the browser."""
    if not ref:
        return PlainTextResponse("Missing photo reference", status_code=400)

    try:
        content, content_type = await geocoding_service.get_photo(ref, max_width=maxwidth)
    except (httpx.HTTPError, ValueError) as exc:
        logger.error(f"Error fetching place photo: {exc}")
        return PlainTextResponse("Failed to fetch photo", status_code=500)

    return Response(content=content, media_type=content_type)


# ── Directions proxy ───────────────────────────────────────────

@app.post("/api/directions", tags=["directions"])
async def directions(body: DirectionsRequest):
    """Route summary and geometry between two coordinates."""
    if body.origin is None or body.destination is None:
        return JSONResponse(
            status_code=400,
            content={"error": "origin and destination are both required"},
        )

    result = await directions_service.get_directions(
        Coordinate(lat=body.origin.lat, lng=body.origin.lng),
        Coordinate(lat=body.destination.lat, lng=body.destination.lng),
        body.mode,
    )
    if not result.ok:
        status = 500 if result.error == FETCH_FAILED_MESSAGE else 400
        return JSONResponse(status_code=status, content=result.to_dict())
    return result.to_dict()


# ── Weather proxy ──────────────────────────────────────────────

@app.post("/api/weather", response_model=WeatherResponse, tags=["weather"])
async def weather(body: WeatherRequest):
    """Daily forecast from the trip start date (null beyond the 14-day horizon)."""
    result = await weather_service.get_forecast(body.city, body.start_date, days=body.days)
    return WeatherResponse(**result)


# ── Map sessions ───────────────────────────────────────────────

def _view(controller: MapController, changed: bool = True) -> MapViewResponse:
    return MapViewResponse(
        session_id=controller.session_id,
        view=controller.view(),
        changed=changed,
    )


@app.post("/api/map/sessions", response_model=MapViewResponse, tags=["map"])
async def create_map_session():
    """Open a map session for one chat/list/map screen."""
    return _view(session_store.create())


@app.get("/api/map/sessions/{session_id}", response_model=MapViewResponse, tags=["map"])
async def get_map_session(session_id: str):
    return _view(session_store.get(session_id))


@app.put("/api/map/sessions/{session_id}/plan", response_model=MapViewResponse, tags=["map"])
async def set_plan(session_id: str, body: SetPlanRequest):
    """Replace the plan, reset selection and resolve markers."""
    controller = session_store.get(session_id)
    try:
        plan = Plan.from_dict(body.plan)
    except PlanValidationError as exc:
        return JSONResponse(status_code=422, content={"success": False, "error": str(exc)})

    await controller.load_plan(plan)
    return _view(controller)


@app.post("/api/map/sessions/{session_id}/day", response_model=MapViewResponse, tags=["map"])
async def select_day(session_id: str, body: SelectDayRequest):
    controller = session_store.get(session_id)
    controller.select_day(body.day)
    return _view(controller)


@app.post("/api/map/sessions/{session_id}/marker", response_model=MapViewResponse, tags=["map"])
async def select_marker(session_id: str, body: SelectMarkerRequest):
    controller = session_store.get(session_id)
    controller.select_marker(body.day, body.order)
    return _view(controller)


@app.post("/api/map/sessions/{session_id}/list-item", response_model=MapViewResponse, tags=["map"])
async def select_list_item(session_id: str, body: SelectMarkerRequest):
    controller = session_store.get(session_id)
    marker = controller.select_list_item(body.day, body.order)
    return _view(controller, changed=marker is not None)


@app.post("/api/map/sessions/{session_id}/segment", response_model=MapViewResponse, tags=["map"])
async def select_segment(session_id: str, body: SelectSegmentRequest):
    """Select a segment of the active day and fetch its directions."""
    controller = session_store.get(session_id)
    changed = await controller.select_segment(body.segment_id)
    return _view(controller, changed=changed)


@app.delete("/api/map/sessions/{session_id}/segment", response_model=MapViewResponse, tags=["map"])
async def close_segment(session_id: str):
    controller = session_store.get(session_id)
    controller.close_segment()
    return _view(controller)


@app.post("/api/map/sessions/{session_id}/travel-mode", response_model=MapViewResponse, tags=["map"])
async def set_travel_mode(session_id: str, body: TravelModeRequest):
    controller = session_store.get(session_id)
    try:
        await controller.set_travel_mode(body.mode)
    except ValueError as exc:
        return JSONResponse(status_code=400, content={"success": False, "error": str(exc)})
    return _view(controller)


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    import uvicorn

    errors = settings.validate()
    if errors:
        for err in errors:
            print(f"❌ Configuration error: {err}")
        print("\n📝 Setup Instructions:")
        print("1. Copy backend/.env.example to backend/.env")
        print("2. Add your Groq API key from https://console.groq.com/keys")
        print("3. (Optional) Add a Gemini API key from https://aistudio.google.com/apikey")
        print("4. Add a Google Maps Platform key with Places + Directions enabled")
        print("5. Run the server again")
        sys.exit(1)

    print(f"✅ Settings validated")
    print(f"🌐 Starting server on http://{settings.HOST}:{settings.PORT}")
    print(f"📖 API docs at http://{settings.HOST}:{settings.PORT}/docs")

    uvicorn.run(
        "app:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
