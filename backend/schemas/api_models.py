"""
Pydantic models for FastAPI request/response validation.

These are API-boundary schemas only.  Internal business logic continues
to use the dataclasses in models/plan.py and models/map_state.py.
"""

from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# ── Shared ─────────────────────────────────────────────────────


class LatLng(BaseModel):
    """A map coordinate."""

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class ChatMessage(BaseModel):
    """Single message in the conversation history."""

    role: str = Field(
        ...,
        description='Message role: "user" or "assistant"',
    )
    content: str = Field(..., description="Message text content")


# ── Request Models ─────────────────────────────────────────────


class ChatRequest(BaseModel):
    """POST /api/chat: send the full dialogue history."""

    messages: List[ChatMessage] = Field(
        default_factory=list,
        description="Full conversation history, oldest first, ending with the user's turn.",
    )
    session_id: Optional[str] = Field(
        None,
        description="Map session to load a produced plan into.",
    )


class PlaceSearchRequest(BaseModel):
    """POST /api/places/search: resolve a place name."""

    query: Optional[str] = Field(
        None,
        description="Place name to search for",
        json_schema_extra={"examples": ["Fengjia Night Market"]},
    )
    city: Optional[str] = Field(None, description="City or region hint")
    proximity: Optional[LatLng] = Field(None, description="Bias results around this point")


class DirectionsRequest(BaseModel):
    """POST /api/directions: route between two coordinates."""

    origin: Optional[LatLng] = None
    destination: Optional[LatLng] = None
    mode: str = Field(
        "TRANSIT",
        description='"DRIVING", "TRANSIT", "WALKING" or "BICYCLING"',
    )


class WeatherRequest(BaseModel):
    """POST /api/weather: forecast for a trip."""

    city: str = Field(..., min_length=1)
    start_date: date
    days: Optional[int] = Field(None, ge=1, le=16)


class SetPlanRequest(BaseModel):
    """PUT /api/map/sessions/{id}/plan: replace the current plan."""

    plan: Dict[str, Any] = Field(
        ...,
        description="Plan object as returned by /api/chat",
    )


class SelectDayRequest(BaseModel):
    """POST /api/map/sessions/{id}/day: day filter; null shows all days."""

    day: Optional[int] = Field(None, ge=1)


class SelectMarkerRequest(BaseModel):
    """Marker or list item identified by day and order within the day."""

    day: int = Field(..., ge=1)
    order: int = Field(..., ge=0, description="0-based order among resolved markers of the day")


class SelectSegmentRequest(BaseModel):
    """POST /api/map/sessions/{id}/segment: select a route segment."""

    segment_id: str = Field(..., description='Segment id, e.g. "1-0"')


class TravelModeRequest(BaseModel):
    """POST /api/map/sessions/{id}/travel-mode."""

    mode: str = Field(..., description='"DRIVING", "TRANSIT" or "WALKING"')


# ── Response Models ────────────────────────────────────────────


class HealthResponse(BaseModel):
    """GET /api/health response."""

    status: str
    message: str
    primary_llm: str
    places_configured: bool
    directions_configured: bool
    error: Optional[str] = None


class ChatResponse(BaseModel):
    """POST /api/chat response."""

    success: bool = True
    content: str = Field(description="Assistant text for the chat bubble.")
    plan: Optional[Dict[str, Any]] = Field(
        None,
        description="New itinerary when the assistant produced one; null otherwise.",
    )
    session_id: Optional[str] = None
    view: Optional[Dict[str, Any]] = Field(
        None,
        description="Map view after loading the new plan (only with session_id).",
    )


class Place(BaseModel):
    """Single geocoding candidate."""

    name: str
    address: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    place_id: Optional[str] = None
    rating: Optional[float] = None
    rating_count: Optional[int] = None
    photo_ref: Optional[str] = None
    photo_url: Optional[str] = None


class PlaceSearchResponse(BaseModel):
    """POST /api/places/search response."""

    places: List[Place] = []


class WeatherResponse(BaseModel):
    """POST /api/weather response."""

    daily: Optional[Dict[str, List[Any]]] = None
    reason: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    timezone: Optional[str] = None


class MapViewResponse(BaseModel):
    """Every /api/map/sessions/* route returns the freshly derived view."""

    success: bool = True
    session_id: str
    view: Dict[str, Any]
    changed: bool = Field(
        True,
        description="False when the interaction was a no-op (e.g. unresolved list item).",
    )


class ErrorResponse(BaseModel):
    """Generic error envelope returned on failure."""

    success: bool = False
    error: str
