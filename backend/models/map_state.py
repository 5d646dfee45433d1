"""
Map state models: geolocated markers, day segments, directions and the
cross-view selection state.

Markers and segments are derived from a Plan and recomputed wholesale;
SelectionState is the only long-lived mutable object and is owned by
services.map_controller.MapController.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote_plus


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lng: float

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


@dataclass(frozen=True)
class Bounds:
    """Rectangular lat/lng box (Google ``bounds`` shape)."""

    northeast: Coordinate
    southwest: Coordinate

    @classmethod
    def around(cls, points: List[Coordinate]) -> Optional["Bounds"]:
        """Smallest box containing all points, or None for no points."""
        if not points:
            return None
        return cls(
            northeast=Coordinate(
                lat=max(p.lat for p in points),
                lng=max(p.lng for p in points),
            ),
            southwest=Coordinate(
                lat=min(p.lat for p in points),
                lng=min(p.lng for p in points),
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "northeast": self.northeast.to_dict(),
            "southwest": self.southwest.to_dict(),
        }


@dataclass(frozen=True)
class Marker:
    """One successfully geocoded, deduplicated itinerary item."""

    coordinate: Coordinate
    display_name: str                   # item name as written in the plan
    resolved_name: str                  # name returned by the geocoder
    day: int
    order_in_day: int                   # 0-based, dense among resolved items
    address: Optional[str] = None
    place_id: Optional[str] = None
    rating: Optional[float] = None
    rating_count: Optional[int] = None
    photo_ref: Optional[str] = None

    @property
    def key(self) -> Tuple[int, int]:
        return self.day, self.order_in_day

    def to_dict(self, photo_url: Optional[str] = None) -> Dict[str, Any]:
        query = f"{self.display_name} {self.address or ''}".strip()
        return {
            "lat": self.coordinate.lat,
            "lng": self.coordinate.lng,
            "display_name": self.display_name,
            "resolved_name": self.resolved_name,
            "day": self.day,
            "order_in_day": self.order_in_day,
            "label": str(self.order_in_day + 1),
            "address": self.address,
            "place_id": self.place_id,
            "rating": self.rating,
            "rating_count": self.rating_count,
            "photo_ref": self.photo_ref,
            "photo_url": photo_url,
            "maps_url": (
                "https://www.google.com/maps/search/?api=1"
                f"&query={quote_plus(query)}"
            ),
        }


@dataclass(frozen=True)
class Segment:
    """Travel leg between two consecutive markers of the same day."""

    id: str                             # "{day}-{index within day}"
    day: int
    from_marker: Marker
    to_marker: Marker

    @property
    def path(self) -> List[Coordinate]:
        return [self.from_marker.coordinate, self.to_marker.coordinate]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "day": self.day,
            "from": {"day": self.from_marker.day, "order_in_day": self.from_marker.order_in_day,
                     "display_name": self.from_marker.display_name},
            "to": {"day": self.to_marker.day, "order_in_day": self.to_marker.order_in_day,
                   "display_name": self.to_marker.display_name},
            "path": [c.to_dict() for c in self.path],
        }


@dataclass(frozen=True)
class RouteStep:
    instruction_html: str = ""
    distance_text: Optional[str] = None
    duration_text: Optional[str] = None
    travel_mode: Optional[str] = None


@dataclass(frozen=True)
class RouteSummary:
    distance_text: Optional[str] = None
    duration_text: Optional[str] = None
    start_address: Optional[str] = None
    end_address: Optional[str] = None
    steps: Tuple[RouteStep, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "distance_text": self.distance_text,
            "duration_text": self.duration_text,
            "start_address": self.start_address,
            "end_address": self.end_address,
            "steps": [
                {
                    "instruction_html": s.instruction_html,
                    "distance_text": s.distance_text,
                    "duration_text": s.duration_text,
                    "travel_mode": s.travel_mode,
                }
                for s in self.steps
            ],
        }


@dataclass(frozen=True)
class DirectionsResult:
    """Either a route summary (with geometry) or a user-facing error."""

    summary: Optional[RouteSummary] = None
    path: Tuple[Coordinate, ...] = ()
    bounds: Optional[Bounds] = None
    encoded_path: Optional[str] = None
    maps_url: Optional[str] = None       # Google Maps directions link for "open in Maps"
    error: Optional[str] = None
    error_message: Optional[str] = None
    status: Optional[str] = None         # upstream status on failure, e.g. "ZERO_RESULTS"

    @property
    def ok(self) -> bool:
        return self.error is None and self.summary is not None

    def to_dict(self) -> Dict[str, Any]:
        if not self.ok:
            return {
                "error": self.error,
                "error_message": self.error_message,
                "status": self.status,
                "maps_url": self.maps_url,
            }
        return {
            "summary": self.summary.to_dict(),
            "encoded_path": self.encoded_path,
            "maps_url": self.maps_url,
            "path": [c.to_dict() for c in self.path],
            "bounds": self.bounds.to_dict() if self.bounds else None,
        }


@dataclass(frozen=True)
class Camera:
    """Where the map should look: either fit ``bounds`` or ``center`` at ``zoom``."""

    center: Optional[Coordinate] = None
    zoom: Optional[int] = None
    bounds: Optional[Bounds] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "center": self.center.to_dict() if self.center else None,
            "zoom": self.zoom,
            "bounds": self.bounds.to_dict() if self.bounds else None,
        }


@dataclass
class SelectionState:
    """Cross-view selection: day filter, marker, segment and directions."""

    selected_day: Optional[int] = None          # None = all days
    selected_marker: Optional[Marker] = None
    selected_segment: Optional[Segment] = None
    travel_mode: str = "DRIVING"
    loading_directions: bool = False
    directions_result: Optional[DirectionsResult] = None
    directions_path: Optional[List[Coordinate]] = None
    directions_bounds: Optional[Bounds] = field(default=None)

    def clear_directions(self) -> None:
        self.loading_directions = False
        self.directions_result = None
        self.directions_path = None
        self.directions_bounds = None
