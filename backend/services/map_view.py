"""
Pure derivations of what the map shows from markers and selection state.

Nothing here is stored; every function is re-evaluated whenever the
controller's state changes.
"""

from typing import List, Optional

from config.settings import settings
from models.map_state import Bounds, Camera, Coordinate, Marker, Segment, SelectionState

def default_center() -> Coordinate:
    """Fallback map center when neither markers nor the city are known."""
    return Coordinate(lat=settings.DEFAULT_CENTER_LAT, lng=settings.DEFAULT_CENTER_LNG)


def visible_markers(markers: List[Marker], state: SelectionState) -> List[Marker]:
    """Markers of the selected day (all when no day), or a segment's two ends."""
    shown = [
        m for m in markers
        if state.selected_day is None or m.day == state.selected_day
    ]
    segment = state.selected_segment
    if segment is not None:
        ends = {segment.from_marker.key, segment.to_marker.key}
        shown = [m for m in shown if m.key in ends]
    return shown


def visible_segments(segments: List[Segment], state: SelectionState) -> List[Segment]:
    """Segments are drawn only when a single day is selected."""
    if state.selected_day is None:
        return []
    return [s for s in segments if s.day == state.selected_day]


def derive_camera(
    markers: List[Marker],
    state: SelectionState,
    city_center: Optional[Coordinate] = None,
) -> Camera:
    """
    Where the map should look.

    Priority: focused marker, route bounds, visible markers, city center,
    fixed default center.
    """
    if state.selected_marker is not None and state.selected_segment is None:
        return Camera(center=state.selected_marker.coordinate, zoom=settings.MARKER_FOCUS_ZOOM)

    if state.selected_segment is not None:
        route_bounds = state.directions_bounds or Bounds.around(state.directions_path or [])
        if route_bounds is not None:
            return Camera(bounds=route_bounds)

    if markers:
        shown = visible_markers(markers, state)
        if shown:
            return Camera(bounds=Bounds.around([m.coordinate for m in shown]))

    if city_center is not None:
        return Camera(center=city_center, zoom=settings.DEFAULT_ZOOM)
    return Camera(center=default_center(), zoom=settings.DEFAULT_ZOOM)
