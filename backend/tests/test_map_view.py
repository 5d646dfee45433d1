"""Test camera and visibility derivations."""
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from models.map_state import Bounds, Coordinate, Marker, SelectionState
from config.settings import settings
from services.map_view import default_center, derive_camera, visible_markers, visible_segments
from services.marker_resolution_service import build_segments


def _marker(day, order, lat, lng):
    return Marker(
        coordinate=Coordinate(lat=lat, lng=lng),
        display_name=f"d{day}-{order}",
        resolved_name=f"d{day}-{order}",
        day=day,
        order_in_day=order,
    )


MARKERS = [
    _marker(1, 0, 24.10, 120.60),
    _marker(1, 1, 24.20, 120.70),
    _marker(1, 2, 24.30, 120.65),
    _marker(2, 0, 25.00, 121.50),
]
SEGMENTS = build_segments(MARKERS)


def test_default_center_without_anything():
    camera = derive_camera([], SelectionState())
    assert camera.center == default_center()
    assert camera.center == Coordinate(lat=23.7, lng=121.0)
    assert camera.zoom == 12
    assert camera.bounds is None


def test_city_center_when_nothing_resolved():
    center = Coordinate(lat=24.15, lng=120.67)
    camera = derive_camera([], SelectionState(), city_center=center)
    assert camera.center == center


def test_fit_all_markers_when_no_day():
    camera = derive_camera(MARKERS, SelectionState())
    assert camera.bounds == Bounds(
        northeast=Coordinate(lat=25.00, lng=121.50),
        southwest=Coordinate(lat=24.10, lng=120.60),
    )


def test_fit_selected_day():
    camera = derive_camera(MARKERS, SelectionState(selected_day=1))
    assert camera.bounds.northeast == Coordinate(lat=24.30, lng=120.70)


def test_selected_marker_wins():
    state = SelectionState(selected_day=1, selected_marker=MARKERS[1])
    camera = derive_camera(MARKERS, state, city_center=Coordinate(lat=0, lng=0))
    assert camera.center == MARKERS[1].coordinate
    assert camera.zoom == 15


def test_route_bounds_when_segment_selected():
    route_bounds = Bounds(northeast=Coordinate(lat=24.3, lng=120.8), southwest=Coordinate(lat=24.0, lng=120.5))
    state = SelectionState(selected_day=1, selected_segment=SEGMENTS[0], directions_bounds=route_bounds)
    assert derive_camera(MARKERS, state).bounds == route_bounds


def test_segment_without_route_fits_its_two_ends():
    state = SelectionState(selected_day=1, selected_segment=SEGMENTS[1])
    camera = derive_camera(MARKERS, state)
    assert camera.bounds == Bounds.around([MARKERS[1].coordinate, MARKERS[2].coordinate])


def test_visibility_rules():
    assert len(visible_markers(MARKERS, SelectionState())) == 4
    assert visible_segments(SEGMENTS, SelectionState()) == []

    day_one = SelectionState(selected_day=1)
    assert [m.key for m in visible_markers(MARKERS, day_one)] == [(1, 0), (1, 1), (1, 2)]
    assert [s.id for s in visible_segments(SEGMENTS, day_one)] == ["1-0", "1-1"]
    assert visible_segments(SEGMENTS, SelectionState(selected_day=2)) == []

    narrowed = SelectionState(selected_day=1, selected_segment=SEGMENTS[0])
    assert [m.key for m in visible_markers(MARKERS, narrowed)] == [(1, 0), (1, 1)]


def test_default_center_follows_settings(monkeypatch):
    monkeypatch.setattr(settings, "DEFAULT_CENTER_LAT", 35.68)
    monkeypatch.setattr(settings, "DEFAULT_CENTER_LNG", 139.76)

    camera = derive_camera([], SelectionState())

    assert camera.center == Coordinate(lat=35.68, lng=139.76)
