"""
Map controller: owns the cross-view selection state for one map session
and keeps the chat, itinerary list and map consistent.

Every mutation goes through a named transition (set_plan, select_day,
select_marker, select_list_item, select_segment, set_travel_mode,
close_segment). Late results are guarded by two counters:

* ``plan_version``: bumped on every new plan; marker resolution for an
  older version is dropped when it finally completes.
* ``directions_request_id``: bumped on every directions fetch and on
  every transition that invalidates the route card; only the response
  carrying the current id is applied.

All handlers run on one event loop, so each transition completes before
the next event is processed.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from config.settings import settings
from models.map_state import (
    Coordinate,
    DirectionsResult,
    Marker,
    Segment,
    SelectionState,
)
from models.plan import Plan
from services.directions_service import FETCH_FAILED_MESSAGE, DirectionsService
from services.geocoding_service import build_photo_url
from services.map_view import derive_camera, visible_markers, visible_segments
from services.marker_resolution_service import MarkerResolutionService, build_segments

logger = logging.getLogger(__name__)


class MarkerNotFoundError(LookupError):
    """Raised when a marker click refers to no resolved marker."""


class MapController:
    """Selection and view-sync state machine for a single map session."""

    def __init__(
        self,
        resolver: Optional[MarkerResolutionService] = None,
        directions: Optional[DirectionsService] = None,
        session_id: Optional[str] = None,
    ) -> None:
        self.resolver = resolver or MarkerResolutionService()
        self.directions = directions or DirectionsService()
        self.session_id = session_id

        self.plan: Optional[Plan] = None
        self.markers: List[Marker] = []
        self.segments: List[Segment] = []
        self.city_center: Optional[Coordinate] = None
        self.resolving = False
        self.state = SelectionState(travel_mode=settings.DEFAULT_TRAVEL_MODE)

        self._plan_version = 0
        self._directions_request_id = 0
        self._resolution_task: Optional[asyncio.Task] = None

    @property
    def plan_version(self) -> int:
        return self._plan_version

    @property
    def directions_request_id(self) -> int:
        return self._directions_request_id

    # ------------------------------------------------------------------
    # Plan replacement
    # ------------------------------------------------------------------

    def set_plan(self, plan: Plan) -> asyncio.Task:
        """
        Make ``plan`` current and start resolving its markers.

        Selection is reset immediately; the returned task completes when
        resolution for this plan version has finished (or been dropped).
        Must be called from a running event loop.
        """
        self._plan_version += 1
        version = self._plan_version

        self.plan = plan
        self.markers = []
        self.segments = []
        self.city_center = None
        self.state.selected_day = None
        self.state.selected_marker = None
        self.state.selected_segment = None
        self._invalidate_directions()

        # Asserted before the first lookup; an empty plan makes no lookups
        self.resolving = bool(plan.days)

        logger.info(
            "New plan loaded (%d days)", len(plan.days),
            extra={"session_id": self.session_id, "plan_version": version},
        )
        self._resolution_task = asyncio.ensure_future(self._resolve(plan, version))
        return self._resolution_task

    async def load_plan(self, plan: Plan) -> None:
        """Set ``plan`` and wait for its marker resolution to finish."""
        await self.set_plan(plan)

    async def _resolve(self, plan: Plan, version: int) -> None:
        if not plan.days:
            return
        try:
            center = await self.resolver.resolve_city_center(plan.city)
            if self._is_current(version):
                self.city_center = center

            markers = await self.resolver.resolve_markers(plan, city_center=center)
            if not self._is_current(version):
                logger.debug(
                    "Dropping markers of superseded plan",
                    extra={"plan_version": version, "current_version": self._plan_version},
                )
                return

            self.markers = markers
            self.segments = build_segments(markers)
        except Exception:
            logger.exception(
                "Marker resolution failed",
                extra={"session_id": self.session_id, "plan_version": version},
            )
        finally:
            if self._is_current(version):
                self.resolving = False

    def _is_current(self, version: int) -> bool:
        return version == self._plan_version

    # ------------------------------------------------------------------
    # Selection transitions
    # ------------------------------------------------------------------

    def select_day(self, day: Optional[int]) -> None:
        """Filter the map to one day (or all days with ``None``)."""
        self.state.selected_day = day
        marker = self.state.selected_marker
        if marker is None or marker.day != day:
            self.state.selected_marker = None
        self.state.selected_segment = None
        self._invalidate_directions()

    def select_marker(self, day: int, order_in_day: int) -> Marker:
        """Marker clicked on the map."""
        marker = self.find_marker(day, order_in_day)
        if marker is None:
            raise MarkerNotFoundError(f"No marker for day {day}, order {order_in_day}")
        self._focus(marker)
        return marker

    def select_list_item(self, day: int, order_in_day: int) -> Optional[Marker]:
        """Itinerary list entry clicked; a no-op when that item never resolved."""
        marker = self.find_marker(day, order_in_day)
        if marker is not None:
            self._focus(marker)
        return marker

    async def select_segment(self, segment_id: str) -> bool:
        """
        Segment line clicked; only interactive for the selected day.

        Returns:
            True when the segment was selected and directions fetched.
        """
        segment = self.find_segment(segment_id)
        if segment is None or segment.day != self.state.selected_day:
            return False

        self.state.selected_segment = segment
        self.state.selected_marker = None
        await self._fetch_directions(segment)
        return True

    async def set_travel_mode(self, mode: str) -> None:
        """Change travel mode; re-fetch directions for a selected segment."""
        mode = mode.upper()
        if mode not in settings.VALID_TRAVEL_MODES:
            raise ValueError(f"mode must be one of {settings.VALID_TRAVEL_MODES}, got '{mode}'")
        self.state.travel_mode = mode
        if self.state.selected_segment is not None:
            await self._fetch_directions(self.state.selected_segment)

    def close_segment(self) -> None:
        """Route card closed: drop the segment and restore the day's markers."""
        self.state.selected_segment = None
        self._invalidate_directions()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_marker(self, day: int, order_in_day: int) -> Optional[Marker]:
        for m in self.markers:
            if m.day == day and m.order_in_day == order_in_day:
                return m
        return None

    def find_segment(self, segment_id: str) -> Optional[Segment]:
        for s in self.segments:
            if s.id == segment_id:
                return s
        return None

    # ------------------------------------------------------------------
    # Directions
    # ------------------------------------------------------------------

    async def _fetch_directions(self, segment: Segment) -> None:
        self._directions_request_id += 1
        request_id = self._directions_request_id
        mode = self.state.travel_mode

        self.state.clear_directions()
        self.state.loading_directions = True

        try:
            result = await self.directions.get_directions(
                segment.from_marker.coordinate,
                segment.to_marker.coordinate,
                mode,
            )
        except Exception as e:
            logger.error(f"Directions lookup raised for segment {segment.id}: {e}")
            result = DirectionsResult(error=FETCH_FAILED_MESSAGE)

        if request_id != self._directions_request_id:
            logger.debug(
                "Discarding stale directions response",
                extra={"request_id": request_id, "current_id": self._directions_request_id},
            )
            return

        self.state.loading_directions = False
        self.state.directions_result = result
        if result.ok:
            self.state.directions_path = list(result.path) or None
            self.state.directions_bounds = result.bounds

    def _invalidate_directions(self) -> None:
        self._directions_request_id += 1
        self.state.clear_directions()

    def _focus(self, marker: Marker) -> None:
        self.state.selected_day = marker.day
        self.state.selected_marker = marker
        self.state.selected_segment = None
        self._invalidate_directions()

    # ------------------------------------------------------------------
    # Derived view
    # ------------------------------------------------------------------

    def view(self) -> Dict[str, Any]:
        """Everything the presentation layer needs, derived from current state."""
        state = self.state

        def _marker(m: Marker) -> Dict[str, Any]:
            return m.to_dict(photo_url=build_photo_url(m.photo_ref, settings.PHOTO_MAX_WIDTH))

        marker = state.selected_marker
        result = state.directions_result
        return {
            "session_id": self.session_id,
            "plan_version": self._plan_version,
            "plan": self.plan.to_dict() if self.plan else None,
            "resolving": self.resolving,
            "city_center": self.city_center.to_dict() if self.city_center else None,
            "markers": [_marker(m) for m in self.markers],
            "segments": [s.to_dict() for s in self.segments],
            "visible_markers": [_marker(m) for m in visible_markers(self.markers, state)],
            "visible_segments": [s.to_dict() for s in visible_segments(self.segments, state)],
            "selection": {
                "selected_day": state.selected_day,
                "selected_marker": _marker(marker) if marker else None,
                "selected_segment": state.selected_segment.to_dict() if state.selected_segment else None,
                "travel_mode": state.travel_mode,
                "loading_directions": state.loading_directions,
                "directions_result": result.to_dict() if result else None,
                "directions_path": (
                    [c.to_dict() for c in state.directions_path]
                    if state.directions_path else None
                ),
            },
            "active_item": (
                {"day": marker.day, "order_in_day": marker.order_in_day}
                if marker else None
            ),
            "camera": derive_camera(self.markers, state, self.city_center).to_dict(),
        }
