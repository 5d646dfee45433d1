"""
Directions service for the route card shown when a segment is selected.

Provides a single high-level call that never raises: the result is
either a route summary with decoded geometry or a user-facing error.

Usage:
    from services.directions_service import DirectionsService

    service = DirectionsService()
    result = await service.get_directions(origin, destination, mode="WALKING")
    if result.ok:
        print(result.summary.duration_text)
"""

import logging
from typing import Any, Dict, Optional

import httpx
import polyline

from clients.google_maps_client import TRAVEL_MODES, GoogleMapsClient
from models.map_state import (
    Bounds,
    Coordinate,
    DirectionsResult,
    RouteStep,
    RouteSummary,
)

logger = logging.getLogger(__name__)

FETCH_FAILED_MESSAGE = "Failed to fetch directions, please try again later."


class DirectionsService:
    """Service for route lookup between two map points using Google Maps API."""

    def __init__(self, client: Optional[GoogleMapsClient] = None):
        """
        Initialize directions service.

        Args:
            client: Optional GoogleMapsClient instance for dependency injection.
        """
        try:
            self.client = client or GoogleMapsClient()
            self._available = True
        except ValueError as e:
            logger.warning(f"Google Maps client unavailable: {e}")
            self._available = False
            self.client = None

    def is_available(self) -> bool:
        """Check if Google Maps API is configured and available."""
        return self._available

    async def get_directions(
        self,
        origin: Coordinate,
        destination: Coordinate,
        mode: str = "DRIVING",
    ) -> DirectionsResult:
        """
        Get the first route between two coordinates for one travel mode.

        Args:
            origin: Starting coordinate.
            destination: Ending coordinate.
            mode: "DRIVING", "TRANSIT", "WALKING" or "BICYCLING".

        Returns:
            DirectionsResult with summary, path and bounds, or with error set.
        """
        if not self._available:
            return DirectionsResult(
                error="Google Directions API not configured",
            )

        if mode.lower() not in TRAVEL_MODES:
            return DirectionsResult(
                error="Invalid travel mode",
                error_message=f"mode must be one of {TRAVEL_MODES}, got '{mode}'",
            )

        try:
            data = await self.client.get_directions(
                origin.to_dict(), destination.to_dict(), mode,
            )
        except (httpx.HTTPError, ValueError) as e:
            # ValueError covers a non-JSON body
            logger.error(f"Error getting directions ({mode}): {e}")
            return DirectionsResult(error=FETCH_FAILED_MESSAGE)

        maps_url = data.get("google_maps_link")
        if data["status"] != "OK":
            return DirectionsResult(
                error="Google Directions status not OK",
                error_message=data.get("error") or data["status"],
                status=data["status"],
                maps_url=maps_url,
            )
        if not data["routes"]:
            return DirectionsResult(
                error="No route found",
                status=data["status"],
                maps_url=maps_url,
            )

        return self._to_result(data["routes"][0], maps_url)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _to_result(route: Dict[str, Any], maps_url: Optional[str] = None) -> DirectionsResult:
        summary = RouteSummary(
            distance_text=route.get("distance"),
            duration_text=route.get("duration"),
            start_address=route.get("start_address"),
            end_address=route.get("end_address"),
            steps=tuple(
                RouteStep(
                    instruction_html=s.get("instruction", ""),
                    distance_text=s.get("distance"),
                    duration_text=s.get("duration"),
                    travel_mode=s.get("travel_mode"),
                )
                for s in route.get("steps", [])
            ),
        )

        encoded = route.get("encoded_polyline")
        path = tuple(
            Coordinate(lat=lat, lng=lng) for lat, lng in polyline.decode(encoded)
        ) if encoded else ()

        return DirectionsResult(
            summary=summary,
            path=path,
            bounds=DirectionsService._parse_bounds(route.get("bounds")),
            encoded_path=encoded,
            maps_url=maps_url,
        )

    @staticmethod
    def _parse_bounds(raw: Optional[Dict[str, Any]]) -> Optional[Bounds]:
        if not raw or "northeast" not in raw or "southwest" not in raw:
            return None
        ne, sw = raw["northeast"], raw["southwest"]
        return Bounds(
            northeast=Coordinate(lat=ne["lat"], lng=ne["lng"]),
            southwest=Coordinate(lat=sw["lat"], lng=sw["lng"]),
        )
