"""
Client for Google Maps Directions API.
Fetches a route between two coordinates for a given transportation mode.
"""

import time
from typing import Any, Dict, List, Optional

import httpx

from config.settings import settings


DIRECTIONS_API_URL = "https://maps.googleapis.com/maps/api/directions/json"

# Modes supported by Google Maps Directions API
TRAVEL_MODES = ["driving", "transit", "walking", "bicycling"]


class GoogleMapsClient:
    """Client for fetching directions between two map points via Google Maps API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key or settings.GOOGLE_DIRECTIONS_API_KEY
        if not self.api_key:
            raise ValueError(
                "GOOGLE_DIRECTIONS_API_KEY (or GOOGLE_PLACES_API_KEY) is required. "
                "Get one at https://console.cloud.google.com/apis/credentials"
            )
        self._http = http_client

    async def get_directions(
        self,
        origin: Dict[str, float],
        destination: Dict[str, float],
        mode: str = "transit",
    ) -> Dict[str, Any]:
        """
        Fetch directions between two coordinates for a single travel mode.

        Args:
            origin: {"lat", "lng"} of the starting point.
            destination: {"lat", "lng"} of the end point.
            mode: One of "driving", "transit", "walking", "bicycling"
                  (case-insensitive).

        Returns:
            Dict with status, parsed routes and a Google Maps link.
        """
        mode = mode.lower()
        if mode not in TRAVEL_MODES:
            raise ValueError(f"mode must be one of {TRAVEL_MODES}, got '{mode}'")

        origin_str = f"{origin['lat']},{origin['lng']}"
        destination_str = f"{destination['lat']},{destination['lng']}"

        params: Dict[str, Any] = {
            "origin": origin_str,
            "destination": destination_str,
            "mode": mode,
            "language": settings.PLACES_LANGUAGE,
            "departure_time": int(time.time()),
            "key": self.api_key,
        }
        if settings.PLACES_REGION:
            params["region"] = settings.PLACES_REGION

        if self._http is not None:
            resp = await self._http.get(DIRECTIONS_API_URL, params=params)
        else:
            async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT) as client:
                resp = await client.get(DIRECTIONS_API_URL, params=params)
        resp.raise_for_status()
        data = resp.json()

        if data.get("status") != "OK":
            return {
                "mode": mode,
                "status": data.get("status", "UNKNOWN_ERROR"),
                "error": data.get("error_message", "No routes found."),
                "routes": [],
                "google_maps_link": self._build_maps_link(
                    origin_str, destination_str, mode
                ),
            }

        return {
            "mode": mode,
            "status": "OK",
            "routes": self._parse_routes(data.get("routes") or [], mode),
            "google_maps_link": self._build_maps_link(
                origin_str, destination_str, mode
            ),
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _parse_routes(
        self, raw_routes: List[Dict], mode: str
    ) -> List[Dict[str, Any]]:
        """Parse the raw Google Maps routes into a cleaner structure."""
        parsed = []
        for route in raw_routes:
            legs = route.get("legs") or []
            if not legs:
                continue
            leg = legs[0]  # single origin→destination has one leg

            parsed.append({
                "distance": (leg.get("distance") or {}).get("text"),
                "duration": (leg.get("duration") or {}).get("text"),
                "start_address": leg.get("start_address"),
                "end_address": leg.get("end_address"),
                "steps": self._parse_steps(leg.get("steps") or [], mode),
                "encoded_polyline": (route.get("overview_polyline") or {}).get("points"),
                "bounds": route.get("bounds"),
            })

        return parsed

    def _parse_steps(
        self, raw_steps: List[Dict], mode: str
    ) -> List[Dict[str, Any]]:
        """Parse individual navigation steps."""
        steps = []
        for step in raw_steps:
            steps.append({
                "instruction": step.get("html_instructions", ""),
                "distance": (step.get("distance") or {}).get("text"),
                "duration": (step.get("duration") or {}).get("text"),
                "travel_mode": step.get("travel_mode", mode.upper()),
            })
        return steps

    @staticmethod
    def _build_maps_link(origin: str, destination: str, mode: str) -> str:
        """Build a shareable Google Maps directions URL."""
        return (
            "https://www.google.com/maps/dir/?api=1"
            f"&origin={origin}"
            f"&destination={destination}"
            f"&travelmode={mode}"
        )
