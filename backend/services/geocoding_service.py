"""
Geocoding service: resolves itinerary place names to real-world places.

Wraps GooglePlacesClient with the error policy the map relies on:
a provider non-OK status or a transport failure yields an empty result
list, never an exception.

Usage:
    from services.geocoding_service import GeocodingService

    service = GeocodingService()
    places = await service.search("Fengjia Night Market", city="Taichung")
"""

import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx

from clients.google_places_client import GooglePlacesClient
from models.map_state import Coordinate

logger = logging.getLogger(__name__)

PHOTO_PROXY_PATH = "/api/places/photo"


def build_photo_url(photo_ref: Optional[str], max_width: int = 400) -> Optional[str]:
    """Backend-proxied URL for a photo reference (None when there is no photo)."""
    if not photo_ref:
        return None
    return f"{PHOTO_PROXY_PATH}?ref={quote(photo_ref, safe='')}&maxwidth={max_width}"


class GeocodingService:
    """Service for place lookup and photo retrieval using Google Places."""

    def __init__(self, client: Optional[GooglePlacesClient] = None):
        """
        Initialize geocoding service.

        Args:
            client: Optional GooglePlacesClient instance for dependency injection.
        """
        try:
            self.client = client or GooglePlacesClient()
            self._available = True
        except ValueError as e:
            logger.warning(f"Google Places client unavailable: {e}")
            self._available = False
            self.client = None

    def is_available(self) -> bool:
        """Check if Google Places API is configured and available."""
        return self._available

    async def lookup(
        self,
        query: str,
        city: Optional[str] = None,
        proximity: Optional[Coordinate] = None,
    ) -> Dict[str, Any]:
        """
        Raw lookup preserving the provider status (used by the HTTP proxy).

        Raises:
            httpx.HTTPError: On transport failure.
        """
        if not self._available:
            return {
                "status": "UNAVAILABLE",
                "error_message": "Google Places API not configured",
                "places": [],
            }
        return await self.client.text_search(
            query,
            city=city,
            proximity=proximity.to_dict() if proximity else None,
        )

    async def search(
        self,
        query: str,
        city: Optional[str] = None,
        proximity: Optional[Coordinate] = None,
    ) -> List[Dict[str, Any]]:
        """
        Ranked candidate places for a query; empty on any failure.

        Args:
            query: Free-text place name.
            city: City/region hint.
            proximity: Optional coordinate to bias results around.

        Returns:
            List of place dicts (name, address, lat, lng, place_id, rating,
            rating_count, photo_ref), best match first.
        """
        try:
            result = await self.lookup(query, city=city, proximity=proximity)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error searching places for '{query}': {e}")
            return []

        if result["status"] != "OK":
            logger.info(
                "Places search returned %s for '%s'", result["status"], query,
                extra={"error_message": result.get("error_message")},
            )
            return []
        return result["places"]

    async def get_photo(
        self,
        photo_ref: str,
        max_width: Optional[int] = None,
    ) -> Tuple[bytes, str]:
        """Fetch photo bytes and content type for a photo reference."""
        if not self._available:
            raise ValueError("Google Places API not configured")
        return await self.client.get_photo(photo_ref, max_width=max_width)
