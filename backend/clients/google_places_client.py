"""
Client for Google Places API (Text Search + Place Photos).
Turns a free-text place name into ranked candidate places and proxies
place photos by their opaque photo reference.
"""

from typing import Any, Dict, List, Optional, Tuple

import httpx

from config.settings import settings


TEXT_SEARCH_URL = "https://maps.googleapis.com/maps/api/place/textsearch/json"
PHOTO_URL = "https://maps.googleapis.com/maps/api/place/photo"


class GooglePlacesClient:
    """Async client for Places text search and photo retrieval."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key or settings.GOOGLE_PLACES_API_KEY
        if not self.api_key:
            raise ValueError(
                "GOOGLE_PLACES_API_KEY is required. "
                "Get one at https://console.cloud.google.com/apis/credentials"
            )
        self._http = http_client

    async def text_search(
        self,
        query: str,
        city: Optional[str] = None,
        proximity: Optional[Dict[str, float]] = None,
    ) -> Dict[str, Any]:
        """
        Search places matching a free-text query.

        Args:
            query: Place name as written in the itinerary.
            city: Optional city/region hint, prefixed to the query.
            proximity: Optional {"lat", "lng"} to bias results around.

        Returns:
            Dict with ``status``, ``error_message`` and up to
            ``PLACES_MAX_RESULTS`` parsed ``places``.
        """
        full_query = f"{city} {query}" if city else query

        params: Dict[str, Any] = {
            "query": full_query,
            "key": self.api_key,
            "language": settings.PLACES_LANGUAGE,
        }
        if settings.PLACES_REGION:
            params["region"] = settings.PLACES_REGION
        if proximity:
            params["location"] = f"{proximity['lat']},{proximity['lng']}"
            params["radius"] = settings.PROXIMITY_RADIUS_M

        resp = await self._get(TEXT_SEARCH_URL, params)
        resp.raise_for_status()
        data = resp.json()

        status = data.get("status", "UNKNOWN_ERROR")
        if status != "OK":
            return {
                "status": status,
                "error_message": data.get("error_message"),
                "places": [],
            }

        results = data.get("results") or []
        return {
            "status": "OK",
            "error_message": None,
            "places": self._parse_places(results[: settings.PLACES_MAX_RESULTS]),
        }

    async def get_photo(
        self,
        photo_reference: str,
        max_width: Optional[int] = None,
    ) -> Tuple[bytes, str]:
        """Fetch the binary image behind a photo reference.

        Returns:
            Tuple of (image bytes, content type).
        """
        params = {
            "photo_reference": photo_reference,
            "maxwidth": max_width or settings.PHOTO_MAX_WIDTH,
            "key": self.api_key,
        }
        # The photo endpoint answers with a redirect to the image host
        resp = await self._get(PHOTO_URL, params, follow_redirects=True)
        resp.raise_for_status()
        content_type = resp.headers.get("content-type", "image/jpeg")
        return resp.content, content_type

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _get(
        self,
        url: str,
        params: Dict[str, Any],
        follow_redirects: bool = False,
    ) -> httpx.Response:
        if self._http is not None:
            return await self._http.get(
                url, params=params, follow_redirects=follow_redirects,
            )
        async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT) as client:
            return await client.get(
                url, params=params, follow_redirects=follow_redirects,
            )

    @staticmethod
    def _parse_places(raw_results: List[Dict]) -> List[Dict[str, Any]]:
        """Flatten raw Places results into the fields the map needs."""
        places = []
        for r in raw_results:
            location = (r.get("geometry") or {}).get("location") or {}
            photos = r.get("photos") or []
            places.append({
                "name": r.get("name", ""),
                "address": r.get("formatted_address"),
                "lat": location.get("lat"),
                "lng": location.get("lng"),
                "place_id": r.get("place_id"),
                "rating": r.get("rating"),
                "rating_count": r.get("user_ratings_total"),
                "photo_ref": photos[0].get("photo_reference") if photos else None,
            })
        return places
