"""
Marker resolution: turns a Plan's nested days/items into a flat list of
geolocated markers, tolerating partial geocoding failure.

Lookups run concurrently (bounded by GEOCODE_MAX_CONCURRENCY), but
``order_in_day`` is assigned only after every lookup has finished, in
source-list order among the successful ones. Completion order never
affects numbering.

Usage:
    from services.marker_resolution_service import MarkerResolutionService

    resolver = MarkerResolutionService()
    center = await resolver.resolve_city_center(plan.city)
    markers = await resolver.resolve_markers(plan, city_center=center)
    segments = build_segments(markers)
"""

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from config.settings import settings
from models.map_state import Coordinate, Marker, Segment
from models.plan import Item, Plan
from services.geocoding_service import GeocodingService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Candidate:
    day: int
    name: str
    item: Item


def collect_candidates(plan: Plan) -> List[_Candidate]:
    """Items to geocode, in plan order, minus blank names and same-day repeats."""
    candidates = []
    seen = set()
    for day in plan.days:
        for item in day.items:
            name = (item.name or "").strip()
            if not name:
                continue
            key = (day.day_number, name)
            if key in seen:
                continue
            seen.add(key)
            candidates.append(_Candidate(day=day.day_number, name=name, item=item))
    return candidates


def build_segments(markers: List[Marker]) -> List[Segment]:
    """One segment per consecutive marker pair within each day."""
    by_day: Dict[int, List[Marker]] = defaultdict(list)
    for m in markers:
        by_day[m.day].append(m)

    segments = []
    for day in sorted(by_day):
        ordered = sorted(by_day[day], key=lambda m: m.order_in_day)
        for i in range(len(ordered) - 1):
            segments.append(Segment(
                id=f"{day}-{i}",
                day=day,
                from_marker=ordered[i],
                to_marker=ordered[i + 1],
            ))
    return segments


class MarkerResolutionService:
    """Resolves plan items to markers through the geocoding service."""

    def __init__(
        self,
        geocoder: Optional[GeocodingService] = None,
        max_concurrency: Optional[int] = None,
    ):
        self.geocoder = geocoder or GeocodingService()
        self.max_concurrency = max_concurrency or settings.GEOCODE_MAX_CONCURRENCY

    async def resolve_city_center(self, city: str) -> Optional[Coordinate]:
        """Coordinate of the plan's city, or None when it cannot be resolved."""
        if not city or not city.strip():
            return None
        try:
            places = await self.geocoder.search(city.strip())
        except Exception as e:
            logger.warning(f"City center lookup failed for '{city}': {e}")
            return None
        return self._coordinate_of(places[0]) if places else None

    async def resolve_markers(
        self,
        plan: Plan,
        city_center: Optional[Coordinate] = None,
    ) -> List[Marker]:
        """
        Resolve every unique plan item to at most one marker.

        Args:
            plan: The current plan.
            city_center: Optional proximity bias for every lookup.

        Returns:
            Markers ordered by day then ``order_in_day``.
        """
        candidates = collect_candidates(plan)
        if not candidates:
            return []

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _lookup(candidate: _Candidate) -> Optional[Dict[str, Any]]:
            async with semaphore:
                try:
                    places = await self.geocoder.search(
                        candidate.name, city=plan.city or None, proximity=city_center,
                    )
                except Exception as e:
                    logger.warning(f"Geocoding failed for '{candidate.name}': {e}")
                    return None
            if not places or self._coordinate_of(places[0]) is None:
                logger.debug(f"No usable result for '{candidate.name}'")
                return None
            return places[0]

        results = await asyncio.gather(*(_lookup(c) for c in candidates))

        markers = []
        next_order: Dict[int, int] = defaultdict(int)
        for candidate, place in zip(candidates, results):
            if place is None:
                continue
            markers.append(self._to_marker(candidate, place, next_order[candidate.day]))
            next_order[candidate.day] += 1

        logger.info(
            "Resolved %d/%d plan items to markers", len(markers), len(candidates),
            extra={"city": plan.city},
        )
        return sorted(markers, key=lambda m: m.key)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _coordinate_of(place: Dict[str, Any]) -> Optional[Coordinate]:
        lat, lng = place.get("lat"), place.get("lng")
        if lat is None or lng is None:
            return None
        return Coordinate(lat=float(lat), lng=float(lng))

    def _to_marker(self, candidate: _Candidate, place: Dict[str, Any], order: int) -> Marker:
        resolved_name = place.get("name") or candidate.name
        address = place.get("address")
        if address == resolved_name:
            address = None
        return Marker(
            coordinate=self._coordinate_of(place),
            display_name=candidate.name,
            resolved_name=resolved_name,
            day=candidate.day,
            order_in_day=order,
            address=address or None,
            place_id=place.get("place_id"),
            rating=place.get("rating"),
            rating_count=place.get("rating_count"),
            photo_ref=place.get("photo_ref"),
        )
