"""Test place lookup: query shaping, result parsing and the empty-on-failure policy."""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import httpx
import pytest

from clients.google_places_client import GooglePlacesClient
from models.map_state import Coordinate
from services.geocoding_service import GeocodingService, build_photo_url


def _result(name, lat, lng, **extra):
    return {
        "name": name,
        "formatted_address": f"{name}, Taichung City",
        "geometry": {"location": {"lat": lat, "lng": lng}},
        **extra,
    }


OK_BODY = {
    "status": "OK",
    "results": [
        _result("Fengjia Night Market", 24.1756, 120.6456, place_id="p1", rating=4.3,
                user_ratings_total=90000, photos=[{"photo_reference": "photo-abc"}]),
        _result("Fengjia Market Parking", 24.176, 120.646),
        _result("Fengjia University", 24.18, 120.648),
        _result("Fengjia Hotel", 24.177, 120.644),
    ],
}


def _service(handler, seen=None):
    def _record(request):
        if seen is not None:
            seen.append(request)
        return handler(request)

    http = httpx.AsyncClient(transport=httpx.MockTransport(_record))
    return GeocodingService(client=GooglePlacesClient(api_key="test-key", http_client=http))


@pytest.mark.asyncio
async def test_search_parses_top_results():
    service = _service(lambda req: httpx.Response(200, json=OK_BODY))

    places = await service.search("Fengjia Night Market")

    assert len(places) == 3
    top = places[0]
    assert top["name"] == "Fengjia Night Market"
    assert top["address"] == "Fengjia Night Market, Taichung City"
    assert (top["lat"], top["lng"]) == (24.1756, 120.6456)
    assert top["place_id"] == "p1"
    assert top["rating_count"] == 90000
    assert top["photo_ref"] == "photo-abc"
    assert places[1]["photo_ref"] is None


@pytest.mark.asyncio
async def test_city_hint_and_proximity_go_into_the_request():
    seen = []
    service = _service(lambda req: httpx.Response(200, json=OK_BODY), seen)

    await service.search("Rainbow Village", city="Taichung",
                         proximity=Coordinate(lat=24.14, lng=120.67))

    params = seen[0].url.params
    assert params["query"] == "Taichung Rainbow Village"
    assert params["location"] == "24.14,120.67"
    assert params["radius"] == "20000"
    assert params["key"] == "test-key"


@pytest.mark.asyncio
async def test_no_proximity_means_no_location_bias():
    seen = []
    await _service(lambda req: httpx.Response(200, json=OK_BODY), seen).search("Rainbow Village")
    assert "location" not in seen[0].url.params
    assert seen[0].url.params["query"] == "Rainbow Village"


@pytest.mark.asyncio
async def test_non_ok_status_yields_empty_list():
    body = {"status": "ZERO_RESULTS", "results": []}
    service = _service(lambda req: httpx.Response(200, json=body))

    assert await service.search("Nowhere Special") == []
    raw = await service.lookup("Nowhere Special")
    assert raw["status"] == "ZERO_RESULTS"
    assert raw["places"] == []


@pytest.mark.asyncio
async def test_transport_failure_yields_empty_list():
    def _boom(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    service = _service(_boom)
    assert await service.search("Taichung Park") == []
    with pytest.raises(httpx.HTTPError):
        await service.lookup("Taichung Park")


@pytest.mark.asyncio
async def test_non_json_body_yields_empty_list():
    service = _service(lambda req: httpx.Response(200, text="<html>upstream error</html>"))

    assert await service.search("Taichung Park") == []


@pytest.mark.asyncio
async def test_unconfigured_service(monkeypatch):
    from config.settings import settings
    monkeypatch.setattr(settings, "GOOGLE_PLACES_API_KEY", "")

    service = GeocodingService()

    assert service.is_available() is False
    assert await service.search("Taichung Park") == []
    assert (await service.lookup("Taichung Park"))["status"] == "UNAVAILABLE"


@pytest.mark.asyncio
async def test_photo_fetch_returns_bytes_and_type():
    seen = []
    service = _service(
        lambda req: httpx.Response(200, content=b"\xff\xd8jpeg", headers={"content-type": "image/jpeg"}),
        seen,
    )

    data, content_type = await service.get_photo("photo-abc", max_width=300)

    assert data == b"\xff\xd8jpeg"
    assert content_type == "image/jpeg"
    assert seen[0].url.params["photo_reference"] == "photo-abc"
    assert seen[0].url.params["maxwidth"] == "300"


def test_photo_url_points_at_proxy():
    assert build_photo_url(None) is None
    assert build_photo_url("a/b c", max_width=200) == "/api/places/photo?ref=a%2Fb%20c&maxwidth=200"
