"""
HTTP API tests using FastAPI's TestClient.

The lifespan is not run; module-level services are replaced with fakes
so no external API is called.
"""
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import json
from datetime import date, timedelta
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from fastapi.testclient import TestClient

import app as app_module
from models.map_state import DirectionsResult, RouteSummary
from models.plan import Plan
from services.itinerary_source import ChatReply
from services.weather_service import WeatherService


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

PLAN = {
    "summary": "A day in Taichung",
    "city": "Taichung",
    "days": [
        {"day": 1, "items": [
            {"time": "morning", "name": "Rainbow Village", "category": "sight"},
            {"time": "noon", "name": "Miyahara", "category": "food"},
            {"time": "evening", "name": "Fengjia Night Market", "category": "food"},
        ]},
        {"day": 2, "items": [{"time": "morning", "name": "Gaomei Wetlands", "category": "sight"}]},
    ],
}


class FakeGeocoder:
    def __init__(self):
        self.client = MagicMock()

    def is_available(self):
        return True

    async def search(self, query, city=None, proximity=None):
        seed = sum(ord(ch) for ch in query)
        return [{"name": query, "address": f"{query} St.", "lat": 24 + seed / 10000,
                 "lng": 120 + seed / 10000, "photo_ref": "ref-" + query[:3]}]

    async def lookup(self, query, city=None, proximity=None):
        if query == "boom":
            raise httpx.ConnectError("down")
        if query == "garbled":
            raise json.JSONDecodeError("Expecting value", "<html>", 0)
        if query == "nowhere":
            return {"status": "ZERO_RESULTS", "error_message": None, "places": []}
        return {"status": "OK", "error_message": None, "places": await self.search(query)}

    async def get_photo(self, photo_ref, max_width=None):
        if photo_ref == "broken":
            raise httpx.ReadTimeout("slow")
        return b"img", "image/png"


@pytest.fixture
def client(monkeypatch):
    directions = MagicMock()
    directions.is_available.return_value = True
    directions.get_directions = AsyncMock(return_value=DirectionsResult(
        summary=RouteSummary(distance_text="3 km", duration_text="9 mins"),
    ))

    monkeypatch.setattr(app_module, "geocoding_service", FakeGeocoder())
    monkeypatch.setattr(app_module, "directions_service", directions)
    monkeypatch.setattr(app_module, "weather_service", WeatherService(client=MagicMock()))
    monkeypatch.setattr(app_module, "itinerary_source", None)
    monkeypatch.setattr(app_module, "session_store", app_module._build_session_store())
    return TestClient(app_module.app)


def _new_session(client):
    resp = client.post("/api/map/sessions")
    assert resp.status_code == 200
    return resp.json()["session_id"]


# ---------------------------------------------------------------------------
# System / chat
# ---------------------------------------------------------------------------

def test_health(client):
    data = client.get("/api/health").json()
    assert data["status"] == "ok"
    assert data["places_configured"] is True
    assert data["primary_llm"] == "none"


def test_chat_requires_user_message(client):
    assert client.post("/api/chat", json={"messages": []}).status_code == 400
    resp = client.post("/api/chat", json={"messages": [{"role": "user", "content": "   "}]})
    assert resp.status_code == 400
    assert resp.json()["error"] == "message is required"


def test_chat_without_llm_is_503(client):
    resp = client.post("/api/chat", json={"messages": [{"role": "user", "content": "hi"}]})
    assert resp.status_code == 503


def test_chat_plan_is_loaded_into_session(client, monkeypatch):
    source = MagicMock()
    source.reply = AsyncMock(return_value=ChatReply(content="Done!", plan=Plan.from_dict(PLAN)))
    monkeypatch.setattr(app_module, "itinerary_source", source)
    session_id = _new_session(client)

    resp = client.post("/api/chat", json={
        "messages": [{"role": "user", "content": "Plan Taichung"}],
        "session_id": session_id,
    })

    data = resp.json()
    assert resp.status_code == 200
    assert data["content"] == "Done!"
    assert data["plan"]["city"] == "Taichung"
    assert len(data["view"]["markers"]) == 4
    assert data["view"]["resolving"] is False


def test_chat_text_reply_leaves_plan_alone(client, monkeypatch):
    source = MagicMock()
    source.reply = AsyncMock(return_value=ChatReply(content="Which city?"))
    monkeypatch.setattr(app_module, "itinerary_source", source)

    data = client.post("/api/chat", json={"messages": [{"role": "user", "content": "hello"}]}).json()
    assert data["plan"] is None
    assert data["view"] is None


def test_chat_unexpected_failure_is_500(client, monkeypatch):
    source = MagicMock()
    source.reply = AsyncMock(side_effect=RuntimeError("boom"))
    monkeypatch.setattr(app_module, "itinerary_source", source)

    resp = client.post("/api/chat", json={"messages": [{"role": "user", "content": "hello"}]})
    assert resp.status_code == 500
    assert resp.json()["error"] == "Failed to get AI response"


# ---------------------------------------------------------------------------
# Proxies
# ---------------------------------------------------------------------------

def test_places_search(client):
    resp = client.post("/api/places/search", json={"query": "Miyahara", "city": "Taichung"})
    place = resp.json()["places"][0]
    assert place["name"] == "Miyahara"
    assert place["photo_url"] == "/api/places/photo?ref=ref-Miy&maxwidth=400"


def test_places_search_errors(client):
    assert client.post("/api/places/search", json={}).status_code == 400
    assert client.post("/api/places/search", json={"query": "boom"}).status_code == 500
    resp = client.post("/api/places/search", json={"query": "garbled"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to fetch places"}

    resp = client.post("/api/places/search", json={"query": "nowhere"})
    assert resp.status_code == 400
    assert resp.json()["status"] == "ZERO_RESULTS"


def test_photo_proxy(client):
    resp = client.get("/api/places/photo", params={"ref": "abc"})
    assert resp.status_code == 200
    assert resp.content == b"img"
    assert resp.headers["content-type"] == "image/png"

    assert client.get("/api/places/photo").status_code == 400
    assert client.get("/api/places/photo", params={"ref": "broken"}).status_code == 500


def test_directions_requires_both_ends(client):
    resp = client.post("/api/directions", json={"origin": {"lat": 24.1, "lng": 120.6}})
    assert resp.status_code == 400


def test_directions_ok(client):
    resp = client.post("/api/directions", json={
        "origin": {"lat": 24.1, "lng": 120.6},
        "destination": {"lat": 24.2, "lng": 120.7},
        "mode": "WALKING",
    })
    assert resp.status_code == 200
    assert resp.json()["summary"]["duration_text"] == "9 mins"


def test_weather_too_far(client):
    start = (date.today() + timedelta(days=20)).isoformat()
    resp = client.post("/api/weather", json={"city": "Taichung", "start_date": start})
    assert resp.status_code == 200
    assert resp.json()["daily"] is None
    assert resp.json()["reason"] == "Date too far"


# ---------------------------------------------------------------------------
# Map sessions
# ---------------------------------------------------------------------------

def test_unknown_session_is_404(client):
    assert client.get("/api/map/sessions/nope").status_code == 404
    resp = client.post("/api/chat", json={
        "messages": [{"role": "user", "content": "hi"}], "session_id": "nope",
    })
    # no LLM configured in this fixture, so the 503 comes first
    assert resp.status_code == 503


def test_map_session_flow(client):
    session_id = _new_session(client)
    base = f"/api/map/sessions/{session_id}"

    view = client.put(f"{base}/plan", json={"plan": PLAN}).json()["view"]
    assert [m["label"] for m in view["markers"] if m["day"] == 1] == ["1", "2", "3"]
    assert view["visible_segments"] == []

    view = client.post(f"{base}/day", json={"day": 1}).json()["view"]
    assert [s["id"] for s in view["visible_segments"]] == ["1-0", "1-1"]

    resp = client.post(f"{base}/segment", json={"segment_id": "1-1"}).json()
    assert resp["changed"] is True
    selection = resp["view"]["selection"]
    assert selection["selected_segment"]["id"] == "1-1"
    assert selection["directions_result"]["summary"]["distance_text"] == "3 km"
    assert len(resp["view"]["visible_markers"]) == 2

    view = client.delete(f"{base}/segment").json()["view"]
    assert view["selection"]["selected_segment"] is None
    assert len(view["visible_markers"]) == 3

    view = client.post(f"{base}/marker", json={"day": 2, "order": 0}).json()["view"]
    assert view["selection"]["selected_day"] == 2
    assert view["active_item"] == {"day": 2, "order_in_day": 0}
    assert view["camera"]["zoom"] == 15


def test_segment_of_other_day_is_unchanged(client):
    session_id = _new_session(client)
    base = f"/api/map/sessions/{session_id}"
    client.put(f"{base}/plan", json={"plan": PLAN})

    resp = client.post(f"{base}/segment", json={"segment_id": "1-0"}).json()
    assert resp["changed"] is False
    assert resp["view"]["selection"]["selected_segment"] is None


def test_list_item_and_marker_errors(client):
    session_id = _new_session(client)
    base = f"/api/map/sessions/{session_id}"
    client.put(f"{base}/plan", json={"plan": PLAN})

    assert client.post(f"{base}/list-item", json={"day": 1, "order": 9}).json()["changed"] is False
    assert client.post(f"{base}/marker", json={"day": 1, "order": 9}).status_code == 404


def test_invalid_plan_and_travel_mode(client):
    session_id = _new_session(client)
    base = f"/api/map/sessions/{session_id}"

    bad = {"summary": "x", "city": "y", "days": [{"day": 0, "items": []}]}
    assert client.put(f"{base}/plan", json={"plan": bad}).status_code == 422

    assert client.post(f"{base}/travel-mode", json={"mode": "SUBMARINE"}).status_code == 400
    view = client.post(f"{base}/travel-mode", json={"mode": "transit"}).json()["view"]
    assert view["selection"]["travel_mode"] == "TRANSIT"
