"""
Client for Open-Meteo Weather API.
Fetches daily weather forecasts for a city over a date range.
No API key required.
"""

from typing import Any, Dict, Optional

import httpx

from config.settings import settings

GEOCODING_URL = "https://geocoding-api.open-meteo.com/v1/search"
FORECAST_URL = "https://api.open-meteo.com/v1/forecast"

# WMO weather codes -> human-readable descriptions
WEATHER_CODES = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Foggy",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    56: "Light freezing drizzle",
    57: "Dense freezing drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    66: "Light freezing rain",
    67: "Heavy freezing rain",
    71: "Slight snowfall",
    73: "Moderate snowfall",
    75: "Heavy snowfall",
    77: "Snow grains",
    80: "Slight rain showers",
    81: "Moderate rain showers",
    82: "Violent rain showers",
    85: "Slight snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with slight hail",
    99: "Thunderstorm with heavy hail",
}


class CityNotFoundError(ValueError):
    """Raised when Open-Meteo geocoding knows no city by that name."""


class WeatherClient:
    """Client for fetching weather forecasts via Open-Meteo (free, no key)."""

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None):
        self._http = http_client

    async def get_daily_forecast(
        self,
        city: str,
        start_date: str,
        end_date: str,
    ) -> Dict[str, Any]:
        """
        Get the daily forecast for a city between two dates (inclusive).

        Args:
            city: City name (e.g. "Taichung" or "Kingston, Ontario").
            start_date: First day, YYYY-MM-DD.
            end_date: Last day, YYYY-MM-DD.

        Returns:
            Dict with city info and parallel daily arrays.
        """
        # Step 1: Geocode the city name to coordinates
        coords = await self._geocode(city)

        # Step 2: Fetch weather for the date range
        params = {
            "latitude": coords["latitude"],
            "longitude": coords["longitude"],
            "daily": ",".join([
                "weather_code",
                "temperature_2m_max",
                "temperature_2m_min",
            ]),
            "timezone": "auto",
            "start_date": start_date,
            "end_date": end_date,
        }

        resp = await self._get(FORECAST_URL, params)
        resp.raise_for_status()
        data = resp.json()

        daily = data["daily"]
        codes = daily["weather_code"]
        return {
            "city": coords["name"],
            "country": coords["country"],
            "timezone": data.get("timezone", ""),
            "dates": daily["time"],
            "weather_codes": codes,
            "conditions": [WEATHER_CODES.get(c, f"Unknown ({c})") for c in codes],
            "temps_max": daily["temperature_2m_max"],
            "temps_min": daily["temperature_2m_min"],
        }

    async def _get(self, url: str, params: Dict[str, Any]) -> httpx.Response:
        if self._http is not None:
            return await self._http.get(url, params=params)
        async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT) as client:
            return await client.get(url, params=params)

    async def _geocode(self, city: str) -> Dict[str, Any]:
        """Convert a city name to coordinates using Open-Meteo geocoding.

        Handles inputs like "Kingston", "Kingston, Ontario", or
        "Kingston, Ontario, Canada" by searching for the city name
        and matching against any extra qualifiers (region, country).
        """
        parts = [p.strip() for p in city.split(",")]
        search_name = parts[0]
        qualifiers = [q.lower() for q in parts[1:] if q]

        resp = await self._get(
            GEOCODING_URL,
            {"name": search_name, "count": 10},
        )
        resp.raise_for_status()
        data = resp.json()

        results = data.get("results")
        if not results:
            raise CityNotFoundError(f"City not found: {city}")

        # If qualifiers given, try to find a matching result
        chosen = results[0]
        if qualifiers:
            for r in results:
                fields = " ".join([
                    r.get("admin1", ""),
                    r.get("admin2", ""),
                    r.get("country", ""),
                ]).lower()
                if all(q in fields for q in qualifiers):
                    chosen = r
                    break

        return {
            "name": chosen["name"],
            "country": chosen.get("country", ""),
            "latitude": chosen["latitude"],
            "longitude": chosen["longitude"],
        }
